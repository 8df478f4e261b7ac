"""
Sarkari Pulse — Fetcher
Obtains raw content from upstream sources:
  1. API requests  — MyScheme search API (JSON), plain HTTP GET
  2. Page requests — DOM-rendered list pages via the session's headless browser
Transport failures come back as FetchError values; the caller decides
whether to skip, cool down, or stop.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import requests

from sarkari_pulse.config import Settings, get_settings
from sarkari_pulse.services.scraper.session import ScrapeSession
from sarkari_pulse.utils.logger import logger


# ═══════════════════════════════════════════════════
# Request / Result Types
# ═══════════════════════════════════════════════════

@dataclass
class ApiRequest:
    """GET against a JSON API."""
    url: str
    params: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float = 20.0

    @property
    def label(self) -> str:
        return requests.Request("GET", self.url, params=self.params).prepare().url or self.url


@dataclass
class PageRequest:
    """GET of an HTML page, optionally rendered in the headless browser."""
    url: str
    render: bool = True
    timeout: float = 30.0
    settle_seconds: float = 2.0

    @property
    def label(self) -> str:
        return self.url


FetchRequest = Union[ApiRequest, PageRequest]


@dataclass
class RawPayload:
    kind: str                       # "json" or "html"
    url: str
    status_code: int = 200
    json: Any = None
    text: str = ""


@dataclass
class FetchError:
    kind: str                       # "timeout", "http", "network" or "parse"
    url: str
    message: str
    status_code: Optional[int] = None

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    @property
    def is_network(self) -> bool:
        return self.kind == "network"


FetchResult = Union[RawPayload, FetchError]


def api_headers(settings: Settings) -> dict[str, str]:
    """Browser-like headers the MyScheme API expects."""
    return {
        "Accept": "application/json",
        "Accept-Language": "en-US,en;q=0.9",
        "Referer": settings.myscheme_referer,
        "Origin": settings.myscheme_base_url,
        "User-Agent": settings.user_agent,
    }


# ═══════════════════════════════════════════════════
# Fetcher
# ═══════════════════════════════════════════════════

class Fetcher:
    """Stateless fetcher; every call is independent (no pooled connections)."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def fetch(self, request: FetchRequest, session: Optional[ScrapeSession] = None) -> FetchResult:
        if isinstance(request, ApiRequest):
            return self._fetch_api(request)
        if request.render and session is not None:
            driver = session.get_driver()
            if driver is not None:
                return self._fetch_rendered(request, driver)
        return self._fetch_plain(request)

    def _fetch_api(self, request: ApiRequest) -> FetchResult:
        try:
            resp = requests.get(
                request.url,
                params=request.params,
                headers=request.headers,
                timeout=request.timeout,
            )
        except requests.Timeout as e:
            return FetchError(kind="timeout", url=request.label, message=str(e))
        except requests.RequestException as e:
            return FetchError(kind="network", url=request.label, message=str(e))

        if resp.status_code >= 400:
            return FetchError(
                kind="http",
                url=request.label,
                status_code=resp.status_code,
                message=f"HTTP {resp.status_code} {resp.reason or ''}".strip(),
            )

        try:
            data = resp.json()
        except ValueError as e:
            return FetchError(
                kind="parse", url=request.label, status_code=resp.status_code,
                message=f"Response is not JSON: {e}",
            )
        return RawPayload(kind="json", url=request.label, status_code=resp.status_code, json=data)

    def _fetch_plain(self, request: PageRequest) -> FetchResult:
        try:
            resp = requests.get(
                request.url,
                headers={
                    "User-Agent": self.settings.user_agent,
                    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                    "Accept-Language": "en-US,en;q=0.5",
                },
                timeout=request.timeout,
            )
        except requests.Timeout as e:
            return FetchError(kind="timeout", url=request.url, message=str(e))
        except requests.RequestException as e:
            return FetchError(kind="network", url=request.url, message=str(e))

        if resp.status_code >= 400:
            return FetchError(
                kind="http", url=request.url, status_code=resp.status_code,
                message=f"HTTP {resp.status_code} {resp.reason or ''}".strip(),
            )
        return RawPayload(kind="html", url=request.url, status_code=resp.status_code, text=resp.text)

    def _fetch_rendered(self, request: PageRequest, driver) -> FetchResult:
        from selenium.common.exceptions import TimeoutException, WebDriverException
        from selenium.webdriver.support.ui import WebDriverWait

        try:
            driver.set_page_load_timeout(request.timeout)
            driver.get(request.url)
            WebDriverWait(driver, request.timeout).until(
                lambda d: d.execute_script("return document.readyState") == "complete"
            )
            # No network-idle signal in WebDriver; give late XHRs time to land.
            time.sleep(request.settle_seconds)
            html = driver.page_source
        except TimeoutException as e:
            return FetchError(kind="timeout", url=request.url, message=str(e).strip() or "page load timed out")
        except WebDriverException as e:
            logger.warning(f"Browser fetch failed for {request.url}: {e}")
            return FetchError(kind="network", url=request.url, message=str(e).strip())

        return RawPayload(kind="html", url=request.url, text=html)
