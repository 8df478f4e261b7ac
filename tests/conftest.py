from datetime import datetime, timedelta, timezone

import pytest

from sarkari_pulse.config import Settings
from sarkari_pulse.services.notifier import RunNotifier
from sarkari_pulse.services.scheme_store import SqliteSchemeStore
from sarkari_pulse.services.scraper.aggregator import Aggregator
from sarkari_pulse.services.scraper.fetcher import FetchError, RawPayload
from sarkari_pulse.services.scraper.session import ScrapeSession
from sarkari_pulse.services.scraper.upserter import SchemeUpserter


def api_page(items, total=None, url="https://api.example/search"):
    data = {"hits": {"items": items}}
    if total is not None:
        data["summary"] = {"total": total}
    return RawPayload(kind="json", url=url, json={"data": data})


def scheme_item(name, **fields):
    return {"id": fields.pop("id", None) or f"id-{name.lower().replace(' ', '-')}", "fields": {"schemeName": name, **fields}}


def http_error(status_code, url="https://api.example/search"):
    return FetchError(kind="http", url=url, status_code=status_code, message=f"HTTP {status_code}")


def network_error(url="https://api.example/search"):
    return FetchError(kind="network", url=url, message="connection refused")


class FakeFetcher:
    """Answers requests from a responder function and records every call."""

    def __init__(self, responder):
        self.responder = responder
        self.requests = []

    def fetch(self, request, session=None):
        self.requests.append(request)
        return self.responder(request)

    @property
    def offsets(self):
        return [r.params["from"] for r in self.requests]


class StepClock:
    """Deterministic clock: each call advances one second."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        store_backend="sqlite",
        browser_enabled=False,
        page_size=100,
        max_pages=10,
        empty_page_limit=3,
        base_delay_ms=500,
        delay_step_ms=50,
        max_delay_ms=5000,
        rate_limit_cooldown_seconds=30,
        search_keywords="kisan|pension",
        scheme_categories="Education & Learning|Health & Wellness",
        dbt_bharat_list_urls="https://dbt.example/list",
    )


@pytest.fixture
def store(tmp_path):
    return SqliteSchemeStore(str(tmp_path / "schemes.sqlite3"))


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_aggregator(store, settings, clock, sleeps):
    def _make(fetcher, notifier=None):
        return Aggregator(
            SchemeUpserter(store, clock=clock),
            fetcher=fetcher,
            notifier=notifier or RunNotifier(),
            settings=settings,
            sleep=sleeps.append,
            clock=clock,
            session_factory=lambda: ScrapeSession(settings.user_agent, browser_enabled=False),
        )
    return _make
