"""
Sarkari Pulse — Extractor
Locates candidate scheme records in raw payloads using the prioritized
field paths and selector lists from the source table:
  1. JSON payloads — walk list paths, read alternate field names per attribute
  2. HTML payloads — container selectors, then a keyword line-scan fallback
A payload that matches nothing yields no candidates; it is not an error.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from sarkari_pulse.services.scraper.fetcher import RawPayload
from sarkari_pulse.services.scraper.source_table import ID_FIELDS, ITEM_WRAPPERS, SourceProfile
from sarkari_pulse.utils.logger import logger


@dataclass
class CandidateRecord:
    """Loosely-typed scheme candidate; values may still be lists or raw strings."""
    name: Any = ""
    description: Any = ""
    ministry: Any = ""
    department: Any = ""
    target_audience: Any = ""
    sector: Any = ""
    level: Any = ""
    beneficiary_state: Any = ""
    launch_date: Any = ""
    scheme_id: str = ""
    source_url: str = ""
    extra: dict = field(default_factory=dict)


MINISTRY_PATTERN = re.compile(r"ministry[:\s]+([^,\n]+)", re.IGNORECASE)
URL_MARKERS = ("http", "www.")


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def dig(data: Any, path: str) -> Any:
    """Follow a dotted path through nested dicts; None when any hop is missing."""
    current = data
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def first_present(record: dict, names: list[str]) -> Any:
    """First non-empty value among the alternate field names, else ''."""
    for name in names:
        value = record.get(name)
        if not _is_empty(value):
            return value
    return ""


# ═══════════════════════════════════════════════════
# JSON Extraction
# ═══════════════════════════════════════════════════

def find_item_list(data: Any, list_paths: list[str]) -> list:
    if isinstance(data, list):
        return data
    for path in list_paths:
        items = dig(data, path)
        if isinstance(items, list):
            return items
    return []


def extract_total(payload: RawPayload) -> Optional[int]:
    """Total hit count advertised by the search API (data.summary.total), if any."""
    if payload.kind != "json":
        return None
    total = dig(payload.json, "data.summary.total")
    if isinstance(total, bool):
        return None
    if isinstance(total, int):
        return total
    if isinstance(total, str) and total.isdigit():
        return int(total)
    return None


def _unwrap(item: dict) -> dict:
    for wrapper in ITEM_WRAPPERS:
        inner = item.get(wrapper)
        if isinstance(inner, dict):
            return inner
    return item


def _candidate_from_item(item: dict, profile: SourceProfile) -> CandidateRecord:
    fields = _unwrap(item)
    fmap = profile.field_map

    scheme_id = first_present(item, ID_FIELDS) or first_present(fields, ID_FIELDS)
    slug = first_present(fields, fmap.get("slug", []))
    url = first_present(fields, fmap.get("url", []))
    if slug and profile.detail_url_template:
        source_url = profile.detail_url_template.format(slug=slug)
    else:
        source_url = url if isinstance(url, str) else ""

    return CandidateRecord(
        name=first_present(fields, fmap.get("name", [])),
        description=first_present(fields, fmap.get("description", [])),
        ministry=first_present(fields, fmap.get("ministry", [])),
        department=first_present(fields, fmap.get("department", [])),
        target_audience=first_present(fields, fmap.get("target_audience", [])),
        sector=first_present(fields, fmap.get("sector", [])),
        level=first_present(fields, fmap.get("level", [])),
        beneficiary_state=first_present(fields, fmap.get("beneficiary_state", [])),
        launch_date=first_present(fields, fmap.get("launch_date", [])),
        scheme_id=str(scheme_id) if not _is_empty(scheme_id) else "",
        source_url=source_url,
    )


def extract_json(data: Any, profile: SourceProfile) -> list[CandidateRecord]:
    candidates = []
    for item in find_item_list(data, profile.list_paths):
        if not isinstance(item, dict):
            continue
        candidates.append(_candidate_from_item(item, profile))
    return candidates


# ═══════════════════════════════════════════════════
# HTML Extraction
# ═══════════════════════════════════════════════════

def _select_text(element, selectors: list[str], exclude: str = "") -> str:
    for selector in selectors:
        found = element.select_one(selector)
        if found is None:
            continue
        text = found.get_text(" ", strip=True)
        if text and text != exclude:
            return text
    return ""


def _candidate_from_element(element, profile: SourceProfile, page_url: str) -> Optional[CandidateRecord]:
    name = _select_text(element, profile.name_selectors)
    if not name and element.name in ("a", "li", "td"):
        name = element.get_text(" ", strip=True)
    if not name:
        return None

    description = _select_text(element, profile.description_selectors, exclude=name)

    link = element if element.name == "a" else element.find("a", href=True)
    href = link.get("href", "") if link is not None else ""
    source_url = urljoin(page_url, href) if href and not href.startswith(("#", "javascript:")) else page_url

    all_text = element.get_text("\n", strip=True)
    ministry_match = MINISTRY_PATTERN.search(all_text)

    return CandidateRecord(
        name=name,
        description=description,
        ministry=ministry_match.group(1).strip() if ministry_match else "",
        level=profile.default_level,
        source_url=source_url,
    )


def scan_keyword_lines(text: str, profile: SourceProfile) -> list[str]:
    """Lines that look like scheme titles: keyword present, sane length, no URLs/emails."""
    lines = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not (profile.min_line_length <= len(line) <= profile.max_line_length):
            continue
        lower = line.lower()
        if not any(keyword in lower for keyword in profile.keywords):
            continue
        if any(marker in lower for marker in URL_MARKERS) or "@" in line:
            continue
        lines.append(line)
    return lines


def extract_html(html: str, profile: SourceProfile, page_url: str = "") -> list[CandidateRecord]:
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    for selector in profile.container_selectors:
        elements = soup.select(selector)
        if not elements:
            continue
        candidates = [
            candidate
            for candidate in (_candidate_from_element(el, profile, page_url) for el in elements)
            if candidate is not None
        ]
        if candidates:
            logger.debug(f"Selector '{selector}' matched {len(elements)} elements on {page_url}")
            return candidates

    lines = scan_keyword_lines(soup.get_text("\n"), profile)
    if lines:
        logger.debug(f"No container matched on {page_url}; keyword scan found {len(lines)} lines")
    return [
        CandidateRecord(name=line, level=profile.default_level, source_url=page_url)
        for line in lines
    ]


def extract_details(payload: RawPayload, profile: SourceProfile) -> dict[str, str]:
    """Non-empty detail-page attributes (eligibility, benefits, ...) keyed by record field."""
    if payload.kind != "html":
        return {}
    soup = BeautifulSoup(payload.text or "", "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    details = {}
    for attribute, selectors in profile.detail_selectors.items():
        items = []
        for selector in profile.detail_list_selectors.get(attribute, []):
            items = [el.get_text(" ", strip=True) for el in soup.select(selector)]
            items = [text for text in items if text]
            if items:
                break
        text = ", ".join(items) if items else _select_text(soup, selectors)
        if text:
            details[attribute] = text
    return details


def extract(payload: RawPayload, profile: SourceProfile) -> list[CandidateRecord]:
    """Candidate records found in a payload; never raises on missing fields."""
    if payload.kind == "json":
        return extract_json(payload.json, profile)
    return extract_html(payload.text, profile, page_url=payload.url)
