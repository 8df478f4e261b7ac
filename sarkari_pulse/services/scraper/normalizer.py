"""
Sarkari Pulse — Normalizer
Maps extractor candidates onto the canonical SchemeRecord.
"""

import itertools
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

from sarkari_pulse.models.scheme import GENERATED_ID_PREFIX, SchemeRecord
from sarkari_pulse.services.scraper.extractor import CandidateRecord


MIN_NAME_LENGTH = 4

DATE_FORMATS = [
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
]


@dataclass
class Rejected:
    """A candidate the normalizer refused, with the reason."""
    reason: str
    name: str = ""


def join_values(value: Any) -> str:
    """Arrays become one ', '-joined string; everything else is stringified and trimmed."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        parts = [join_values(v) for v in value]
        return ", ".join(p for p in parts if p)
    if isinstance(value, dict):
        return join_values(value.get("label") or value.get("name") or value.get("value") or "")
    return str(value).strip()


def normalize_level(value: Any) -> str:
    """'Central'/'State' when stated explicitly, '' when unknown."""
    text = join_values(value).lower()
    if text == "central":
        return "Central"
    if text == "state":
        return "State"
    return ""


def parse_date(value: Any) -> Optional[datetime]:
    """Lenient date parsing; anything unparseable becomes None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # epoch millis from JS-style APIs
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            dt = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


DETAIL_FIELDS = (
    "description", "eligibility", "benefits",
    "application_process", "documents_required", "ministry",
)


def merge_details(record: SchemeRecord, details: dict[str, str]) -> SchemeRecord:
    """Detail-page values replace listing values; blanks never overwrite."""
    update = {}
    for name in DETAIL_FIELDS:
        value = re.sub(r"\s+", " ", join_values(details.get(name))).strip()
        if value:
            update[name] = value
    return record.model_copy(update=update) if update else record


class Normalizer:
    """
    Normalizes candidates for one run. Placeholder scheme ids are unique
    within the run (run token + counter).
    """

    def __init__(self, run_token: str):
        self.run_token = run_token
        self._counter = itertools.count(1)

    def _placeholder_id(self, source: str) -> str:
        return f"{GENERATED_ID_PREFIX}{source}-{self.run_token}-{next(self._counter)}"

    def normalize(
        self,
        candidate: CandidateRecord,
        source: str,
        source_url: str = "",
        scraped_at: Optional[datetime] = None,
    ) -> Union[SchemeRecord, Rejected]:
        name = re.sub(r"\s+", " ", join_values(candidate.name)).strip()
        if not name:
            return Rejected(reason="empty name")
        if len(name) < MIN_NAME_LENGTH:
            return Rejected(reason="name too short", name=name)

        return SchemeRecord(
            name=name,
            description=join_values(candidate.description),
            ministry=join_values(candidate.ministry),
            department=join_values(candidate.department),
            target_audience=join_values(candidate.target_audience),
            sector=join_values(candidate.sector),
            level=normalize_level(candidate.level),
            beneficiary_state=join_values(candidate.beneficiary_state) or "All",
            scheme_id=candidate.scheme_id or self._placeholder_id(source),
            source=source,
            source_url=candidate.source_url or source_url,
            scraped_at=scraped_at or datetime.now(timezone.utc),
            launch_date=parse_date(candidate.launch_date),
            is_active=True,
        )
