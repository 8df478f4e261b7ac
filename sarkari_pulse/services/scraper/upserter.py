"""
Sarkari Pulse — Upserter
Writes normalized records into the scheme store. A record matches an
existing document by real scheme id first, then by case-insensitive name.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Literal, Optional

from sarkari_pulse.core.errors import StoreError, UpsertError
from sarkari_pulse.models.scheme import SchemeDocument, SchemeRecord, is_generated_scheme_id
from sarkari_pulse.services.scheme_store import SchemeStore
from sarkari_pulse.utils.logger import logger


@dataclass
class UpsertResult:
    action: Literal["inserted", "updated"]
    id: str


@dataclass
class FlushResult:
    saved: int = 0
    updated: int = 0
    errors: list[UpsertError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SchemeUpserter:
    """Insert-or-update against a SchemeStore."""

    def __init__(self, store: SchemeStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def _find_existing(self, record: SchemeRecord) -> Optional[SchemeDocument]:
        if not is_generated_scheme_id(record.scheme_id):
            existing = self.store.find_by_scheme_id(record.scheme_id)
            if existing is not None:
                return existing
        return self.store.find_by_name(record.name.strip())

    def upsert(self, record: SchemeRecord) -> UpsertResult:
        """Insert or update one record. Store failures raise UpsertError."""
        now = self.clock()
        fields = record.store_fields()

        try:
            existing = self._find_existing(record)
            if existing is None:
                fields.update(created_at=now, updated_at=now, is_active=True)
                doc = self.store.insert(fields)
                return UpsertResult(action="inserted", id=doc.id)

            if is_generated_scheme_id(record.scheme_id) and not is_generated_scheme_id(existing.scheme_id):
                fields["scheme_id"] = existing.scheme_id
            fields["updated_at"] = now
            doc = self.store.update(existing.id, fields)
            return UpsertResult(action="updated", id=doc.id)
        except StoreError as e:
            raise UpsertError(record.name, str(e)) from e

    def flush(self, records: list[SchemeRecord]) -> FlushResult:
        """Upsert every record; failures are logged and counted, never fatal."""
        result = FlushResult()
        for record in records:
            try:
                outcome = self.upsert(record)
            except UpsertError as e:
                logger.error(f"❌ {e}")
                result.errors.append(e)
                continue
            if outcome.action == "inserted":
                result.saved += 1
            else:
                result.updated += 1

        logger.info(
            f"💾 Flush complete: {result.saved} inserted, {result.updated} updated, "
            f"{result.error_count} failed"
        )
        return result
