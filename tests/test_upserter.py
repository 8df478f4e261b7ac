import sqlite3
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from conftest import StepClock
from sarkari_pulse.core.errors import StoreError, UpsertError
from sarkari_pulse.models.scheme import SchemeRecord
from sarkari_pulse.services.scheme_store import SqliteSchemeStore, SupabaseSchemeStore, escape_like, quote_filter_value
from sarkari_pulse.services.scraper.upserter import SchemeUpserter


SCRAPED = datetime(2026, 1, 1, tzinfo=timezone.utc)


def record(name, scheme_id="MS-001", **fields):
    return SchemeRecord(name=name, scheme_id=scheme_id, source="smart-pagination", scraped_at=SCRAPED, **fields)


def test_insert_sets_timestamps_and_active(store):
    upserter = SchemeUpserter(store, clock=StepClock())

    result = upserter.upsert(record("PM Kisan Samman Nidhi", is_active=False))

    assert result.action == "inserted"
    doc = store.get(result.id)
    assert doc.created_at == doc.updated_at
    assert doc.is_active is True


def test_repeat_upsert_updates_same_document(store):
    upserter = SchemeUpserter(store, clock=StepClock())
    first = upserter.upsert(record("PM Kisan Samman Nidhi", description="old"))
    created = store.get(first.id)

    second = upserter.upsert(record("PM Kisan Samman Nidhi", description="new"))

    assert second.action == "updated"
    assert second.id == first.id
    doc = store.get(first.id)
    assert doc.description == "new"
    assert doc.created_at == created.created_at
    assert doc.updated_at > created.updated_at
    assert store.count() == 1


def test_name_match_ignores_case(store):
    upserter = SchemeUpserter(store, clock=StepClock())
    first = upserter.upsert(record("PM Kisan Samman Nidhi", scheme_id="gen-myscheme-a-1"))

    second = upserter.upsert(record("pm KISAN samman nidhi", scheme_id="gen-myscheme-b-1"))

    assert second.action == "updated"
    assert second.id == first.id
    assert store.get(first.id).name == "pm KISAN samman nidhi"


def test_scheme_id_match_wins_over_name(store):
    upserter = SchemeUpserter(store, clock=StepClock())
    first = upserter.upsert(record("Old Scheme Title", scheme_id="MS-42"))

    second = upserter.upsert(record("Renamed Scheme Title", scheme_id="MS-42"))

    assert second.action == "updated"
    assert second.id == first.id
    assert store.find_by_name("old scheme title") is None


def test_placeholder_id_does_not_replace_real_id(store):
    upserter = SchemeUpserter(store, clock=StepClock())
    first = upserter.upsert(record("PM Kisan Samman Nidhi", scheme_id="MS-7"))

    upserter.upsert(record("PM Kisan Samman Nidhi", scheme_id="gen-dbt-bharat-xyz-3"))

    assert store.get(first.id).scheme_id == "MS-7"


def test_like_wildcards_in_names_match_literally(store):
    upserter = SchemeUpserter(store, clock=StepClock())
    upserter.upsert(record("100% Subsidy_Scheme", scheme_id="gen-a-1"))

    result = upserter.upsert(record("100X SubsidyXScheme", scheme_id="gen-a-2"))

    assert result.action == "inserted"
    assert store.count() == 2


def test_escape_like():
    assert escape_like("50%_off\\now") == "50\\%\\_off\\\\now"
    assert escape_like("plain") == "plain"


def test_store_failure_raises_upsert_error():
    broken = MagicMock()
    broken.find_by_scheme_id.return_value = None
    broken.find_by_name.side_effect = StoreError("connection lost")

    with pytest.raises(UpsertError) as exc:
        SchemeUpserter(broken).upsert(record("PM Kisan Samman Nidhi"))
    assert exc.value.name == "PM Kisan Samman Nidhi"


def test_flush_continues_after_failures(store):
    upserter = SchemeUpserter(store, clock=StepClock())
    original_insert = store.insert

    def flaky_insert(fields):
        if fields["name"].startswith("Broken"):
            raise StoreError("constraint violated")
        return original_insert(fields)

    store.insert = flaky_insert
    result = upserter.flush([
        record("Atal Pension Yojana", scheme_id="MS-1"),
        record("Broken Scheme Entry", scheme_id="MS-2"),
        record("PM Awas Yojana", scheme_id="MS-3"),
    ])

    assert result.saved == 2
    assert result.updated == 0
    assert result.error_count == 1
    assert result.errors[0].name == "Broken Scheme Entry"
    assert store.count() == 2


def test_supabase_name_lookup_escapes_pattern():
    client = MagicMock()
    query = client.table.return_value.select.return_value
    query.ilike.return_value.limit.return_value.execute.return_value = MagicMock(data=[])

    found = SupabaseSchemeStore(client).find_by_name("  100% Scheme ")

    assert found is None
    client.table.assert_called_with("schemes")
    query.ilike.assert_called_once_with("name", "100\\% Scheme")


def test_supabase_failure_becomes_store_error():
    client = MagicMock()
    client.table.return_value.insert.return_value.execute.side_effect = RuntimeError("503 from PostgREST")

    with pytest.raises(StoreError):
        SupabaseSchemeStore(client).insert({"name": "PM Kisan Samman Nidhi"})


def test_supabase_search_quotes_filter_values():
    client = MagicMock()
    query = client.table.return_value.select.return_value
    query.or_.return_value.order.return_value.range.return_value.execute.return_value = MagicMock(data=[], count=0)

    docs, total = SupabaseSchemeStore(client).list_schemes(search='Health (Rural), "Women"')

    assert (docs, total) == ([], 0)
    pattern = '"%Health (Rural), \\"Women\\"%"'
    query.or_.assert_called_once_with(f"name.ilike.{pattern},description.ilike.{pattern}")


def test_quote_filter_value():
    assert quote_filter_value("%a,b%") == '"%a,b%"'
    assert quote_filter_value('say "hi"') == '"say \\"hi\\""'
    assert quote_filter_value("back\\slash") == '"back\\\\slash"'


class FakeSupabaseQuery:
    """Minimal PostgREST query builder over in-memory rows; selects cap at 1000 rows like the server."""

    def __init__(self, rows):
        self.rows = rows
        self.count = None
        self.head = False
        self.filters = []
        self.sort = None
        self.window = None

    def select(self, columns, count=None, head=False):
        self.count, self.head = count, head
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.sort = (column, desc)
        return self

    def range(self, start, end):
        self.window = (start, end + 1)
        return self

    def limit(self, n):
        self.window = (0, n)
        return self

    def execute(self):
        rows = [r for r in self.rows if all(r.get(c) == v for c, v in self.filters)]
        if self.sort:
            rows = sorted(rows, key=lambda r: r[self.sort[0]], reverse=self.sort[1])
        total = len(rows)
        if self.window:
            rows = rows[self.window[0]:self.window[1]]
        return SimpleNamespace(
            data=[] if self.head else rows[:1000],
            count=total if self.count == "exact" else None,
        )


class FakeSupabase:
    def __init__(self, rows):
        self.rows = rows

    def table(self, name):
        return FakeSupabaseQuery(self.rows)


def test_supabase_stats_cover_more_rows_than_one_select():
    rows = [
        {
            "id": f"{i:05d}",
            "ministry": f"Ministry {i % 3}",
            "sector": "Health",
            "source": "smart-pagination" if i % 2 else "keyword-search",
            "is_active": i % 5 != 0,
            "updated_at": (SCRAPED + timedelta(seconds=i)).isoformat(),
        }
        for i in range(2500)
    ]

    stats = SupabaseSchemeStore(FakeSupabase(rows)).stats()

    assert stats.total_schemes == 2500
    assert stats.active_schemes == 2000
    assert stats.sources == {"smart-pagination": 1250, "keyword-search": 1250}
    assert stats.ministries == ["Ministry 0", "Ministry 1", "Ministry 2"]
    assert stats.sectors == ["Health"]
    assert stats.last_updated == SCRAPED + timedelta(seconds=2499)


def test_sqlite_store_adds_detail_columns_to_older_tables(tmp_path):
    path = tmp_path / "old.sqlite3"
    with sqlite3.connect(str(path)) as conn:
        conn.execute(
            "CREATE TABLE schemes (id TEXT PRIMARY KEY, name TEXT NOT NULL, name_key TEXT NOT NULL, "
            "description TEXT NOT NULL DEFAULT '', ministry TEXT NOT NULL DEFAULT '', "
            "department TEXT NOT NULL DEFAULT '', target_audience TEXT NOT NULL DEFAULT '', "
            "sector TEXT NOT NULL DEFAULT '', level TEXT NOT NULL DEFAULT '', "
            "beneficiary_state TEXT NOT NULL DEFAULT 'All', scheme_id TEXT NOT NULL, source TEXT NOT NULL, "
            "source_url TEXT NOT NULL DEFAULT '', scraped_at TEXT NOT NULL, launch_date TEXT, "
            "is_active INTEGER NOT NULL DEFAULT 1, created_at TEXT NOT NULL, updated_at TEXT NOT NULL)"
        )
    store = SqliteSchemeStore(str(path))

    result = SchemeUpserter(store, clock=StepClock()).upsert(record("PM Kisan Samman Nidhi", eligibility="Farmers"))

    assert store.get(result.id).eligibility == "Farmers"
