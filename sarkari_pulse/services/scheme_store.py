"""
Sarkari Pulse — Scheme Store
Persistence for SchemeDocuments behind one interface, two backends:
  1. SQLite   — local file, normalized name_key + scheme_id unique indexes
  2. Supabase — hosted Postgres table, case-insensitive ilike name lookup
"""

import math
import sqlite3
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from sarkari_pulse.config import Settings, get_settings
from sarkari_pulse.core.errors import StoreError
from sarkari_pulse.models.scheme import SchemeDocument, SchemeStats, dedup_key
from sarkari_pulse.utils.logger import logger


SORTABLE_FIELDS = {
    "name", "ministry", "sector", "level", "source",
    "scraped_at", "launch_date", "created_at", "updated_at",
}

SORT_ALIASES = {
    "scrapedAt": "scraped_at",
    "launchDate": "launch_date",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

DATETIME_FIELDS = ("scraped_at", "launch_date", "created_at", "updated_at")

# Added with detail-page enrichment; older databases get them via ALTER TABLE.
DETAIL_COLUMNS = ("eligibility", "benefits", "application_process", "documents_required")

SUPABASE_PAGE_SIZE = 1000


def escape_like(value: str) -> str:
    """Escape LIKE/ILIKE wildcards so the value matches literally."""
    return (
        value.replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )


def quote_filter_value(value: str) -> str:
    """Double-quote a PostgREST filter value so ',', '(' and ')' stay literal."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def resolve_sort_field(sort_by: str) -> str:
    field = SORT_ALIASES.get(sort_by, sort_by)
    return field if field in SORTABLE_FIELDS else "name"


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


class SchemeStore(ABC):
    """Storage contract used by the upserter and the REST API."""

    @abstractmethod
    def find_by_scheme_id(self, scheme_id: str) -> Optional[SchemeDocument]:
        ...

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[SchemeDocument]:
        """Case-insensitive exact match on the trimmed name."""
        ...

    @abstractmethod
    def insert(self, fields: dict) -> SchemeDocument:
        ...

    @abstractmethod
    def update(self, doc_id: str, fields: dict) -> SchemeDocument:
        ...

    @abstractmethod
    def get(self, doc_id: str) -> Optional[SchemeDocument]:
        ...

    @abstractmethod
    def list_schemes(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        ministry: Optional[str] = None,
        sector: Optional[str] = None,
        sort_by: str = "name",
        sort_order: str = "asc",
    ) -> tuple[list[SchemeDocument], int]:
        ...

    @abstractmethod
    def stats(self) -> SchemeStats:
        ...

    def count(self) -> int:
        return self.stats().total_schemes


# ═══════════════════════════════════════════════════
# SQLite Backend
# ═══════════════════════════════════════════════════

class SqliteSchemeStore(SchemeStore):
    """SQLite-backed scheme store; one connection per operation."""

    COLUMNS = [
        "id", "name", "name_key", "description", "eligibility", "benefits",
        "application_process", "documents_required", "ministry", "department",
        "target_audience", "sector", "level", "beneficiary_state", "scheme_id",
        "source", "source_url", "scraped_at", "launch_date", "is_active",
        "created_at", "updated_at",
    ]

    def __init__(self, db_path: str):
        self._lock = threading.Lock()
        path = Path(db_path)
        if not path.is_absolute():
            path = Path.cwd() / path
        self.db_path = path.resolve()
        self._initialize()
        logger.info(f"SQLite scheme store at: {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=5.0)
        conn.row_factory = sqlite3.Row
        return conn

    def _initialize(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schemes (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    name_key TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    eligibility TEXT NOT NULL DEFAULT '',
                    benefits TEXT NOT NULL DEFAULT '',
                    application_process TEXT NOT NULL DEFAULT '',
                    documents_required TEXT NOT NULL DEFAULT '',
                    ministry TEXT NOT NULL DEFAULT '',
                    department TEXT NOT NULL DEFAULT '',
                    target_audience TEXT NOT NULL DEFAULT '',
                    sector TEXT NOT NULL DEFAULT '',
                    level TEXT NOT NULL DEFAULT '',
                    beneficiary_state TEXT NOT NULL DEFAULT 'All',
                    scheme_id TEXT NOT NULL,
                    source TEXT NOT NULL,
                    source_url TEXT NOT NULL DEFAULT '',
                    scraped_at TEXT NOT NULL,
                    launch_date TEXT,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            existing = {r["name"] for r in conn.execute("PRAGMA table_info(schemes)")}
            for column in DETAIL_COLUMNS:
                if column not in existing:
                    logger.info(f"Adding missing column schemes.{column}")
                    conn.execute(f"ALTER TABLE schemes ADD COLUMN {column} TEXT NOT NULL DEFAULT ''")
            conn.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_schemes_name_key ON schemes(name_key)")
            conn.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_schemes_scheme_id ON schemes(scheme_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_schemes_ministry ON schemes(ministry)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_schemes_sector ON schemes(sector)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_schemes_source ON schemes(source)")
            conn.commit()

    @staticmethod
    def _to_row(fields: dict) -> dict:
        row = dict(fields)
        for key in DATETIME_FIELDS:
            value = row.get(key)
            if isinstance(value, datetime):
                row[key] = value.isoformat()
        if "is_active" in row:
            row["is_active"] = 1 if row["is_active"] else 0
        if "name" in row:
            row["name_key"] = dedup_key(row["name"])
        return row

    @staticmethod
    def _to_document(row: sqlite3.Row) -> SchemeDocument:
        data = dict(row)
        data.pop("name_key", None)
        data["is_active"] = bool(data["is_active"])
        for key in DATETIME_FIELDS:
            if data.get(key):
                data[key] = datetime.fromisoformat(data[key])
        return SchemeDocument(**data)

    def _fetch_one(self, sql: str, params: tuple) -> Optional[SchemeDocument]:
        try:
            with self._lock, self._connect() as conn:
                row = conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"SQLite read failed: {e}") from e
        return self._to_document(row) if row else None

    def find_by_scheme_id(self, scheme_id: str) -> Optional[SchemeDocument]:
        return self._fetch_one("SELECT * FROM schemes WHERE scheme_id = ?", (scheme_id,))

    def find_by_name(self, name: str) -> Optional[SchemeDocument]:
        return self._fetch_one("SELECT * FROM schemes WHERE name_key = ?", (dedup_key(name),))

    def get(self, doc_id: str) -> Optional[SchemeDocument]:
        return self._fetch_one("SELECT * FROM schemes WHERE id = ?", (doc_id,))

    def insert(self, fields: dict) -> SchemeDocument:
        row = self._to_row(fields)
        row["id"] = uuid.uuid4().hex
        columns = [c for c in self.COLUMNS if c in row]
        sql = (
            f"INSERT INTO schemes ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})"
        )
        try:
            with self._lock, self._connect() as conn:
                conn.execute(sql, tuple(row[c] for c in columns))
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"SQLite insert failed: {e}") from e
        return self.get(row["id"])

    def update(self, doc_id: str, fields: dict) -> SchemeDocument:
        row = self._to_row(fields)
        row.pop("id", None)
        row.pop("created_at", None)
        columns = [c for c in self.COLUMNS if c in row]
        sql = f"UPDATE schemes SET {', '.join(f'{c} = ?' for c in columns)} WHERE id = ?"
        try:
            with self._lock, self._connect() as conn:
                cursor = conn.execute(sql, tuple(row[c] for c in columns) + (doc_id,))
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"SQLite update failed: {e}") from e
        if cursor.rowcount == 0:
            raise StoreError(f"No scheme with id {doc_id}")
        return self.get(doc_id)

    def list_schemes(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        ministry: Optional[str] = None,
        sector: Optional[str] = None,
        sort_by: str = "name",
        sort_order: str = "asc",
    ) -> tuple[list[SchemeDocument], int]:
        clauses, params = [], []
        if search:
            clauses.append("(name LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\')")
            pattern = f"%{escape_like(search)}%"
            params.extend([pattern, pattern])
        if ministry:
            clauses.append("ministry LIKE ? ESCAPE '\\'")
            params.append(f"%{escape_like(ministry)}%")
        if sector:
            clauses.append("sector LIKE ? ESCAPE '\\'")
            params.append(f"%{escape_like(sector)}%")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        order = "DESC" if sort_order.lower() == "desc" else "ASC"
        sort_field = resolve_sort_field(sort_by)

        try:
            with self._lock, self._connect() as conn:
                total = conn.execute(f"SELECT COUNT(*) FROM schemes {where}", params).fetchone()[0]
                rows = conn.execute(
                    f"SELECT * FROM schemes {where} ORDER BY {sort_field} {order}, id ASC LIMIT ? OFFSET ?",
                    params + [limit, (page - 1) * limit],
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"SQLite query failed: {e}") from e
        return [self._to_document(r) for r in rows], int(total)

    def stats(self) -> SchemeStats:
        try:
            with self._lock, self._connect() as conn:
                total = conn.execute("SELECT COUNT(*) FROM schemes").fetchone()[0]
                active = conn.execute("SELECT COUNT(*) FROM schemes WHERE is_active = 1").fetchone()[0]
                ministries = [
                    r[0] for r in conn.execute(
                        "SELECT DISTINCT ministry FROM schemes WHERE ministry != '' ORDER BY ministry"
                    )
                ]
                sectors = [
                    r[0] for r in conn.execute(
                        "SELECT DISTINCT sector FROM schemes WHERE sector != '' ORDER BY sector"
                    )
                ]
                sources = {
                    r[0]: r[1] for r in conn.execute(
                        "SELECT source, COUNT(*) FROM schemes GROUP BY source"
                    )
                }
                last_updated = conn.execute("SELECT MAX(updated_at) FROM schemes").fetchone()[0]
        except sqlite3.Error as e:
            raise StoreError(f"SQLite stats failed: {e}") from e

        return SchemeStats(
            total_schemes=total,
            active_schemes=active,
            ministries=ministries,
            sectors=sectors,
            sources=sources,
            last_updated=datetime.fromisoformat(last_updated) if last_updated else None,
        )


# ═══════════════════════════════════════════════════
# Supabase Backend
# ═══════════════════════════════════════════════════

class SupabaseSchemeStore(SchemeStore):
    """Supabase (PostgREST) table store. Expects a 'schemes' table with snake_case columns."""

    def __init__(self, client: Any, table: str = "schemes"):
        self._client = client
        self.table = table

    @staticmethod
    def _to_row(fields: dict) -> dict:
        row = dict(fields)
        for key in DATETIME_FIELDS:
            value = row.get(key)
            if isinstance(value, datetime):
                row[key] = value.isoformat()
        return row

    def _first(self, response) -> Optional[SchemeDocument]:
        rows = response.data or []
        return SchemeDocument(**rows[0]) if rows else None

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except Exception as e:
            raise StoreError(f"Supabase {action} failed: {e}") from e

    def find_by_scheme_id(self, scheme_id: str) -> Optional[SchemeDocument]:
        query = self._client.table(self.table).select("*").eq("scheme_id", scheme_id).limit(1)
        return self._first(self._execute(query, "lookup"))

    def find_by_name(self, name: str) -> Optional[SchemeDocument]:
        pattern = escape_like(name.strip())
        query = self._client.table(self.table).select("*").ilike("name", pattern).limit(1)
        return self._first(self._execute(query, "lookup"))

    def get(self, doc_id: str) -> Optional[SchemeDocument]:
        query = self._client.table(self.table).select("*").eq("id", doc_id).limit(1)
        return self._first(self._execute(query, "get"))

    def insert(self, fields: dict) -> SchemeDocument:
        query = self._client.table(self.table).insert(self._to_row(fields))
        doc = self._first(self._execute(query, "insert"))
        if doc is None:
            raise StoreError("Supabase insert returned no row")
        return doc

    def update(self, doc_id: str, fields: dict) -> SchemeDocument:
        row = self._to_row(fields)
        row.pop("id", None)
        row.pop("created_at", None)
        query = self._client.table(self.table).update(row).eq("id", doc_id)
        doc = self._first(self._execute(query, "update"))
        if doc is None:
            raise StoreError(f"No scheme with id {doc_id}")
        return doc

    def list_schemes(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        ministry: Optional[str] = None,
        sector: Optional[str] = None,
        sort_by: str = "name",
        sort_order: str = "asc",
    ) -> tuple[list[SchemeDocument], int]:
        start = (page - 1) * limit
        end = start + limit - 1

        query = self._client.table(self.table).select("*", count="exact")
        if search:
            pattern = quote_filter_value(f"%{escape_like(search)}%")
            query = query.or_(f"name.ilike.{pattern},description.ilike.{pattern}")
        if ministry:
            query = query.ilike("ministry", f"%{escape_like(ministry)}%")
        if sector:
            query = query.ilike("sector", f"%{escape_like(sector)}%")

        query = query.order(resolve_sort_field(sort_by), desc=sort_order.lower() == "desc").range(start, end)
        response = self._execute(query, "list")
        rows = response.data or []
        return [SchemeDocument(**r) for r in rows], int(response.count or 0)

    def _count(self, active_only: bool = False) -> int:
        query = self._client.table(self.table).select("id", count="exact", head=True)
        if active_only:
            query = query.eq("is_active", True)
        return int(self._execute(query, "count").count or 0)

    def _all_rows(self, columns: str) -> list[dict]:
        """Page through the table; a single select is capped server-side."""
        rows, start = [], 0
        while True:
            query = (
                self._client.table(self.table)
                .select(columns)
                .order("id")
                .range(start, start + SUPABASE_PAGE_SIZE - 1)
            )
            batch = self._execute(query, "stats").data or []
            rows.extend(batch)
            if len(batch) < SUPABASE_PAGE_SIZE:
                return rows
            start += SUPABASE_PAGE_SIZE

    def stats(self) -> SchemeStats:
        rows = self._all_rows("ministry, sector, source")
        sources: dict[str, int] = {}
        for r in rows:
            sources[r.get("source") or ""] = sources.get(r.get("source") or "", 0) + 1

        latest = self._execute(
            self._client.table(self.table).select("updated_at").order("updated_at", desc=True).limit(1),
            "stats",
        ).data or []

        return SchemeStats(
            total_schemes=self._count(),
            active_schemes=self._count(active_only=True),
            ministries=sorted({r["ministry"] for r in rows if r.get("ministry")}),
            sectors=sorted({r["sector"] for r in rows if r.get("sector")}),
            sources=sources,
            last_updated=latest[0].get("updated_at") if latest else None,
        )


# --- Singleton ---
_scheme_store: Optional[SchemeStore] = None


def create_scheme_store(settings: Settings) -> SchemeStore:
    backend = settings.store_backend.lower()
    if backend == "supabase":
        if not settings.has_supabase_config:
            raise StoreError("STORE_BACKEND=supabase but SUPABASE_URL / key are not configured")
        from sarkari_pulse.core.supabase_client import get_supabase_client
        return SupabaseSchemeStore(get_supabase_client(), table=settings.supabase_table)
    if backend == "sqlite":
        return SqliteSchemeStore(settings.sqlite_path)
    raise StoreError(f"Unknown STORE_BACKEND '{settings.store_backend}'")


def get_scheme_store() -> SchemeStore:
    global _scheme_store
    if _scheme_store is None:
        _scheme_store = create_scheme_store(get_settings())
    return _scheme_store
