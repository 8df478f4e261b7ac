"""
Sarkari Pulse — Pydantic Models for Schemes
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


GENERATED_ID_PREFIX = "gen-"

SchemeLevel = Literal["Central", "State", ""]


def dedup_key(name: str) -> str:
    """Key used to treat names differing only by case/outer whitespace as one scheme."""
    return (name or "").strip().lower()


def is_generated_scheme_id(scheme_id: Optional[str]) -> bool:
    return not scheme_id or scheme_id.startswith(GENERATED_ID_PREFIX)


class SchemeRecord(BaseModel):
    """Canonical scheme shape produced by the normalizer."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(min_length=1)
    description: str = ""
    eligibility: str = ""
    benefits: str = ""
    application_process: str = ""
    documents_required: str = ""
    ministry: str = ""
    department: str = ""
    target_audience: str = ""
    sector: str = ""
    level: SchemeLevel = ""
    beneficiary_state: str = "All"
    scheme_id: str
    source: str
    source_url: str = ""
    scraped_at: datetime
    launch_date: Optional[datetime] = None
    is_active: bool = True

    @property
    def key(self) -> str:
        return dedup_key(self.name)

    def store_fields(self) -> dict:
        """Snake-case field dict as written to the store."""
        return self.model_dump(by_alias=False)


class SchemeDocument(SchemeRecord):
    """A stored scheme, as returned by the store and the REST API."""
    id: str
    created_at: datetime
    updated_at: datetime


class Pagination(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


class SchemeListResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    data: list[SchemeDocument]
    pagination: Pagination


class SchemeStats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_schemes: int
    active_schemes: int
    ministries: list[str] = []
    sectors: list[str] = []
    sources: dict[str, int] = {}
    last_updated: Optional[datetime] = None


class ScrapeRequest(BaseModel):
    """Body of POST /api/schemes/scrape."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    strategies: Optional[list[str]] = None
    max_pages: Optional[int] = Field(default=None, ge=1, le=500)
    enrich: bool = False
    max_details: Optional[int] = Field(default=None, ge=1, le=500)
