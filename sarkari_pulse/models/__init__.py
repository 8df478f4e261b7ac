# Models module
from sarkari_pulse.models.scheme import (
    SchemeRecord, SchemeDocument, SchemeListResponse, SchemeStats,
    Pagination, ScrapeRequest, dedup_key, is_generated_scheme_id,
)
