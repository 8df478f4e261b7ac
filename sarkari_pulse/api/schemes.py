"""
Sarkari Pulse — Schemes API Router
Browse stored schemes and trigger scrape runs.
"""

import threading
from typing import Literal, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from sarkari_pulse.config import Settings, get_settings
from sarkari_pulse.core.errors import SourceUnreachableError, StoreError, UnknownStrategyError
from sarkari_pulse.models.scheme import Pagination, SchemeListResponse, ScrapeRequest
from sarkari_pulse.services.notifier import RunNotifier, get_notifier
from sarkari_pulse.services.scheme_store import SchemeStore, get_scheme_store, total_pages
from sarkari_pulse.services.scraper.aggregator import Aggregator
from sarkari_pulse.services.scraper.strategies import build_strategies
from sarkari_pulse.services.scraper.upserter import SchemeUpserter
from sarkari_pulse.utils.logger import logger

router = APIRouter()

# Only one scrape run at a time; concurrent runs would double the request rate upstream.
_run_lock = threading.Lock()


def build_aggregator(store: SchemeStore, notifier: RunNotifier, settings: Settings) -> Aggregator:
    return Aggregator(SchemeUpserter(store), notifier=notifier, settings=settings)


@router.get("", response_model=SchemeListResponse, response_model_by_alias=True)
def list_schemes(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="Match in name or description"),
    ministry: Optional[str] = Query(None),
    sector: Optional[str] = Query(None),
    sort_by: str = Query("name", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("asc", alias="sortOrder"),
    store: SchemeStore = Depends(get_scheme_store),
):
    """Paginated scheme list with optional search and ministry/sector filters."""
    docs, total = store.list_schemes(
        page=page,
        limit=limit,
        search=search,
        ministry=ministry,
        sector=sector,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return SchemeListResponse(
        data=docs,
        pagination=Pagination(
            current_page=page,
            total_pages=total_pages(total, limit),
            total_items=total,
            items_per_page=limit,
        ),
    )


@router.get("/stats")
def scheme_stats(store: SchemeStore = Depends(get_scheme_store)):
    stats = store.stats()
    return {"success": True, "data": stats.model_dump(mode="json", by_alias=True)}


@router.post("/scrape")
def trigger_scrape(
    request: Optional[ScrapeRequest] = Body(None),
    store: SchemeStore = Depends(get_scheme_store),
    notifier: RunNotifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
):
    """
    Run one scrape batch synchronously and return its report.
    400 for unknown strategies, 409 while another run is active,
    503 when the upstream source cannot be reached.
    """
    request = request or ScrapeRequest()
    try:
        strategies = build_strategies(request.strategies, settings, max_pages=request.max_pages)
    except UnknownStrategyError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not _run_lock.acquire(blocking=False):
        raise HTTPException(status_code=409, detail="A scrape run is already in progress")

    try:
        aggregator = build_aggregator(store, notifier, settings)
        report = aggregator.run(strategies, enrich=request.enrich, max_details=request.max_details)
    except SourceUnreachableError as e:
        logger.error(f"❌ Scrape source unreachable: {e}")
        raise HTTPException(status_code=503, detail=f"Scheme source unreachable: {e}")
    except StoreError as e:
        logger.error(f"❌ Scrape run could not start: {e}")
        raise HTTPException(status_code=500, detail=f"Scrape run could not start: {e}")
    finally:
        _run_lock.release()

    return {"success": True, "report": report.to_dict()}


@router.get("/{scheme_id}")
def get_scheme(scheme_id: str, store: SchemeStore = Depends(get_scheme_store)):
    doc = store.get(scheme_id)
    if doc is None:
        raise HTTPException(status_code=404, detail="Scheme not found")
    return {"success": True, "data": doc.model_dump(mode="json", by_alias=True)}
