"""
Sarkari Pulse — Scrape Aggregator
Runs a batch of strategies sequentially and reconciles the results:
  1. Fetch each planned request (with a courtesy delay between requests)
  2. Extract + normalize candidates
  3. Dedup in memory by normalized name (first-seen wins)
  4. Optionally enrich the first N records from their detail pages
  5. Flush the unique records through the upserter
Lifecycle: IDLE -> RUNNING -> FLUSHING -> DONE. One aggregator, one run.
"""

import threading
import time
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from sarkari_pulse.config import Settings, get_settings
from sarkari_pulse.core.errors import RunInProgressError, SourceUnreachableError
from sarkari_pulse.models.scheme import SchemeRecord
from sarkari_pulse.services.notifier import RUN_COMPLETED, RUN_PROGRESS, RUN_STARTED, RunNotifier
from sarkari_pulse.services.scraper.extractor import extract, extract_details
from sarkari_pulse.services.scraper.fetcher import FetchError, FetchRequest, FetchResult, Fetcher, PageRequest
from sarkari_pulse.services.scraper.normalizer import Normalizer, Rejected, merge_details
from sarkari_pulse.services.scraper.session import ScrapeSession
from sarkari_pulse.services.scraper.source_table import get_source_profile
from sarkari_pulse.services.scraper.strategies import Strategy
from sarkari_pulse.services.scraper.upserter import SchemeUpserter, utc_now
from sarkari_pulse.utils.logger import logger


ENRICH_PHASE = "detail-enrichment"


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    FLUSHING = "flushing"
    DONE = "done"


class RunReport(BaseModel):
    """Counters for one run. found_count is the number of unique records sent to the store."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    run_id: str
    strategies: list[str]
    found_count: int = 0
    saved_count: int = 0
    updated_count: int = 0
    error_count: int = 0
    rejected_count: int = 0
    duplicate_count: int = 0
    pages_fetched: int = 0
    enriched_count: int = 0
    cancelled: bool = False
    started_at: datetime
    finished_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def courtesy_delay_ms(index: int, base_ms: int, step_ms: int, max_ms: int) -> int:
    """Delay before the request at position `index` of its strategy; only the run's first request skips it."""
    return min(base_ms + step_ms * max(index, 0), max_ms)


class Aggregator:
    def __init__(
        self,
        upserter: SchemeUpserter,
        fetcher: Optional[Fetcher] = None,
        notifier: Optional[RunNotifier] = None,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utc_now,
        session_factory: Optional[Callable[[], ScrapeSession]] = None,
    ):
        self.settings = settings or get_settings()
        self.upserter = upserter
        self.fetcher = fetcher or Fetcher(self.settings)
        self.notifier = notifier or RunNotifier()
        self.sleep = sleep
        self.clock = clock
        self.session_factory = session_factory or (
            lambda: ScrapeSession(self.settings.user_agent, browser_enabled=self.settings.browser_enabled)
        )
        self.state = RunState.IDLE
        self._cancel = threading.Event()
        self._requests_made = 0

    def cancel(self) -> None:
        """Stop issuing requests. Records collected so far are still flushed."""
        if not self._cancel.is_set():
            logger.info("🛑 Scrape run cancellation requested")
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def run(
        self,
        strategies: list[Strategy],
        enrich: bool = False,
        max_details: Optional[int] = None,
    ) -> RunReport:
        if self.state != RunState.IDLE:
            raise RunInProgressError(f"Aggregator already {self.state.value}")

        self.state = RunState.RUNNING
        collected: dict[str, SchemeRecord] = {}

        try:
            with self.session_factory() as session:
                report = RunReport(
                    run_id=session.run_id,
                    strategies=[s.name for s in strategies],
                    started_at=self.clock(),
                )
                logger.info(f"🚀 [{report.run_id}] Scrape run started: {', '.join(report.strategies)}")
                self.notifier.publish(RUN_STARTED, {
                    "runId": report.run_id,
                    "strategies": report.strategies,
                })

                normalizer = Normalizer(session.run_id)
                for strategy in strategies:
                    if self.cancelled:
                        break
                    self._run_strategy(strategy, session, normalizer, collected, report)
                    report.found_count = len(collected)
                    self._publish_progress(strategy.name, report)

                if enrich and not self.cancelled:
                    limit = max_details or self.settings.enrich_max_details
                    self._enrich(collected, session, report, limit)
                    self._publish_progress(ENRICH_PHASE, report)

            self.state = RunState.FLUSHING
            report.found_count = len(collected)
            report.cancelled = self.cancelled
            flushed = self.upserter.flush(list(collected.values()))
            report.saved_count = flushed.saved
            report.updated_count = flushed.updated
            report.error_count += flushed.error_count
            report.finished_at = self.clock()
        finally:
            self.state = RunState.DONE

        logger.info(
            f"✅ [{report.run_id}] Run complete: found={report.found_count} "
            f"saved={report.saved_count} updated={report.updated_count} errors={report.error_count}"
        )
        self.notifier.publish(RUN_COMPLETED, report.to_dict())
        return report

    def _publish_progress(self, phase: str, report: RunReport) -> None:
        self.notifier.publish(RUN_PROGRESS, {
            "runId": report.run_id,
            "strategy": phase,
            "foundCount": report.found_count,
            "duplicateCount": report.duplicate_count,
            "rejectedCount": report.rejected_count,
            "errorCount": report.error_count,
            "pagesFetched": report.pages_fetched,
            "enrichedCount": report.enriched_count,
        })

    def _request(self, request: FetchRequest, index: int, session: ScrapeSession) -> FetchResult:
        """Fetch with the courtesy delay; only the very first request of the run goes out immediately."""
        settings = self.settings
        if self._requests_made > 0:
            delay_ms = courtesy_delay_ms(index, settings.base_delay_ms, settings.delay_step_ms, settings.max_delay_ms)
            self.sleep(delay_ms / 1000)

        result = self.fetcher.fetch(request, session)
        self._requests_made += 1

        if isinstance(result, FetchError):
            if self._requests_made == 1 and result.is_network:
                raise SourceUnreachableError(f"{result.url}: {result.message}")
            if result.is_rate_limited:
                logger.warning(f"⏳ Rate limited, cooling down {settings.rate_limit_cooldown_seconds}s")
                self.sleep(settings.rate_limit_cooldown_seconds)
        return result

    def _run_strategy(
        self,
        strategy: Strategy,
        session: ScrapeSession,
        normalizer: Normalizer,
        collected: dict[str, SchemeRecord],
        report: RunReport,
    ) -> None:
        logger.info(f"📋 [{report.run_id}] Strategy '{strategy.name}'")

        for index, request in enumerate(strategy.requests()):
            if self.cancelled:
                break

            result = self._request(request, index, session)
            if isinstance(result, FetchError):
                report.error_count += 1
                logger.warning(f"⚠️ [{strategy.name}] {result.kind} error on {result.url}: {result.message}")
                strategy.observe(result, 0, 0)
                continue

            report.pages_fetched += 1
            candidates = extract(result, strategy.profile)
            new = 0
            for candidate in candidates:
                record = normalizer.normalize(
                    candidate, strategy.source_tag, source_url=result.url, scraped_at=self.clock()
                )
                if isinstance(record, Rejected):
                    report.rejected_count += 1
                    continue
                if record.key in collected:
                    report.duplicate_count += 1
                    continue
                collected[record.key] = record
                new += 1

            logger.debug(f"[{strategy.name}] {result.url}: {len(candidates)} candidates, {new} new")
            strategy.observe(result, len(candidates), new)

        exhausted = getattr(strategy, "exhausted_filters", int(strategy.exhausted))
        if exhausted:
            logger.info(f"[{strategy.name}] {exhausted} pass(es) ended after {self.settings.empty_page_limit} pages with nothing new")

    def _enrich(
        self,
        collected: dict[str, SchemeRecord],
        session: ScrapeSession,
        report: RunReport,
        max_details: int,
    ) -> None:
        """Merge detail-page fields into the first `max_details` records that have a MyScheme detail URL."""
        profile = get_source_profile("myscheme")
        prefix = profile.detail_url_prefix
        keys = [k for k, r in collected.items() if prefix and r.source_url.startswith(prefix)][:max_details]
        logger.info(f"🔍 [{report.run_id}] Enriching {len(keys)} schemes from detail pages")

        settings = self.settings
        for index, key in enumerate(keys):
            if self.cancelled:
                break
            record = collected[key]
            request = PageRequest(
                url=record.source_url,
                render=settings.browser_enabled,
                timeout=settings.page_timeout_seconds,
                settle_seconds=settings.browser_settle_seconds,
            )
            result = self._request(request, index, session)
            if isinstance(result, FetchError):
                report.error_count += 1
                logger.warning(f"⚠️ [{ENRICH_PHASE}] {result.kind} error on {result.url}: {result.message}")
                continue

            report.pages_fetched += 1
            details = extract_details(result, profile)
            if details:
                collected[key] = merge_details(record, details)
                report.enriched_count += 1
