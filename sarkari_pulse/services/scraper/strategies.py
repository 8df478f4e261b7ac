"""
Sarkari Pulse — Scrape Strategies
Each strategy plans a sequence of requests against one upstream source and
decides, from what each response produced, when it has run dry:
  1. pagination — offset paging through the whole MyScheme catalogue
  2. keywords   — MyScheme keyword search, one query per keyword
  3. categories / states / ministries — MyScheme filtered searches
  4. dbt_bharat — rendered DBT Bharat list pages
"""

import json
from abc import ABC, abstractmethod
from typing import Iterator, Optional

from sarkari_pulse.config import Settings
from sarkari_pulse.core.errors import UnknownStrategyError
from sarkari_pulse.services.scraper.extractor import extract_total
from sarkari_pulse.services.scraper.fetcher import (
    ApiRequest,
    FetchRequest,
    FetchResult,
    PageRequest,
    RawPayload,
    api_headers,
)
from sarkari_pulse.services.scraper.source_table import SourceProfile, get_source_profile


class Strategy(ABC):
    """
    A request plan with feedback. The aggregator pulls requests from
    `requests()` and reports every outcome back through `observe()`
    before pulling the next one.
    """

    name: str = ""
    source_tag: str = ""
    source_name: str = ""

    def __init__(self, settings: Settings, max_pages: Optional[int] = None):
        self.settings = settings
        self.max_pages = max_pages or settings.max_pages
        self.empty_page_limit = settings.empty_page_limit
        self.profile: SourceProfile = get_source_profile(self.source_name)
        self.exhausted = False
        self._zero_streak = 0

    @abstractmethod
    def requests(self) -> Iterator[FetchRequest]:
        ...

    def observe(self, result: FetchResult, found: int, new: int) -> None:
        """Record the outcome of the last request; `new` counts first-seen names."""
        if new > 0:
            self._zero_streak = 0
            return
        self._zero_streak += 1
        if self._zero_streak >= self.empty_page_limit:
            self.exhausted = True


# ═══════════════════════════════════════════════════
# MyScheme Search API
# ═══════════════════════════════════════════════════

class SearchApiStrategy(Strategy):
    """Offset paging over the search API, once per filter the subclass supplies."""

    source_name = "myscheme"

    def __init__(self, settings: Settings, max_pages: Optional[int] = None):
        super().__init__(settings, max_pages)
        self.page_size = settings.page_size
        self._offset = 0
        self._filter_done = False
        self.exhausted_filters = 0

    def filters(self) -> Iterator[tuple[str, list[dict]]]:
        """(keyword, q-filter list) pairs; one unfiltered pass by default."""
        yield "", []

    def build_request(self, keyword: str, q: list[dict], offset: int) -> ApiRequest:
        return ApiRequest(
            url=self.settings.myscheme_search_api,
            params={
                "lang": "en",
                "q": json.dumps(q),
                "keyword": keyword,
                "sort": "",
                "from": offset,
                "size": self.page_size,
            },
            headers=api_headers(self.settings),
            timeout=self.settings.api_timeout_seconds,
        )

    def requests(self) -> Iterator[FetchRequest]:
        # Exhaustion ends one filter's page loop; every filter value is still visited.
        for keyword, q in self.filters():
            self._filter_done = False
            self._zero_streak = 0
            self.exhausted = False
            for page in range(self.max_pages):
                if self.exhausted or self._filter_done:
                    break
                self._offset = page * self.page_size
                yield self.build_request(keyword, q, self._offset)
            if self.exhausted:
                self.exhausted_filters += 1

    def observe(self, result: FetchResult, found: int, new: int) -> None:
        super().observe(result, found, new)
        if not isinstance(result, RawPayload):
            return
        if found == 0:
            self._filter_done = True
            return
        total = extract_total(result)
        if total is not None and self._offset + self.page_size >= total:
            self._filter_done = True


class OffsetPagination(SearchApiStrategy):
    name = "pagination"
    source_tag = "smart-pagination"


class KeywordSearch(SearchApiStrategy):
    name = "keywords"
    source_tag = "keyword-search"

    def filters(self) -> Iterator[tuple[str, list[dict]]]:
        for keyword in self.settings.keyword_list:
            yield keyword, []


class FieldFilter(SearchApiStrategy):
    """One filtered pass per value of a single search facet."""

    filter_key: str = ""

    def values(self) -> list[str]:
        return []

    def filters(self) -> Iterator[tuple[str, list[dict]]]:
        for value in self.values():
            yield "", [{"identifier": self.filter_key, "value": value}]


class CategoryFilter(FieldFilter):
    name = "categories"
    source_tag = "category-filter"
    filter_key = "schemeCategory"

    def values(self) -> list[str]:
        return self.settings.category_list


class StateFilter(FieldFilter):
    name = "states"
    source_tag = "state-filter"
    filter_key = "beneficiaryState"

    def values(self) -> list[str]:
        return self.settings.state_list


class MinistryFilter(FieldFilter):
    name = "ministries"
    source_tag = "ministry-filter"
    filter_key = "nodalMinistryName"

    def values(self) -> list[str]:
        return self.settings.ministry_list


# ═══════════════════════════════════════════════════
# Rendered List Pages
# ═══════════════════════════════════════════════════

class DbtBharatListPages(Strategy):
    name = "dbt_bharat"
    source_tag = "dbt-bharat"
    source_name = "dbt_bharat"

    def requests(self) -> Iterator[FetchRequest]:
        for url in self.settings.dbt_bharat_urls[: self.max_pages]:
            if self.exhausted:
                return
            yield PageRequest(
                url=url,
                render=self.settings.browser_enabled,
                timeout=self.settings.page_timeout_seconds,
                settle_seconds=self.settings.browser_settle_seconds,
            )


STRATEGY_REGISTRY: dict[str, type[Strategy]] = {
    cls.name: cls
    for cls in (OffsetPagination, KeywordSearch, CategoryFilter, StateFilter, MinistryFilter, DbtBharatListPages)
}


def build_strategies(
    names: Optional[list[str]],
    settings: Settings,
    max_pages: Optional[int] = None,
) -> list[Strategy]:
    """Instantiate strategies by name, in order. Unknown names fail the whole request."""
    names = names or settings.default_strategy_names
    unknown = [n for n in names if n not in STRATEGY_REGISTRY]
    if unknown:
        raise UnknownStrategyError(unknown)
    return [STRATEGY_REGISTRY[n](settings, max_pages=max_pages) for n in names]
