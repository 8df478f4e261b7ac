"""
Sarkari Pulse — Scraper Package
Exports the pipeline stages and the strategy registry.
"""

from sarkari_pulse.services.scraper.aggregator import Aggregator, RunReport, RunState
from sarkari_pulse.services.scraper.extractor import CandidateRecord, extract
from sarkari_pulse.services.scraper.fetcher import ApiRequest, FetchError, Fetcher, PageRequest, RawPayload
from sarkari_pulse.services.scraper.normalizer import Normalizer, Rejected
from sarkari_pulse.services.scraper.session import ScrapeSession
from sarkari_pulse.services.scraper.strategies import STRATEGY_REGISTRY, Strategy, build_strategies
from sarkari_pulse.services.scraper.upserter import FlushResult, SchemeUpserter, UpsertResult
