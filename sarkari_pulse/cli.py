"""
Sarkari Pulse — Command Line Entry Point

Usage:
  sarkari-pulse scrape
  sarkari-pulse scrape --strategies pagination keywords --max-pages 5
  sarkari-pulse scrape --enrich --max-details 20
  sarkari-pulse serve --port 8080
"""

import argparse
import json
import signal
import sys
from typing import Optional

from sarkari_pulse.config import get_settings
from sarkari_pulse.core.errors import SarkariPulseError, SourceUnreachableError
from sarkari_pulse.services.notifier import get_notifier
from sarkari_pulse.services.scheme_store import get_scheme_store
from sarkari_pulse.services.scraper.aggregator import Aggregator
from sarkari_pulse.services.scraper.strategies import STRATEGY_REGISTRY, build_strategies
from sarkari_pulse.services.scraper.upserter import SchemeUpserter
from sarkari_pulse.utils.logger import logger


def run_scrape(
    strategies: Optional[list[str]],
    max_pages: Optional[int],
    enrich: bool = False,
    max_details: Optional[int] = None,
) -> int:
    settings = get_settings()
    try:
        planned = build_strategies(strategies, settings, max_pages=max_pages)
        aggregator = Aggregator(SchemeUpserter(get_scheme_store()), notifier=get_notifier(), settings=settings)
    except SarkariPulseError as e:
        logger.error(f"❌ {e}")
        return 2

    # Ctrl+C stops fetching but still saves what was collected.
    signal.signal(signal.SIGINT, lambda *_: aggregator.cancel())

    try:
        report = aggregator.run(planned, enrich=enrich, max_details=max_details)
    except SourceUnreachableError as e:
        logger.error(f"❌ Source unreachable: {e}")
        return 3

    print(json.dumps(report.to_dict(), indent=2))
    return 0 if report.error_count == 0 else 1


def serve(host: Optional[str], port: Optional[int], reload: bool) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "sarkari_pulse.main:app",
        host=host or settings.app_host,
        port=port or settings.app_port,
        reload=reload,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sarkari-pulse", description="Government scheme aggregator")
    sub = parser.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser("scrape", help="Run one scrape batch and print the report")
    scrape.add_argument(
        "--strategies", nargs="+", metavar="NAME",
        help=f"Strategies to run, in order ({', '.join(STRATEGY_REGISTRY)})",
    )
    scrape.add_argument("--max-pages", type=int, default=None, help="Page cap per strategy filter")
    scrape.add_argument("--enrich", action="store_true", help="Fetch detail pages for eligibility and benefits")
    scrape.add_argument("--max-details", type=int, default=None, help="Detail pages to fetch when enriching")

    srv = sub.add_parser("serve", help="Start the REST API")
    srv.add_argument("--host", default=None)
    srv.add_argument("--port", type=int, default=None)
    srv.add_argument("--reload", action="store_true")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "scrape":
        return run_scrape(args.strategies, args.max_pages, enrich=args.enrich, max_details=args.max_details)
    return serve(args.host, args.port, args.reload)


if __name__ == "__main__":
    sys.exit(main())
