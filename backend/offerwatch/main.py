"""Command-line entry point.

Runs every configured source once, then keeps re-running them on an
interval until interrupted (unless --once is given or RUN_INTERVALS is off).

Examples:
  # Default sources, then every REFRESH_MINUTES
  offerwatch

  # One pass over gumtree only
  offerwatch --source gumtree --once
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import structlog

from offerwatch.config import settings
from offerwatch.logging_config import configure_logging
from offerwatch.scrapers.factory import get_adapter_factory
from offerwatch.scrapers.register_adapters import register_all_adapters
from offerwatch.scrapers.scheduler import ScraperScheduler
from offerwatch.scrapers.scraper_service import RunResult, ScraperService

logger = structlog.get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="offerwatch",
        description="Watch classified-ad sites and report newly posted offers.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--source",
        action="append",
        dest="sources",
        metavar="SOURCE_SLUG",
        help="Source to scrape (repeatable). Defaults to SOURCES_TO_SCRAPE.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run every source once and exit.",
    )
    parser.add_argument(
        "--interval-minutes",
        type=int,
        default=None,
        help=f"Minutes between runs (default: REFRESH_MINUTES={settings.REFRESH_MINUTES}).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help=f"Log level (default: LOG_LEVEL={settings.LOG_LEVEL}).",
    )
    return parser.parse_args(argv)


async def run_once(service: ScraperService, sources: List[str]) -> List[RunResult]:
    """Run each source in turn."""
    results = []
    for source in sources:
        results.append(await service.run_source(source))
    return results


async def run(sources: List[str], once: bool, interval_minutes: Optional[int]) -> int:
    """Main async runner.

    Returns:
        Process exit code (1 when any source run failed in one-shot mode)
    """
    factory = get_adapter_factory()
    service = ScraperService(factory=factory)
    try:
        results = await run_once(service, sources)
        if once or not settings.RUN_INTERVALS:
            return 0 if all(result.ok for result in results) else 1

        scheduler = ScraperScheduler(service)
        scheduler.load_source_jobs(sources, interval_minutes, run_now=False)
        scheduler.start()
        try:
            # Jobs run on this loop until the process is interrupted
            await asyncio.Event().wait()
        finally:
            scheduler.stop()
        return 0
    finally:
        await factory.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(level=args.log_level)
    factory = register_all_adapters()

    sources = args.sources or settings.get_sources()
    unknown = [s for s in sources if not factory.has_adapter(s)]
    if unknown:
        logger.error(
            "unknown_sources",
            sources=unknown,
            available=factory.get_registered_sources(),
        )
        return 2

    logger.info("offerwatch_starting", sources=sources, once=args.once)
    try:
        return asyncio.run(run(sources, args.once, args.interval_minutes))
    except KeyboardInterrupt:
        logger.info("offerwatch_interrupted")
        return 0


if __name__ == "__main__":
    sys.exit(main())
