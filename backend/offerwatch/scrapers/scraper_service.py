"""Scraping run service.

This service connects the orchestration core with its collaborators: it
runs one source against its baseline and hands the result to the store,
the spreadsheet and the mail notifier.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog

from offerwatch.config import settings
from offerwatch.core.exceptions import NotFoundError
from offerwatch.scrapers.base import RecordDetail, RecordSummary
from offerwatch.scrapers.diff import Baseline
from offerwatch.scrapers.factory import AdapterFactory, get_adapter_factory
from offerwatch.scrapers.orchestrator import ScrapeOrchestrator
from offerwatch.scrapers.scope import ScopeMode, build_scope
from offerwatch.sinks.filters import RecordFilter
from offerwatch.sinks.notifier import MailNotifier
from offerwatch.sinks.spreadsheet import SpreadsheetExporter
from offerwatch.sinks.store import DETAILS_LOG, SUMMARY_LOG, OfferStore

logger = structlog.get_logger(__name__)

_FROM_SETTINGS = object()


@dataclass
class RunResult:
    """Outcome of one source run."""

    source: str
    new_records: List[RecordDetail] = field(default_factory=list)
    merged_records: List[RecordDetail] = field(default_factory=list)
    summaries: List[RecordSummary] = field(default_factory=list)  # In-scope, enhanced
    records: List[RecordDetail] = field(default_factory=list)  # Everything scraped this run, filtered
    error: Optional[Exception] = None
    dropped: int = 0
    pages_fetched: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class ScraperService:
    """Service for running source adapters and processing results.

    Owns one Baseline per source for its own lifetime: a service kept
    alive by the scheduler accumulates records across runs, a one-shot
    service starts from the persisted file every time.
    """

    def __init__(
        self,
        factory: Optional[AdapterFactory] = None,
        store: Optional[OfferStore] = None,
        record_filter: Optional[RecordFilter] = None,
        exporter: Optional[SpreadsheetExporter] = None,
        notifier: Optional[MailNotifier] = None,
        scope_mode: Optional[ScopeMode] = None,
        page_count=_FROM_SETTINGS,
    ):
        """Initialize scraper service.

        Args:
            factory: Adapter factory (defaults to the global one)
            store: Baseline and log storage
            record_filter: Business filter for FILTER_SOURCES
            exporter: Spreadsheet writer, used when SAVE_TO_SPREADSHEET is on
            notifier: Mail notifier
            scope_mode: Recency window (defaults to SCRAPE_SCOPE)
            page_count: Page cap, None for the source ceiling (defaults to SCRAPE_PAGES_COUNT)
        """
        self.adapter_factory = factory or get_adapter_factory()
        self.store = store or OfferStore()
        self.record_filter = record_filter or RecordFilter()
        self.exporter = exporter or SpreadsheetExporter()
        self.notifier = notifier or MailNotifier()
        self.scope_mode = scope_mode or ScopeMode.parse(settings.SCRAPE_SCOPE)
        self.page_count = settings.SCRAPE_PAGES_COUNT if page_count is _FROM_SETTINGS else page_count
        self.baselines: Dict[str, Baseline] = {}
        self.logger = logger.bind(service="scraper_service")

    async def run(self, source: str, search_urls: List[str], baseline: Baseline) -> RunResult:
        """Scrape one source and diff the result against its baseline.

        New records are appended to the baseline in place. A failed run
        leaves the baseline unchanged and returns the error instead of
        raising it.

        Args:
            source: Source slug (e.g., "olx")
            search_urls: Search result URLs of this source
            baseline: Known records of this source

        Returns:
            RunResult
        """
        self.logger.info("running_source", source=source, urls=len(search_urls))

        try:
            adapter = self.adapter_factory.create_adapter(source)
            if adapter is None:
                raise NotFoundError("Adapter", source)

            scope = build_scope(adapter, self.scope_mode, self.page_count)
            outcome = await ScrapeOrchestrator(adapter, scope).scrape(search_urls)
        except Exception as e:
            self.logger.error(
                "source_run_failed",
                source=source,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return RunResult(source=source, merged_records=baseline.records, error=e)

        records = outcome.records
        if settings.FILTER_ENABLED and source in settings.get_filter_sources():
            records = self.record_filter.apply(records)

        diff = baseline.diff(records)
        baseline.extend(diff.new_records)

        self.logger.info(
            "source_run_complete",
            source=source,
            fetched=len(outcome.records),
            new_records=len(diff.new_records),
            known_records=len(baseline),
            dropped=outcome.dropped,
            pages_fetched=outcome.pages_fetched,
        )

        return RunResult(
            source=source,
            new_records=diff.new_records,
            merged_records=diff.merged_records,
            summaries=outcome.summaries,
            records=records,
            dropped=outcome.dropped,
            pages_fetched=outcome.pages_fetched,
        )

    async def run_source(self, source: str) -> RunResult:
        """Run one source end to end: scrape, persist, export and notify."""
        baseline = self.get_baseline(source)
        result = await self.run(source, settings.get_search_urls(source), baseline)

        if not result.ok:
            await self.notifier.notify_error(source, str(result.error))
            return result

        self.store.save_log(source, result.summaries, kind=SUMMARY_LOG)
        self.store.save_log(source, result.records, kind=DETAILS_LOG)

        if result.new_records:
            self.store.save_log(source, result.new_records)
            self.store.save_baseline(source, result.merged_records)
            if settings.SAVE_TO_SPREADSHEET:
                self.exporter.append(source, result.new_records)
            await self.notifier.notify_new_records(source, len(result.new_records))

        self.logger.info("new_records_found", source=source, count=len(result.new_records))
        return result

    def get_baseline(self, source: str) -> Baseline:
        """Baseline of a source, loaded from the store on first use."""
        baseline = self.baselines.get(source)
        if baseline is None:
            baseline = Baseline(source, self.store.load_baseline(source))
            self.baselines[source] = baseline
        return baseline
