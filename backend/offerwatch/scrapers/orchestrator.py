"""Scrape orchestration for a single source.

Drives one adapter through the result pages of every configured search
URL, then through the detail page of each in-scope listing.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Tuple

import structlog

from offerwatch.core.exceptions import SessionError
from offerwatch.scrapers.base import BaseSourceAdapter, RecordDetail, RecordSummary
from offerwatch.scrapers.scope import ScopeDecision

logger = structlog.get_logger(__name__)


@dataclass
class ScrapeOutcome:
    """Everything one orchestration run produced."""

    records: List[RecordDetail] = field(default_factory=list)
    summaries: List[RecordSummary] = field(default_factory=list)  # Kept and enhanced
    pages_fetched: int = 0
    dropped: int = 0  # Detail records lost to per-record failures

    def extend(self, other: "ScrapeOutcome") -> None:
        self.records.extend(other.records)
        self.summaries.extend(other.summaries)
        self.pages_fetched += other.pages_fetched
        self.dropped += other.dropped


class ScrapeOrchestrator:
    """Runs one source adapter against its search URLs.

    Listing and page-count failures propagate (the page shape itself is
    broken). Detail failures are isolated per record: the record is
    logged and dropped.
    """

    def __init__(self, adapter: BaseSourceAdapter, scope: ScopeDecision):
        self.adapter = adapter
        self.scope = scope
        self.logger = logger.bind(service="orchestrator", source=adapter.source_slug)

    async def scrape(self, search_urls: List[str]) -> ScrapeOutcome:
        """Scrape every search URL and concatenate the results."""
        outcome = ScrapeOutcome()
        for search_url in search_urls:
            outcome.extend(await self.scrape_url(search_url))

        self.logger.info(
            "source_scraped",
            urls=len(search_urls),
            records=len(outcome.records),
            pages_fetched=outcome.pages_fetched,
            dropped=outcome.dropped,
        )
        return outcome

    async def scrape_url(self, search_url: str) -> ScrapeOutcome:
        """Scrape one search URL inside its own session."""
        if self.scope.page_cap <= 0:
            self.logger.info("page_cap_zero", search_url=search_url)
            return ScrapeOutcome()

        async with self._session():
            summaries, pages_fetched = await self._collect_summaries(search_url)
            kept = [self.adapter.enhance_summary(s) for s in summaries if self.scope.keep(s)]
            self.logger.info(
                "summaries_collected",
                search_url=search_url,
                fetched=len(summaries),
                kept=len(kept),
                pages_fetched=pages_fetched,
            )
            records, dropped = await self._collect_details(kept)

        return ScrapeOutcome(
            records=records,
            summaries=kept,
            pages_fetched=pages_fetched,
            dropped=dropped,
        )

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[None]:
        if not self.adapter.requires_session:
            yield
            return

        await self.adapter.open_session()
        try:
            yield
        finally:
            await self.adapter.close_session()

    async def _collect_summaries(self, search_url: str) -> Tuple[List[RecordSummary], int]:
        available_pages = await self.adapter.discover_page_count(search_url)
        page_bound = max(1, self.scope.page_bound(available_pages))

        cumulative: List[RecordSummary] = []
        page_index = 1
        # Page 1 is always fetched, scope only decides whether to go on
        while True:
            page_url = self.adapter.build_page_url(search_url, page_index)
            page_summaries = await self.adapter.list_summaries(page_url)
            cumulative.extend(page_summaries)
            self.logger.debug(
                "summaries_page_fetched",
                page_index=page_index,
                count=len(page_summaries),
            )

            if self.scope.stop(cumulative):
                self.logger.info("scope_stop", page_index=page_index)
                break
            if page_index >= page_bound:
                break
            page_index += 1

        return cumulative, page_index

    async def _collect_details(
        self, summaries: List[RecordSummary]
    ) -> Tuple[List[RecordDetail], int]:
        records: List[RecordDetail] = []
        dropped = 0

        for summary in summaries:
            try:
                details = await self.adapter.fetch_detail(summary.url)
            except SessionError:
                raise
            except Exception as e:
                dropped += 1
                self.logger.warning(
                    "detail_fetch_failed",
                    record_id=summary.id,
                    url=summary.url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            records.append(self.adapter.enhance_detail(RecordDetail.merge(summary, details)))

        return records, dropped
