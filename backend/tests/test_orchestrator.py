"""Tests for the scrape orchestrator."""

import asyncio

import pytest

from offerwatch.core.exceptions import ExtractionError, HttpStatusError, SessionError
from offerwatch.scrapers.orchestrator import ScrapeOrchestrator
from offerwatch.scrapers.scope import ScopeMode, build_scope


SEARCH_URL = "https://example.com/search"


def today_page(summary_factory, ids):
    return [summary_factory(i, age="today") for i in ids]


# ============================================================================
# TESTS: PAGINATION
# ============================================================================

class TestPagination:
    """Tests for the page loop bounds."""

    async def test_page_bound_respected(self, stub_adapter_class, summary_factory):
        pages = [today_page(summary_factory, [f"{p}-{i}" for i in range(3)]) for p in range(1, 6)]
        adapter = stub_adapter_class(pages=pages)
        scope = build_scope(adapter, ScopeMode.UNBOUNDED, page_count=3)

        outcome = await ScrapeOrchestrator(adapter, scope).scrape_url(SEARCH_URL)

        assert outcome.pages_fetched == 3
        assert adapter.requested_pages == [f"{SEARCH_URL}?page={i}" for i in (1, 2, 3)]
        assert len(outcome.records) == 9

    async def test_available_pages_bound_the_loop(self, stub_adapter_class, summary_factory):
        pages = [today_page(summary_factory, ["a"]), today_page(summary_factory, ["b"])]
        adapter = stub_adapter_class(pages=pages)
        scope = build_scope(adapter, ScopeMode.UNBOUNDED, page_count=None)

        outcome = await ScrapeOrchestrator(adapter, scope).scrape_url(SEARCH_URL)

        assert outcome.pages_fetched == 2
        assert [r.id for r in outcome.records] == ["a", "b"]

    async def test_first_page_fetched_even_when_none_available(self, stub_adapter_class, summary_factory):
        adapter = stub_adapter_class(pages=[today_page(summary_factory, ["a"])], available_pages=0)
        scope = build_scope(adapter, ScopeMode.UNBOUNDED, page_count=5)

        outcome = await ScrapeOrchestrator(adapter, scope).scrape_url(SEARCH_URL)

        assert outcome.pages_fetched == 1
        assert len(adapter.requested_pages) == 1

    async def test_first_page_fetched_even_when_out_of_scope(self, stub_adapter_class, summary_factory):
        adapter = stub_adapter_class(pages=[[summary_factory("old", age="older")]] * 3)
        scope = build_scope(adapter, ScopeMode.TODAY, page_count=3)

        outcome = await ScrapeOrchestrator(adapter, scope).scrape_url(SEARCH_URL)

        assert outcome.pages_fetched == 1
        assert outcome.records == []
        assert adapter.detail_urls == []

    async def test_zero_page_cap_fetches_nothing(self, stub_adapter_class, summary_factory):
        adapter = stub_adapter_class(pages=[today_page(summary_factory, ["a"])], requires_session=True)
        scope = build_scope(adapter, ScopeMode.TODAY, page_count=0)

        outcome = await ScrapeOrchestrator(adapter, scope).scrape_url(SEARCH_URL)

        assert outcome.pages_fetched == 0
        assert outcome.summaries == []
        assert adapter.requested_pages == []
        assert adapter.detail_urls == []
        assert adapter.discover_calls == 0
        assert adapter.sessions_opened == 0


# ============================================================================
# TESTS: SCOPE
# ============================================================================

class TestScopeStop:
    """Tests for the early stop on out-of-scope summaries."""

    async def test_stops_on_page_where_old_offer_appears(self, stub_adapter_class, summary_factory):
        pages = [
            today_page(summary_factory, ["1", "2"]),
            today_page(summary_factory, ["3"]) + [summary_factory("4", age="yesterday")],
            today_page(summary_factory, ["5"]),
        ]
        adapter = stub_adapter_class(pages=pages)
        scope = build_scope(adapter, ScopeMode.TODAY, page_count=3)

        outcome = await ScrapeOrchestrator(adapter, scope).scrape_url(SEARCH_URL)

        assert outcome.pages_fetched == 2
        assert [r.id for r in outcome.records] == ["1", "2", "3"]
        assert all(s.get("age") == "today" for s in outcome.summaries)

    async def test_today_and_yesterday_keeps_yesterday(self, stub_adapter_class, summary_factory):
        pages = [[summary_factory("1", age="today"), summary_factory("2", age="yesterday")]]
        adapter = stub_adapter_class(pages=pages)
        scope = build_scope(adapter, ScopeMode.TODAY_AND_YESTERDAY, page_count=1)

        outcome = await ScrapeOrchestrator(adapter, scope).scrape_url(SEARCH_URL)

        assert [r.id for r in outcome.records] == ["1", "2"]


# ============================================================================
# TESTS: DETAILS
# ============================================================================

class TestDetails:
    """Tests for detail merging and per-record isolation."""

    async def test_one_failing_detail_is_dropped(self, stub_adapter_class, summary_factory):
        ids = [str(i) for i in range(1, 11)]
        adapter = stub_adapter_class(pages=[today_page(summary_factory, ids)], failing_ids=["4"])
        scope = build_scope(adapter, ScopeMode.TODAY, page_count=1)

        outcome = await ScrapeOrchestrator(adapter, scope).scrape_url(SEARCH_URL)

        assert len(outcome.records) == 9
        assert "4" not in [r.id for r in outcome.records]
        assert outcome.dropped == 1

    async def test_detail_fields_win_and_are_enhanced(self, stub_adapter_class, summary_factory):
        adapter = stub_adapter_class(
            pages=[[summary_factory("1", age="today", price=100)]],
            detail_factory=lambda url: {"price": 200, "description": "nice"},
        )
        scope = build_scope(adapter, ScopeMode.TODAY, page_count=1)

        outcome = await ScrapeOrchestrator(adapter, scope).scrape_url(SEARCH_URL)

        record = outcome.records[0]
        assert record.get("price") == 200
        assert record.get("description") == "nice"
        assert record.get("enhanced") is True
        assert record.get("detail_enhanced") is True

    async def test_session_error_during_detail_aborts(self, stub_adapter_class, summary_factory):
        adapter = stub_adapter_class(pages=[today_page(summary_factory, ["1"])], requires_session=True)

        async def broken_detail(url):
            raise SessionError("stub", "page was closed")

        adapter.fetch_detail = broken_detail
        scope = build_scope(adapter, ScopeMode.TODAY, page_count=1)

        with pytest.raises(SessionError):
            await ScrapeOrchestrator(adapter, scope).scrape_url(SEARCH_URL)
        assert adapter.sessions_closed == 1

    async def test_multiple_search_urls_concatenate(self, stub_adapter_class, summary_factory):
        adapter = stub_adapter_class(pages=[today_page(summary_factory, ["1", "2"])])
        scope = build_scope(adapter, ScopeMode.TODAY, page_count=1)

        outcome = await ScrapeOrchestrator(adapter, scope).scrape(["https://a.example", "https://b.example"])

        assert len(outcome.records) == 4
        assert outcome.pages_fetched == 2


# ============================================================================
# TESTS: SESSIONS AND FAILURES
# ============================================================================

class TestSessionLifecycle:
    """Tests that a session is closed on every exit path."""

    async def test_session_closed_after_success(self, stub_adapter_class, summary_factory):
        adapter = stub_adapter_class(pages=[today_page(summary_factory, ["1"])], requires_session=True)
        scope = build_scope(adapter, ScopeMode.TODAY, page_count=1)

        await ScrapeOrchestrator(adapter, scope).scrape(["https://a.example", "https://b.example"])

        assert adapter.sessions_opened == 2
        assert adapter.sessions_closed == 2

    async def test_session_closed_when_listing_fails(self, stub_adapter_class, summary_factory):
        adapter = stub_adapter_class(pages=[today_page(summary_factory, ["1"])], requires_session=True)

        async def broken_listing(page_url):
            raise ExtractionError("stub", "listing markup changed", page_url)

        adapter.list_summaries = broken_listing
        scope = build_scope(adapter, ScopeMode.TODAY, page_count=1)

        with pytest.raises(ExtractionError):
            await ScrapeOrchestrator(adapter, scope).scrape_url(SEARCH_URL)
        assert adapter.sessions_opened == 1
        assert adapter.sessions_closed == 1

    async def test_session_closed_on_cancellation(self, stub_adapter_class, summary_factory):
        adapter = stub_adapter_class(pages=[today_page(summary_factory, ["1"])], requires_session=True)
        started = asyncio.Event()

        async def hanging_listing(page_url):
            started.set()
            await asyncio.sleep(60)
            return []

        adapter.list_summaries = hanging_listing
        scope = build_scope(adapter, ScopeMode.TODAY, page_count=1)

        task = asyncio.create_task(ScrapeOrchestrator(adapter, scope).scrape_url(SEARCH_URL))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert adapter.sessions_closed == 1

    async def test_discovery_failure_propagates(self, stub_adapter_class):
        adapter = stub_adapter_class()

        async def broken_discovery(search_url):
            raise HttpStatusError(search_url, 500)

        adapter.discover_page_count = broken_discovery
        scope = build_scope(adapter, ScopeMode.TODAY, page_count=1)

        with pytest.raises(HttpStatusError):
            await ScrapeOrchestrator(adapter, scope).scrape_url(SEARCH_URL)
