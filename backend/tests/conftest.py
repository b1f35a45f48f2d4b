"""Pytest configuration and shared fixtures."""

from typing import Any, Callable, Dict, List, Optional

import pytest

from offerwatch.core.exceptions import ExtractionError
from offerwatch.scrapers.base import BaseSourceAdapter, RecordDetail, RecordSummary


def make_summary(record_id: str, **fields: Any) -> RecordSummary:
    return RecordSummary(
        id=record_id,
        url=f"https://example.com/offer/{record_id}",
        title=f"Offer {record_id}",
        fields=fields,
    )


class StubAdapter(BaseSourceAdapter):
    """In-memory adapter: pages are lists of summaries, details are dicts.

    Records whose id is in failing_ids raise ExtractionError on detail fetch.
    Summaries with fields["age"] == "today"/"yesterday" match the date predicates.
    """

    source_slug = "stub"
    adapter_type = "static"
    base_url = "https://example.com"
    max_result_pages = 5

    def __init__(
        self,
        pages: Optional[List[List[RecordSummary]]] = None,
        available_pages: Optional[int] = None,
        failing_ids: Optional[List[str]] = None,
        requires_session: bool = False,
        detail_factory: Optional[Callable[[str], Dict[str, Any]]] = None,
    ):
        super().__init__()
        self.pages = pages or []
        self.available_pages = len(self.pages) if available_pages is None else available_pages
        self.failing_ids = set(failing_ids or [])
        self.requires_session = requires_session
        self.detail_factory = detail_factory or (lambda url: {"description": f"details of {url}"})

        self.requested_pages: List[str] = []
        self.detail_urls: List[str] = []
        self.discover_calls = 0
        self.sessions_opened = 0
        self.sessions_closed = 0

    def build_page_url(self, search_url: str, page_index: int) -> str:
        return f"{search_url}?page={page_index}"

    async def discover_page_count(self, search_url: str) -> int:
        self.discover_calls += 1
        return self.available_pages

    async def list_summaries(self, page_url: str) -> List[RecordSummary]:
        self.requested_pages.append(page_url)
        page_index = int(page_url.rsplit("=", 1)[1])
        if page_index > len(self.pages):
            return []
        return list(self.pages[page_index - 1])

    def is_from_today(self, summary: RecordSummary) -> bool:
        return summary.get("age") == "today"

    def is_from_yesterday(self, summary: RecordSummary) -> bool:
        return summary.get("age") == "yesterday"

    def enhance_summary(self, summary: RecordSummary) -> RecordSummary:
        return RecordSummary(
            id=summary.id,
            url=summary.url,
            title=summary.title,
            fields={**summary.fields, "enhanced": True},
        )

    async def fetch_detail(self, url: str) -> Dict[str, Any]:
        self.detail_urls.append(url)
        record_id = url.rsplit("/", 1)[1]
        if record_id in self.failing_ids:
            raise ExtractionError(self.source_slug, "detail markup changed", url)
        return self.detail_factory(url)

    def enhance_detail(self, record: RecordDetail) -> RecordDetail:
        return record.with_fields(detail_enhanced=True)

    async def open_session(self) -> None:
        self.sessions_opened += 1

    async def close_session(self) -> None:
        self.sessions_closed += 1


@pytest.fixture
def stub_adapter_class():
    return StubAdapter


@pytest.fixture
def summary_factory():
    return make_summary
