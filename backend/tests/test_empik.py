"""Tests for the Empik adapter."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from offerwatch.core.exceptions import ExtractionError
from offerwatch.scrapers.adapters.empik import EmpikAdapter, category_levels
from offerwatch.scrapers.base import RecordDetail


SEARCH_URL = "https://www.empik.com/audiobooki-i-ebooki/ebooki,3501,s,{page_param}?sort=publishAsc&resultsPP=60"

RESULT_PAGE = """
<html><body>
<div class="search-list-item">
  <div class="product-details-wrapper" data-product-id="p1"></div>
  <div class="productWrapper"><a href="/wiedzmin-ebook,p1,ebook.html">okładka</a></div>
  <div class="ta-product-title">Wiedźmin</div>
  <div class="smartAuthor">Andrzej Sapkowski</div>
  <div class="price">29,99 zł</div>
  <img class="lazy" lazy-img="https://ecsmedia.pl/p1.jpg">
</div>
<div class="search-list-item">
  <div class="product-details-wrapper" data-product-id="p2"></div>
</div>
<div class="pagination">
  <a class="prev" href="#">&lt;</a>
  <a href="#">1</a>
  <a href="#">2</a>
  <a href="#">17</a>
</div>
</body></html>
"""

DETAIL_PAGE = """
<html><body>
<a class="ta-breadcrumb">Ebooki</a>
<a class="ta-breadcrumb"> Fantastyka </a>
<a class="ta-breadcrumb">Polska</a>
<div class="productDescription">Saga o wiedźminie.</div>
<div class="sellerNav__subscription"><span title="EmpikGO"></span></div>
</body></html>
"""


@pytest.fixture
def fetcher():
    pages = {}
    fake = MagicMock()
    fake.pages = pages
    fake.fetch = AsyncMock(side_effect=lambda url: pages[url])
    return fake


@pytest.fixture
def adapter(fetcher):
    return EmpikAdapter(fetcher=fetcher)


# ============================================================================
# TESTS: RESULT PAGES
# ============================================================================

class TestEmpikResultPages:
    """Tests for the offset-based pagination and tile parsing."""

    def test_build_page_url_uses_result_offset(self, adapter):
        assert adapter.build_page_url(SEARCH_URL, 1).endswith("ebooki,3501,s,1?sort=publishAsc&resultsPP=60")
        assert adapter.build_page_url(SEARCH_URL, 3).endswith("ebooki,3501,s,121?sort=publishAsc&resultsPP=60")

    def test_build_page_url_default_page_size(self, adapter):
        url = adapter.build_page_url("https://www.empik.com/ebooki,s,{page_param}", 2)
        assert url == "https://www.empik.com/ebooki,s,31"

    async def test_discover_page_count_reads_highest_link(self, adapter, fetcher):
        fetcher.pages[adapter.build_page_url(SEARCH_URL, 1)] = RESULT_PAGE
        assert await adapter.discover_page_count(SEARCH_URL) == 17

    async def test_discover_page_count_without_pagination(self, adapter, fetcher):
        fetcher.pages[adapter.build_page_url(SEARCH_URL, 1)] = "<html><body></body></html>"
        with pytest.raises(ExtractionError):
            await adapter.discover_page_count(SEARCH_URL)

    async def test_list_summaries(self, adapter, fetcher):
        page_url = adapter.build_page_url(SEARCH_URL, 1)
        fetcher.pages[page_url] = RESULT_PAGE

        first, second = await adapter.list_summaries(page_url)

        assert first.id == "p1"
        assert first.title == "Wiedźmin"
        assert first.get("author") == "Andrzej Sapkowski"
        assert first.get("price") == "29,99 zł"
        assert first.thumbnail == "https://ecsmedia.pl/p1.jpg"
        assert second.id == "p2"
        assert second.url == ""
        assert second.title == ""

    async def test_every_record_is_in_scope(self, adapter, fetcher):
        page_url = adapter.build_page_url(SEARCH_URL, 1)
        fetcher.pages[page_url] = RESULT_PAGE
        summary = (await adapter.list_summaries(page_url))[0]

        assert adapter.is_from_today(summary)
        assert adapter.is_from_yesterday(summary)

    async def test_enhance_summary_makes_url_absolute(self, adapter, fetcher):
        page_url = adapter.build_page_url(SEARCH_URL, 1)
        fetcher.pages[page_url] = RESULT_PAGE
        summary = adapter.enhance_summary((await adapter.list_summaries(page_url))[0])

        assert summary.url == "https://www.empik.com/wiedzmin-ebook,p1,ebook.html"


# ============================================================================
# TESTS: DETAIL PAGES
# ============================================================================

class TestEmpikDetails:
    """Tests for detail parsing and category expansion."""

    async def test_fetch_detail(self, adapter, fetcher):
        url = "https://www.empik.com/wiedzmin-ebook,p1,ebook.html"
        fetcher.pages[url] = DETAIL_PAGE

        details = await adapter.fetch_detail(url)

        assert details["categories"] == ["Ebooki", "Fantastyka", "Polska"]
        assert details["description"] == "Saga o wiedźminie."
        assert details["is_in_subscription"] is True

    async def test_fetch_detail_requires_description(self, adapter, fetcher):
        url = "https://www.empik.com/gone"
        fetcher.pages[url] = "<html><body></body></html>"
        with pytest.raises(ExtractionError):
            await adapter.fetch_detail(url)

    def test_enhance_detail_expands_categories(self, adapter):
        record = RecordDetail(id="p1", url="u", fields={"categories": ["Ebooki", "Fantastyka"]})
        enhanced = adapter.enhance_detail(record)

        assert enhanced.get("category_lev0") == "Ebooki"
        assert enhanced.get("category_lev1") == "Ebooki > Fantastyka"

    def test_enhance_detail_without_categories(self, adapter):
        record = RecordDetail(id="p1", url="u")
        assert adapter.enhance_detail(record) is record

    def test_category_levels_trims_names(self):
        assert category_levels([" A ", "B "]) == {"category_lev0": "A", "category_lev1": "A > B"}
