"""Empik (empik.com) ebook and audiobook catalogue adapter.

Search URLs carry a "{page_param}" placeholder holding the 1-based
offset of the first result on the page. Empik listings carry no dates,
so every record is in scope.
"""

from dataclasses import replace
from typing import Any, Dict, List
from urllib.parse import parse_qs, urlsplit

from offerwatch.scrapers.base import BaseStaticAdapter, RecordDetail, RecordSummary
from offerwatch.scrapers.utils.normalizer import to_absolute_url


PAGE_PARAM_PLACEHOLDER = "{page_param}"
DEFAULT_RESULTS_PER_PAGE = 30


def results_per_page(search_url: str) -> int:
    values = parse_qs(urlsplit(search_url).query).get("resultsPP")
    if values and values[0].isdigit() and int(values[0]) > 0:
        return int(values[0])
    return DEFAULT_RESULTS_PER_PAGE


def category_levels(categories: List[str]) -> Dict[str, str]:
    """Expand breadcrumbs into cumulative paths.

    ["Ebooki", "Fantastyka"] -> {"category_lev0": "Ebooki",
    "category_lev1": "Ebooki > Fantastyka"}
    """
    levels = {}
    path: List[str] = []
    for index, name in enumerate(categories):
        path.append(name.strip())
        levels[f"category_lev{index}"] = " > ".join(path)
    return levels


class EmpikAdapter(BaseStaticAdapter):
    """Empik ebook/audiobook adapter."""

    source_slug = "empik"
    base_url = "https://www.empik.com"
    max_result_pages = 999999  # No known result page limit

    def build_page_url(self, search_url: str, page_index: int) -> str:
        offset = (page_index - 1) * results_per_page(search_url) + 1
        return search_url.replace(PAGE_PARAM_PLACEHOLDER, str(offset))

    async def discover_page_count(self, search_url: str) -> int:
        first_page_url = self.build_page_url(search_url, 1)
        soup = await self._fetch_soup(first_page_url)
        page_numbers = [
            int(text)
            for text in (self._text(link) for link in soup.select(".pagination > a:not([class])"))
            if text.isdigit()
        ]
        if not page_numbers:
            raise self._extraction_error("pagination links not found", first_page_url)
        return max(page_numbers)

    async def list_summaries(self, page_url: str) -> List[RecordSummary]:
        soup = await self._fetch_soup(page_url)
        summaries = []
        for tile in soup.select(".search-list-item"):
            wrapper = tile.select_one(".product-details-wrapper")
            if wrapper is None or not wrapper.get("data-product-id"):
                raise self._extraction_error("product tile without id", page_url)

            link = tile.select_one(".productWrapper > a")
            thumbnail = tile.select_one("img.lazy")
            summaries.append(
                RecordSummary(
                    id=wrapper["data-product-id"],
                    url=link.get("href", "") if link else "",
                    title=self._text(tile.select_one(".ta-product-title")),
                    thumbnail=thumbnail.get("lazy-img", "") if thumbnail else "",
                    fields={
                        "author": self._text(tile.select_one(".smartAuthor")),
                        "price": self._text(tile.select_one(".price")),
                    },
                )
            )

        self.logger.info("empik_summaries_found", url=page_url, count=len(summaries))
        return summaries

    def is_from_today(self, summary: RecordSummary) -> bool:
        return True

    def is_from_yesterday(self, summary: RecordSummary) -> bool:
        return True

    def enhance_summary(self, summary: RecordSummary) -> RecordSummary:
        return replace(summary, url=to_absolute_url(summary.url, self.base_url))

    async def fetch_detail(self, url: str) -> Dict[str, Any]:
        soup = await self._fetch_soup(url)
        description = soup.select_one(".productDescription")
        if description is None:
            raise self._extraction_error("product description not found", url)

        return {
            "categories": [self._text(crumb) for crumb in soup.select(".ta-breadcrumb")],
            "description": self._text(description),
            "is_in_subscription": soup.select_one('.sellerNav__subscription > [title="EmpikGO"]')
            is not None,
        }

    def enhance_detail(self, record: RecordDetail) -> RecordDetail:
        categories = record.get("categories")
        if not categories:
            self.logger.info("categories_missing", record_id=record.id)
            return record
        return record.with_fields(**category_levels(categories))
