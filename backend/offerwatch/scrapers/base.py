"""Base source adapter interface.

All site-specific scrapers inherit from BaseStaticAdapter (plain page
fetches) or BaseBrowserAdapter (a stateful Playwright session) and
implement the abstract methods defined on BaseSourceAdapter.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog
from bs4 import BeautifulSoup
from playwright.async_api import (
    BrowserContext,
    Error as PlaywrightError,
    Page,
    TimeoutError as PlaywrightTimeoutError,
)

from offerwatch.config import settings
from offerwatch.core.exceptions import (
    ExtractionError,
    FetchError,
    FetchTimeoutError,
    HttpStatusError,
    SessionError,
)
from offerwatch.scrapers.utils.browser_manager import BrowserManager
from offerwatch.scrapers.utils.fetch import PageFetcher


IDENTITY_KEYS = ("id", "url", "title", "thumbnail")


@dataclass(frozen=True)
class RecordSummary:
    """Listing data discoverable on a search result page."""

    id: str  # Unique within a source
    url: str
    title: str = ""
    thumbnail: str = ""
    fields: Dict[str, Any] = field(default_factory=dict)  # Source-specific raw and derived values

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.id:
            raise ValueError("id is required")
        if not isinstance(self.id, str):
            object.__setattr__(self, "id", str(self.id))

    def get(self, key: str, default: Any = None) -> Any:
        if key in IDENTITY_KEYS:
            return getattr(self, key)
        return self.fields.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "thumbnail": self.thumbnail,
            **self.fields,
        }


@dataclass
class RecordDetail:
    """A summary merged with the fields found on its detail page."""

    id: str
    url: str
    title: str = ""
    thumbnail: str = ""
    fields: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.id:
            raise ValueError("id is required")
        self.id = str(self.id)

    @classmethod
    def merge(cls, summary: RecordSummary, details: Optional[Dict[str, Any]] = None) -> "RecordDetail":
        """Merge detail-page fields over a summary; detail values win."""
        return cls.from_dict({**summary.to_dict(), **(details or {})})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecordDetail":
        """Build a record from its flat persisted form."""
        fields = {k: v for k, v in data.items() if k not in IDENTITY_KEYS}
        return cls(
            id=data.get("id"),
            url=data.get("url") or "",
            title=data.get("title") or "",
            thumbnail=data.get("thumbnail") or "",
            fields=fields,
        )

    def get(self, key: str, default: Any = None) -> Any:
        if key in IDENTITY_KEYS:
            return getattr(self, key)
        return self.fields.get(key, default)

    def with_fields(self, **updates: Any) -> "RecordDetail":
        """Return a copy with some fields replaced or added."""
        return RecordDetail.from_dict({**self.to_dict(), **updates})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "thumbnail": self.thumbnail,
            **self.fields,
        }


class BaseSourceAdapter(ABC):
    """Abstract base class for all source adapters.

    The orchestrator is written once against this interface. Adapters
    that need an interactive session set requires_session and implement
    open_session()/close_session(); the orchestrator guarantees the
    session is closed on every exit path.
    """

    source_slug: str = ""  # Must be overridden in subclass (e.g., "olx", "gumtree")
    adapter_type: str = ""  # 'static' or 'browser'
    base_url: str = ""
    max_result_pages: int = 1  # Origin-imposed ceiling on result pages
    requires_session: bool = False

    def __init__(self):
        """Initialize the adapter with dependency injection points."""
        self.logger = structlog.get_logger(adapter=self.source_slug)

    @abstractmethod
    def build_page_url(self, search_url: str, page_index: int) -> str:
        """Build the URL of a result page.

        Args:
            search_url: Configured search URL
            page_index: 1-based page number

        Returns:
            Absolute page URL
        """

    @abstractmethod
    async def discover_page_count(self, search_url: str) -> int:
        """Fetch the first result page and read the last available page index.

        Raises:
            ExtractionError: If the pagination marker is missing
            FetchError: If the page cannot be fetched
        """

    @abstractmethod
    async def list_summaries(self, page_url: str) -> List[RecordSummary]:
        """Fetch and parse one result page.

        Raises:
            ExtractionError: If the listing markup does not match
            FetchError: If the page cannot be fetched
        """

    @abstractmethod
    def is_from_today(self, summary: RecordSummary) -> bool:
        pass

    @abstractmethod
    def is_from_yesterday(self, summary: RecordSummary) -> bool:
        pass

    @abstractmethod
    def enhance_summary(self, summary: RecordSummary) -> RecordSummary:
        """Derive normalized fields from the raw summary strings. Never raises."""

    @abstractmethod
    async def fetch_detail(self, url: str) -> Dict[str, Any]:
        """Fetch and parse one detail page.

        Returns:
            Fields found on the detail page (merged over the summary)

        Raises:
            ExtractionError or FetchError: The orchestrator drops the record
        """

    @abstractmethod
    def enhance_detail(self, record: RecordDetail) -> RecordDetail:
        """Derive normalized fields from the raw detail strings. Never raises."""

    async def open_session(self) -> None:
        """Open a stateful session (no-op for stateless sources)."""

    async def close_session(self) -> None:
        """Close the stateful session (no-op for stateless sources)."""

    def _extraction_error(self, message: str, url: Optional[str] = None) -> ExtractionError:
        return ExtractionError(self.source_slug, message, url)

    @staticmethod
    def _text(node) -> str:
        """Stripped text of a BeautifulSoup node, '' for a missing node."""
        if node is None:
            return ""
        return node.get_text(" ", strip=True)


class BaseStaticAdapter(BaseSourceAdapter):
    """Base class for sources scraped with plain page fetches.

    Uses the shared PageFetcher (timeout race plus bounded retry) and
    parses markup with BeautifulSoup.
    """

    adapter_type = "static"

    def __init__(self, fetcher: Optional[PageFetcher] = None):
        super().__init__()
        self.fetcher = fetcher  # Injected by factory

    async def _fetch_soup(self, url: str) -> BeautifulSoup:
        if self.fetcher is None:
            self.fetcher = PageFetcher()
        self.logger.info("scraping_url", url=url)
        html = await self.fetcher.fetch(url)
        return BeautifulSoup(html, "html.parser")


class BaseBrowserAdapter(BaseSourceAdapter):
    """Base class for sources that need a Playwright session.

    The session (one browser context and page) is opened once per search
    URL by the orchestrator and is never shared between runs.
    """

    adapter_type = "browser"
    requires_session = True

    def __init__(self, browser_manager: Optional[BrowserManager] = None):
        super().__init__()
        self.browser_manager = browser_manager  # Injected by factory
        self.browser_context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.navigation_timeout_ms = int(settings.FETCH_TIMEOUT_SECONDS * 1000)

    async def open_session(self) -> None:
        if self.page is not None:
            raise SessionError(self.source_slug, "session is already open")
        if self.browser_manager is None:
            raise SessionError(self.source_slug, "no browser manager injected")
        try:
            self.browser_context = await self.browser_manager.new_context(self.source_slug)
            self.page = await self.browser_context.new_page()
        except PlaywrightError as e:
            await self._discard_context()
            raise SessionError(self.source_slug, f"could not open session: {e}") from e
        self.logger.info("session_opened")

    async def close_session(self) -> None:
        try:
            await self._discard_context()
        except PlaywrightError as e:
            raise SessionError(self.source_slug, f"could not close session: {e}") from e
        self.logger.info("session_closed")

    async def _discard_context(self) -> None:
        context, self.browser_context, self.page = self.browser_context, None, None
        if context is not None:
            await context.close()

    def _require_page(self) -> Page:
        if self.page is None:
            raise SessionError(self.source_slug, "session is not open")
        return self.page

    async def _navigate(self, url: str, wait_selector: Optional[str] = None) -> str:
        """Navigate the session page and return its HTML.

        Args:
            url: URL to open
            wait_selector: Optional CSS selector to wait for before reading HTML

        Returns:
            HTML content as string
        """
        page = self._require_page()
        self.logger.info("scraping_url", url=url)
        try:
            response = await page.goto(
                url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms
            )
            if wait_selector:
                await page.wait_for_selector(wait_selector, timeout=5000)
        except PlaywrightTimeoutError:
            raise FetchTimeoutError(url, self.navigation_timeout_ms / 1000) from None
        except PlaywrightError as e:
            raise FetchError(url, str(e)) from e

        if response is not None and not response.ok:
            raise HttpStatusError(url, response.status, response.status_text)

        return await page.content()
