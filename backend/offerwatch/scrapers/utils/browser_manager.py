"""Playwright browser lifecycle manager.

Keeps one shared browser process and hands out fresh, isolated contexts.
Each context belongs to exactly one scraping session and is closed by it.
"""

import asyncio
from typing import Optional

import structlog
from playwright.async_api import async_playwright, Browser, BrowserContext, Playwright

from offerwatch.config import settings

logger = structlog.get_logger()


class BrowserManager:
    """Manages the Playwright browser process.

    Contexts are created with:
    - Locale and timezone of the scraped market
    - Optional blocking of images/fonts for faster page loads
    """

    def __init__(
        self,
        headless: bool = True,
        locale: str = "pl-PL",
        timezone_id: str = "Europe/Warsaw",
        block_resources: bool = True,
    ):
        self._headless = headless
        self._locale = locale
        self._timezone_id = timezone_id
        self._block_resources = block_resources
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

    @property
    def is_started(self) -> bool:
        return self._browser is not None

    async def start(self) -> None:
        """Launch the browser. Safe to call more than once."""
        async with self._lock:
            if self._browser:
                return
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless,
                args=["--disable-dev-shm-usage", "--no-sandbox"],
            )
            logger.info("browser_started", headless=self._headless)

    async def stop(self) -> None:
        """Close the browser and stop Playwright."""
        async with self._lock:
            if self._browser:
                await self._browser.close()
                self._browser = None
            if self._playwright:
                await self._playwright.stop()
                self._playwright = None
            logger.info("browser_stopped")

    async def new_context(self, name: str = "default") -> BrowserContext:
        """Create a new isolated browser context.

        The caller owns the context and must close it.
        """
        if not self._browser:
            await self.start()

        context = await self._browser.new_context(
            viewport={"width": 1280, "height": 640},
            locale=self._locale,
            timezone_id=self._timezone_id,
            java_script_enabled=True,
        )

        if self._block_resources:
            await context.route(
                "**/*.{png,jpg,jpeg,gif,svg,woff,woff2,ttf,eot}",
                lambda route: route.abort(),
            )

        logger.info("browser_context_created", name=name)
        return context


# Singleton instance
_browser_manager: Optional[BrowserManager] = None


def get_browser_manager() -> BrowserManager:
    """Get the global BrowserManager singleton."""
    global _browser_manager
    if _browser_manager is None:
        _browser_manager = BrowserManager(
            headless=settings.BROWSER_HEADLESS,
            locale=settings.BROWSER_LOCALE,
            timezone_id=settings.BROWSER_TIMEZONE,
        )
    return _browser_manager
