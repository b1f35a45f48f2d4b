"""Factory for creating and managing source adapter instances."""

from typing import Dict, List, Optional, Type

import structlog

from offerwatch.scrapers.base import BaseBrowserAdapter, BaseSourceAdapter, BaseStaticAdapter
from offerwatch.scrapers.utils.browser_manager import BrowserManager, get_browser_manager
from offerwatch.scrapers.utils.fetch import PageFetcher


logger = structlog.get_logger(__name__)


class AdapterFactory:
    """Factory for creating and configuring adapter instances.

    Provides dependency injection of the shared page fetcher (static
    sources) and browser manager (browser sources).
    """

    def __init__(
        self,
        fetcher: Optional[PageFetcher] = None,
        browser_manager: Optional[BrowserManager] = None,
    ):
        self.fetcher = fetcher or PageFetcher()
        self._browser_manager = browser_manager

        # Registry of adapter classes
        self._adapter_registry: Dict[str, Type[BaseSourceAdapter]] = {}

    @property
    def browser_manager(self) -> BrowserManager:
        if self._browser_manager is None:
            self._browser_manager = get_browser_manager()
        return self._browser_manager

    def register_adapter(self, source_slug: str, adapter_class: Type[BaseSourceAdapter]) -> None:
        """Register an adapter class for a source.

        Args:
            source_slug: Source slug identifier (e.g., "olx")
            adapter_class: Adapter class (must inherit from BaseSourceAdapter)
        """
        if not isinstance(adapter_class, type) or not issubclass(adapter_class, BaseSourceAdapter):
            raise ValueError(f"Adapter class must inherit from BaseSourceAdapter: {adapter_class}")

        self._adapter_registry[source_slug] = adapter_class
        logger.info("adapter_registered", source_slug=source_slug, adapter_type=adapter_class.adapter_type)

    def create_adapter(self, source_slug: str) -> Optional[BaseSourceAdapter]:
        """Create and configure an adapter instance.

        Args:
            source_slug: Source slug identifier

        Returns:
            Configured adapter instance, or None if not registered
        """
        adapter_class = self._adapter_registry.get(source_slug)
        if not adapter_class:
            logger.warning("adapter_not_found", source_slug=source_slug)
            return None

        if issubclass(adapter_class, BaseStaticAdapter):
            adapter = adapter_class(fetcher=self.fetcher)
        elif issubclass(adapter_class, BaseBrowserAdapter):
            adapter = adapter_class(browser_manager=self.browser_manager)
        else:
            adapter = adapter_class()

        logger.info(
            "adapter_created",
            source_slug=source_slug,
            adapter_type=adapter.adapter_type,
        )

        return adapter

    def get_registered_sources(self) -> List[str]:
        return list(self._adapter_registry.keys())

    def has_adapter(self, source_slug: str) -> bool:
        return source_slug in self._adapter_registry

    async def close(self) -> None:
        """Release the shared fetcher and browser."""
        await self.fetcher.close()
        if self._browser_manager is not None and self._browser_manager.is_started:
            await self._browser_manager.stop()


# Global factory instance
adapter_factory = AdapterFactory()


def get_adapter_factory() -> AdapterFactory:
    """Get the global adapter factory instance."""
    return adapter_factory
