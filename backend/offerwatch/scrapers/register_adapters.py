"""Register all source adapters with the factory.

Imported during startup (CLI entry point) before any run is scheduled.
"""

from typing import Optional

import structlog

from offerwatch.scrapers.adapters import EmpikAdapter, GumtreeAdapter, OlxAdapter
from offerwatch.scrapers.factory import AdapterFactory, get_adapter_factory

logger = structlog.get_logger(__name__)


def register_all_adapters(factory: Optional[AdapterFactory] = None) -> AdapterFactory:
    """Register all available adapters with the factory."""
    factory = factory or get_adapter_factory()

    adapters = [
        # Real estate
        ("olx", OlxAdapter),
        ("gumtree", GumtreeAdapter),
        # Ebooks and audiobooks
        ("empik", EmpikAdapter),
    ]

    for source_slug, adapter_class in adapters:
        factory.register_adapter(source_slug, adapter_class)

    logger.info(
        "all_adapters_registered",
        count=len(factory.get_registered_sources()),
        sources=factory.get_registered_sources(),
    )
    return factory
