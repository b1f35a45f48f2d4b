"""Scraper system for collecting listings from classified-ad sites.

This package provides:
- Base adapter classes for building source-specific scrapers
- The orchestrator, scope policy and baseline diff
- Factory for creating and managing adapter instances
- Scheduler for automated scraping jobs
"""

from .base import (
    BaseBrowserAdapter,
    BaseSourceAdapter,
    BaseStaticAdapter,
    RecordDetail,
    RecordSummary,
)
from .factory import AdapterFactory, adapter_factory, get_adapter_factory

__all__ = [
    # Base classes
    "BaseSourceAdapter",
    "BaseStaticAdapter",
    "BaseBrowserAdapter",
    # Data structures
    "RecordSummary",
    "RecordDetail",
    # Factory
    "AdapterFactory",
    "adapter_factory",
    "get_adapter_factory",
]
