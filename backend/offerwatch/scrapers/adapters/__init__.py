"""Source-specific adapter implementations.

Static sources inherit from BaseStaticAdapter, sources that need a live
browser session inherit from BaseBrowserAdapter.
"""

from .empik import EmpikAdapter
from .gumtree import GumtreeAdapter
from .olx import OlxAdapter

__all__ = [
    "EmpikAdapter",
    "GumtreeAdapter",
    "OlxAdapter",
]
