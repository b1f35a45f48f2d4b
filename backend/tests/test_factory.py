"""Tests for the adapter factory and registration."""

from unittest.mock import MagicMock

import pytest

from offerwatch.scrapers.adapters import EmpikAdapter, GumtreeAdapter, OlxAdapter
from offerwatch.scrapers.factory import AdapterFactory
from offerwatch.scrapers.register_adapters import register_all_adapters
from offerwatch.scrapers.utils.fetch import PageFetcher


@pytest.fixture
def factory():
    return AdapterFactory(fetcher=PageFetcher(), browser_manager=MagicMock())


# ============================================================================
# TESTS: REGISTRATION
# ============================================================================

class TestAdapterRegistration:
    """Tests for register_adapter and register_all_adapters."""

    def test_register_all_adapters(self, factory):
        register_all_adapters(factory)

        assert set(factory.get_registered_sources()) == {"olx", "gumtree", "empik"}
        assert factory.has_adapter("olx")
        assert not factory.has_adapter("allegro")

    def test_rejects_non_adapter_class(self, factory):
        with pytest.raises(ValueError):
            factory.register_adapter("bogus", dict)

    def test_unknown_source_returns_none(self, factory):
        assert factory.create_adapter("allegro") is None


# ============================================================================
# TESTS: DEPENDENCY INJECTION
# ============================================================================

class TestAdapterCreation:
    """Tests that adapters receive the shared collaborators."""

    def test_static_adapters_share_fetcher(self, factory):
        register_all_adapters(factory)
        gumtree = factory.create_adapter("gumtree")
        empik = factory.create_adapter("empik")

        assert isinstance(gumtree, GumtreeAdapter)
        assert isinstance(empik, EmpikAdapter)
        assert gumtree.fetcher is factory.fetcher
        assert empik.fetcher is factory.fetcher

    def test_browser_adapter_gets_browser_manager(self, factory):
        register_all_adapters(factory)
        olx = factory.create_adapter("olx")

        assert isinstance(olx, OlxAdapter)
        assert olx.browser_manager is factory.browser_manager
        assert olx.requires_session is True

    def test_each_call_creates_a_fresh_adapter(self, factory):
        register_all_adapters(factory)
        assert factory.create_adapter("olx") is not factory.create_adapter("olx")
