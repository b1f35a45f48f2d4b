"""Tests for the scope policy."""

import pytest

from offerwatch.scrapers.scope import ScopeMode, build_scope


# ============================================================================
# TESTS: MODE PARSING
# ============================================================================

class TestScopeMode:
    """Tests for ScopeMode.parse."""

    @pytest.mark.parametrize(
        "word, expected",
        [
            ("today", ScopeMode.TODAY),
            ("TODAY", ScopeMode.TODAY),
            ("yesterday", ScopeMode.TODAY_AND_YESTERDAY),
            ("today+yesterday", ScopeMode.TODAY_AND_YESTERDAY),
            ("", ScopeMode.UNBOUNDED),
            (None, ScopeMode.UNBOUNDED),
            ("unbounded", ScopeMode.UNBOUNDED),
        ],
    )
    def test_parse(self, word, expected):
        assert ScopeMode.parse(word) is expected

    def test_parse_rejects_unknown_word(self):
        with pytest.raises(ValueError, match="Unknown scope mode"):
            ScopeMode.parse("last-week")


# ============================================================================
# TESTS: SCOPE DECISION
# ============================================================================

class TestBuildScope:
    """Tests for build_scope predicates and page caps."""

    def test_today_keeps_only_today(self, stub_adapter_class, summary_factory):
        scope = build_scope(stub_adapter_class(), ScopeMode.TODAY)

        assert scope.keep(summary_factory("1", age="today"))
        assert not scope.keep(summary_factory("2", age="yesterday"))

    def test_today_and_yesterday_keeps_both(self, stub_adapter_class, summary_factory):
        scope = build_scope(stub_adapter_class(), ScopeMode.TODAY_AND_YESTERDAY)

        assert scope.keep(summary_factory("1", age="today"))
        assert scope.keep(summary_factory("2", age="yesterday"))
        assert not scope.keep(summary_factory("3", age="older"))

    def test_stop_once_any_summary_is_out_of_scope(self, stub_adapter_class, summary_factory):
        scope = build_scope(stub_adapter_class(), ScopeMode.TODAY)
        today = [summary_factory("1", age="today"), summary_factory("2", age="today")]

        assert not scope.stop(today)
        assert scope.stop(today + [summary_factory("3", age="yesterday")])

    def test_unbounded_keeps_everything_and_never_stops(self, stub_adapter_class, summary_factory):
        scope = build_scope(stub_adapter_class(), ScopeMode.UNBOUNDED)
        old = summary_factory("1", age="older")

        assert scope.keep(old)
        assert not scope.stop([old])

    def test_page_cap_defaults_to_source_ceiling(self, stub_adapter_class):
        adapter = stub_adapter_class()
        scope = build_scope(adapter, ScopeMode.TODAY)
        assert scope.page_cap == adapter.max_result_pages

    def test_explicit_page_cap(self, stub_adapter_class):
        scope = build_scope(stub_adapter_class(), ScopeMode.TODAY, page_count=2)

        assert scope.page_cap == 2
        assert scope.page_bound(10) == 2
        assert scope.page_bound(1) == 1

    def test_zero_page_cap_bounds_to_zero(self, stub_adapter_class):
        scope = build_scope(stub_adapter_class(), ScopeMode.TODAY, page_count=0)
        assert scope.page_bound(10) == 0

    def test_negative_page_cap_rejected(self, stub_adapter_class):
        with pytest.raises(ValueError):
            build_scope(stub_adapter_class(), ScopeMode.TODAY, page_count=-1)
