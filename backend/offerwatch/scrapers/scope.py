"""Scrape scope policy.

Turns the configured recency window and page cap into the predicates
the orchestrator uses to filter summaries and to stop paginating.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from offerwatch.scrapers.base import BaseSourceAdapter, RecordSummary


class ScopeMode(str, Enum):
    TODAY = "today"
    TODAY_AND_YESTERDAY = "yesterday"
    UNBOUNDED = "unbounded"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ScopeMode":
        """Map a configuration word to a mode.

        'today' -> TODAY, 'yesterday' or 'today+yesterday' -> TODAY_AND_YESTERDAY,
        empty/None/'unbounded' -> UNBOUNDED.
        """
        word = (value or "").strip().lower()
        if word == "today":
            return cls.TODAY
        if word in ("yesterday", "today+yesterday"):
            return cls.TODAY_AND_YESTERDAY
        if word in ("", "unbounded", "none"):
            return cls.UNBOUNDED
        raise ValueError(f"Unknown scope mode: {value!r}")


@dataclass(frozen=True)
class ScopeDecision:
    """Per-run scope derived from configuration and the source."""

    keep: Callable[[RecordSummary], bool]  # Which summaries survive into detail fetching
    stop: Callable[[Sequence[RecordSummary]], bool]  # Early stop on the cumulative list
    page_cap: int

    def page_bound(self, available_pages: int) -> int:
        """Number of pages the loop may visit."""
        return max(0, min(self.page_cap, available_pages))


def _always(_summary: RecordSummary) -> bool:
    return True


def _never_stop(_summaries: Sequence[RecordSummary]) -> bool:
    return False


def build_scope(
    adapter: BaseSourceAdapter,
    mode: ScopeMode,
    page_count: Optional[int] = None,
) -> ScopeDecision:
    """Build the scope decision for one source.

    Args:
        adapter: Source adapter supplying the date predicates and ceiling
        mode: Recency window
        page_count: Explicit page cap (0 means no pages), None for the source ceiling

    Returns:
        ScopeDecision
    """
    if page_count is not None and page_count < 0:
        raise ValueError("page_count must be non-negative")
    page_cap = adapter.max_result_pages if page_count is None else page_count

    if mode is ScopeMode.TODAY:
        keep = adapter.is_from_today
    elif mode is ScopeMode.TODAY_AND_YESTERDAY:

        def keep(summary: RecordSummary) -> bool:
            return adapter.is_from_today(summary) or adapter.is_from_yesterday(summary)

    else:
        return ScopeDecision(keep=_always, stop=_never_stop, page_cap=page_cap)

    def stop(summaries: Sequence[RecordSummary]) -> bool:
        return any(not keep(s) for s in summaries)

    return ScopeDecision(keep=keep, stop=stop, page_cap=page_cap)
