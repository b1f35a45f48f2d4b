"""Incremental new-record detection against a persisted baseline."""

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Set

from offerwatch.scrapers.base import RecordDetail


@dataclass
class DiffResult:
    new_records: List[RecordDetail]
    merged_records: List[RecordDetail]


def diff_records(
    baseline: Iterable[RecordDetail], fresh_records: Iterable[RecordDetail]
) -> DiffResult:
    """Split freshly scraped records into new ones and the merged superset.

    The merge is append-only: baseline entries are never rewritten, and
    when the fresh list repeats an id the first occurrence wins.

    Args:
        baseline: Previously known records
        fresh_records: Records from the current run

    Returns:
        DiffResult with new_records (ids absent from the baseline) and
        merged_records (baseline followed by new_records)
    """
    merged = list(baseline)
    seen: Set[str] = {record.id for record in merged}

    new_records: List[RecordDetail] = []
    for record in fresh_records:
        if record.id in seen:
            continue
        seen.add(record.id)
        new_records.append(record)

    return DiffResult(new_records=new_records, merged_records=merged + new_records)


class Baseline:
    """Known records of one source, keyed by id.

    Owned by the caller for the process lifetime (long-running mode) or a
    single run (one-shot mode). Only ever grows.
    """

    def __init__(self, source: str, records: Optional[Iterable[RecordDetail]] = None):
        self.source = source
        self._records: List[RecordDetail] = []
        self._ids: Set[str] = set()
        if records:
            self.extend(records)

    @property
    def records(self) -> List[RecordDetail]:
        return list(self._records)

    @property
    def ids(self) -> Set[str]:
        return set(self._ids)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[RecordDetail]:
        return iter(list(self._records))

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._ids

    def diff(self, fresh_records: Iterable[RecordDetail]) -> DiffResult:
        """Diff fresh records against this baseline without mutating it."""
        return diff_records(self._records, fresh_records)

    def extend(self, records: Iterable[RecordDetail]) -> List[RecordDetail]:
        """Append records whose id is not known yet.

        Returns:
            The records actually appended
        """
        added = []
        for record in records:
            if record.id in self._ids:
                continue
            self._ids.add(record.id)
            self._records.append(record)
            added.append(record)
        return added
