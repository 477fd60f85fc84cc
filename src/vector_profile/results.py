"""Collection and ordering of profile matches."""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger

from .models import ResultRecord

# Sort position of records whose feature has no category
NO_CATEGORY = -1


def _sort_key(record: ResultRecord) -> tuple[float, int]:
    return record.distance, NO_CATEGORY if record.category is None else record.category


def sort_results(records: Iterable[ResultRecord]) -> list[ResultRecord]:
    """Order records by distance along the profile, then by category."""
    return sorted(records, key=_sort_key)


class ResultSet:
    """Append-only collection of matches for one profiling run.

    Insertion order follows the feature scan and carries no meaning; call
    :meth:`sort` before relying on it.
    """

    def __init__(self, max_records: int | None = None):
        self.max_records = max_records
        self._records: list[ResultRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def __getitem__(self, index: int) -> ResultRecord:
        return self._records[index]

    def append(self, distance: float, category: int | None, elevation: float | None = None) -> bool:
        """Add a record. Returns False when the set can not grow any further."""
        if self.max_records is not None and len(self._records) >= self.max_records:
            return False
        try:
            self._records.append(ResultRecord(distance=distance, category=category, elevation=elevation))
        except MemoryError:
            return False
        logger.trace(f"Distance of point {len(self._records)} is {distance}")
        return True

    def sort(self) -> None:
        self._records.sort(key=_sort_key)

    def clear(self) -> None:
        self._records = []
