"""
Retention-bounded location history
"""
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from locationdata.schemas.location import LocationRecord

MAX_HISTORY_ENTRIES = 1000


class LocationHistory:
    """Insertion-ordered ledger of processed records, capped at ``max_entries``"""

    def __init__(self, max_entries: int = MAX_HISTORY_ENTRIES):
        self.max_entries = max_entries
        self._records: List[LocationRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(list(self._records))

    def all(self) -> List[LocationRecord]:
        return list(self._records)

    def append(self, record: LocationRecord):
        self._records.append(record)
        self._enforce_cap()

    def replace(self, records: Iterable[LocationRecord]):
        self._records = list(records)
        self._enforce_cap()

    def clear(self):
        self._records = []

    def prune(self, retention_days: Optional[int], now: Optional[datetime] = None) -> int:
        """
        Drop records collected before ``now - retention_days``.
        A retention of 0 or None keeps everything. Returns the number removed.
        """
        if not retention_days:
            return 0

        cutoff = _aware(now or datetime.now(timezone.utc)) - timedelta(days=retention_days)
        kept = [r for r in self._records if _aware(r.collected_at) >= cutoff]
        removed = len(self._records) - len(kept)
        self._records = kept
        return removed

    def _enforce_cap(self):
        # Oldest entries go first
        if len(self._records) > self.max_entries:
            self._records = self._records[-self.max_entries:]


def _aware(value: datetime) -> datetime:
    # Naive timestamps from older exports are treated as UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
