# target_allocation/core/series.py
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from ..records import Dimension, HistoricalRecord

class HistoricalSeries:
    """Read-only table of historical sales facts.

    Replaced wholesale on re-import; nothing in the pipeline mutates it.
    Group keys are kept in first-appearance order so repeated runs produce
    identical output ordering.
    """

    def __init__(self, records: Iterable[HistoricalRecord] = ()):
        self._records: Tuple[HistoricalRecord, ...] = tuple(records)
        self._directory = None

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    @property
    def records(self) -> Tuple[HistoricalRecord, ...]:
        return self._records

    @property
    def years(self) -> List[int]:
        return sorted({r.year for r in self._records})

    @property
    def baseline_year(self) -> Optional[int]:
        """Most recent year present, or None for an empty series."""
        years = self.years
        return years[-1] if years else None

    @property
    def target_year(self) -> int:
        """Year the plan is built for: the year after the baseline."""
        baseline = self.baseline_year
        if baseline is None:
            return date.today().year
        return baseline + 1

    def stores(self) -> List[str]:
        """Distinct store names in first-appearance order."""
        return list(OrderedDict.fromkeys(r.store for r in self._records))

    def store_directory(self) -> Dict[str, Dict[str, Optional[str]]]:
        """City and state of every store.

        Each field is the first non-empty value among the store's
        baseline-year records, falling back to its records in any year.
        Every per-group figure of the series is keyed through this
        directory, so a store belongs to exactly one group per dimension.
        """
        if self._directory is None:
            baseline = self.baseline_year
            ordered = sorted(self._records, key=lambda r: r.year != baseline)
            directory = OrderedDict((store, {'city': None, 'state': None}) for store in self.stores())
            for record in ordered:
                info = directory[record.store]
                if not info['city'] and record.city:
                    info['city'] = record.city
                if not info['state'] and record.state:
                    info['state'] = record.state
            self._directory = directory
        return self._directory

    def group_of(self, store: str, dimension: Dimension) -> str:
        """Group key of a store in a dimension ('' when unknown)."""
        if dimension is Dimension.STORE:
            return store
        info = self.store_directory().get(store) or {}
        if dimension is Dimension.CITY:
            return info.get('city') or ''
        return info.get('state') or ''

    def select(
        self,
        year: Optional[int] = None,
        month: Optional[int] = None,
        dimension: Optional[Dimension] = None,
        key: Optional[str] = None
    ) -> List[HistoricalRecord]:
        """Filter records by year, month and group key."""
        selected = []
        for record in self._records:
            if year is not None and record.year != year:
                continue
            if month is not None and record.month != month:
                continue
            if dimension is not None and key is not None:
                if self.group_of(record.store, dimension) != key:
                    continue
            selected.append(record)
        return selected

    def total(
        self,
        year: Optional[int] = None,
        month: Optional[int] = None,
        dimension: Optional[Dimension] = None,
        key: Optional[str] = None
    ) -> Decimal:
        """Sum of amounts matching the filters."""
        return sum((r.amount for r in self.select(year, month, dimension, key)), Decimal('0'))

    def totals_by(self, dimension: Dimension, year: Optional[int] = None) -> Dict[str, Decimal]:
        """Amount per non-empty group key, in first-appearance order."""
        totals = OrderedDict()
        for record in self.select(year=year):
            group_key = self.group_of(record.store, dimension)
            if not group_key:
                continue
            totals[group_key] = totals.get(group_key, Decimal('0')) + record.amount
        return totals

    def keys(self, dimension: Dimension, year: Optional[int] = None) -> List[str]:
        """Distinct non-empty group keys for a dimension (baseline year by default)."""
        if year is None:
            year = self.baseline_year
        return list(OrderedDict.fromkeys(
            key for key in (self.group_of(r.store, dimension) for r in self.select(year=year)) if key
        ))

    def members(self, dimension: Dimension, year: Optional[int] = None) -> Dict[str, List[str]]:
        """Stores belonging to each group key of a dimension."""
        if year is None:
            year = self.baseline_year
        groups = OrderedDict((k, []) for k in self.keys(dimension, year))
        for store in OrderedDict.fromkeys(r.store for r in self.select(year=year)):
            group_key = self.group_of(store, dimension)
            if group_key in groups:
                groups[group_key].append(store)
        return groups
