# target_allocation/services/tracking_service.py
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from target_allocation.core.participation import MONTHS
from target_allocation.core.series import HistoricalSeries
from target_allocation.core.tracking import VarianceResult, sum_actuals, calculate_variance
from target_allocation.logging_setup import get_logger
from target_allocation.records import ActualRecord, Dimension
from .allocation_service import AllocationTree

logger = get_logger('tracking')

class TrackingService:
    """Service for reconciling realized sales against a plan.

    Every query is a stateless aggregation over the plan tree, the
    historical series and the actuals.
    """

    def __init__(self, tree: AllocationTree, series: HistoricalSeries, actuals: Iterable[ActualRecord]):
        """Initialize the tracking service.

        Args:
            tree: Plan to track
            series: Historical series (baseline year for growth)
            actuals: Realized sales records
        """
        self.tree = tree
        self.series = series
        self.actuals = tuple(actuals)

        outside = sum(1 for a in self.actuals if a.year != tree.year)
        if outside:
            logger.info(f"Ignoring {outside} actual records outside {tree.year}")

    def group_of(self, actual: ActualRecord, dimension: Dimension) -> str:
        """Group of a realized sale: the store's planned group, else the row's own columns."""
        return self.series.group_of(actual.store, dimension) or dimension.key_of(actual)

    def variance(
        self,
        month: Optional[int] = None,
        dimension: Optional[Dimension] = None,
        key: Optional[str] = None
    ) -> VarianceResult:
        """Variance for the company or one group, for the year or a month.

        Args:
            month: Month (1-12), or None for the whole year
            dimension: Dimension of ``key``; None for the company
            key: Group key within ``dimension``

        Returns:
            VarianceResult in currency units
        """
        realized = sum_actuals(self.actuals, self.tree.year, month, dimension, key, self.group_of)
        planned = self.tree.to_currency(self.tree.planned(month, dimension, key))

        baseline_year = self.tree.baseline_year
        if baseline_year is None:
            baseline = 0
        else:
            baseline = self.series.total(baseline_year, month, dimension, key)

        return calculate_variance(realized, planned, baseline)

    def company_report(self) -> List[Dict]:
        """Monthly company variance rows followed by the year total."""
        rows = []
        for m in MONTHS:
            row = self.variance(month=m).as_dict()
            row['month'] = m
            rows.append(row)

        total = self.variance().as_dict()
        total['month'] = None
        rows.append(total)
        return rows

    def group_report(self, dimension: Dimension, month: Optional[int] = None) -> Dict[str, VarianceResult]:
        """Variance per group key of a dimension for the year or a month."""
        keys = list(OrderedDict.fromkeys(
            [dimension.key_of(s) for s in self.tree.stores if dimension.key_of(s)]
            + [self.group_of(a, dimension) for a in self.actuals if self.group_of(a, dimension)]
        ))

        report = OrderedDict()
        for key in keys:
            report[key] = self.variance(month, dimension, key)

        logger.debug(f"Tracked {len(report)} {dimension.value} groups")
        return report
