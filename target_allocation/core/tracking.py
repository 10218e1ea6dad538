# target_allocation/core/tracking.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable, Optional

from ..records import ActualRecord, Dimension
from ..utils.math_utils import Number, safe_ratio

@dataclass(frozen=True)
class VarianceResult:
    """Plan vs realized for one scope and period.

    ``attainment`` and ``growth_vs_baseline`` are None when their
    denominator (planned, baseline) is zero.
    """
    realized: Decimal
    planned: Decimal
    baseline: Decimal
    delta: Decimal
    attainment: Optional[float]
    growth_vs_baseline: Optional[float]

    def as_dict(self) -> dict:
        return {
            'realized': float(self.realized),
            'planned': float(self.planned),
            'baseline': float(self.baseline),
            'delta': float(self.delta),
            'attainment': self.attainment,
            'growth_vs_baseline': self.growth_vs_baseline,
        }

def sum_actuals(
    actuals: Iterable[ActualRecord],
    year: int,
    month: Optional[int] = None,
    dimension: Optional[Dimension] = None,
    key: Optional[str] = None,
    group_of: Optional[Callable[[ActualRecord, Dimension], str]] = None
) -> Decimal:
    """Realized amount for a year, optionally narrowed to a month and group.

    ``group_of(record, dimension)`` resolves a record's group key; by
    default the record's own city or state columns are used.
    """
    total = Decimal('0')
    for record in actuals:
        if record.year != year:
            continue
        if month is not None and record.month != month:
            continue
        if dimension is not None and key is not None:
            record_key = group_of(record, dimension) if group_of else dimension.key_of(record)
            if record_key != key:
                continue
        total += record.amount
    return total

def calculate_variance(realized: Number, planned: Number, baseline: Number) -> VarianceResult:
    """Delta, attainment and growth vs the baseline year for one cell.

    Args:
        realized: Realized sales
        planned: Planned target for the same scope and period
        baseline: Baseline-year sales for the same scope and period

    Returns:
        VarianceResult
    """
    realized = Decimal(str(realized))
    planned = Decimal(str(planned))
    baseline = Decimal(str(baseline))

    growth = safe_ratio(realized, baseline)
    if growth is not None:
        growth -= 1.0

    return VarianceResult(
        realized=realized,
        planned=planned,
        baseline=baseline,
        delta=realized - planned,
        attainment=safe_ratio(realized, planned),
        growth_vs_baseline=growth
    )
