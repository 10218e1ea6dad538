# target_allocation/core/participation.py
from decimal import Decimal
from typing import Dict, Optional

from .series import HistoricalSeries

MONTHS = tuple(range(1, 13))

def calculate_monthly_totals(series: HistoricalSeries, year: Optional[int] = None) -> Dict[int, Decimal]:
    """Total amount per month (1-12) for a year, baseline year by default.

    Args:
        series: Historical series
        year: Year to total; defaults to the series' baseline year

    Returns:
        Dictionary month -> total, zero-filled for months without data
    """
    if year is None:
        year = series.baseline_year

    totals = {m: Decimal('0') for m in MONTHS}
    if year is None:
        return totals

    for record in series.select(year=year):
        if record.month in totals:
            totals[record.month] += record.amount

    return totals

def calculate_participation(series: HistoricalSeries, year: Optional[int] = None) -> Dict[int, float]:
    """Share of each month in the year's total.

    A zero year total yields 0 for every month, which downstream
    distributors treat as nothing to distribute.

    Args:
        series: Historical series
        year: Year to use; defaults to the series' baseline year

    Returns:
        Dictionary month -> fraction
    """
    totals = calculate_monthly_totals(series, year)
    year_total = sum(totals.values(), Decimal('0'))

    if year_total == 0:
        return {m: 0.0 for m in MONTHS}

    return {m: float(totals[m] / year_total) for m in MONTHS}
