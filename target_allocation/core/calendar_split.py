# target_allocation/core/calendar_split.py
from typing import Dict, List, Optional

from ..records import WeekAllocation
from ..utils.date_utils import get_days_in_month, get_month_weeks
from .apportionment import apportion
from .participation import MONTHS

def decompose_month(
    group_key: str,
    year: int,
    month: int,
    amount: int,
    week_start: str = 'sunday'
) -> List[WeekAllocation]:
    """Split a group-month target into calendar weeks by day count.

    Weeks straddling a month boundary only count the days inside the
    month, so a month starting on Wednesday opens with a 4-day week.

    Args:
        group_key: Group the amount belongs to
        year: Target year
        month: Month (1-12)
        amount: Group-month target in minor units
        week_start: First day of the week

    Returns:
        WeekAllocation per week, summing to ``amount``
    """
    weeks = get_month_weeks(year, month, week_start)
    amounts = apportion(amount, [w['days'] for w in weeks])

    return [
        WeekAllocation(
            group_key=group_key,
            month=month,
            week_index=w['index'],
            start_date=w['start'],
            end_date=w['end'],
            day_count=w['days'],
            amount=a
        )
        for w, a in zip(weeks, amounts)
    ]

def calculate_daily_average(
    amount: int,
    year: int,
    month: int,
    selling_days: Optional[int] = None
) -> float:
    """Mean target per day of the month.

    Uses the selling-day override when given, else the calendar day count.
    Not apportioned: it is a reference figure, not a partition.
    """
    days = selling_days or get_days_in_month(year, month)
    return amount / days

def suggest_selling_days(year: int) -> Dict[int, int]:
    """Calendar day count for each month of a year."""
    return {m: get_days_in_month(year, m) for m in MONTHS}
