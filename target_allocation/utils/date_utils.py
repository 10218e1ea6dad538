# target_allocation/utils/date_utils.py
from datetime import date, datetime, timedelta
from typing import Dict, List, Tuple
import calendar

WEEK_START_DAYS = {
    'monday': 0,
    'sunday': 6,
}

QUARTERS = {
    1: (1, 2, 3),
    2: (4, 5, 6),
    3: (7, 8, 9),
    4: (10, 11, 12),
}

def get_days_in_month(year: int, month: int) -> int:
    """Get number of days in a month.

    Args:
        year: Year
        month: Month (1-12)

    Returns:
        Number of days
    """
    return calendar.monthrange(year, month)[1]

def get_month_bounds(year: int, month: int) -> Tuple[date, date]:
    """Get first and last date of a month."""
    return date(year, month, 1), date(year, month, get_days_in_month(year, month))

def get_week_start(target_date: date, week_start: str = 'sunday') -> date:
    """Get the first day of the week containing a date.

    Args:
        target_date: Date inside the week
        week_start: 'sunday' or 'monday'

    Returns:
        Date the week starts on
    """
    first_weekday = WEEK_START_DAYS.get(week_start.lower())
    if first_weekday is None:
        raise ValueError(f"Invalid week start: {week_start}")

    offset = (target_date.weekday() - first_weekday) % 7
    return target_date - timedelta(days=offset)

def get_month_weeks(year: int, month: int, week_start: str = 'sunday') -> List[Dict]:
    """Get the calendar weeks intersecting a month, clipped to the month.

    The first week may begin before day 1 and the last may end after the
    last day of the month; both are clipped so ``days`` only counts days
    inside the month.

    Args:
        year: Year
        month: Month (1-12)
        week_start: First day of the week ('sunday' or 'monday')

    Returns:
        List of dictionaries with index, start, end and days
    """
    first_day, last_day = get_month_bounds(year, month)

    weeks = []
    cursor = get_week_start(first_day, week_start)
    index = 1
    while cursor <= last_day:
        week_end = cursor + timedelta(days=6)
        clipped_start = max(cursor, first_day)
        clipped_end = min(week_end, last_day)
        weeks.append({
            'index': index,
            'start': clipped_start,
            'end': clipped_end,
            'days': days_between(clipped_start, clipped_end) + 1
        })
        cursor = week_end + timedelta(days=1)
        index += 1

    return weeks

def days_between(start_date: date, end_date: date) -> int:
    """Calculate days between two dates.

    Args:
        start_date: Start date
        end_date: End date

    Returns:
        Number of days
    """
    delta = end_date - start_date
    return delta.days

def convert_to_date(date_string: str, format_string: str = "%Y-%m-%d") -> date:
    """Convert string to date.

    Args:
        date_string: Date string
        format_string: Format string

    Returns:
        Date object
    """
    return datetime.strptime(date_string.strip(), format_string).date()
