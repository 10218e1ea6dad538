"""
Tests for calendar weeks and daily averages.
"""
import unittest
from datetime import date

from target_allocation.core.calendar_split import (
    decompose_month, calculate_daily_average, suggest_selling_days
)
from target_allocation.utils.date_utils import QUARTERS, get_month_weeks


class TestMonthWeeks(unittest.TestCase):

    def test_month_starting_on_wednesday(self):
        # 2025-01-01 is a Wednesday
        weeks = get_month_weeks(2025, 1)

        self.assertEqual(weeks[0]['start'], date(2025, 1, 1))
        self.assertEqual(weeks[0]['end'], date(2025, 1, 4))
        self.assertEqual(weeks[0]['days'], 4)
        self.assertEqual([w['days'] for w in weeks], [4, 7, 7, 7, 6])

    def test_weeks_cover_every_day_once(self):
        for year, month in ((2024, 2), (2025, 3), (2025, 6), (2026, 2)):
            weeks = get_month_weeks(year, month)
            self.assertEqual(weeks[0]['start'], date(year, month, 1))
            self.assertEqual(sum(w['days'] for w in weeks), (weeks[-1]['end'] - weeks[0]['start']).days + 1)

    def test_month_starting_on_sunday(self):
        # 2025-06-01 is a Sunday
        weeks = get_month_weeks(2025, 6)

        self.assertEqual(weeks[0]['days'], 7)
        self.assertEqual(weeks[0]['end'], date(2025, 6, 7))

    def test_monday_week_start(self):
        weeks = get_month_weeks(2025, 1, week_start='monday')

        self.assertEqual(weeks[0]['end'], date(2025, 1, 5))

    def test_quarters_cover_the_year_once(self):
        months = [m for q in sorted(QUARTERS) for m in QUARTERS[q]]

        self.assertEqual(months, list(range(1, 13)))
        self.assertEqual(QUARTERS[2], (4, 5, 6))


class TestDecomposeMonth(unittest.TestCase):

    def test_split_by_day_count(self):
        weeks = decompose_month('Loja Centro', 2025, 1, 3100)

        self.assertEqual([w.amount for w in weeks], [400, 700, 700, 700, 600])
        self.assertEqual(weeks[0].day_count, 4)
        self.assertEqual(weeks[0].week_index, 1)
        self.assertEqual(weeks[0].group_key, 'Loja Centro')

    def test_sum_is_exact(self):
        for amount in (0, 1, 5, 31, 1000, 123457):
            weeks = decompose_month('A', 2025, 1, amount)
            self.assertEqual(sum(w.amount for w in weeks), amount)

    def test_leap_february(self):
        weeks = decompose_month('A', 2024, 2, 2900)

        self.assertEqual(sum(w.day_count for w in weeks), 29)
        self.assertEqual(sum(w.amount for w in weeks), 2900)


class TestDailyAverage(unittest.TestCase):

    def test_calendar_days(self):
        self.assertEqual(calculate_daily_average(3100, 2025, 1), 100.0)

    def test_selling_days_override(self):
        self.assertEqual(calculate_daily_average(3100, 2025, 1, selling_days=25), 124.0)

    def test_suggested_selling_days(self):
        days = suggest_selling_days(2024)

        self.assertEqual(days[2], 29)
        self.assertEqual(sum(days.values()), 366)


if __name__ == '__main__':
    unittest.main()
