"""
Tests for the full allocation pipeline.
"""
import unittest
from decimal import Decimal

from target_allocation.core.series import HistoricalSeries
from target_allocation.exceptions import (
    ConfigError, ValidationError, WeightValidationError, IndexParameterError
)
from target_allocation.records import (
    CalendarConfig, Dimension, HistoricalRecord, IndexParameters, WeightStrategy
)
from target_allocation.services.allocation_service import AllocationService, WeightConfig, compute
from target_allocation.tests.helpers import million_series, sample_series

PARAMS = IndexParameters(
    inflation_rate=0.045,
    regulated_price_index=0.05,
    category_participation=0.55,
    growth_rate=0.10
)


class TestCompute(unittest.TestCase):

    def setUp(self):
        self.series = sample_series()

    def assert_exact_sums(self, tree):
        self.assertEqual(sum(m.amount for m in tree.monthly), tree.annual_target.amount)

        for alloc in tree.monthly:
            groups = [g for g in tree.groups if g.month == alloc.month]
            self.assertEqual(sum(g.amount for g in groups), alloc.amount)

            for group in groups:
                weeks = tree.weeks_for(group.group_key, group.month)
                self.assertEqual(sum(w.amount for w in weeks), group.amount)

                stores = [
                    s for s in tree.stores
                    if s.group_key == group.group_key and s.month == group.month
                ]
                self.assertEqual(sum(s.amount for s in stores), group.amount)

    def test_exact_sums_for_every_dimension_and_strategy(self):
        for dimension in Dimension:
            for strategy in (WeightStrategy.HISTORICAL, WeightStrategy.EQUAL):
                tree = compute(
                    self.series, PARAMS, WeightConfig(dimension=dimension, strategy=strategy),
                    currency_scale=100
                )
                self.assert_exact_sums(tree)

    def test_custom_city_weights(self):
        config = WeightConfig(
            dimension=Dimension.CITY,
            strategy=WeightStrategy.CUSTOM,
            overrides={'Recife': 0.6, 'Natal': 0.4},
            inner_base=WeightStrategy.HISTORICAL
        )
        tree = compute(self.series, PARAMS, config, currency_scale=1)

        self.assert_exact_sums(tree)
        self.assertAlmostEqual(
            tree.store_weights['Loja Centro'] + tree.store_weights['Loja Boa Viagem'], 0.6
        )
        self.assertEqual(tree.inner_base, WeightStrategy.HISTORICAL)

    def test_invalid_custom_weights_block_allocation(self):
        config = WeightConfig(
            dimension=Dimension.CITY,
            strategy=WeightStrategy.CUSTOM,
            overrides={'Recife': 0.5, 'Natal': 0.4}
        )

        with self.assertRaises(WeightValidationError) as ctx:
            compute(self.series, PARAMS, config)
        self.assertAlmostEqual(ctx.exception.actual_sum, 0.9)

    def test_invalid_indices(self):
        with self.assertRaises(IndexParameterError):
            compute(self.series, IndexParameters(category_participation=2.0))

    def test_invalid_selling_days(self):
        with self.assertRaises(ValidationError):
            compute(self.series, PARAMS, calendar_config=CalendarConfig(selling_days={1: 0}))

    def test_idempotent(self):
        config = WeightConfig(dimension=Dimension.STATE, strategy=WeightStrategy.EQUAL)

        first = compute(self.series, PARAMS, config, currency_scale=100)
        second = compute(self.series, PARAMS, config, currency_scale=100)

        self.assertEqual(first, second)

    def test_target_year_and_override(self):
        self.assertEqual(compute(self.series, PARAMS).year, 2025)
        self.assertEqual(compute(self.series, PARAMS, calendar_config=CalendarConfig(year=2026)).year, 2026)

    def test_selling_days_change_daily_average(self):
        tree = compute(
            self.series, PARAMS, calendar_config=CalendarConfig(selling_days={1: 20}), currency_scale=1
        )
        amount = tree.group_amount('Loja Centro', 1)

        self.assertEqual(tree.selling_days[1], 20)
        self.assertEqual(tree.selling_days[2], 28)
        self.assertAlmostEqual(tree.daily_averages[('Loja Centro', 1)], amount / 20)

    def test_scenario_a(self):
        tree = compute(million_series(), IndexParameters(growth_rate=0.10), currency_scale=1)

        self.assertEqual(tree.annual_target.amount, 1100000)
        self.assertEqual(tree.monthly_amount(1), 88000)

    def test_store_without_city_is_unassigned(self):
        records = list(self.series.records) + [
            HistoricalRecord(year=2024, month=1, store='Loja Online', amount=Decimal('500'))
        ]
        tree = compute(HistoricalSeries(records), PARAMS, WeightConfig(dimension=Dimension.CITY))

        self.assertEqual(tree.unassigned_stores, ('Loja Online',))
        self.assertNotIn('Loja Online', {s.store for s in tree.stores})
        self.assert_exact_sums(tree)

    def test_store_with_mixed_city_values_stays_in_one_group(self):
        series = HistoricalSeries([
            HistoricalRecord(year=2024, month=1, store='A', amount=Decimal('1000'), city='Recife'),
            HistoricalRecord(year=2024, month=1, store='B', amount=Decimal('250')),
            HistoricalRecord(year=2024, month=2, store='B', amount=Decimal('250'), city='Olinda'),
        ])
        tree = compute(series, IndexParameters(), WeightConfig(dimension=Dimension.CITY), currency_scale=1)

        self.assertEqual(series.group_of('B', Dimension.CITY), 'Olinda')
        self.assertEqual(series.members(Dimension.CITY), {'Recife': ['A'], 'Olinda': ['B']})
        self.assertEqual(sum(s.amount for s in tree.stores), tree.annual_target.amount)
        self.assertEqual(tree.planned(None, Dimension.STORE, 'B'), tree.group_amount('Olinda'))
        self.assertEqual(tree.unassigned_stores, ())
        self.assert_exact_sums(tree)

    def test_zero_tolerance_is_kept(self):
        config = WeightConfig(
            dimension=Dimension.STATE,
            strategy=WeightStrategy.CUSTOM,
            overrides={'PE': 0.7, 'RN': 0.3000001}
        )

        self.assertEqual(compute(self.series, PARAMS, config, tolerance=1e-3).weights.tolerance, 1e-3)
        with self.assertRaises(WeightValidationError) as ctx:
            compute(self.series, PARAMS, config, tolerance=0.0)
        self.assertEqual(ctx.exception.details['tolerance'], 0.0)

    def test_unusable_settings_rejected(self):
        with self.assertRaises(ConfigError):
            compute(self.series, PARAMS, week_start='friday')
        with self.assertRaises(ConfigError):
            compute(self.series, PARAMS, currency_scale=-100)

    def test_empty_history(self):
        tree = compute(HistoricalSeries(), PARAMS)

        self.assertEqual(tree.annual_target.amount, 0)
        self.assertEqual([m.amount for m in tree.monthly], [0] * 12)
        self.assertEqual(tree.groups, ())


class TestAllocationService(unittest.TestCase):

    def setUp(self):
        self.series = sample_series()
        self.service = AllocationService(self.series)
        self.tree = self.service.compute(
            PARAMS, WeightConfig(dimension=Dimension.STORE), currency_scale=1
        )

    def test_summary(self):
        summary = self.service.summarize_plan(self.tree)

        # December carries the seasonal peak
        self.assertEqual(summary['top_month'], 12)
        self.assertEqual(len(summary['top_months']), 3)
        self.assertAlmostEqual(sum(summary['quarter_concentration'].values()), 1.0)
        self.assertEqual(sum(summary['quarter_totals'].values()), self.tree.annual_target.amount)
        self.assertAlmostEqual(summary['variation_vs_baseline'], 0.1725, places=4)

    def test_roll_up_to_state(self):
        rolled = self.service.roll_up(self.tree, Dimension.STATE)

        self.assertEqual(list(rolled), ['PE', 'RN'])
        self.assertEqual(
            sum(v['amount'] for v in rolled.values()), self.tree.annual_target.amount
        )
        self.assertAlmostEqual(sum(v['weight'] for v in rolled.values()), 1.0)

    def test_plan_vs_history(self):
        rows = self.service.plan_vs_history(self.tree, Dimension.CITY)

        self.assertEqual([r['key'] for r in rows], ['Recife', 'Natal'])
        for row in rows:
            self.assertAlmostEqual(row['variation'], 0.1725, delta=0.002)


if __name__ == '__main__':
    unittest.main()
