from .apportionment import apportion, ideal_shares
from .series import HistoricalSeries
from .participation import calculate_monthly_totals, calculate_participation
from .indices import calculate_composite_rate, calculate_annual_target, check_index_parameters
from .distribution import distribute_monthly, allocate_groups, allocate_stores
from .weights import (
    WeightResolution, resolve_weights, historical_weights, equal_weights,
    check_custom_weights, calculate_inner_shares, compose_store_weights,
    roll_up_weights, default_inner_base
)
from .calendar_split import decompose_month, calculate_daily_average, suggest_selling_days
from .tracking import VarianceResult, sum_actuals, calculate_variance

__all__ = [
    'apportion',
    'ideal_shares',
    'HistoricalSeries',
    'calculate_monthly_totals',
    'calculate_participation',
    'calculate_composite_rate',
    'calculate_annual_target',
    'check_index_parameters',
    'distribute_monthly',
    'allocate_groups',
    'allocate_stores',
    'WeightResolution',
    'resolve_weights',
    'historical_weights',
    'equal_weights',
    'check_custom_weights',
    'calculate_inner_shares',
    'compose_store_weights',
    'roll_up_weights',
    'default_inner_base',
    'decompose_month',
    'calculate_daily_average',
    'suggest_selling_days',
    'VarianceResult',
    'sum_actuals',
    'calculate_variance'
]
