# target_allocation/services/allocation_service.py
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Tuple

from target_allocation.config import config
from target_allocation.core.calendar_split import (
    decompose_month, calculate_daily_average, suggest_selling_days
)
from target_allocation.core.distribution import (
    distribute_monthly, allocate_groups, allocate_stores, totals_by_month
)
from target_allocation.core.indices import calculate_annual_target
from target_allocation.core.participation import MONTHS, calculate_participation
from target_allocation.core.series import HistoricalSeries
from target_allocation.core.weights import (
    DEFAULT_TOLERANCE, WeightResolution, resolve_weights, default_inner_base,
    calculate_inner_shares, compose_store_weights, roll_up_weights
)
from target_allocation.exceptions import ConfigError, ValidationError
from target_allocation.logging_setup import get_logger
from target_allocation.records import (
    AnnualTarget, CalendarConfig, Dimension, GroupAllocation, IndexParameters,
    MonthlyAllocation, StoreAllocation, WeekAllocation, WeightStrategy, freeze_mapping
)
from target_allocation.utils.date_utils import QUARTERS, WEEK_START_DAYS
from target_allocation.utils.math_utils import safe_ratio, safe_share
from target_allocation.utils.validation import validate_calendar_config

logger = get_logger('allocation')

@dataclass(frozen=True)
class WeightConfig:
    """Weighting choice for one plan.

    ``overrides`` is only read for the custom strategy. ``inner_base``
    selects the split inside a city/state group; None picks the default
    for the strategy.
    """
    dimension: Dimension = Dimension.STORE
    strategy: WeightStrategy = WeightStrategy.HISTORICAL
    overrides: Mapping[str, float] = field(default_factory=dict)
    inner_base: Optional[WeightStrategy] = None

    def __post_init__(self):
        object.__setattr__(self, 'overrides', freeze_mapping(self.overrides))

@dataclass(frozen=True)
class AllocationTree:
    """Fully resolved plan, from the annual target down to weeks.

    Amounts are integer minor units (``currency_scale`` per currency unit).
    Mapping fields are read-only copies.
    """
    year: int
    baseline_year: Optional[int]
    currency_scale: int
    index_parameters: IndexParameters
    annual_target: AnnualTarget
    participation: Mapping[int, float]
    monthly: Tuple[MonthlyAllocation, ...]
    weights: WeightResolution
    inner_base: WeightStrategy
    store_weights: Mapping[str, float]
    groups: Tuple[GroupAllocation, ...]
    stores: Tuple[StoreAllocation, ...]
    weeks: Tuple[WeekAllocation, ...]
    selling_days: Mapping[int, int]
    daily_averages: Mapping[Tuple[str, int], float]
    unassigned_stores: Tuple[str, ...] = ()

    def __post_init__(self):
        for name in ('participation', 'store_weights', 'selling_days', 'daily_averages'):
            object.__setattr__(self, name, freeze_mapping(getattr(self, name)))

    @property
    def dimension(self) -> Dimension:
        return self.weights.dimension

    def to_currency(self, amount: int) -> Decimal:
        return Decimal(amount) / Decimal(self.currency_scale)

    def monthly_amount(self, month: int) -> int:
        for alloc in self.monthly:
            if alloc.month == month:
                return alloc.amount
        return 0

    def group_amount(self, group_key: str, month: Optional[int] = None) -> int:
        return sum(
            g.amount for g in self.groups
            if g.group_key == group_key and (month is None or g.month == month)
        )

    def weeks_for(self, group_key: str, month: int) -> List[WeekAllocation]:
        return [w for w in self.weeks if w.group_key == group_key and w.month == month]

    def planned(
        self,
        month: Optional[int] = None,
        dimension: Optional[Dimension] = None,
        key: Optional[str] = None
    ) -> int:
        """Planned amount for the company or one group, for the year or a month.

        Groups of any dimension are summed from the store rows, so a plan
        weighted by city can still be read per state or per store.
        """
        if dimension is None or key is None:
            if month is None:
                return self.annual_target.amount
            return self.monthly_amount(month)

        return sum(
            s.amount for s in self.stores
            if dimension.key_of(s) == key and (month is None or s.month == month)
        )

def _baseline_stores(series: HistoricalSeries) -> List[str]:
    return list(OrderedDict.fromkeys(r.store for r in series.select(year=series.baseline_year)))

def compute(
    series: HistoricalSeries,
    index_parameters: IndexParameters,
    weight_config: Optional[WeightConfig] = None,
    calendar_config: Optional[CalendarConfig] = None,
    currency_scale: Optional[int] = None,
    tolerance: Optional[float] = None,
    week_start: Optional[str] = None
) -> AllocationTree:
    """Run the whole allocation pipeline for one parameter snapshot.

    Pure and deterministic: the same inputs always give an identical tree.

    Args:
        series: Historical series
        index_parameters: Economic indices for the scenario
        weight_config: Dimension, strategy, custom overrides and inner base
        calendar_config: Target year and selling-day overrides
        currency_scale: Minor units per currency unit (configuration default)
        tolerance: Allowed distance of custom weights from 1
        week_start: First day of a calendar week

    Returns:
        AllocationTree

    Raises:
        IndexParameterError: If an index is outside its range
        WeightValidationError: If custom weights are invalid
        ValidationError: If the calendar configuration is invalid
        ConfigError: If the currency scale, tolerance or week start is unusable
    """
    allocation_config = config.allocation_config
    weight_config = weight_config or WeightConfig()
    calendar_config = calendar_config or CalendarConfig()
    currency_scale = currency_scale or allocation_config['currency_scale'] or 1
    if tolerance is None:
        tolerance = allocation_config['weight_tolerance']
    if tolerance is None:
        tolerance = DEFAULT_TOLERANCE
    week_start = week_start or allocation_config['week_start'] or 'sunday'

    if currency_scale <= 0 or tolerance < 0 or week_start.lower() not in WEEK_START_DAYS:
        raise ConfigError(
            "Invalid allocation settings",
            code='ALLOCATION_SETTINGS',
            details={
                'currency_scale': currency_scale,
                'weight_tolerance': tolerance,
                'week_start': week_start
            }
        )

    errors = validate_calendar_config(calendar_config)
    if errors:
        raise ValidationError(
            "Invalid calendar configuration",
            code='CALENDAR',
            details=errors
        )

    baseline_year = series.baseline_year
    year = calendar_config.year or series.target_year
    baseline_total = series.total(year=baseline_year) if baseline_year is not None else Decimal('0')

    annual_target = calculate_annual_target(baseline_total, index_parameters, year, currency_scale)
    logger.info(
        f"Annual target {year}: {annual_target.amount} "
        f"(baseline {baseline_year} total {baseline_total}, rate {annual_target.composite_rate:.6f})"
    )

    participation = calculate_participation(series, baseline_year)
    monthly = distribute_monthly(annual_target.amount, participation)

    dimension = weight_config.dimension
    resolution = resolve_weights(
        series, dimension, weight_config.strategy, weight_config.overrides, tolerance
    )
    resolution.raise_if_invalid()
    if resolution.message:
        logger.warning(resolution.message)
    logger.info(
        f"Resolved {len(resolution.weights)} {dimension.value} weights "
        f"({weight_config.strategy.value})"
    )

    inner_base = weight_config.inner_base or default_inner_base(weight_config.strategy)
    inner_shares = calculate_inner_shares(series, dimension, inner_base)
    store_weights = compose_store_weights(resolution, series, inner_base)

    groups = allocate_groups(monthly, resolution.as_dict())
    stores = allocate_stores(groups, inner_shares, series.store_directory())

    group_totals = totals_by_month(groups)
    for alloc in monthly:
        if group_totals.get(alloc.month, 0) != alloc.amount:
            logger.debug(
                f"Month {alloc.month}: {alloc.amount - group_totals.get(alloc.month, 0)} "
                f"not allocated to any {dimension.value}"
            )

    unassigned = tuple(
        s for s in _baseline_stores(series) if not series.group_of(s, dimension)
    )
    if unassigned:
        logger.warning(
            f"{len(unassigned)} store(s) without {dimension.value} excluded from allocation: "
            f"{', '.join(unassigned)}"
        )

    selling_days = suggest_selling_days(year)
    selling_days.update(calendar_config.selling_days or {})

    weeks = []
    daily_averages = OrderedDict()
    for group_alloc in groups:
        weeks.extend(decompose_month(
            group_alloc.group_key, year, group_alloc.month, group_alloc.amount, week_start
        ))
        daily_averages[(group_alloc.group_key, group_alloc.month)] = calculate_daily_average(
            group_alloc.amount, year, group_alloc.month, selling_days[group_alloc.month]
        )

    return AllocationTree(
        year=year,
        baseline_year=baseline_year,
        currency_scale=currency_scale,
        index_parameters=index_parameters,
        annual_target=annual_target,
        participation=participation,
        monthly=tuple(monthly),
        weights=resolution,
        inner_base=inner_base,
        store_weights=store_weights,
        groups=tuple(groups),
        stores=tuple(stores),
        weeks=tuple(weeks),
        selling_days=selling_days,
        daily_averages=daily_averages,
        unassigned_stores=unassigned
    )

class AllocationService:
    """Service for building plans and the views derived from them."""

    def __init__(self, series: HistoricalSeries):
        """Initialize the allocation service.

        Args:
            series: Historical series the plans are built from
        """
        self.series = series

    def compute(
        self,
        index_parameters: IndexParameters,
        weight_config: Optional[WeightConfig] = None,
        calendar_config: Optional[CalendarConfig] = None,
        **kwargs
    ) -> AllocationTree:
        return compute(self.series, index_parameters, weight_config, calendar_config, **kwargs)

    def summarize_plan(self, tree: AllocationTree) -> Dict:
        """Headline figures of a plan.

        Returns:
            Dictionary with top month, mean monthly target, top-3 months,
            quarter totals and concentration, and variation vs baseline
        """
        annual = tree.annual_target.amount
        ranked = sorted(tree.monthly, key=lambda m: -m.amount)

        quarter_totals = OrderedDict(
            (q, sum(tree.monthly_amount(m) for m in months)) for q, months in QUARTERS.items()
        )

        variation = safe_ratio(tree.to_currency(annual), tree.annual_target.baseline_total)
        if variation is not None:
            variation -= 1.0

        return {
            'year': tree.year,
            'annual_target': annual,
            'top_month': ranked[0].month if annual else None,
            'mean_monthly': annual / len(MONTHS),
            'top_months': [(m.month, m.amount) for m in ranked[:3]],
            'quarter_totals': quarter_totals,
            'quarter_concentration': OrderedDict(
                (q, safe_share(v, annual)) for q, v in quarter_totals.items()
            ),
            'variation_vs_baseline': variation
        }

    def roll_up(self, tree: AllocationTree, dimension: Dimension) -> Dict[str, Dict]:
        """Store rows summed into another dimension's groups.

        Returns:
            Dictionary group key -> {'amount', 'weight'}
        """
        weights = roll_up_weights(tree.store_weights, self.series, dimension)
        rolled = OrderedDict()
        for store_alloc in tree.stores:
            group_key = dimension.key_of(store_alloc)
            if not group_key:
                continue
            entry = rolled.setdefault(group_key, {'amount': 0, 'weight': weights.get(group_key, 0.0)})
            entry['amount'] += store_alloc.amount
        return rolled

    def plan_vs_history(self, tree: AllocationTree, dimension: Dimension) -> List[Dict]:
        """Planned total next to the baseline-year total for every group."""
        baseline = self.series.totals_by(dimension, tree.baseline_year)
        planned = self.roll_up(tree, dimension)

        rows = []
        for group_key in OrderedDict.fromkeys(list(baseline) + list(planned)):
            planned_value = tree.to_currency(planned.get(group_key, {}).get('amount', 0))
            baseline_value = baseline.get(group_key, Decimal('0'))
            variation = safe_ratio(planned_value, baseline_value)
            rows.append({
                'key': group_key,
                'planned': planned_value,
                'baseline': baseline_value,
                'variation': variation - 1.0 if variation is not None else None
            })
        return rows
