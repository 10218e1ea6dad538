# target_allocation/core/weights.py
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Tuple

from ..exceptions import WeightValidationError
from ..records import Dimension, Weight, WeightStrategy
from ..utils.math_utils import safe_share
from ..utils.validation import validate_weight_values
from .series import HistoricalSeries

DEFAULT_TOLERANCE = 1e-6

@dataclass(frozen=True)
class WeightResolution:
    """Outcome of resolving weights for one dimension.

    An invalid resolution still carries the weights as entered so the
    caller can show them next to the message.
    """
    dimension: Dimension
    strategy: WeightStrategy
    weights: Tuple[Weight, ...]
    total: float
    is_valid: bool = True
    message: str = ''
    tolerance: float = DEFAULT_TOLERANCE

    def as_dict(self) -> Dict[str, float]:
        return OrderedDict((w.key, w.value) for w in self.weights)

    @property
    def keys(self) -> List[str]:
        return [w.key for w in self.weights]

    def raise_if_invalid(self) -> None:
        if not self.is_valid:
            raise WeightValidationError(
                self.message,
                details={
                    'actual_sum': self.total,
                    'tolerance': self.tolerance,
                    'dimension': self.dimension.value,
                    'strategy': self.strategy.value
                }
            )

def _as_weights(dimension: Dimension, values: Mapping[str, float]) -> Tuple[Weight, ...]:
    return tuple(Weight(dimension=dimension, key=k, value=float(v)) for k, v in values.items())

def historical_weights(series: HistoricalSeries, dimension: Dimension) -> Dict[str, float]:
    """Each group's share of the baseline-year total for the dimension.

    Groups with no sales get 0; a zero dimension total gives 0 for every
    group instead of dividing by zero.
    """
    totals = series.totals_by(dimension, series.baseline_year)
    dimension_total = sum(totals.values(), Decimal('0'))
    return OrderedDict((k, safe_share(v, dimension_total)) for k, v in totals.items())

def equal_weights(keys: List[str]) -> Dict[str, float]:
    """Uniform weight 1/n per group; empty for no groups."""
    if not keys:
        return OrderedDict()
    value = 1.0 / len(keys)
    return OrderedDict((k, value) for k in keys)

def check_custom_weights(
    overrides: Mapping[str, float],
    keys: List[str],
    dimension: Dimension,
    tolerance: float = DEFAULT_TOLERANCE
) -> WeightResolution:
    """Validate user-entered weights without rescaling them.

    Missing keys count as 0. Unknown keys, values outside [0, 1] and a sum
    farther than ``tolerance`` from 1 make the resolution invalid.
    """
    overrides = overrides or {}
    values = OrderedDict((k, float(overrides.get(k, 0.0) or 0.0)) for k in keys)
    total = float(sum(values.values()))

    errors = validate_weight_values(overrides, keys)
    if errors:
        listed = ", ".join(f"{k}: {v}" for k, v in errors.items())
        return WeightResolution(
            dimension=dimension,
            strategy=WeightStrategy.CUSTOM,
            weights=_as_weights(dimension, values),
            total=total,
            is_valid=False,
            message=f"Invalid custom weights for {dimension.value}: {listed}",
            tolerance=tolerance
        )

    if abs(total - 1.0) > tolerance:
        return WeightResolution(
            dimension=dimension,
            strategy=WeightStrategy.CUSTOM,
            weights=_as_weights(dimension, values),
            total=total,
            is_valid=False,
            message=(
                f"Custom weights for {dimension.value} sum to {total * 100:.2f}% "
                f"({total:.6f}); they must sum to 100%"
            ),
            tolerance=tolerance
        )

    return WeightResolution(
        dimension=dimension,
        strategy=WeightStrategy.CUSTOM,
        weights=_as_weights(dimension, values),
        total=total,
        tolerance=tolerance
    )

def resolve_weights(
    series: HistoricalSeries,
    dimension: Dimension,
    strategy: WeightStrategy,
    overrides: Optional[Mapping[str, float]] = None,
    tolerance: float = DEFAULT_TOLERANCE
) -> WeightResolution:
    """Resolve normalized weights for every group of a dimension.

    Args:
        series: Historical series (baseline year drives the groups)
        dimension: Store, city or state
        strategy: Historical, equal or custom
        overrides: Custom weight per group key (custom strategy only)
        tolerance: Allowed distance of a custom sum from 1

    Returns:
        WeightResolution; check ``is_valid`` before allocating
    """
    keys = series.keys(dimension)

    if strategy is WeightStrategy.CUSTOM:
        return check_custom_weights(overrides, keys, dimension, tolerance)

    if strategy is WeightStrategy.HISTORICAL:
        values = historical_weights(series, dimension)
        # keep keys without sales so every group is listed
        values = OrderedDict((k, values.get(k, 0.0)) for k in keys)
    else:
        values = equal_weights(keys)

    total = float(sum(values.values()))
    message = ''
    if keys and total == 0:
        message = f"No baseline sales for {dimension.value}; nothing to allocate"

    return WeightResolution(
        dimension=dimension,
        strategy=strategy,
        weights=_as_weights(dimension, values),
        total=total,
        message=message,
        tolerance=tolerance
    )

def default_inner_base(strategy: WeightStrategy) -> WeightStrategy:
    """Inner split used under a city/state weight when none is given."""
    if strategy is WeightStrategy.HISTORICAL:
        return WeightStrategy.HISTORICAL
    return WeightStrategy.EQUAL

def calculate_inner_shares(
    series: HistoricalSeries,
    dimension: Dimension,
    inner_base: WeightStrategy
) -> Dict[str, Dict[str, float]]:
    """Share of each store inside its group.

    Historical: store baseline amount / group baseline total. Equal:
    1 / stores in group. A group whose stores sold nothing in the baseline
    year falls back to the equal split so its outer weight is not lost.
    For the store dimension every store is its own group with share 1.

    Returns:
        Dictionary group key -> {store: share}
    """
    members = series.members(dimension)

    if dimension is Dimension.STORE:
        return OrderedDict((s, {s: 1.0}) for s in members)

    if inner_base is WeightStrategy.CUSTOM:
        raise WeightValidationError(
            "Inner base must be historical or equal",
            code='INNER_BASE',
            details={'dimension': dimension.value}
        )

    store_totals = series.totals_by(Dimension.STORE, series.baseline_year)
    shares = OrderedDict()
    for group_key, stores in members.items():
        if not stores:
            shares[group_key] = OrderedDict()
            continue
        group_total = sum((store_totals.get(s, Decimal('0')) for s in stores), Decimal('0'))
        if inner_base is WeightStrategy.HISTORICAL and group_total > 0:
            shares[group_key] = OrderedDict(
                (s, safe_share(store_totals.get(s, Decimal('0')), group_total)) for s in stores
            )
        else:
            shares[group_key] = OrderedDict((s, 1.0 / len(stores)) for s in stores)

    return shares

def compose_store_weights(
    resolution: WeightResolution,
    series: HistoricalSeries,
    inner_base: Optional[WeightStrategy] = None
) -> Dict[str, float]:
    """Effective store weight = outer group weight x inner store share.

    Args:
        resolution: Resolved weights for the chosen dimension
        series: Historical series
        inner_base: Historical or equal split inside each group

    Returns:
        Dictionary store -> effective weight
    """
    if inner_base is None:
        inner_base = default_inner_base(resolution.strategy)

    shares = calculate_inner_shares(series, resolution.dimension, inner_base)
    effective = OrderedDict()
    for weight in resolution.weights:
        for store, share in shares.get(weight.key, {}).items():
            effective[store] = weight.value * share
    return effective

def roll_up_weights(
    store_weights: Mapping[str, float],
    series: HistoricalSeries,
    dimension: Dimension
) -> Dict[str, float]:
    """Sum effective store weights into another dimension's groups."""
    rolled = OrderedDict()
    for store, value in store_weights.items():
        group_key = series.group_of(store, dimension)
        if not group_key:
            continue
        rolled[group_key] = rolled.get(group_key, 0.0) + value
    return rolled
