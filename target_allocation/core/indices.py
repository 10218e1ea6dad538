# target_allocation/core/indices.py
from decimal import Decimal, ROUND_HALF_UP

from ..exceptions import IndexParameterError
from ..records import AnnualTarget, IndexParameters
from ..utils.math_utils import to_decimal, Number
from ..utils.validation import validate_index_parameters

def check_index_parameters(params: IndexParameters) -> None:
    """Raise IndexParameterError if any index is outside its range."""
    errors = validate_index_parameters(params)
    if errors:
        raise IndexParameterError(
            "Invalid index parameters: " + "; ".join(f"{k}: {v}" for k, v in errors.items()),
            details=errors
        )

def composite_rate_decimal(params: IndexParameters) -> Decimal:
    """Composite rate as an exact Decimal.

    inflation + regulated_index * category_participation + growth
    """
    return (
        to_decimal(params.inflation_rate)
        + to_decimal(params.regulated_price_index) * to_decimal(params.category_participation)
        + to_decimal(params.growth_rate)
    )

def calculate_composite_rate(params: IndexParameters) -> float:
    """Combine the indices into one annual multiplier.

    Args:
        params: Index parameters (fractions; growth may be negative)

    Returns:
        Composite rate as a fraction
    """
    check_index_parameters(params)
    return float(composite_rate_decimal(params))

def calculate_annual_target(
    baseline_total: Number,
    params: IndexParameters,
    year: int,
    currency_scale: int = 1
) -> AnnualTarget:
    """Project the baseline-year total into the target year.

    Rounding to the smallest currency unit happens here, once; every later
    level splits this integer.

    Args:
        baseline_total: Baseline-year sales total in currency
        params: Index parameters
        year: Target year
        currency_scale: Minor units per currency unit (1 or 100)

    Returns:
        AnnualTarget whose amount is an integer number of minor units
    """
    check_index_parameters(params)
    rate = composite_rate_decimal(params)
    total = to_decimal(baseline_total)

    amount = (total * currency_scale * (1 + rate)).quantize(Decimal('1'), rounding=ROUND_HALF_UP)

    return AnnualTarget(
        year=year,
        amount=int(amount),
        baseline_total=total,
        composite_rate=float(rate)
    )
