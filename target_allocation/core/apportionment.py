# target_allocation/core/apportionment.py
from typing import List, Sequence
import numpy as np

from ..exceptions import CalculationError

# Precision at which fractional parts are compared; closer values tie.
FRACTION_DECIMALS = 9

def apportion(total: int, weights: Sequence[float]) -> List[int]:
    """Split an integer total across weighted buckets (largest remainder).

    Each bucket's ideal share is ``total * weight / sum(weights)``. Ideal
    shares are floored, then the leftover units are handed out one at a
    time to the buckets with the largest fractional parts. A negative
    leftover removes units from the smallest fractional parts first. Ties
    go to the bucket that comes first in input order.

    Args:
        total: Integer amount to distribute
        weights: Non-negative weight per bucket

    Returns:
        Integer part per bucket, summing to ``total``. An empty weight list
        gives an empty result; an all-zero weight vector gives all zeros.
    """
    n = len(weights)
    if n == 0:
        return []

    total = int(total)
    w = np.asarray(weights, dtype=float)
    if not np.all(np.isfinite(w)):
        raise CalculationError("Weights must be finite numbers")
    if np.any(w < 0):
        raise CalculationError("Weights must not be negative")

    weight_sum = w.sum()
    if weight_sum <= 0:
        return [0] * n

    ideal = np.asarray(ideal_shares(total, w))
    base = np.floor(ideal)
    fractions = np.round(ideal - base, FRACTION_DECIMALS)
    parts = base.astype(np.int64)

    remainder = total - int(parts.sum())
    if remainder > 0:
        # stable sort keeps input order among equal fractions
        order = np.argsort(-fractions, kind='stable')
        for i in range(remainder):
            parts[order[i % n]] += 1
    elif remainder < 0:
        order = np.argsort(fractions, kind='stable')
        for i in range(-remainder):
            parts[order[i % n]] -= 1

    return [int(p) for p in parts]

def ideal_shares(total: int, weights: Sequence[float]) -> List[float]:
    """Unrounded share per bucket, as used by ``apportion``."""
    w = np.asarray(weights, dtype=float)
    weight_sum = w.sum() if len(w) else 0.0
    if weight_sum <= 0:
        return [0.0] * len(w)
    return [float(x) for x in total * (w / weight_sum)]
