# target_allocation/core/distribution.py
import logging
from typing import Dict, List, Mapping, Optional

from ..records import GroupAllocation, MonthlyAllocation, StoreAllocation
from .apportionment import apportion
from .participation import MONTHS

logger = logging.getLogger(__name__)

def distribute_monthly(annual_amount: int, participation: Mapping[int, float]) -> List[MonthlyAllocation]:
    """Spread the annual target over the 12 months by participation.

    Args:
        annual_amount: Annual target in minor units
        participation: Month -> share of the baseline year

    Returns:
        Twelve MonthlyAllocation records summing to ``annual_amount``
        (all zero when every participation is zero)
    """
    shares = [participation.get(m, 0.0) for m in MONTHS]
    amounts = apportion(annual_amount, shares)
    if not any(shares):
        logger.warning("Participation is zero for every month; monthly targets left at zero")
    return [MonthlyAllocation(month=m, amount=a) for m, a in zip(MONTHS, amounts)]

def allocate_groups(
    monthly: List[MonthlyAllocation],
    weights: Mapping[str, float]
) -> List[GroupAllocation]:
    """Split every month's target across weighted groups.

    Args:
        monthly: Monthly allocations
        weights: Group key -> normalized weight

    Returns:
        GroupAllocation per (month, group); for each month the amounts sum
        to that month's target
    """
    keys = list(weights.keys())
    values = [weights[k] for k in keys]
    allocations = []

    for month_alloc in monthly:
        amounts = apportion(month_alloc.amount, values)
        allocations.extend(
            GroupAllocation(month=month_alloc.month, group_key=k, amount=a)
            for k, a in zip(keys, amounts)
        )

    return allocations

def allocate_stores(
    group_allocations: List[GroupAllocation],
    inner_shares: Mapping[str, Mapping[str, float]],
    directory: Optional[Mapping[str, Mapping[str, Optional[str]]]] = None
) -> List[StoreAllocation]:
    """Split each group-month amount across the group's stores.

    Store rows of a group always add back to the group's amount for that
    month.

    Args:
        group_allocations: Group allocations of the chosen dimension
        inner_shares: Group key -> {store: share inside the group}
        directory: Store -> {'city', 'state'} for labelling the rows

    Returns:
        StoreAllocation per (month, store)
    """
    directory = directory or {}
    rows = []

    for group_alloc in group_allocations:
        shares = inner_shares.get(group_alloc.group_key) or {}
        if not shares:
            if group_alloc.amount:
                logger.warning(
                    f"Group {group_alloc.group_key!r} has no stores; "
                    f"{group_alloc.amount} left unassigned in month {group_alloc.month}"
                )
            continue

        stores = list(shares.keys())
        amounts = apportion(group_alloc.amount, [shares[s] for s in stores])
        for store, amount in zip(stores, amounts):
            info = directory.get(store) or {}
            rows.append(StoreAllocation(
                month=group_alloc.month,
                store=store,
                amount=amount,
                group_key=group_alloc.group_key,
                city=info.get('city'),
                state=info.get('state')
            ))

    return rows

def totals_by_month(allocations) -> Dict[int, int]:
    """Sum any month-keyed allocations per month."""
    totals = {m: 0 for m in MONTHS}
    for alloc in allocations:
        totals[alloc.month] = totals.get(alloc.month, 0) + alloc.amount
    return totals
