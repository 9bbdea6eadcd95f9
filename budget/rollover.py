"""Carry unspent (or overspent) budget from earlier months into this one.

A category starts accruing rollover in the month of its earliest purchase.
Every month from there up to, but not including, the current month adds
``monthly_budget - spent_that_month``; months with no purchases add the whole
budget. ``max_months`` keeps only the most recent prior months.

The engine never clamps: a large deficit can push the effective budget to
zero or below, and the caller decides how to display that.
"""
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from budget.domain import Purchase, RolloverInfo
from budget.periods import add_months, month_key, month_start, months_between

ZERO = Decimal(0)


def spent_by_month(purchases: Iterable[Purchase]) -> dict[str, Decimal]:
    monthly: dict[str, Decimal] = defaultdict(Decimal)
    for p in purchases:
        monthly[month_key(p.date)] += p.amount
    return dict(monthly)


def rollover_months(
    purchases: Iterable[Purchase],
    current_month_start: date,
    max_months: Optional[int] = None,
) -> list[date]:
    """First days of the prior months that take part in the rollover."""
    earlier = [p.date for p in purchases if p.date < current_month_start]
    if not earlier:
        return []

    first = month_start(min(earlier))
    count = months_between(first, current_month_start)
    if max_months is not None:
        count = min(count, max(0, max_months))
    return [add_months(current_month_start, -i) for i in range(count, 0, -1)]


def rollover_amount(
    purchases: Iterable[Purchase],
    monthly_budget: Decimal,
    current_month_start: date,
    *,
    max_months: Optional[int] = None,
) -> Decimal:
    purchases = tuple(purchases)
    spent = spent_by_month(purchases)
    months = rollover_months(purchases, current_month_start, max_months)
    return sum(
        (monthly_budget - spent.get(month_key(m), ZERO) for m in months),
        ZERO,
    )


def effective_percent_used(this_month_spent: Decimal, effective_budget: Decimal) -> Decimal:
    if effective_budget <= 0:
        return ZERO
    return this_month_spent / effective_budget * 100


def compute_rollover(
    purchases: Iterable[Purchase],
    monthly_budget: Decimal,
    this_month_spent: Decimal,
    current_month_start: date,
    *,
    max_months: Optional[int] = None,
) -> RolloverInfo:
    amount = rollover_amount(
        purchases, monthly_budget, current_month_start, max_months=max_months
    )
    effective = monthly_budget + amount
    return RolloverInfo(
        amount=amount,
        effective_budget=effective,
        effective_percent_used=effective_percent_used(this_month_spent, effective),
    )
