from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional, Sequence

from budget.calculator import HUNDRED, ZERO, sum_amounts, this_month
from budget.domain import Alert, AlertType, CategoryBudget, Projection, Purchase, Status
from budget.formatting import format_currency, format_percentage
from budget.periods import days_in_month, local_naive

LARGE_PURCHASE_RATIO = Decimal("0.1")
DANGER_THRESHOLD = Decimal(80)


def _created_at(p: Purchase) -> datetime:
    if p.created_at is None:
        return datetime.combine(p.date, time.min)
    return local_naive(p.created_at)


def total_monthly_budget(category_budgets: Sequence[CategoryBudget]) -> Decimal:
    return sum((cb.budgeted.monthly for cb in category_budgets), ZERO)


def category_alerts(
    category_budgets: Sequence[CategoryBudget], now: datetime, currency: str = "USD"
) -> list[Alert]:
    alerts: list[Alert] = []
    for cb in category_budgets:
        if cb.status == Status.OVERSPENT:
            over = format_currency(abs(cb.monthly_remaining), currency)
            alerts.append(Alert(
                id=f"overspent-{cb.category.id}",
                type=AlertType.OVERSPENT,
                message=f"{cb.category.name} is over budget by {over}",
                created_at=now,
                category_id=cb.category.id,
                category_name=cb.category.name,
                value=cb.monthly_percent_used,
                threshold=HUNDRED,
            ))
        # the "danger" tier is reported as a warning alert
        elif cb.status == Status.DANGER:
            pct = format_percentage(cb.monthly_percent_used)
            alerts.append(Alert(
                id=f"warning-{cb.category.id}",
                type=AlertType.WARNING,
                message=f"{cb.category.name} is at {pct} of monthly budget",
                created_at=now,
                category_id=cb.category.id,
                category_name=cb.category.name,
                value=cb.monthly_percent_used,
                threshold=DANGER_THRESHOLD,
            ))
    return alerts


def large_purchase_alerts(
    category_budgets: Sequence[CategoryBudget],
    purchases: Sequence[Purchase],
    today: date,
    currency: str = "USD",
    ratio: Decimal = LARGE_PURCHASE_RATIO,
) -> list[Alert]:
    threshold = total_monthly_budget(category_budgets) * ratio
    names = {cb.category.id: cb.category.name for cb in category_budgets}
    return [
        Alert(
            id=f"large-{p.id}",
            type=AlertType.LARGE_PURCHASE,
            message=f"Large purchase: {p.name} ({format_currency(p.amount, currency)})",
            created_at=_created_at(p),
            category_id=p.category_id,
            category_name=names.get(p.category_id),
            value=p.amount,
            threshold=threshold,
        )
        for p in filter(this_month(today), purchases)
        if p.amount > threshold
    ]


def generate_alerts(
    category_budgets: Sequence[CategoryBudget],
    purchases: Sequence[Purchase],
    *,
    now: Optional[datetime] = None,
    currency: str = "USD",
    large_purchase_ratio: Decimal = LARGE_PURCHASE_RATIO,
) -> tuple[Alert, ...]:
    """Threshold alerts, newest ``created_at`` first."""
    now = local_naive(now or datetime.now())
    alerts = category_alerts(category_budgets, now, currency)
    alerts += large_purchase_alerts(
        category_budgets, purchases, now.date(), currency, large_purchase_ratio
    )
    return tuple(sorted(alerts, key=lambda a: a.created_at, reverse=True))


def get_projections(
    category_budgets: Sequence[CategoryBudget],
    purchases: Sequence[Purchase],
    *,
    today: Optional[date] = None,
) -> Projection:
    """Straight-line month-end projection from spend so far."""
    today = today or date.today()
    days_passed = today.day
    days_remaining = days_in_month(today) - days_passed

    # recomputed from purchases so simulated wishlist spend is included
    total_spent = sum_amounts(filter(this_month(today), purchases))
    daily_average = total_spent / days_passed if days_passed > 0 else ZERO

    return Projection(
        projected=total_spent + daily_average * days_remaining,
        budgeted=total_monthly_budget(category_budgets),
        days_remaining=days_remaining,
        daily_average=daily_average,
    )


EMPTY_PROJECTION = Projection(projected=ZERO, budgeted=ZERO, days_remaining=0, daily_average=ZERO)
