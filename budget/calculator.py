from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, Optional, Sequence

from budget.domain import (
    BudgetedAmounts,
    Category,
    CategoryBudget,
    IncomeFrequency,
    Profile,
    Purchase,
    RolloverInfo,
    SpentAmounts,
    Status,
)
from budget.periods import month_end, month_start, week_start, year_start
from budget.rollover import compute_rollover

ZERO = Decimal(0)
HUNDRED = Decimal(100)
MONTHS_PER_YEAR = 12

# Fixed approximations, not calendar-exact day/week counts.
DAYS_PER_MONTH = Decimal(30)
WEEKS_PER_MONTH = Decimal("4.33")
BIWEEKS_PER_MONTH = Decimal("2.17")

INCOME_MULTIPLIERS: dict[IncomeFrequency, Decimal] = {
    IncomeFrequency.WEEKLY: WEEKS_PER_MONTH,
    IncomeFrequency.BIWEEKLY: BIWEEKS_PER_MONTH,
    IncomeFrequency.MONTHLY: Decimal(1),
}

# (exclusive lower bound, status), checked top to bottom
STATUS_THRESHOLDS: tuple[tuple[Decimal, Status], ...] = (
    (Decimal(100), Status.OVERSPENT),
    (Decimal(80), Status.DANGER),
    (Decimal(60), Status.WARNING),
)

ALLOCATION_TOLERANCE = Decimal("0.01")


def monthly_income(profile: Profile) -> Decimal:
    return profile.income_amount * INCOME_MULTIPLIERS[IncomeFrequency(profile.income_frequency)]


def yearly_income(profile: Profile) -> Decimal:
    return monthly_income(profile) * MONTHS_PER_YEAR


def monthly_budget(income_per_month: Decimal, percentage: Decimal) -> Decimal:
    return income_per_month * percentage / HUNDRED


def budgeted_amounts(income_per_month: Decimal, percentage: Decimal) -> BudgetedAmounts:
    monthly = monthly_budget(income_per_month, percentage)
    return BudgetedAmounts(
        daily=monthly / DAYS_PER_MONTH,
        weekly=monthly / WEEKS_PER_MONTH,
        biweekly=monthly / BIWEEKS_PER_MONTH,
        monthly=monthly,
        yearly=income_per_month * MONTHS_PER_YEAR * percentage / HUNDRED,
    )


def sum_amounts(purchases: Iterable[Purchase]) -> Decimal:
    return sum((p.amount for p in purchases), ZERO)


def percent_used(spent: Decimal, budget: Decimal) -> Decimal:
    if budget == 0:
        return ZERO
    return spent / budget * HUNDRED


def classify_status(monthly_percent_used: Decimal) -> Status:
    for bound, status in STATUS_THRESHOLDS:
        if monthly_percent_used > bound:
            return status
    return Status.OK


def total_percentage(categories: Iterable[Category]) -> Decimal:
    return sum((c.percentage for c in categories if c.is_active), ZERO)


def allocation_is_valid(categories: Iterable[Category]) -> bool:
    """Active percentages should add up to 100; only ever a warning."""
    return abs(total_percentage(categories) - HUNDRED) < ALLOCATION_TOLERANCE


def this_month(today: date) -> Callable[[Purchase], bool]:
    start, end = month_start(today), month_end(today)

    def _filter(p: Purchase) -> bool:
        return start <= p.date <= end

    return _filter


def spent_amounts(purchases: Sequence[Purchase], today: date) -> SpentAmounts:
    week, year = week_start(today), year_start(today)
    in_month = this_month(today)
    return SpentAmounts(
        today=sum_amounts(p for p in purchases if p.date == today),
        this_week=sum_amounts(p for p in purchases if p.date >= week),
        this_month=sum_amounts(p for p in purchases if in_month(p)),
        this_year=sum_amounts(p for p in purchases if p.date >= year),
        all_time=sum_amounts(purchases),
    )


def calculate_category_budget(
    category: Category,
    purchases: Sequence[Purchase],
    income_per_month: Decimal,
    today: date,
    rollover_enabled: bool = True,
    rollover_max_months: Optional[int] = None,
) -> CategoryBudget:
    own = tuple(p for p in purchases if p.category_id == category.id)
    budgeted = budgeted_amounts(income_per_month, category.percentage)
    spent = spent_amounts(own, today)

    monthly_pct = percent_used(spent.this_month, budgeted.monthly)

    if rollover_enabled:
        rollover = compute_rollover(
            own,
            budgeted.monthly,
            spent.this_month,
            month_start(today),
            max_months=rollover_max_months,
        )
    else:
        rollover = RolloverInfo(
            amount=ZERO,
            effective_budget=budgeted.monthly,
            effective_percent_used=monthly_pct,
        )

    return CategoryBudget(
        category=category,
        budgeted=budgeted,
        spent=spent,
        monthly_remaining=budgeted.monthly - spent.this_month,
        yearly_remaining=budgeted.yearly - spent.this_year,
        monthly_percent_used=monthly_pct,
        yearly_percent_used=percent_used(spent.this_year, budgeted.yearly),
        status=classify_status(monthly_pct),
        rollover=rollover,
        monthly_purchases=tuple(filter(this_month(today), own)),
    )


def calculate_category_budgets(
    categories: Sequence[Category],
    purchases: Sequence[Purchase],
    profile: Profile,
    rollover_enabled: bool = True,
    *,
    today: Optional[date] = None,
    rollover_max_months: Optional[int] = None,
) -> tuple[CategoryBudget, ...]:
    """One ``CategoryBudget`` per category, in the order given.

    Pure: the same inputs (and ``today``) always give an equal result.
    """
    today = today or date.today()
    income_per_month = monthly_income(profile)
    purchases = tuple(purchases)
    return tuple(
        calculate_category_budget(
            c, purchases, income_per_month, today, rollover_enabled, rollover_max_months
        )
        for c in categories
    )
