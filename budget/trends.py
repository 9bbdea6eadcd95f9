from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Generic, Iterable, Iterator, Optional, TypeVar

from budget.calculator import monthly_income, sum_amounts
from budget.domain import Category, DailySpending, MonthlySnapshot, Profile, Purchase
from budget.periods import add_months, month_end, month_key

T = TypeVar("T")


class Series(Generic[T]):
    """Finite iterable that rebuilds its generator on every ``iter()``.

    Nothing is cached between passes, so each iteration reflects the inputs
    as they are at that moment.
    """

    def __init__(self, factory: Callable[[], Iterator[T]]):
        self._factory = factory

    def __iter__(self) -> Iterator[T]:
        return self._factory()


def iter_purchases(
    purchases: Iterable[Purchase], pred: Callable[[Purchase], bool]
) -> Iterator[Purchase]:
    for p in purchases:
        if pred(p):
            yield p


def monthly_snapshots(
    purchases: Iterable[Purchase],
    categories: Iterable[Category],
    profile: Profile,
    months_back: int = 12,
    *,
    today: Optional[date] = None,
) -> Series[MonthlySnapshot]:
    """Spend per month for the last ``months_back`` months, oldest first."""
    purchases = tuple(purchases)
    category_ids = tuple(c.id for c in categories)
    budgeted = monthly_income(profile)

    def _generate() -> Iterator[MonthlySnapshot]:
        now = today or date.today()
        for offset in range(months_back - 1, -1, -1):
            start = add_months(now, -offset)
            end = month_end(start)
            in_month = tuple(iter_purchases(purchases, lambda p: start <= p.date <= end))
            yield MonthlySnapshot(
                month=month_key(start),
                total_spent=sum_amounts(in_month),
                total_budgeted=budgeted,
                by_category={
                    cid: sum_amounts(p for p in in_month if p.category_id == cid)
                    for cid in category_ids
                },
            )

    return Series(_generate)


def daily_spending(
    purchases: Iterable[Purchase],
    days_back: int = 30,
    *,
    today: Optional[date] = None,
) -> Series[DailySpending]:
    """Total and count per calendar day for the last ``days_back`` days."""
    purchases = tuple(purchases)

    def _generate() -> Iterator[DailySpending]:
        now = today or date.today()
        for offset in range(days_back - 1, -1, -1):
            day = now - timedelta(days=offset)
            on_day = tuple(iter_purchases(purchases, lambda p: p.date == day))
            yield DailySpending(date=day, amount=sum_amounts(on_day), count=len(on_day))

    return Series(_generate)


def category_breakdown(
    purchases: Iterable[Purchase], categories: tuple[Category, ...], k: int
) -> Iterator[tuple[str, Decimal]]:
    """Top ``k`` categories by total spend as ``(name, total)``."""
    category_name_by_id: dict[str, str] = {c.id: c.name for c in categories}
    totals_by_category: dict[str, Decimal] = defaultdict(Decimal)

    for p in purchases:
        totals_by_category[p.category_id] += p.amount

    ordered = sorted(
        ((category_name_by_id.get(cid, cid), total) for cid, total in totals_by_category.items()),
        key=lambda item: item[1],
        reverse=True,
    )

    for name, total in ordered[: max(0, k)]:
        yield name, total
