from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable, Literal, Optional

from budget.domain import Purchase
from budget.periods import local_naive

SortKey = Literal["date", "amount", "name"]
SortOrder = Literal["asc", "desc"]


@dataclass(frozen=True)
class PurchaseFilters:
    category_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    search: Optional[str] = None
    sort_by: SortKey = "date"
    sort_order: SortOrder = "desc"


def by_category(cat_id: str):
    def _filter(p: Purchase) -> bool:
        return p.category_id == cat_id

    return _filter


def by_date_range(start: Optional[date], end: Optional[date]):
    def _filter(p: Purchase) -> bool:
        if start is not None and p.date < start:
            return False
        if end is not None and p.date > end:
            return False
        return True

    return _filter


def by_amount_range(min: Optional[Decimal], max: Optional[Decimal]):
    def _filter(p: Purchase) -> bool:
        if min is not None and p.amount < min:
            return False
        if max is not None and p.amount > max:
            return False
        return True

    return _filter


def by_search(query: str):
    needle = query.strip().lower()

    def _filter(p: Purchase) -> bool:
        return needle in p.name.lower()

    return _filter


def predicates(filters: PurchaseFilters) -> list[Callable[[Purchase], bool]]:
    preds = [
        by_date_range(filters.start_date, filters.end_date),
        by_amount_range(filters.min_amount, filters.max_amount),
    ]
    if filters.category_id:
        preds.append(by_category(filters.category_id))
    if filters.search and filters.search.strip():
        preds.append(by_search(filters.search))
    return preds


def sort_purchases(
    purchases: Iterable[Purchase], sort_by: SortKey = "date", sort_order: SortOrder = "desc"
) -> tuple[Purchase, ...]:
    reverse = sort_order == "desc"
    if sort_by == "amount":
        key = lambda p: p.amount
    elif sort_by == "name":
        key = lambda p: p.name.lower()
    else:
        # newest entry wins among purchases on the same day
        key = lambda p: (p.date, local_naive(p.created_at) if p.created_at else datetime.min)
    return tuple(sorted(purchases, key=key, reverse=reverse))


def apply_filters(
    purchases: Iterable[Purchase], filters: Optional[PurchaseFilters] = None
) -> tuple[Purchase, ...]:
    filters = filters or PurchaseFilters()
    preds = predicates(filters)
    matched = (p for p in purchases if all(pred(p) for pred in preds))
    return sort_purchases(matched, filters.sort_by, filters.sort_order)
