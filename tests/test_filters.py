from datetime import date, datetime, timezone
from decimal import Decimal

from budget.domain import Purchase
from budget.filters import PurchaseFilters, apply_filters, by_amount_range, by_category, sort_purchases


def make_sample():
    return (
        Purchase("p1", "u1", "c1", "Weekly groceries", Decimal("142.18"), date(2026, 10, 4)),
        Purchase("p2", "u1", "c2", "Pizza night", Decimal("38.50"), date(2026, 10, 9)),
        Purchase("p3", "u1", "c1", "Costco run", Decimal("310.44"), date(2026, 9, 6)),
        Purchase("p4", "u1", "c3", "Concert tickets", Decimal("180.00"), date(2026, 10, 9),
                 created_at=datetime(2026, 10, 9, 20, 0)),
    )


def test_default_is_newest_first():
    result = apply_filters(make_sample())
    assert [p.id for p in result] == ["p4", "p2", "p1", "p3"]


def test_filter_by_category():
    result = apply_filters(make_sample(), PurchaseFilters(category_id="c1"))
    assert {p.id for p in result} == {"p1", "p3"}


def test_filter_by_date_range_is_inclusive():
    filters = PurchaseFilters(start_date=date(2026, 10, 4), end_date=date(2026, 10, 9))
    assert len(apply_filters(make_sample(), filters)) == 3


def test_filter_by_amount_and_search():
    filters = PurchaseFilters(min_amount=Decimal("100"), search="  COSTCO ")
    result = apply_filters(make_sample(), filters)
    assert [p.id for p in result] == ["p3"]


def test_sort_by_amount_and_name():
    by_amount = sort_purchases(make_sample(), "amount", "asc")
    assert [p.id for p in by_amount] == ["p2", "p1", "p4", "p3"]

    by_name = sort_purchases(make_sample(), "name", "asc")
    assert by_name[0].name == "Concert tickets"


def test_predicate_factories():
    sample = make_sample()
    assert list(filter(by_category("c2"), sample)) == [sample[1]]
    assert len(list(filter(by_amount_range(None, Decimal("150")), sample))) == 2


def test_filters_do_not_change_input():
    sample = make_sample()
    apply_filters(sample, PurchaseFilters(sort_by="amount"))
    assert [p.id for p in sample] == ["p1", "p2", "p3", "p4"]


def test_same_day_sort_mixes_offset_and_plain_timestamps():
    sample = (
        Purchase("a", "u1", "c1", "Tea", Decimal("3"), date(2026, 10, 9),
                 created_at=datetime(2026, 10, 9, 8, 0, tzinfo=timezone.utc)),
        Purchase("b", "u1", "c1", "Cake", Decimal("4"), date(2026, 10, 9)),
        Purchase("c", "u1", "c1", "Soup", Decimal("5"), date(2026, 10, 9),
                 created_at=datetime(2026, 10, 9, 21, 0)),
    )
    result = sort_purchases(sample, "date", "asc")
    assert result[0].id == "b"
    assert {p.id for p in result} == {"a", "b", "c"}
