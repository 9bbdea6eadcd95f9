from datetime import date
from decimal import Decimal

import pytest

from budget.domain import Category, IncomeFrequency, Priority
from budget.errors import BudgetError, ValidationError
from budget.functional import (
    Left,
    Nothing,
    PurchaseDraft,
    Right,
    Some,
    find_category,
    parse_amount,
    unwrap,
    validate_category_input,
    validate_profile_input,
    validate_purchase_input,
    validate_wishlist_input,
)

CATS = (
    Category(id="c1", user_id="u1", name="Food", percentage=Decimal("60")),
    Category(id="c2", user_id="u1", name="Old", percentage=Decimal("0"), is_active=False),
)


def test_maybe_and_either_basics():
    assert Some(2).map(lambda x: x * 2).get_or_else(0) == 4
    assert Nothing().map(lambda x: x * 2).get_or_else(0) == 0
    assert Right(3).bind(lambda x: Right(x + 1)) == Right(4)
    assert Left("bad").map(lambda x: x + 1).get_error() == "bad"


def test_find_category_skips_inactive():
    assert find_category(CATS, "c1").is_some()
    assert find_category(CATS, "c2").is_none()
    assert find_category(CATS, "missing") == Nothing()


def test_parse_amount_accepts_money_text():
    assert parse_amount("$1,234.50") == Right(Decimal("1234.50"))
    assert parse_amount(12) == Right(Decimal("12"))


def test_parse_amount_rejects_bad_values():
    assert parse_amount("").get_error()["error"] == "missing_value"
    assert parse_amount("abc").get_error()["error"] == "not_a_number"
    assert parse_amount("NaN").get_error()["error"] == "not_a_number"
    assert parse_amount("-5").get_error()["error"] == "out_of_range"


def test_valid_purchase_becomes_typed_draft():
    result = validate_purchase_input(
        {"name": " Lunch ", "amount": "12.50", "date": "2026-10-05", "category_id": "c1"}, CATS
    )
    assert result == Right(PurchaseDraft(
        name="Lunch", amount=Decimal("12.50"), date=date(2026, 10, 5), category_id="c1", notes=""
    ))


def test_purchase_errors_name_the_field():
    bad_amount = validate_purchase_input(
        {"name": "Lunch", "amount": "twelve", "date": "2026-10-05", "category_id": "c1"}, CATS
    )
    assert bad_amount.is_left()
    assert bad_amount.get_error()["field"] == "amount"

    bad_date = validate_purchase_input(
        {"name": "Lunch", "amount": "12", "date": "10/05/2026", "category_id": "c1"}, CATS
    )
    assert bad_date.get_error()["error"] == "invalid_date"

    inactive = validate_purchase_input(
        {"name": "Lunch", "amount": "12", "date": date(2026, 10, 5), "category_id": "c2"}, CATS
    )
    assert inactive.get_error()["error"] == "category_not_found"


def test_category_percentage_range():
    assert validate_category_input({"name": "Fun", "percentage": "15"}).is_right()
    too_big = validate_category_input({"name": "Fun", "percentage": "120"})
    assert too_big.get_error()["error"] == "out_of_range"
    assert validate_category_input({"name": "", "percentage": "5"}).get_error()["field"] == "name"


def test_profile_validation():
    ok = validate_profile_input({"income_amount": "2888.72", "income_frequency": "Biweekly", "currency": "eur"})
    draft = ok.get_or_else(None)
    assert draft.income_frequency == IncomeFrequency.BIWEEKLY
    assert draft.currency == "EUR"

    assert validate_profile_input(
        {"income_amount": "100", "income_frequency": "daily"}
    ).get_error()["error"] == "invalid_choice"
    assert validate_profile_input(
        {"income_amount": "100", "income_frequency": "weekly", "currency": "US"}
    ).get_error()["error"] == "invalid_currency"


def test_wishlist_defaults_to_medium_priority():
    result = validate_wishlist_input({"name": "Headphones", "amount": "249", "category_id": "c1"}, CATS)
    assert result.get_or_else(None).priority == Priority.MEDIUM


def test_unwrap_returns_value_or_raises():
    assert unwrap(parse_amount("$20")) == Decimal("20")

    with pytest.raises(ValidationError) as info:
        unwrap(validate_purchase_input({"name": "Lunch", "amount": "", "date": "2026-10-05",
                                        "category_id": "c1"}, CATS))
    assert isinstance(info.value, BudgetError)
    assert str(info.value) == "amount is required"
