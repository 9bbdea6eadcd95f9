from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from budget.domain import Category, IncomeFrequency, Priority, WishlistItem
from budget.transforms import (
    active_categories,
    default_categories,
    default_profile,
    load_seed,
    reorder_categories,
    simulate_wishlist_purchases,
    soft_delete_category,
    wishlist_cost,
)

SEED = Path(__file__).resolve().parent.parent / "data" / "seed.json"


def test_load_seed():
    snapshot = load_seed(str(SEED))

    assert snapshot.profile.income_frequency == IncomeFrequency.BIWEEKLY
    assert snapshot.profile.income_amount == Decimal("2888.72")
    assert len(snapshot.categories) == 6
    assert len(snapshot.purchases) == 11
    assert snapshot.purchases[5].notes == "Two seats, floor"
    assert snapshot.wishlist[0].priority == Priority.HIGH
    assert sum(c.percentage for c in active_categories(snapshot.categories)) == 100


def test_soft_delete_and_active_order():
    cats = (
        Category(id="c1", user_id="u1", name="B", percentage=Decimal("50"), order=2),
        Category(id="c2", user_id="u1", name="A", percentage=Decimal("50"), order=1),
    )
    assert [c.id for c in active_categories(cats)] == ["c2", "c1"]

    deleted = soft_delete_category(cats, "c2")
    assert deleted[1].is_active is False
    assert cats[1].is_active is True
    assert [c.id for c in active_categories(deleted)] == ["c1"]

    reordered = reorder_categories(cats, ["c1", "c2"])
    assert [c.id for c in active_categories(reordered)] == ["c1", "c2"]


def test_simulated_wishlist_purchases():
    wishlist = (
        WishlistItem(id="w1", user_id="u1", category_id="c1", name="Headphones", amount=Decimal("249")),
        WishlistItem(id="w2", user_id="u1", category_id="c2", name="Mixer", amount=Decimal("399.99")),
    )
    now = datetime(2026, 10, 16, 9, 30)
    simulated = simulate_wishlist_purchases(wishlist, now.date(), now)

    assert [p.date for p in simulated] == [now.date(), now.date()]
    assert simulated[1].category_id == "c2"
    assert wishlist_cost(wishlist) == Decimal("648.99")


def test_default_categories_fill_the_income():
    drafts = default_categories()
    assert len(drafts) == 8
    assert sum(d.percentage for d in drafts) == 100


def test_default_profile_from_email():
    profile = default_profile("u9", Decimal("2888.72"), "biweekly", "USD", email="sam@example.com")
    assert profile.display_name == "sam"
    assert profile.income_frequency == IncomeFrequency.BIWEEKLY
