import json
from datetime import date, datetime, timezone
from decimal import Decimal

from budget.config import Settings
from budget.domain import (
    AlertType,
    BudgetSnapshot,
    Category,
    IncomeFrequency,
    Priority,
    Profile,
    Purchase,
    WishlistItem,
)
from budget.services import AnalyticsService
from budget.transforms import load_seed

NOW = datetime(2026, 10, 16, 12, 0)


def make_snapshot():
    profile = Profile(id="u1", income_amount=Decimal("2000"), income_frequency=IncomeFrequency.MONTHLY)
    cats = (
        Category(id="food", user_id="u1", name="Food", percentage=Decimal("50")),
        Category(id="fun", user_id="u1", name="Fun", percentage=Decimal("30")),
    )
    purchases = (
        Purchase("p1", "u1", "food", "Groceries", Decimal("100"), date(2026, 10, 1)),
        Purchase("p2", "u1", "food", "Market", Decimal("50"), date(2026, 10, 15)),
        Purchase("p3", "u1", "fun", "Games", Decimal("200"), date(2026, 9, 10)),
    )
    wishlist = (
        WishlistItem(id="w1", user_id="u1", category_id="fun", name="Console", amount=Decimal("450"),
                     priority=Priority.HIGH),
    )
    return BudgetSnapshot(profile=profile, categories=cats, purchases=purchases, wishlist=wishlist)


def test_missing_profile_gives_empty_report():
    snapshot = BudgetSnapshot(profile=None, wishlist=make_snapshot().wishlist)
    report = AnalyticsService(Settings()).compute(snapshot, now=NOW)

    assert report.category_budgets == ()
    assert report.alerts == ()
    assert report.projection.projected == 0
    assert report.total_spent_this_month == 0
    assert report.total_wishlist_cost == 450


def test_no_categories_gives_empty_report():
    snapshot = BudgetSnapshot(profile=make_snapshot().profile)
    report = AnalyticsService(Settings()).compute(snapshot, now=NOW)

    assert report.monthly_snapshots == ()
    assert report.allocation_valid is False


def test_report_totals():
    report = AnalyticsService(Settings()).compute(make_snapshot(), now=NOW)

    assert report.total_spent_this_month == 150
    assert report.total_budgeted_this_month == 1600
    # fun: 600 budget, 200 spent in September
    assert report.total_rollover == 400
    assert report.total_effective_budget_this_month == 2000
    assert report.allocation_total == 80
    assert report.allocation_valid is False
    assert len(report.monthly_snapshots) == 12
    assert len(report.daily_spending) == 30


def test_rollover_can_be_switched_off():
    service = AnalyticsService(Settings(rollover_enabled=False))
    report = service.compute(make_snapshot(), now=NOW)

    assert report.total_rollover == 0
    assert report.total_effective_budget_this_month == report.total_budgeted_this_month


def test_wishlist_simulation_only_affects_budgets():
    snapshot = make_snapshot()
    service = AnalyticsService(Settings())
    plain = service.compute(snapshot, now=NOW)
    what_if = service.compute(snapshot, include_wishlist=True, now=NOW)

    assert what_if.total_spent_this_month == 600
    assert what_if.category_budgets[1].spent.this_month == 450
    assert what_if.projection.projected > plain.projection.projected
    assert [a.type for a in what_if.alerts if a.type == AlertType.LARGE_PURCHASE] == [
        AlertType.LARGE_PURCHASE,
    ]
    # history stays on real purchases
    assert what_if.monthly_snapshots == plain.monthly_snapshots
    assert what_if.daily_spending == plain.daily_spending
    assert len(snapshot.purchases) == 3


def test_compute_is_idempotent():
    service = AnalyticsService(Settings())
    assert service.compute(make_snapshot(), now=NOW) == service.compute(make_snapshot(), now=NOW)


def test_offset_timestamps_from_seed_sort_with_local_alerts(tmp_path):
    seed = {
        "profile": {"id": "u1", "income_amount": "2000", "income_frequency": "monthly"},
        "categories": [{"id": "food", "user_id": "u1", "name": "Food", "percentage": "50"}],
        "purchases": [
            {"id": "p1", "user_id": "u1", "category_id": "food", "name": "Catering",
             "amount": "1100", "date": "2026-10-05", "created_at": "2026-10-05T10:00:00+00:00"},
        ],
    }
    path = tmp_path / "seed.json"
    path.write_text(json.dumps(seed))

    report = AnalyticsService(Settings()).compute(load_seed(str(path)), now=NOW)

    assert [a.type for a in report.alerts] == [AlertType.OVERSPENT, AlertType.LARGE_PURCHASE]
    assert all(a.created_at.tzinfo is None for a in report.alerts)


def test_aware_now_is_accepted():
    aware = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)
    snapshot = make_snapshot()
    report = AnalyticsService(Settings()).compute(snapshot, include_wishlist=True, now=aware)

    assert report.alerts[0].created_at.tzinfo is None
