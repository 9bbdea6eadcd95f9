from datetime import datetime
from decimal import Decimal
from typing import Optional

import structlog

from budget.alerts import EMPTY_PROJECTION, generate_alerts, get_projections
from budget.calculator import (
    ZERO,
    allocation_is_valid,
    calculate_category_budgets,
    total_percentage,
)
from budget.config import Settings, settings as default_settings
from budget.domain import AnalyticsReport, BudgetSnapshot
from budget.transforms import simulate_wishlist_purchases, wishlist_cost
from budget.trends import daily_spending, monthly_snapshots

logger = structlog.get_logger()


def empty_report(total_wishlist_cost: Decimal = ZERO) -> AnalyticsReport:
    return AnalyticsReport(
        category_budgets=(),
        monthly_snapshots=(),
        daily_spending=(),
        alerts=(),
        projection=EMPTY_PROJECTION,
        total_spent_this_month=ZERO,
        total_budgeted_this_month=ZERO,
        total_effective_budget_this_month=ZERO,
        total_rollover=ZERO,
        total_wishlist_cost=total_wishlist_cost,
        allocation_total=ZERO,
        allocation_valid=False,
    )


class AnalyticsService:
    """Facade that runs every analytics step over one snapshot.

    Holds configuration only; every ``compute`` call starts from scratch.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

    def compute(
        self,
        snapshot: BudgetSnapshot,
        *,
        include_wishlist: bool = False,
        rollover_enabled: Optional[bool] = None,
        now: Optional[datetime] = None,
    ) -> AnalyticsReport:
        now = now or datetime.now()
        today = now.date()
        cfg = self.settings
        if rollover_enabled is None:
            rollover_enabled = cfg.rollover_enabled

        wish_cost = wishlist_cost(snapshot.wishlist)
        profile, categories = snapshot.profile, snapshot.categories
        if profile is None or not categories:
            logger.info(
                "analytics_skipped",
                has_profile=profile is not None,
                categories=len(categories),
            )
            return empty_report(wish_cost)

        purchases = snapshot.purchases
        if include_wishlist:
            purchases = purchases + simulate_wishlist_purchases(snapshot.wishlist, today, now)

        budgets = calculate_category_budgets(
            categories,
            purchases,
            profile,
            rollover_enabled,
            today=today,
            rollover_max_months=cfg.rollover_max_months,
        )
        alerts = generate_alerts(
            budgets,
            purchases,
            now=now,
            currency=profile.currency,
            large_purchase_ratio=cfg.large_purchase_ratio,
        )

        report = AnalyticsReport(
            category_budgets=budgets,
            # history charts never include simulated spend
            monthly_snapshots=tuple(
                monthly_snapshots(snapshot.purchases, categories, profile, cfg.months_back, today=today)
            ),
            daily_spending=tuple(daily_spending(snapshot.purchases, cfg.days_back, today=today)),
            alerts=alerts,
            projection=get_projections(budgets, purchases, today=today),
            total_spent_this_month=sum((cb.spent.this_month for cb in budgets), ZERO),
            total_budgeted_this_month=sum((cb.budgeted.monthly for cb in budgets), ZERO),
            total_effective_budget_this_month=sum(
                (cb.rollover.effective_budget for cb in budgets), ZERO
            ),
            total_rollover=sum((cb.rollover.amount for cb in budgets), ZERO),
            total_wishlist_cost=wish_cost,
            allocation_total=total_percentage(categories),
            allocation_valid=allocation_is_valid(categories),
        )
        logger.info(
            "analytics_computed",
            categories=len(budgets),
            purchases=len(purchases),
            alerts=len(alerts),
            include_wishlist=include_wishlist,
            rollover_enabled=rollover_enabled,
        )
        return report
