from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class IncomeFrequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Status(str, Enum):
    OK = "ok"
    WARNING = "warning"
    DANGER = "danger"
    OVERSPENT = "overspent"


class AlertType(str, Enum):
    OVERSPENT = "overspent"
    WARNING = "warning"
    LARGE_PURCHASE = "large_purchase"


@dataclass(frozen=True)
class Profile:
    id: str
    income_amount: Decimal               # per paycheck
    income_frequency: IncomeFrequency
    currency: str = "USD"
    email: Optional[str] = None
    display_name: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Category:
    id: str
    user_id: str
    name: str
    percentage: Decimal   # share of monthly income, 0..100
    color: str = "#22c55e"
    order: int = 0
    is_active: bool = True
    icon: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Purchase:
    id: str
    user_id: str
    category_id: str
    name: str
    amount: Decimal
    date: date
    notes: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class WishlistItem:
    id: str
    user_id: str
    category_id: str
    name: str
    amount: Decimal
    priority: Priority = Priority.MEDIUM
    notes: str = ""
    created_at: Optional[datetime] = None


# Everything the engine needs for one computation pass
@dataclass(frozen=True)
class BudgetSnapshot:
    profile: Optional[Profile]
    categories: tuple[Category, ...] = ()
    purchases: tuple[Purchase, ...] = ()
    wishlist: tuple[WishlistItem, ...] = ()


@dataclass(frozen=True)
class BudgetedAmounts:
    daily: Decimal
    weekly: Decimal
    biweekly: Decimal
    monthly: Decimal
    yearly: Decimal


@dataclass(frozen=True)
class SpentAmounts:
    today: Decimal
    this_week: Decimal
    this_month: Decimal
    this_year: Decimal
    all_time: Decimal


@dataclass(frozen=True)
class RolloverInfo:
    amount: Decimal
    effective_budget: Decimal
    effective_percent_used: Decimal


@dataclass(frozen=True)
class CategoryBudget:
    category: Category
    budgeted: BudgetedAmounts
    spent: SpentAmounts
    monthly_remaining: Decimal
    yearly_remaining: Decimal
    monthly_percent_used: Decimal
    yearly_percent_used: Decimal
    status: Status
    rollover: RolloverInfo
    monthly_purchases: tuple[Purchase, ...] = ()


@dataclass(frozen=True)
class MonthlySnapshot:
    month: str   # YYYY-MM
    total_spent: Decimal
    total_budgeted: Decimal
    by_category: dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class DailySpending:
    date: date
    amount: Decimal
    count: int


@dataclass(frozen=True)
class Alert:
    id: str
    type: AlertType
    message: str
    created_at: datetime
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    value: Optional[Decimal] = None
    threshold: Optional[Decimal] = None


@dataclass(frozen=True)
class Projection:
    projected: Decimal
    budgeted: Decimal
    days_remaining: int
    daily_average: Decimal


@dataclass(frozen=True)
class AnalyticsReport:
    category_budgets: tuple[CategoryBudget, ...]
    monthly_snapshots: tuple[MonthlySnapshot, ...]
    daily_spending: tuple[DailySpending, ...]
    alerts: tuple[Alert, ...]
    projection: Projection
    total_spent_this_month: Decimal
    total_budgeted_this_month: Decimal
    total_effective_budget_this_month: Decimal
    total_rollover: Decimal
    total_wishlist_cost: Decimal
    allocation_total: Decimal
    allocation_valid: bool
