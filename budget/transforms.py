import json
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from budget.domain import (
    BudgetSnapshot,
    Category,
    IncomeFrequency,
    Priority,
    Profile,
    Purchase,
    WishlistItem,
)
from budget.functional import CategoryDraft
from budget.periods import local_naive

# name, percentage, color, icon
DEFAULT_CATEGORIES: tuple[tuple[str, str, str, str], ...] = (
    ("Daily + Gifts", "51", "#22c55e", "shopping-cart"),
    ("Music", "13", "#8b5cf6", "music"),
    ("Entertainment", "10", "#f59e0b", "gamepad-2"),
    ("Gillian PC", "8", "#ec4899", "monitor"),
    ("Mushroom", "6", "#84cc16", "leaf"),
    ("Video/Streaming", "5", "#06b6d4", "tv"),
    ("GIS", "3", "#64748b", "map"),
    ("PC", "1", "#ef4444", "cpu"),
)


def _parse_dt(value) -> Optional[datetime]:
    return local_naive(datetime.fromisoformat(value.replace("Z", "+00:00"))) if value else None


def profile_from_dict(d: dict) -> Profile:
    return Profile(
        id=d["id"],
        income_amount=Decimal(str(d["income_amount"])),
        income_frequency=IncomeFrequency(d["income_frequency"]),
        currency=d.get("currency", "USD"),
        email=d.get("email"),
        display_name=d.get("display_name"),
        created_at=_parse_dt(d.get("created_at")),
    )


def category_from_dict(d: dict) -> Category:
    return Category(
        id=d["id"],
        user_id=d["user_id"],
        name=d["name"],
        percentage=Decimal(str(d["percentage"])),
        color=d.get("color", "#22c55e"),
        order=int(d.get("order", 0)),
        is_active=bool(d.get("is_active", True)),
        icon=d.get("icon"),
        created_at=_parse_dt(d.get("created_at")),
    )


def purchase_from_dict(d: dict) -> Purchase:
    return Purchase(
        id=d["id"],
        user_id=d["user_id"],
        category_id=d["category_id"],
        name=d["name"],
        amount=Decimal(str(d["amount"])),
        date=date.fromisoformat(d["date"]),
        notes=d.get("notes") or "",
        created_at=_parse_dt(d.get("created_at")),
        updated_at=_parse_dt(d.get("updated_at")),
    )


def wishlist_item_from_dict(d: dict) -> WishlistItem:
    return WishlistItem(
        id=d["id"],
        user_id=d["user_id"],
        category_id=d["category_id"],
        name=d["name"],
        amount=Decimal(str(d["amount"])),
        priority=Priority(d.get("priority", "medium")),
        notes=d.get("notes") or "",
        created_at=_parse_dt(d.get("created_at")),
    )


def load_seed(path: str) -> BudgetSnapshot:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    profile = profile_from_dict(data["profile"]) if data.get("profile") else None
    return BudgetSnapshot(
        profile=profile,
        categories=tuple(category_from_dict(c) for c in data.get("categories", [])),
        purchases=tuple(purchase_from_dict(p) for p in data.get("purchases", [])),
        wishlist=tuple(wishlist_item_from_dict(w) for w in data.get("wishlist", [])),
    )


def soft_delete_category(categories: Tuple[Category, ...], cat_id: str) -> Tuple[Category, ...]:
    return tuple(
        replace(c, is_active=False) if c.id == cat_id else c for c in categories
    )


def active_categories(categories: Iterable[Category]) -> Tuple[Category, ...]:
    return tuple(sorted((c for c in categories if c.is_active), key=lambda c: c.order))


def reorder_categories(
    categories: Tuple[Category, ...], ordered_ids: list[str]
) -> Tuple[Category, ...]:
    position = {cid: i for i, cid in enumerate(ordered_ids)}
    return tuple(
        replace(c, order=position[c.id]) if c.id in position else c for c in categories
    )


def simulate_wishlist_purchases(
    wishlist: Iterable[WishlistItem], today: date, now: datetime
) -> Tuple[Purchase, ...]:
    """Wishlist items as purchases dated today, for a what-if preview only."""
    return tuple(
        Purchase(
            id=item.id,
            user_id=item.user_id,
            category_id=item.category_id,
            name=item.name,
            amount=item.amount,
            date=today,
            notes=item.notes,
            created_at=now,
            updated_at=now,
        )
        for item in wishlist
    )


def wishlist_cost(wishlist: Iterable[WishlistItem]) -> Decimal:
    return sum((item.amount for item in wishlist), Decimal(0))


def default_categories() -> Tuple[CategoryDraft, ...]:
    """Starter categories for a user who has none; percentages add to 100."""
    return tuple(
        CategoryDraft(name=name, percentage=Decimal(pct), color=color, icon=icon)
        for name, pct, color, icon in DEFAULT_CATEGORIES
    )


def default_profile(
    user_id: str,
    income_amount: Decimal,
    income_frequency: str,
    currency: str,
    email: Optional[str] = None,
) -> Profile:
    return Profile(
        id=user_id,
        income_amount=income_amount,
        income_frequency=IncomeFrequency(income_frequency),
        currency=currency,
        email=email,
        display_name=email.split("@")[0] if email else None,
        created_at=datetime.now(),
    )
