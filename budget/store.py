"""Persistence collaborator seen by the host.

``BudgetStore`` is the remote store's contract: per-user reads with row
filtering, create/update/delete per table, and a change notification on
every write. ``InMemoryStore`` implements it for the local app and tests.
"""
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Optional
from uuid import uuid4

import structlog

from budget.domain import BudgetSnapshot, Category, Profile, Purchase, WishlistItem
from budget.errors import NotFoundError
from budget.events import EventBus, event_bus, topic_for
from budget.filters import PurchaseFilters, apply_filters
from budget.functional import CategoryDraft, ProfileDraft, PurchaseDraft, WishlistDraft
from budget.transforms import active_categories, reorder_categories, soft_delete_category

logger = structlog.get_logger()

PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}


class BudgetStore(ABC):

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[Profile]: ...

    @abstractmethod
    async def get_categories(self, user_id: str) -> tuple[Category, ...]:
        """Active categories ordered by ``order``."""

    @abstractmethod
    async def get_purchases(
        self, user_id: str, filters: Optional[PurchaseFilters] = None
    ) -> tuple[Purchase, ...]: ...

    @abstractmethod
    async def get_wishlist(self, user_id: str) -> tuple[WishlistItem, ...]: ...

    @abstractmethod
    async def save_profile(self, profile: Profile) -> Profile: ...

    @abstractmethod
    async def update_profile(self, user_id: str, draft: ProfileDraft) -> Profile: ...

    @abstractmethod
    async def create_category(self, user_id: str, draft: CategoryDraft, order: int = 0) -> Category: ...

    @abstractmethod
    async def update_category(self, category_id: str, draft: CategoryDraft) -> Category: ...

    @abstractmethod
    async def delete_category(self, category_id: str) -> None:
        """Soft delete: the row stays so old purchases still resolve."""

    @abstractmethod
    async def reorder_categories(self, user_id: str, ordered_ids: list[str]) -> tuple[Category, ...]: ...

    @abstractmethod
    async def create_purchase(self, user_id: str, draft: PurchaseDraft) -> Purchase: ...

    @abstractmethod
    async def update_purchase(self, purchase_id: str, draft: PurchaseDraft) -> Purchase: ...

    @abstractmethod
    async def delete_purchase(self, purchase_id: str) -> None: ...

    @abstractmethod
    async def create_wishlist_item(self, user_id: str, draft: WishlistDraft) -> WishlistItem: ...

    @abstractmethod
    async def update_wishlist_item(self, item_id: str, draft: WishlistDraft) -> WishlistItem: ...

    @abstractmethod
    async def delete_wishlist_item(self, item_id: str) -> None: ...


class InMemoryStore(BudgetStore):

    def __init__(self, bus: Optional[EventBus] = None):
        self.bus = bus or event_bus
        self._profiles: dict[str, Profile] = {}
        self._categories: dict[str, Category] = {}
        self._purchases: dict[str, Purchase] = {}
        self._wishlist: dict[str, WishlistItem] = {}

    @classmethod
    def from_snapshot(cls, snapshot: BudgetSnapshot, bus: Optional[EventBus] = None) -> "InMemoryStore":
        store = cls(bus)
        if snapshot.profile is not None:
            store._profiles[snapshot.profile.id] = snapshot.profile
        store._categories.update((c.id, c) for c in snapshot.categories)
        store._purchases.update((p.id, p) for p in snapshot.purchases)
        store._wishlist.update((w.id, w) for w in snapshot.wishlist)
        return store

    def _notify(self, table: str, user_id: str, op: str, record_id: str) -> None:
        logger.info("store_write", table=table, op=op, record_id=record_id)
        self.bus.publish(
            topic_for(table),
            {"user_id": user_id, "table": table, "op": op, "record_id": record_id},
        )

    def _get(self, rows: dict, record_id: str, resource: str):
        try:
            return rows[record_id]
        except KeyError:
            raise NotFoundError(resource, record_id) from None

    # --- reads

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        return self._profiles.get(user_id)

    async def get_categories(self, user_id: str) -> tuple[Category, ...]:
        return active_categories(c for c in self._categories.values() if c.user_id == user_id)

    async def get_purchases(
        self, user_id: str, filters: Optional[PurchaseFilters] = None
    ) -> tuple[Purchase, ...]:
        own = (p for p in self._purchases.values() if p.user_id == user_id)
        return apply_filters(own, filters)

    async def get_wishlist(self, user_id: str) -> tuple[WishlistItem, ...]:
        own = [w for w in self._wishlist.values() if w.user_id == user_id]
        own.sort(key=lambda w: w.created_at or datetime.min, reverse=True)
        own.sort(key=lambda w: PRIORITY_RANK[w.priority.value])
        return tuple(own)

    # --- profile

    async def save_profile(self, profile: Profile) -> Profile:
        self._profiles[profile.id] = profile
        self._notify("profiles", profile.id, "insert", profile.id)
        return profile

    async def update_profile(self, user_id: str, draft: ProfileDraft) -> Profile:
        current = self._get(self._profiles, user_id, "Profile")
        updated = replace(
            current,
            income_amount=draft.income_amount,
            income_frequency=draft.income_frequency,
            currency=draft.currency,
            display_name=draft.display_name or current.display_name,
        )
        self._profiles[user_id] = updated
        self._notify("profiles", user_id, "update", user_id)
        return updated

    # --- categories

    async def create_category(self, user_id: str, draft: CategoryDraft, order: int = 0) -> Category:
        category = Category(
            id=str(uuid4()),
            user_id=user_id,
            name=draft.name,
            percentage=draft.percentage,
            color=draft.color,
            order=order,
            icon=draft.icon,
            created_at=datetime.now(),
        )
        self._categories[category.id] = category
        self._notify("categories", user_id, "insert", category.id)
        return category

    async def update_category(self, category_id: str, draft: CategoryDraft) -> Category:
        current = self._get(self._categories, category_id, "Category")
        updated = replace(
            current, name=draft.name, percentage=draft.percentage, color=draft.color, icon=draft.icon
        )
        self._categories[category_id] = updated
        self._notify("categories", current.user_id, "update", category_id)
        return updated

    async def delete_category(self, category_id: str) -> None:
        current = self._get(self._categories, category_id, "Category")
        (updated,) = soft_delete_category((current,), category_id)
        self._categories[category_id] = updated
        self._notify("categories", current.user_id, "update", category_id)

    async def reorder_categories(self, user_id: str, ordered_ids: list[str]) -> tuple[Category, ...]:
        own = tuple(c for c in self._categories.values() if c.user_id == user_id)
        unknown = set(ordered_ids) - {c.id for c in own}
        if unknown:
            raise NotFoundError("Category", ", ".join(sorted(unknown)))
        for category in reorder_categories(own, ordered_ids):
            self._categories[category.id] = category
        self._notify("categories", user_id, "reorder", user_id)
        return active_categories(self._categories[c.id] for c in own)

    # --- purchases

    async def create_purchase(self, user_id: str, draft: PurchaseDraft) -> Purchase:
        now = datetime.now()
        purchase = Purchase(
            id=str(uuid4()),
            user_id=user_id,
            category_id=draft.category_id,
            name=draft.name,
            amount=draft.amount,
            date=draft.date,
            notes=draft.notes,
            created_at=now,
            updated_at=now,
        )
        self._purchases[purchase.id] = purchase
        self._notify("purchases", user_id, "insert", purchase.id)
        return purchase

    async def update_purchase(self, purchase_id: str, draft: PurchaseDraft) -> Purchase:
        current = self._get(self._purchases, purchase_id, "Purchase")
        updated = replace(
            current,
            category_id=draft.category_id,
            name=draft.name,
            amount=draft.amount,
            date=draft.date,
            notes=draft.notes,
            updated_at=datetime.now(),
        )
        self._purchases[purchase_id] = updated
        self._notify("purchases", current.user_id, "update", purchase_id)
        return updated

    async def delete_purchase(self, purchase_id: str) -> None:
        current = self._get(self._purchases, purchase_id, "Purchase")
        del self._purchases[purchase_id]
        self._notify("purchases", current.user_id, "delete", purchase_id)

    # --- wishlist

    async def create_wishlist_item(self, user_id: str, draft: WishlistDraft) -> WishlistItem:
        item = WishlistItem(
            id=str(uuid4()),
            user_id=user_id,
            category_id=draft.category_id,
            name=draft.name,
            amount=draft.amount,
            priority=draft.priority,
            notes=draft.notes,
            created_at=datetime.now(),
        )
        self._wishlist[item.id] = item
        self._notify("wishlist", user_id, "insert", item.id)
        return item

    async def update_wishlist_item(self, item_id: str, draft: WishlistDraft) -> WishlistItem:
        current = self._get(self._wishlist, item_id, "Wishlist item")
        updated = replace(
            current,
            category_id=draft.category_id,
            name=draft.name,
            amount=draft.amount,
            priority=draft.priority,
            notes=draft.notes,
        )
        self._wishlist[item_id] = updated
        self._notify("wishlist", current.user_id, "update", item_id)
        return updated

    async def delete_wishlist_item(self, item_id: str) -> None:
        current = self._get(self._wishlist, item_id, "Wishlist item")
        del self._wishlist[item_id]
        self._notify("wishlist", current.user_id, "delete", item_id)
