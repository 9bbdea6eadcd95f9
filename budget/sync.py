"""Keep one user's snapshot and report current as the store changes.

On every change notification the affected collection is reloaded and the
whole report is recomputed; there is no incremental path. Each reload takes
a generation number per table, and a result that finishes after a newer
reload of the same table started is dropped, so the last reload wins.
"""
import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

import structlog

from budget.domain import AnalyticsReport, BudgetSnapshot
from budget.errors import StoreError
from budget.events import TABLES, ChangeEvent, EventBus, for_user
from budget.services import AnalyticsService, empty_report
from budget.store import BudgetStore
from budget.transforms import default_categories, default_profile

logger = structlog.get_logger()

SNAPSHOT_FIELDS = {
    "profiles": "profile",
    "categories": "categories",
    "purchases": "purchases",
    "wishlist": "wishlist",
}


class BudgetSync:

    def __init__(
        self,
        store: BudgetStore,
        user_id: str,
        service: Optional[AnalyticsService] = None,
        bus: Optional[EventBus] = None,
        *,
        email: Optional[str] = None,
        include_wishlist: bool = False,
        rollover_enabled: Optional[bool] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.user_id = user_id
        self.service = service or AnalyticsService()
        self.bus = bus or getattr(store, "bus", None)
        self.email = email
        self.include_wishlist = include_wishlist
        self.rollover_enabled = rollover_enabled
        self.clock = clock

        self.snapshot = BudgetSnapshot(profile=None)
        self.report: AnalyticsReport = empty_report()
        self.last_error: Optional[str] = None

        self._generation = {table: 0 for table in TABLES}
        self._pending: set[asyncio.Task] = set()
        self._handlers: dict[str, Callable] = {}

    # --- subscriptions

    def start(self) -> None:
        if self.bus is None or self._handlers:
            return
        for table, topic in TABLES.items():
            handler = for_user(self.user_id, self._on_change)
            self.bus.subscribe(topic, handler)
            self._handlers[topic] = handler

    def stop(self) -> None:
        for topic, handler in self._handlers.items():
            self.bus.unsubscribe(topic, handler)
        self._handlers.clear()

    def _on_change(self, event: ChangeEvent, payload: dict) -> None:
        table = payload.get("table")
        if table not in TABLES:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("change_ignored_no_loop", table=table)
            return
        task = loop.create_task(self.reload(table))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait until every scheduled reload has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # --- loading

    def _next_generation(self, table: str) -> int:
        self._generation[table] += 1
        return self._generation[table]

    async def _fetch(self, table: str):
        if table == "profiles":
            return await self.store.get_profile(self.user_id)
        if table == "categories":
            return await self.store.get_categories(self.user_id)
        if table == "purchases":
            return await self.store.get_purchases(self.user_id)
        return await self.store.get_wishlist(self.user_id)

    def _fail(self, operation: str, exc: StoreError) -> None:
        self.last_error = str(exc)
        logger.error("reload_failed", operation=operation, user_id=self.user_id, error=str(exc))

    async def _ensure_defaults(self, profile, categories):
        cfg = self.service.settings
        if profile is None:
            profile = await self.store.save_profile(default_profile(
                self.user_id,
                cfg.default_income_amount,
                cfg.default_income_frequency,
                cfg.default_currency,
                email=self.email,
            ))
        if not categories:
            for order, draft in enumerate(default_categories(), start=1):
                await self.store.create_category(self.user_id, draft, order=order)
            categories = await self.store.get_categories(self.user_id)
            logger.info("default_categories_seeded", user_id=self.user_id, count=len(categories))
        return profile, categories

    async def load_all(self) -> AnalyticsReport:
        tables = list(SNAPSHOT_FIELDS)
        generations = {table: self._next_generation(table) for table in tables}
        try:
            results = await asyncio.gather(*(self._fetch(table) for table in tables))
            loaded = dict(zip(tables, results))
            loaded["profiles"], loaded["categories"] = await self._ensure_defaults(
                loaded["profiles"], loaded["categories"]
            )
        except StoreError as exc:
            self._fail("load_all", exc)
            return self.report

        updates = {
            SNAPSHOT_FIELDS[table]: value
            for table, value in loaded.items()
            if generations[table] == self._generation[table]
        }
        self.snapshot = replace(self.snapshot, **updates)
        self.last_error = None
        logger.info(
            "snapshot_loaded",
            user_id=self.user_id,
            categories=len(self.snapshot.categories),
            purchases=len(self.snapshot.purchases),
        )
        return self.recompute()

    async def reload(self, table: str) -> AnalyticsReport:
        generation = self._next_generation(table)
        try:
            value = await self._fetch(table)
        except StoreError as exc:
            self._fail(f"reload:{table}", exc)
            return self.report

        if generation != self._generation[table]:
            logger.debug("reload_superseded", table=table, generation=generation)
            return self.report

        self.snapshot = replace(self.snapshot, **{SNAPSHOT_FIELDS[table]: value})
        self.last_error = None
        logger.info("collection_reloaded", table=table, user_id=self.user_id)
        return self.recompute()

    def recompute(self) -> AnalyticsReport:
        self.report = self.service.compute(
            self.snapshot,
            include_wishlist=self.include_wishlist,
            rollover_enabled=self.rollover_enabled,
            now=self.clock(),
        )
        return self.report
