from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

import structlog

__all__ = [
    'event_bus', 'ChangeEvent', 'EventBus', 'for_user', 'topic_for', 'TABLES',
    'CATEGORIES_CHANGED', 'PURCHASES_CHANGED', 'WISHLIST_CHANGED', 'PROFILE_CHANGED',
]

logger = structlog.get_logger()


class ChangeEvent(NamedTuple):
    name: str
    ts: str
    payload: dict   # {"user_id", "table", "op", "record_id"}


Handler = Callable[[ChangeEvent, dict], object]


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def publish(self, name: str, payload: dict) -> List[object]:
        handlers = list(self._subscribers.get(name, ()))
        if not handlers:
            return []

        event = ChangeEvent(name=name, ts=datetime.now().isoformat(), payload=payload)
        logger.debug("change_published", topic=name, handlers=len(handlers), **payload)
        return [handler(event, payload) for handler in handlers]

    def unsubscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)


CATEGORIES_CHANGED = "CATEGORIES_CHANGED"
PURCHASES_CHANGED = "PURCHASES_CHANGED"
WISHLIST_CHANGED = "WISHLIST_CHANGED"
PROFILE_CHANGED = "PROFILE_CHANGED"

TABLES = {
    "categories": CATEGORIES_CHANGED,
    "purchases": PURCHASES_CHANGED,
    "wishlist": WISHLIST_CHANGED,
    "profiles": PROFILE_CHANGED,
}


def topic_for(table: str) -> str:
    return TABLES[table]


def for_user(user_id: str, handler: Handler) -> Handler:
    """Wrap ``handler`` so it only sees events for one user."""
    def _filtered(event: ChangeEvent, payload: dict):
        if payload.get("user_id") != user_id:
            return None
        return handler(event, payload)

    return _filtered


event_bus = EventBus()
