"""Local persistence for UI preferences only.

Domain data (profile, categories, purchases, wishlist) is always fetched
from the store and never cached here.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

DEFAULT_PREFERENCES: Dict[str, Any] = {
    'dark_mode': False,
    'sidebar_collapsed': False,
    'expanded_categories': [],
    'include_wishlist': False,
    'rollover_enabled': True,
}


def _defaults() -> Dict[str, Any]:
    return {**DEFAULT_PREFERENCES, 'expanded_categories': []}


def load_preferences(path: Path | str) -> Dict[str, Any]:
    target = Path(path)
    if not target.exists():
        return _defaults()
    try:
        with target.open('r', encoding='utf-8') as handle:
            data = json.load(handle)
    except (json.JSONDecodeError, OSError):
        return _defaults()
    if not isinstance(data, dict):
        return _defaults()
    merged = _defaults()
    merged.update({k: v for k, v in data.items() if k in DEFAULT_PREFERENCES})
    if not isinstance(merged['expanded_categories'], list):
        merged['expanded_categories'] = []
    return merged


def save_preferences(preferences: Dict[str, Any], path: Path | str) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = {k: preferences.get(k, v) for k, v in DEFAULT_PREFERENCES.items()}
    payload['expanded_categories'] = sorted(set(payload['expanded_categories'] or []))
    with target.open('w', encoding='utf-8') as handle:
        json.dump(payload, handle, indent=2, sort_keys=True)
