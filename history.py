"""Recent search bookkeeping.

The list is owned by the caller (the web layer keeps it in the user's session
cookie); these helpers never mutate their input.
"""

from __future__ import annotations

import time
from typing import Any, List, Optional, Sequence

from constants import RECENT_SEARCHES_LIMIT
from models import RecentSearch

__all__ = ["add_recent_search", "coerce_recent_searches"]


def add_recent_search(
    entries: Sequence[RecentSearch],
    game_id: str,
    name: str,
    *,
    now: Optional[int] = None,
    limit: int = RECENT_SEARCHES_LIMIT,
) -> List[RecentSearch]:
    """Return a new list with ``game_id`` first and no duplicate ids."""
    timestamp = int(time.time() * 1000) if now is None else now
    newest: RecentSearch = {"id": game_id, "name": name, "timestamp": timestamp}
    rest = [entry for entry in entries if entry["id"] != game_id]
    return [newest, *rest][:limit]


def coerce_recent_searches(raw: Any) -> List[RecentSearch]:
    """Drop anything malformed from a list read back out of a cookie."""
    if not isinstance(raw, list):
        return []
    cleaned: List[RecentSearch] = []
    for item in raw:
        if isinstance(item, dict) and isinstance(item.get("id"), str) and isinstance(item.get("name"), str):
            cleaned.append({
                "id": item["id"],
                "name": item["name"],
                "timestamp": int(item.get("timestamp") or 0),
            })
    return cleaned
