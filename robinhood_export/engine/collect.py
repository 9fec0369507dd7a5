"""Helpers bridging a listing into detail fetches and correlating the results."""

from __future__ import annotations

from typing import Callable, Iterable, TypeVar

T = TypeVar("T")


def collect_unique(items: Iterable[T], extract: Callable[[T], str]) -> list[str]:
    """Return the distinct ids produced by ``extract`` in first-seen order."""

    seen: set[str] = set()
    ids: list[str] = []
    for item in items:
        item_id = extract(item)
        if item_id not in seen:
            seen.add(item_id)
            ids.append(item_id)
    return ids


def index_by(items: Iterable[T], key: Callable[[T], str]) -> dict[str, T]:
    """Map ``key(item)`` to item. A repeated key keeps the last item."""

    return {key(item): item for item in items}


__all__ = ["collect_unique", "index_by"]
