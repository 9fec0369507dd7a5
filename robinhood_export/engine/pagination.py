"""Cursor-following aggregation of paged listing endpoints."""

from __future__ import annotations

from typing import Callable, Generic, Sequence, TypeVar

import structlog

from .cancel import CancelToken

T = TypeVar("T")

PageFetch = Callable[[CancelToken, str], tuple[Sequence[T], str]]


class PageAggregator(Generic[T]):
    """Exhaust a paged listing into a single ordered list.

    ``fetch_page`` receives the current cursor (empty for the first page) and
    returns the page items together with the next cursor. An empty next cursor
    ends the listing. Pages are requested one after another since each request
    needs the cursor of the previous one.
    """

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = logger or structlog.get_logger("robinhood_export.engine").bind(
            component="pagination"
        )

    def aggregate(self, fetch_page: PageFetch, token: CancelToken | None = None) -> list[T]:
        token = token or CancelToken()
        result: list[T] = []
        cursor = ""
        pages = 0
        while True:
            # Errors propagate as-is; the partial result is dropped with this frame.
            items, cursor = fetch_page(token, cursor)
            pages += 1
            result.extend(items)
            if not cursor:
                break
        self.logger.debug("pagination_complete", pages=pages, items=len(result))
        return result


def aggregate(fetch_page: PageFetch, token: CancelToken | None = None) -> list:
    """Shortcut for ``PageAggregator().aggregate``."""

    return PageAggregator().aggregate(fetch_page, token)


__all__ = ["PageAggregator", "PageFetch", "aggregate"]
