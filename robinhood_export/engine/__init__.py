"""Engine components: paging, bounded fan-out and id bookkeeping."""

from .cancel import CancelToken
from .collect import collect_unique, index_by
from .concurrent import DEFAULT_MAX_CONCURRENCY, ConcurrentFetcher, FetchState
from .pagination import PageAggregator, aggregate

__all__ = [
    "CancelToken",
    "ConcurrentFetcher",
    "DEFAULT_MAX_CONCURRENCY",
    "FetchState",
    "PageAggregator",
    "aggregate",
    "collect_unique",
    "index_by",
]
