"""Bounded-concurrency detail fetching with fail-fast cancellation."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from queue import Queue
from threading import Condition, Thread
from typing import Any, Callable, Generic, Iterable, TypeVar

import structlog

from ..errors import FetchCancelled
from .cancel import CancelToken

T = TypeVar("T")

ItemFetch = Callable[[CancelToken, str], T]

DEFAULT_MAX_CONCURRENCY = 10


class FetchState(str, Enum):
    """Lifecycle of a single ``fetch_all`` call."""

    RUNNING = "running"
    CANCELLING = "cancelling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True)
class _FetchResult:
    item_id: str
    item: Any = None
    error: BaseException | None = None


_CLOSED = object()


class _AdmissionGate:
    """Counting gate limiting in-flight fetches; wakes waiters on cancellation."""

    def __init__(self, capacity: int, token: CancelToken) -> None:
        self.capacity = capacity
        self._token = token
        self._in_flight = 0
        self._cond = Condition()
        token.on_cancel(self._wake)

    def acquire(self) -> bool:
        """Block until a slot is free. Return False if cancelled meanwhile."""

        with self._cond:
            self._cond.wait_for(
                lambda: self._token.cancelled or self._in_flight < self.capacity
            )
            if self._token.cancelled:
                return False
            self._in_flight += 1
            return True

    def release(self) -> None:
        with self._cond:
            self._in_flight -= 1
            self._cond.notify()

    def _wake(self) -> None:
        with self._cond:
            self._cond.notify_all()


class ConcurrentFetcher(Generic[T]):
    """Resolve ids into items in parallel under a fixed concurrency cap.

    One task per id is admitted in input order through an admission gate of
    ``max_concurrency`` slots. Results are consumed as they complete; the first
    failure cancels the shared token, the remaining results are drained so every
    task finishes, and that failure is re-raised unchanged. Items come back in
    completion order.
    """

    def __init__(
        self,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        logger: structlog.BoundLogger | None = None,
        name: str = "fetch",
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.max_concurrency = max_concurrency
        self.name = name
        self.logger = logger or structlog.get_logger("robinhood_export.engine").bind(
            component="concurrent", batch=name
        )

    def fetch_all(
        self,
        ids: Iterable[str],
        fetch_one: ItemFetch,
        token: CancelToken | None = None,
    ) -> list[T]:
        ids = list(ids)
        if not ids:
            return []
        batch_token = token.child() if token is not None else CancelToken()
        try:
            items, first_error, failed_id = self._run_batch(ids, fetch_one, batch_token)
        finally:
            if token is not None:
                token.detach(batch_token)

        if first_error is not None:
            self.logger.warning(
                "fetch_batch_failed",
                state=FetchState.FAILED.value,
                item_id=failed_id,
                error=str(first_error),
            )
            raise first_error
        if len(items) < len(ids):
            # Only a cancelled caller token leaves ids unfetched without an error.
            self.logger.warning(
                "fetch_batch_cancelled", state=FetchState.FAILED.value, fetched=len(items), ids=len(ids)
            )
            raise FetchCancelled(f"{self.name}: cancelled after {len(items)} of {len(ids)} items")
        self.logger.debug("fetch_batch_completed", state=FetchState.SUCCEEDED.value, items=len(items))
        return items

    def _run_batch(
        self, ids: list[str], fetch_one: ItemFetch, batch_token: CancelToken
    ) -> tuple[list[T], BaseException | None, str | None]:
        """Dispatch every id and drain the result queue until the dispatcher closes it."""

        results: Queue = Queue()
        gate = _AdmissionGate(self.max_concurrency, batch_token)
        dispatcher = Thread(
            target=self._dispatch,
            args=(ids, fetch_one, batch_token, gate, results),
            name=f"{self.name}-dispatch",
            daemon=True,
        )
        state = FetchState.RUNNING
        self.logger.debug(
            "fetch_batch_started", state=state.value, ids=len(ids), max_concurrency=self.max_concurrency
        )
        dispatcher.start()

        items: list[T] = []
        first_error: BaseException | None = None
        failed_id: str | None = None
        while True:
            result = results.get()
            if result is _CLOSED:
                break
            if first_error is not None:
                continue
            if result.error is not None:
                first_error = result.error
                failed_id = result.item_id
                state = FetchState.CANCELLING
                self.logger.debug("fetch_batch_cancelling", state=state.value, item_id=failed_id)
                batch_token.cancel()
                continue
            items.append(result.item)
        dispatcher.join()
        return items, first_error, failed_id

    def _dispatch(
        self,
        ids: list[str],
        fetch_one: ItemFetch,
        token: CancelToken,
        gate: _AdmissionGate,
        results: Queue,
    ) -> None:
        skipped = 0
        try:
            with ThreadPoolExecutor(
                max_workers=self.max_concurrency, thread_name_prefix=self.name
            ) as executor:
                for index, item_id in enumerate(ids):
                    if not gate.acquire():
                        skipped = len(ids) - index
                        break
                    executor.submit(self._run_one, item_id, fetch_one, token, gate, results)
            # Leaving the executor block waits for every submitted task.
        finally:
            if skipped:
                self.logger.debug("fetch_admission_stopped", skipped=skipped)
            results.put(_CLOSED)

    @staticmethod
    def _run_one(
        item_id: str,
        fetch_one: ItemFetch,
        token: CancelToken,
        gate: _AdmissionGate,
        results: Queue,
    ) -> None:
        try:
            item = fetch_one(token, item_id)
        except BaseException as exc:  # noqa: BLE001 - re-raised on the consumer thread
            results.put(_FetchResult(item_id, error=exc))
        else:
            results.put(_FetchResult(item_id, item=item))
        finally:
            gate.release()


__all__ = ["ConcurrentFetcher", "DEFAULT_MAX_CONCURRENCY", "FetchState", "ItemFetch"]
