"""Table of shared, settle-once fetches keyed by a logical identifier.

Concurrent callers asking for the same key before it settles all receive the
same :class:`~concurrent.futures.Future`, so only one request is issued.
Successful futures stay in the table and answer later calls instantly; failed
ones are evicted *before* waiters are woken so the next call retries instead
of replaying the failure.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Hashable
from concurrent.futures import CancelledError, Executor, Future, ThreadPoolExecutor
from functools import partial
from typing import Generic, TypeVar

from catalog_browser.core.errors import FetchFailed
from catalog_browser.core.logger import UnifiedLogger

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

__all__ = ["SharedFutureTable"]


class SharedFutureTable(Generic[K, V]):
    """Deduplicating fetch table backed by an executor."""

    def __init__(
        self,
        loader: Callable[[K], V],
        *,
        name: str,
        executor: Executor | None = None,
        max_workers: int = 4,
    ) -> None:
        self.name = name
        self._loader = loader
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=f"fetch-{name}"
        )
        self._entries: dict[K, Future[V]] = {}
        self._lock = threading.Lock()
        self._logger = UnifiedLogger.get(__name__).bind(component="fetch", table=name)

    def fetch(self, key: K) -> Future[V]:
        """Return the live future for ``key``, starting a request if there is none."""

        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                self._logger.debug(
                    "fetch.shared.joined",
                    key=repr(key),
                    settled=existing.done(),
                )
                return existing
            shared: Future[V] = Future()
            self._entries[key] = shared

        self._logger.debug("fetch.shared.started", key=repr(key))
        try:
            inner = self._executor.submit(self._loader, key)
        except RuntimeError as exc:
            # executor already shut down
            self._fail(key, shared, exc)
            return shared
        inner.add_done_callback(partial(self._settle, key, shared))
        return shared

    def invalidate(self, key: K) -> None:
        """Forget ``key``; a pending request still settles its own waiters."""

        with self._lock:
            self._entries.pop(key, None)

    def discard_where(self, predicate: Callable[[K], bool]) -> int:
        """Forget every key matching ``predicate`` and return how many were dropped."""

        with self._lock:
            doomed = [key for key in self._entries if predicate(key)]
            for key in doomed:
                del self._entries[key]
        if doomed:
            self._logger.debug("fetch.shared.discarded", dropped=len(doomed))
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def close(self) -> None:
        """Shut down the executor if this table created it."""

        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def _settle(self, key: K, shared: Future[V], inner: Future[V]) -> None:
        try:
            error = inner.exception()
        except CancelledError as exc:
            error = exc
        if error is None:
            shared.set_result(inner.result())
            self._logger.debug("fetch.shared.settled", key=repr(key))
            return
        self._fail(key, shared, error)

    def _fail(self, key: K, shared: Future[V], error: BaseException) -> None:
        with self._lock:
            if self._entries.get(key) is shared:
                del self._entries[key]
        failure = FetchFailed(key, error)
        self._logger.warning("fetch.shared.failed", **failure.to_dict())
        shared.set_exception(failure)
