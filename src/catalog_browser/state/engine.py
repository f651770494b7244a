"""State engine: turns browsing actions into published selection states.

Each dispatch takes the next sequence number. The synchronous part of an
action (precondition checks, deriving the target state, asking the fetcher
for portions) runs on a small worker pool; everything that waits on the
network continues from ``Future`` done-callbacks, so no worker ever blocks on
a request. A finished action publishes its state only if no newer action was
dispatched meanwhile; stale results are dropped. Requests already in flight
are not cancelled, their results simply never reach subscribers.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from functools import partial
from typing import Any

from catalog_browser.clients.catalog import CatalogPortion, Record
from catalog_browser.core.errors import FetchFailed, IncompleteStateError
from catalog_browser.core.logger import UnifiedLogger
from catalog_browser.fetching.fetchers import PortionFetcher

from .actions import Action, ChangePageSize, GoToPage, Search
from .selection import SelectionState

__all__ = ["StateEngine", "Subscription"]

StateCallback = Callable[[SelectionState], Any]


class Subscription:
    """Handle returned by :meth:`StateEngine.subscribe`."""

    def __init__(self, engine: StateEngine, callback: StateCallback) -> None:
        self._engine = engine
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        self._engine._remove_subscription(self)


class _PortionJoin:
    """Waits for a set of portion futures and reports once.

    ``on_done(fetched, error)`` fires from the callback of the last future to
    succeed, or from the first one to fail; later completions are ignored.
    """

    def __init__(
        self,
        indices: Iterable[int],
        on_done: Callable[[dict[int, list[Record]], BaseException | None], None],
    ) -> None:
        self._waiting = set(indices)
        self._fetched: dict[int, list[Record]] = {}
        self._on_done = on_done
        self._lock = threading.Lock()
        self._reported = False

    def watch(self, index: int, future: Future[CatalogPortion]) -> None:
        future.add_done_callback(partial(self._collect, index))

    def _collect(self, index: int, future: Future[CatalogPortion]) -> None:
        error = future.exception()
        with self._lock:
            if self._reported:
                return
            if error is None:
                self._fetched[index] = future.result().results
                self._waiting.discard(index)
                if self._waiting:
                    return
            self._reported = True
            fetched = dict(self._fetched)
        self._on_done(fetched, error)


class StateEngine:
    """Owns the current :class:`SelectionState` and applies actions to it.

    Subscribers are called synchronously with the current state when they
    subscribe and then with every published state, in publication order.
    Callbacks run on engine or fetch threads while the engine lock is held;
    they may dispatch new actions but must not call :meth:`wait`.
    """

    def __init__(
        self,
        portions: PortionFetcher,
        *,
        page_size: int = 25,
        executor: Executor | None = None,
        max_workers: int = 4,
        search_on_start: bool = True,
    ) -> None:
        self._portions = portions
        self._lock = threading.RLock()
        self._state = SelectionState.initial_state(page_size)
        self._subscriptions: list[Subscription] = []
        self._seq = 0
        self._pending: dict[int, Future[None]] = {}
        self._closed = False
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="state-engine"
        )
        self._logger = UnifiedLogger.get(__name__).bind(component="state_engine")
        if search_on_start:
            self.dispatch(Search(""))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def current_state(self) -> SelectionState:
        with self._lock:
            return self._state

    def subscribe(self, callback: StateCallback) -> Subscription:
        subscription = Subscription(self, callback)
        with self._lock:
            self._subscriptions.append(subscription)
            self._deliver(subscription, self._state)
        return subscription

    def dispatch(self, action: Action) -> None:
        """Queue ``action``; its outcome is observed through subscriptions."""

        with self._lock:
            if self._closed:
                raise RuntimeError("state engine is closed")
            self._seq += 1
            seq = self._seq
            self._pending[seq] = Future()
            self._executor.submit(self._step, seq, action, self._start)
        self._logger.debug("engine.action.dispatched", action=repr(action), seq=seq)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every dispatched action has been published or dropped.

        Returns ``False`` if ``timeout`` seconds elapse first.
        """

        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                pending = set(self._pending.values())
            if not pending:
                return True
            remaining = None if deadline is None else max(deadline - time.monotonic(), 0.0)
            _, not_done = wait_futures(pending, timeout=remaining)
            if not_done:
                return False

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._subscriptions.clear()
            abandoned = list(self._pending.values())
            self._pending.clear()
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
        for done in abandoned:
            done.set_result(None)

    def __enter__(self) -> StateEngine:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Action processing
    # ------------------------------------------------------------------

    def _step(self, seq: int, action: Action, handler: Callable[..., None], *args: Any) -> None:
        """Run one stage of ``action`` with its log context bound."""

        with UnifiedLogger.scoped(action=type(action).__name__, seq=seq):
            try:
                handler(seq, action, *args)
            except Exception:
                self._logger.exception("engine.action.crashed")
                self._finish(seq, SelectionState.error_state(self.current_state().page_size))

    def _start(self, seq: int, action: Action) -> None:
        if self._superseded(seq):
            self._logger.debug("engine.action.superseded", stage="before_start")
            self._finish(seq, None)
            return

        base = self.current_state()
        if isinstance(action, Search):
            self._start_search(seq, action, base)
            return

        if not base.browsable:
            self._logger.warning(
                "engine.action.rejected",
                reason="error state" if base.error else "initial state",
            )
            self._finish(seq, SelectionState.error_state(base.page_size))
            return

        if isinstance(action, GoToPage):
            # Overflowing pages restart at 1, not at the last page.
            page = action.page if action.page <= base.pages_count() else 1
            target = base.derive(page=page)
        elif isinstance(action, ChangePageSize):
            target = base.derive(page_size=action.size, page=1)
        else:
            raise TypeError(f"unsupported action: {action!r}")
        self._resolve(seq, action, target)

    def _start_search(self, seq: int, action: Search, base: SelectionState) -> None:
        # Scope reset and the staleness check share the dispatch lock, so a
        # superseded search can never drop the entries of a newer term.
        with self._lock:
            if seq != self._seq:
                self._logger.debug("engine.action.superseded", stage="before_reset")
                self._finish(seq, None)
                return
            self._portions.reset(action.term)
        first = self._portions.fetch(1, action.term)
        first.add_done_callback(partial(self._step, seq, action, self._on_first_portion, base))

    def _on_first_portion(
        self,
        seq: int,
        action: Search,
        base: SelectionState,
        future: Future[CatalogPortion],
    ) -> None:
        if self._superseded(seq):
            self._logger.debug("engine.action.superseded", stage="after_first_portion")
            self._finish(seq, None)
            return
        error = future.exception()
        if error is not None:
            self._fail(seq, base, error)
            return
        first = future.result()
        state = SelectionState(
            page_size=base.page_size,
            search_term=action.term,
            page=1,
            count=first.count,
            portions={1: first.results} if first.count > 0 else {},
        )
        self._resolve(seq, action, state)

    def _resolve(self, seq: int, action: Action, state: SelectionState) -> None:
        """Fetch the portions ``state.page`` still lacks, then finish the action."""

        missing = state.missing_portions()
        if not missing:
            self._finish(seq, state)
            return
        term = state.search_term
        if term is None:
            raise IncompleteStateError("cannot resolve portions of a state without a search term")

        join = _PortionJoin(missing, partial(self._step, seq, action, self._on_portions, state))
        for index in missing:
            join.watch(index, self._portions.fetch(index, term))

    def _on_portions(
        self,
        seq: int,
        action: Action,
        state: SelectionState,
        fetched: Mapping[int, list[Record]],
        error: BaseException | None,
    ) -> None:
        if error is not None:
            self._fail(seq, state, error)
            return
        self._logger.debug("engine.portions.fetched", portions=sorted(fetched))
        self._finish(seq, state.with_portions(fetched))

    def _fail(self, seq: int, base: SelectionState, error: BaseException) -> None:
        if isinstance(error, FetchFailed):
            self._logger.error("engine.action.failed", **error.to_dict())
        else:
            self._logger.error("engine.action.failed", cause=repr(error))
        self._finish(seq, SelectionState.error_state(base.page_size))

    # ------------------------------------------------------------------
    # Publication
    # ------------------------------------------------------------------

    def _superseded(self, seq: int) -> bool:
        with self._lock:
            return seq != self._seq

    def _finish(self, seq: int, state: SelectionState | None) -> None:
        """Settle action ``seq``, publishing ``state`` if it is still the latest."""

        with self._lock:
            done = self._pending.pop(seq, None)
            if done is None:
                return
            if state is not None:
                self._publish(seq, state)
        done.set_result(None)

    def _publish(self, seq: int, state: SelectionState) -> None:
        with self._lock:
            if seq != self._seq:
                self._logger.debug("engine.action.superseded", stage="before_publish", latest=self._seq)
                return
            self._state = state
            self._logger.info(
                "engine.state.published",
                search_term=state.search_term,
                page=state.page,
                page_size=state.page_size,
                count=state.count,
                error=state.error,
            )
            for subscription in list(self._subscriptions):
                self._deliver(subscription, state)

    def _deliver(self, subscription: Subscription, state: SelectionState) -> None:
        # a callback may unsubscribe others during this round
        if not subscription.active:
            return
        try:
            subscription.callback(state)
        except Exception:
            self._logger.exception("engine.subscriber.failed", callback=repr(subscription.callback))

    def _remove_subscription(self, subscription: Subscription) -> None:
        with self._lock:
            subscription.active = False
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
