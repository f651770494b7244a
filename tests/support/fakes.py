"""In-memory catalog fakes shared by the test suite."""

from __future__ import annotations

import sys
import threading
from collections import Counter
from collections.abc import Callable
from concurrent.futures import Executor, Future
from functools import partial
from typing import Any

from catalog_browser.clients.catalog import CatalogPortion, Record, item_id_from_url
from catalog_browser.core.errors import TransportError
from catalog_browser.core.logger import LogConfig, UnifiedLogger

WAIT_TIMEOUT = 5.0


def make_planets(count: int, prefix: str = "Planet") -> list[Record]:
    return [
        {"name": f"{prefix} {number}", "url": f"http://catalog.test/api/planets/{number}/"}
        for number in range(1, count + 1)
    ]


class FakeCatalog:
    """In-memory stand-in for :class:`CatalogClient`.

    ``failures`` holds ``(term, index)`` pairs (or item ids) that raise a
    :class:`TransportError`; ``gates`` holds events a request waits on before
    answering, which lets tests control completion order.
    """

    def __init__(self, records: list[Record]) -> None:
        self.records = records
        self.failures: set[Any] = set()
        self.gates: dict[Any, threading.Event] = {}
        self.calls: list[tuple[str, int]] = []
        self.item_calls: list[str] = []
        self._lock = threading.Condition()

    def gate(self, key: Any) -> threading.Event:
        event = threading.Event()
        self.gates[key] = event
        return event

    def release_all(self) -> None:
        for event in list(self.gates.values()):
            event.set()

    def wait_for_call(self, key: tuple[str, int], timeout: float = WAIT_TIMEOUT) -> bool:
        with self._lock:
            return self._lock.wait_for(lambda: key in self.calls, timeout)

    def call_counts(self) -> Counter[tuple[str, int]]:
        with self._lock:
            return Counter(self.calls)

    def get_portion(self, index: int, search_term: str) -> CatalogPortion:
        key = (search_term, index)
        with self._lock:
            self.calls.append(key)
            self._lock.notify_all()
        gate = self.gates.get(key)
        if gate is not None:
            gate.wait(WAIT_TIMEOUT)
        if key in self.failures:
            raise TransportError(f"boom: {key}", status_code=500)
        matching = [record for record in self.records if search_term.lower() in record["name"].lower()]
        return CatalogPortion(
            count=len(matching),
            results=matching[(index - 1) * 10 : index * 10],
        )

    def get_item(self, item_id: str) -> Record:
        with self._lock:
            self.item_calls.append(item_id)
        gate = self.gates.get(item_id)
        if gate is not None:
            gate.wait(WAIT_TIMEOUT)
        if item_id in self.failures:
            raise TransportError(f"no such item {item_id}", status_code=404)
        for record in self.records:
            if item_id_from_url(record["url"]) == item_id:
                return dict(record)
        raise TransportError(f"no such item {item_id}", status_code=404)


class StateRecorder:
    """Subscriber collecting every state it receives."""

    def __init__(self) -> None:
        self.states: list[Any] = []
        self._lock = threading.Condition()

    def __call__(self, state: Any) -> None:
        with self._lock:
            self.states.append(state)
            self._lock.notify_all()

    def wait_for(self, count: int, timeout: float = WAIT_TIMEOUT) -> bool:
        """Block until at least ``count`` states were received."""
        with self._lock:
            return self._lock.wait_for(lambda: len(self.states) >= count, timeout)

    @property
    def pages(self) -> list[int]:
        with self._lock:
            return [state.page for state in self.states]


class ManualExecutor(Executor):
    """Executor whose submitted calls run only when the test asks, in any order."""

    def __init__(self) -> None:
        self.queued: list[tuple[Future[Any], Callable[..., Any], tuple[Any, ...]]] = []

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future[Any]:
        future: Future[Any] = Future()
        self.queued.append((future, partial(fn, **kwargs), args))
        return future

    def run(self, position: int) -> None:
        future, fn, args = self.queued.pop(position)
        try:
            future.set_result(fn(*args))
        except Exception as exc:
            future.set_exception(exc)


def quiet_logging() -> None:
    """WARNING-level key=value logging on the process stderr, which outlives per-test captures."""
    UnifiedLogger.configure(LogConfig(level="WARNING", stream=sys.__stderr__))
