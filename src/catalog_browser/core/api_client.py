"""Thread-safe JSON-over-HTTP client used by the catalog client.

One :class:`UnifiedAPIClient` is shared by every fetch worker. It applies the
configured timeouts, throttles calls with a sliding-window limiter and retries
transient failures (connection errors and the configured status codes) with
exponential backoff, honouring ``Retry-After`` when the server sends one.
"""

from __future__ import annotations

import random
import threading
import time
from collections import deque
from collections.abc import Mapping
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any
from urllib.parse import urljoin
from uuid import uuid4

import requests
from requests import Response
from requests.adapters import HTTPAdapter
from requests.exceptions import RequestException

from catalog_browser.config.models import HTTPClientConfig
from catalog_browser.core.logger import UnifiedLogger

__all__ = [
    "SlidingWindowLimiter",
    "UnifiedAPIClient",
    "create_session",
    "retry_after_seconds",
]


class SlidingWindowLimiter:
    """Allow at most ``max_calls`` calls in any ``period``-second window."""

    def __init__(self, max_calls: int, period: float, *, jitter: bool = True) -> None:
        if max_calls <= 0 or period <= 0:
            raise ValueError("max_calls and period must be positive")
        self.max_calls = max_calls
        self.period = period
        self.jitter = jitter
        self._started: deque[float] = deque()
        self._lock = threading.Lock()

    def acquire(self) -> float:
        """Block until a call may start; return the seconds spent waiting."""

        waited = 0.0
        while True:
            with self._lock:
                now = time.monotonic()
                while self._started and now - self._started[0] >= self.period:
                    self._started.popleft()
                if len(self._started) < self.max_calls:
                    self._started.append(now)
                    return waited
                pause = self.period - (now - self._started[0])
            if self.jitter:
                pause += random.uniform(0.0, self.period / self.max_calls)
            time.sleep(pause)
            waited += pause


def create_session(pool_maxsize: int = 10) -> requests.Session:
    """Session whose connection pool is large enough for the fetch workers."""

    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=pool_maxsize, pool_maxsize=pool_maxsize)
    for scheme in ("http://", "https://"):
        session.mount(scheme, adapter)
    return session


def retry_after_seconds(value: str | None) -> float | None:
    """Parse a ``Retry-After`` header given as seconds or as an HTTP date.

    >>> retry_after_seconds("3")
    3.0
    >>> retry_after_seconds("soon") is None
    True
    """

    if not value or not value.strip():
        return None
    value = value.strip()
    if value.isdigit():
        return float(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)


class UnifiedAPIClient:
    """GET-oriented HTTP client with retries, timeouts and rate limiting."""

    def __init__(
        self,
        config: HTTPClientConfig,
        *,
        base_url: str | None = None,
        name: str | None = None,
        session: requests.Session | None = None,
        pool_maxsize: int = 10,
    ) -> None:
        self.config = config
        self.base_url = base_url.rstrip("/") if base_url else ""
        self.name = name or "default"
        self._session = session or create_session(pool_maxsize)
        self._session.headers.update(dict(config.headers))
        connect = min(config.connect_timeout_sec, config.timeout_sec)
        self._timeout = (connect, min(config.read_timeout_sec, config.timeout_sec))
        self._limiter = SlidingWindowLimiter(
            config.rate_limit.max_calls,
            config.rate_limit.period,
            jitter=config.rate_limit_jitter,
        )
        self._logger = UnifiedLogger.get(__name__).bind(component="http_client", http_client=self.name)

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> UnifiedAPIClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> Response:
        """Send the request, retrying transient failures.

        Raises the last :class:`requests.RequestException` (``HTTPError`` for
        error statuses) once retries are exhausted.
        """

        url = self._resolve_url(endpoint)
        log = self._logger.bind(endpoint=url, request_id=uuid4().hex)
        attempts = self.config.retries.total + 1

        for attempt in range(1, attempts + 1):
            last_attempt = attempt == attempts
            waited = self._limiter.acquire()
            if waited:
                log.debug("http.rate_limiter.wait", wait_seconds=waited, attempt=attempt)

            started = time.perf_counter()
            try:
                response = self._session.request(method, url, params=params, timeout=self._timeout)
            except RequestException as exc:
                log.warning("http.request.exception", attempt=attempt, error=str(exc))
                if last_attempt:
                    raise
                self._sleep(self._backoff(attempt, None))
                continue

            elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
            status = response.status_code
            if status in self.config.retries.statuses and not last_attempt:
                retry_after = retry_after_seconds(response.headers.get("Retry-After"))
                log.warning(
                    "http.request.retry",
                    attempt=attempt,
                    status_code=status,
                    retry_after=retry_after,
                    duration_ms=elapsed_ms,
                )
                self._sleep(self._backoff(attempt, retry_after))
                continue

            if status >= 400:
                log.error("http.request.failed", attempt=attempt, status_code=status, duration_ms=elapsed_ms)
                response.raise_for_status()
            log.info("http.request.completed", attempt=attempt, status_code=status, duration_ms=elapsed_ms)
            return response

        raise AssertionError("unreachable: the final attempt returns or raises")

    def get(self, endpoint: str, *, params: Mapping[str, Any] | None = None) -> Response:
        return self.request("GET", endpoint, params=params)

    def request_json(self, endpoint: str, *, params: Mapping[str, Any] | None = None) -> Any:
        return self.get(endpoint, params=params).json()

    def _resolve_url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")) or not self.base_url:
            return endpoint
        return urljoin(self.base_url + "/", endpoint.lstrip("/"))

    def _backoff(self, attempt: int, retry_after: float | None) -> float:
        ceiling = self.config.retries.backoff_max
        if retry_after is not None:
            return min(retry_after, ceiling)
        delay = min(self.config.retries.backoff_multiplier ** (attempt - 1), ceiling)
        if self.config.rate_limit_jitter:
            delay += random.uniform(0.0, min(delay, 1.0))
        return delay

    @staticmethod
    def _sleep(duration: float) -> None:
        if duration > 0:
            time.sleep(duration)
