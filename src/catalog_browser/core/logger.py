"""Structured logging for the catalog browser.

Events are emitted through structlog and handed to the standard ``logging``
tree, so a single root handler renders our events and those of third-party
libraries (``urllib3`` connection messages, for instance) in the same shape.
Engine and fetch work runs on pool threads; per-action context travels through
:mod:`structlog.contextvars` and :meth:`UnifiedLogger.scoped`.
"""
from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Iterable, Iterator, MutableMapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import IO, Any, Final

import structlog
from structlog.contextvars import (
    bind_contextvars,
    clear_contextvars,
    get_contextvars,
    unbind_contextvars,
)
from structlog.stdlib import BoundLogger

__all__ = [
    "DEFAULT_LOG_LEVEL",
    "LogConfig",
    "LogFormat",
    "UnifiedLogger",
    "configure_logging",
    "get_logger",
]


class LogFormat(str, Enum):
    """How the root handler renders events."""

    JSON = "json"
    KEY_VALUE = "key_value"


DEFAULT_LOG_LEVEL = logging.INFO
REDACTED: Final[str] = "***REDACTED***"

_ROOT_LOGGER: Final[str] = "catalog_browser"

# key=value lines start with these; remaining keys keep insertion order
_LEADING_KEYS: Final[Sequence[str]] = (
    "timestamp",
    "level",
    "thread",
    "component",
    "action",
    "seq",
    "message",
)


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Logging parameters; ``stream`` defaults to ``sys.stderr`` at configure time."""

    level: int | str = DEFAULT_LOG_LEVEL
    format: LogFormat = LogFormat.KEY_VALUE
    redact_fields: Sequence[str] = ("api_key", "access_token", "password")
    stream: IO[str] | None = None


def _coerce_log_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelNamesMapping().get(level.strip().upper())
    if resolved is None:
        raise ValueError(f"Unsupported log level: {level}")
    return resolved


class _Redactor:
    """Processor replacing the values of sensitive keys."""

    def __init__(self, fields: Iterable[str]) -> None:
        self._fields = frozenset(fields)

    def __call__(self, _: Any, __: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
        for key in self._fields.intersection(event_dict):
            event_dict[key] = REDACTED
        return event_dict


def _add_thread_name(_: Any, __: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    event_dict.setdefault("thread", threading.current_thread().name)
    return event_dict


def _event_chain(config: LogConfig) -> list[Any]:
    """Processors shared by structlog events and foreign ``logging`` records."""

    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        _add_thread_name,
        _Redactor(config.redact_fields),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.EventRenamer("message"),
    ]


def _renderer(log_format: LogFormat) -> Any:
    if log_format is LogFormat.JSON:
        return structlog.processors.JSONRenderer(sort_keys=True, ensure_ascii=False)
    return structlog.processors.KeyValueRenderer(key_order=_LEADING_KEYS, drop_missing=True)


def configure_logging(config: LogConfig | None = None) -> None:
    """Install the root handler and point structlog at the ``logging`` tree.

    Safe to call repeatedly; the previous root handlers are replaced.
    """

    cfg = config or LogConfig()
    chain = _event_chain(cfg)

    handler = logging.StreamHandler(cfg.stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(LogFormat(cfg.format)),
            ],
        )
    )
    logging.basicConfig(handlers=[handler], level=_coerce_log_level(cfg.level), force=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> BoundLogger:
    return structlog.stdlib.get_logger(name or _ROOT_LOGGER)


class UnifiedLogger:
    """Facade used by the rest of the package."""

    @staticmethod
    def configure(config: LogConfig | None = None) -> None:
        configure_logging(config)

    @staticmethod
    def get(name: str | None = None) -> BoundLogger:
        return get_logger(name)

    @staticmethod
    def reset() -> None:
        """Drop all context bound to the current thread or task."""

        clear_contextvars()

    @staticmethod
    @contextmanager
    def scoped(**context: Any) -> Iterator[None]:
        """Bind ``context`` for the duration of the block, restoring shadowed values."""

        shadowed = {key: value for key, value in get_contextvars().items() if key in context}
        bind_contextvars(**context)
        try:
            yield
        finally:
            unbind_contextvars(*context)
            if shadowed:
                bind_contextvars(**shadowed)
