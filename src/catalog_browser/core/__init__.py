"""Shared building blocks: errors, logging and the HTTP client."""

from __future__ import annotations

from .errors import (
    CatalogBrowserError,
    ConfigError,
    FetchFailed,
    IncompleteStateError,
    TransportError,
)
from .logger import LogConfig, LogFormat, UnifiedLogger, configure_logging, get_logger

__all__ = [
    "CatalogBrowserError",
    "ConfigError",
    "FetchFailed",
    "IncompleteStateError",
    "LogConfig",
    "LogFormat",
    "TransportError",
    "UnifiedLogger",
    "configure_logging",
    "get_logger",
]
