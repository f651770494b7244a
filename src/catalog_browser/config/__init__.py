"""Configuration package."""

from __future__ import annotations

from .loader import ENV_PREFIX, load_config
from .models import (
    AppConfig,
    BrowserConfig,
    CatalogConfig,
    HTTPClientConfig,
    LoggingConfig,
    RateLimitConfig,
    RetryConfig,
)

__all__ = [
    "ENV_PREFIX",
    "AppConfig",
    "BrowserConfig",
    "CatalogConfig",
    "HTTPClientConfig",
    "LoggingConfig",
    "RateLimitConfig",
    "RetryConfig",
    "load_config",
]
