"""Domain-specific exceptions for the catalog browser."""

from __future__ import annotations

from typing import Any, Hashable

__all__ = [
    "CatalogBrowserError",
    "ConfigError",
    "FetchFailed",
    "IncompleteStateError",
    "TransportError",
]


class CatalogBrowserError(Exception):
    """Base class for catalog browser errors."""

    pass


class ConfigError(CatalogBrowserError):
    """Raised when configuration files are missing or invalid."""

    def __init__(self, message: str, *, config_file: str | None = None) -> None:
        super().__init__(message)
        self.config_file = config_file


class TransportError(CatalogBrowserError):
    """Raised when a catalog request or its payload decoding fails."""

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class FetchFailed(CatalogBrowserError):
    """A shared fetch for ``key`` failed.

    Every caller waiting on the same key receives the same instance, so the
    original exception is kept in :attr:`cause` rather than re-raised per
    waiter.
    """

    def __init__(self, key: Hashable, cause: BaseException | None = None) -> None:
        super().__init__(f"fetch failed for {key!r}: {cause}")
        self.key = key
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "key": repr(self.key),
            "cause": str(self.cause) if self.cause else None,
            "cause_type": type(self.cause).__name__ if self.cause else None,
        }


class IncompleteStateError(CatalogBrowserError):
    """Raised when display data is derived from an unusable state."""

    pass
