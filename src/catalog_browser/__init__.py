"""Search and page through a remote catalog served in fixed-size portions."""

from __future__ import annotations

from .clients import CatalogClient, CatalogPortion, item_id_from_url
from .config import AppConfig, load_config
from .core.errors import CatalogBrowserError, FetchFailed
from .fetching import ItemFetcher, PortionFetcher
from .state import (
    ChangePageSize,
    GoToPage,
    Search,
    SelectionState,
    StateEngine,
    display_slice,
)

__version__ = "1.0.0"

__all__ = [
    "AppConfig",
    "CatalogBrowserError",
    "CatalogClient",
    "CatalogPortion",
    "ChangePageSize",
    "FetchFailed",
    "GoToPage",
    "ItemFetcher",
    "PortionFetcher",
    "Search",
    "SelectionState",
    "StateEngine",
    "display_slice",
    "item_id_from_url",
    "load_config",
]
