"""Request deduplication and caching for catalog fetches."""

from .fetchers import ItemFetcher, PortionFetcher, PortionKey
from .shared import SharedFutureTable

__all__ = ["ItemFetcher", "PortionFetcher", "PortionKey", "SharedFutureTable"]
