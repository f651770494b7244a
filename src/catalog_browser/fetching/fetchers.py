"""Deduplicating fetchers for catalog portions and single records."""

from __future__ import annotations

from concurrent.futures import Executor, Future

from catalog_browser.clients.catalog import CatalogPortion, ItemSource, PortionSource, Record

from .shared import SharedFutureTable

__all__ = ["ItemFetcher", "PortionFetcher", "PortionKey"]

PortionKey = tuple[str, int]


class PortionFetcher:
    """Shares one request per ``(search_term, portion_index)`` pair.

    Entries are scoped to a search term: :meth:`reset` drops every entry of
    other terms, so a new search never reuses portions of a previous one.
    """

    def __init__(
        self,
        source: PortionSource,
        *,
        executor: Executor | None = None,
        max_workers: int = 4,
    ) -> None:
        self._source = source
        self._table: SharedFutureTable[PortionKey, CatalogPortion] = SharedFutureTable(
            self._load, name="portion", executor=executor, max_workers=max_workers
        )

    def fetch(self, index: int, search_term: str) -> Future[CatalogPortion]:
        if index < 1:
            raise ValueError(f"portion index must be >= 1, got {index}")
        return self._table.fetch((search_term, index))

    def reset(self, search_term: str) -> int:
        """Keep only entries belonging to ``search_term``."""

        return self._table.discard_where(lambda key: key[0] != search_term)

    def cached(self, index: int, search_term: str) -> bool:
        return (search_term, index) in self._table

    def close(self) -> None:
        self._table.close()

    def _load(self, key: PortionKey) -> CatalogPortion:
        search_term, index = key
        return self._source.get_portion(index, search_term)


class ItemFetcher:
    """Shares one request per record id; successful lookups are kept for good."""

    def __init__(
        self,
        source: ItemSource,
        *,
        executor: Executor | None = None,
        max_workers: int = 4,
    ) -> None:
        self._source = source
        self._table: SharedFutureTable[str, Record] = SharedFutureTable(
            self._source.get_item, name="item", executor=executor, max_workers=max_workers
        )

    def fetch(self, item_id: str) -> Future[Record]:
        return self._table.fetch(item_id)

    def cached(self, item_id: str) -> bool:
        return item_id in self._table

    def close(self) -> None:
        self._table.close()
