"""Immutable snapshot of what the user is currently browsing.

A :class:`SelectionState` describes the chosen page size, the searched term,
the page number, the total number of matches and the server portions known so
far for that term. Portions are fixed blocks of :data:`PORTION_SIZE` records,
numbered from 1 like server pages; pages are ``page_size`` blocks numbered
from 1 as the user sees them.

Two flags mark states that are not browsable:

* ``initial`` - nothing has been searched yet (placeholder);
* ``error`` - the action that produced the state failed.

The index helpers only make sense for browsable states with ``count > 0``;
callers check :attr:`SelectionState.browsable` first.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from catalog_browser.clients.catalog import Record

__all__ = ["PORTION_SIZE", "Portions", "SelectionState"]

PORTION_SIZE = 10

Portions = Mapping[int, tuple[Record, ...]]

_EMPTY_PORTIONS: Portions = MappingProxyType({})


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


@dataclass(frozen=True, slots=True)
class SelectionState:
    page_size: int
    search_term: str | None = None
    page: int = 1
    count: int | None = None
    error: bool = False
    initial: bool = False
    portions: Portions = field(default_factory=lambda: _EMPTY_PORTIONS, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.page_size <= 0:
            raise ValueError(f"page_size must be > 0, got {self.page_size}")
        if not isinstance(self.portions, MappingProxyType):
            frozen = {index: tuple(records) for index, records in self.portions.items()}
            object.__setattr__(self, "portions", MappingProxyType(frozen))

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def initial_state(cls, page_size: int) -> SelectionState:
        return cls(page_size=page_size, initial=True)

    @classmethod
    def error_state(cls, page_size: int) -> SelectionState:
        return cls(page_size=page_size, error=True)

    def derive(self, **changes: Any) -> SelectionState:
        """Return a copy with ``changes`` applied; ``self`` is left untouched."""

        return dataclasses.replace(self, **changes)

    def with_portions(self, fetched: Mapping[int, Iterable[Record]]) -> SelectionState:
        """Return a copy whose portion mapping also contains ``fetched``."""

        merged = dict(self.portions)
        merged.update({index: tuple(records) for index, records in fetched.items()})
        return self.derive(portions=MappingProxyType(merged))

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def browsable(self) -> bool:
        return not self.error and not self.initial

    def pages_count(self) -> int:
        return _ceil_div(self.count or 0, self.page_size)

    def portions_count(self) -> int:
        return _ceil_div(self.count or 0, PORTION_SIZE)

    def beg_index(self) -> int:
        """Index of the first record on the page, counting from 0."""
        return self.page_size * (self.page - 1)

    def end_index(self) -> int:
        """Index one past the last record on the page."""
        return min(self.page_size * self.page, self.count or 0)

    def beg_portion_index(self) -> int:
        return self.beg_index() // PORTION_SIZE + 1

    def end_portion_index(self) -> int:
        return (self.end_index() - 1) // PORTION_SIZE + 1

    def required_portions(self) -> range:
        """Portion indices that cover the current page (empty when count is 0)."""

        if not self.count:
            return range(0)
        return range(self.beg_portion_index(), self.end_portion_index() + 1)

    def missing_portions(self) -> list[int]:
        return [index for index in self.required_portions() if index not in self.portions]

    def is_complete(self) -> bool:
        return self.browsable and not self.missing_portions()
