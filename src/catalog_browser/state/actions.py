"""State-changing requests accepted by :class:`~catalog_browser.state.engine.StateEngine`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

__all__ = ["Action", "ChangePageSize", "GoToPage", "Search"]


@dataclass(frozen=True, slots=True)
class Search:
    """Browse the matches of ``term`` from page 1; always allowed."""

    term: str


@dataclass(frozen=True, slots=True)
class GoToPage:
    page: int

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")


@dataclass(frozen=True, slots=True)
class ChangePageSize:
    size: int

    def __post_init__(self) -> None:
        if self.size < 1:
            raise ValueError(f"page size must be >= 1, got {self.size}")


Action = Union[Search, GoToPage, ChangePageSize]
