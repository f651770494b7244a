"""Values derived from a published state for presentation."""

from __future__ import annotations

from catalog_browser.clients.catalog import Record
from catalog_browser.core.errors import IncompleteStateError

from .selection import PORTION_SIZE, SelectionState

__all__ = ["display_slice", "page_window", "results_title"]


def display_slice(state: SelectionState) -> list[Record]:
    """Return the records shown on ``state.page``, in catalog order.

    Raises :class:`IncompleteStateError` for error/initial states or when a
    portion of the page was never fetched; published browsable states always
    carry every portion they need.
    """

    if not state.browsable:
        raise IncompleteStateError("cannot list records of an error or initial state")
    if not state.count:
        return []

    missing = state.missing_portions()
    if missing:
        raise IncompleteStateError(f"portions {missing} are not loaded for page {state.page}")

    records: list[Record] = []
    for index in state.required_portions():
        records.extend(state.portions[index])

    shift = PORTION_SIZE * (state.beg_portion_index() - 1)
    return records[state.beg_index() - shift : state.end_index() - shift]


def page_window(state: SelectionState, radius: int = 3) -> list[int]:
    """Page numbers offered around the current page."""

    first = max(state.page - radius, 1)
    last = min(state.page + radius, state.pages_count())
    return list(range(first, last + 1))


def results_title(state: SelectionState) -> str:
    if state.search_term == "":
        return "All results"
    if state.count:
        return f"Results for: {state.search_term}"
    return f"No results for: {state.search_term}"
