"""Selection state, actions and the engine that publishes them."""

from .actions import Action, ChangePageSize, GoToPage, Search
from .display import display_slice, page_window, results_title
from .engine import StateEngine, Subscription
from .selection import PORTION_SIZE, SelectionState

__all__ = [
    "PORTION_SIZE",
    "Action",
    "ChangePageSize",
    "GoToPage",
    "Search",
    "SelectionState",
    "StateEngine",
    "Subscription",
    "display_slice",
    "page_window",
    "results_title",
]
