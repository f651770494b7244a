"""Shared pytest fixtures for catalog browser tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from catalog_browser.fetching import PortionFetcher
from catalog_browser.state import StateEngine
from tests.support.fakes import FakeCatalog, StateRecorder, make_planets, quiet_logging


@pytest.fixture(autouse=True, scope="session")
def _quiet_logging() -> None:
    quiet_logging()


@pytest.fixture
def catalog() -> FakeCatalog:
    """23 planets, three portions."""
    return FakeCatalog(make_planets(23))


@pytest.fixture
def make_engine() -> Iterator[Callable[..., StateEngine]]:
    created: list[tuple[StateEngine, PortionFetcher]] = []

    def factory(source: FakeCatalog, **kwargs: Any) -> StateEngine:
        fetcher = PortionFetcher(source)
        engine = StateEngine(fetcher, **kwargs)
        created.append((engine, fetcher))
        return engine

    yield factory

    for engine, fetcher in created:
        engine.close()
        fetcher.close()


@pytest.fixture
def recorder() -> StateRecorder:
    return StateRecorder()
