"""Typer CLI entrypoint."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from catalog_browser.clients.catalog import CatalogClient
from catalog_browser.config import AppConfig, load_config
from catalog_browser.core.errors import ConfigError, FetchFailed
from catalog_browser.core.logger import UnifiedLogger
from catalog_browser.fetching import ItemFetcher, PortionFetcher
from catalog_browser.state import (
    Action,
    GoToPage,
    Search,
    SelectionState,
    StateEngine,
    display_slice,
    page_window,
    results_title,
)

__all__ = ["app", "main"]

CONFIG_OPTION = typer.Option(None, "--config", help="Path to a YAML configuration file.")
LOG_LEVEL_OPTION = typer.Option(None, "--log-level", help="Override the configured log level.")
TERM_OPTION = typer.Option("", "--term", "-t", help="Search term; empty lists everything.")
PAGE_OPTION = typer.Option(1, "--page", "-p", min=1, help="Page to display.")
PAGE_SIZE_OPTION = typer.Option(None, "--page-size", "-s", min=1, help="Records per page.")
ITEM_ID_ARGUMENT = typer.Argument(..., help="Identifier of the record to show.")

app = typer.Typer(help="Browse a paginated remote catalog", no_args_is_help=True, add_completion=False)


def _load(config: Path | None, log_level: str | None) -> AppConfig:
    try:
        cfg = load_config(config)
    except ConfigError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    logging_section = cfg.logging.model_copy(update={"level": log_level}) if log_level else cfg.logging
    UnifiedLogger.configure(logging_section.to_log_config())
    return cfg


def _render(state: SelectionState) -> None:
    typer.echo(results_title(state))
    for record in display_slice(state):
        typer.echo(f"  {record.get('name', record)}")
    pages = " ".join(str(page) for page in page_window(state))
    typer.echo(f"page {state.page}/{state.pages_count()}  [{pages}]  ({state.count} total)")


@app.command("browse")
def browse_command(
    term: str = TERM_OPTION,
    page: int = PAGE_OPTION,
    page_size: Optional[int] = PAGE_SIZE_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    log_level: Optional[str] = LOG_LEVEL_OPTION,
) -> None:
    """Search the catalog and print one page of results."""
    cfg = _load(config, log_level)
    workers = cfg.browser.max_workers

    with CatalogClient(cfg.catalog, cfg.http) as client:
        fetcher = PortionFetcher(client, max_workers=workers)
        engine = StateEngine(
            fetcher,
            page_size=page_size or cfg.browser.default_page_size,
            max_workers=workers,
            search_on_start=False,
        )
        try:
            steps: list[Action] = [Search(term)]
            if page != 1:
                steps.append(GoToPage(page))
            for step in steps:
                engine.dispatch(step)
                engine.wait()
                if engine.current_state().error:
                    break
            state = engine.current_state()
        finally:
            engine.close()
            fetcher.close()

    if state.error:
        typer.echo("Failed to load results from the catalog.", err=True)
        raise typer.Exit(code=1)
    _render(state)


@app.command("show")
def show_command(
    item_id: str = ITEM_ID_ARGUMENT,
    config: Optional[Path] = CONFIG_OPTION,
    log_level: Optional[str] = LOG_LEVEL_OPTION,
) -> None:
    """Print one record as JSON."""
    cfg = _load(config, log_level)

    with CatalogClient(cfg.catalog, cfg.http) as client:
        fetcher = ItemFetcher(client, max_workers=1)
        try:
            record = fetcher.fetch(item_id).result()
        except FetchFailed as exc:
            typer.echo(f"Failed to load {item_id}: {exc.cause}", err=True)
            raise typer.Exit(code=1) from exc
        finally:
            fetcher.close()

    typer.echo(json.dumps(record, indent=2, ensure_ascii=False, sort_keys=True))


def main() -> None:
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    main()
