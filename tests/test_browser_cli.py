"""CLI tests driven through Typer's CliRunner with a mocked catalog."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any
from unittest import mock
from urllib.parse import parse_qs, urlsplit

import pytest
import responses
from typer.testing import CliRunner

from catalog_browser.cli import app
from catalog_browser.cli.app import _load
from catalog_browser.core.logger import LogConfig, LogFormat, UnifiedLogger
from tests.support.fakes import make_planets, quiet_logging

PLANETS_URL = "http://catalog.test/api/planets/"

runner = CliRunner()


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    yield
    quiet_logging()


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "browser.yaml"
    path.write_text(
        """
catalog:
  base_url: http://catalog.test/api
http:
  retries:
    total: 0
  rate_limit:
    max_calls: 1000
logging:
  level: WARNING
""",
        encoding="utf-8",
    )
    return path


def register_catalog(records: list[dict[str, Any]]) -> None:
    """Serve ``records`` as 10-record portions filtered by the ``search`` parameter."""

    def portion(request: Any) -> tuple[int, dict[str, str], str]:
        query = parse_qs(urlsplit(request.url).query, keep_blank_values=True)
        index = int(query["page"][0])
        term = query.get("search", [""])[0].lower()
        matching = [record for record in records if term in record["name"].lower()]
        body = {"count": len(matching), "results": matching[(index - 1) * 10 : index * 10]}
        return 200, {}, json.dumps(body)

    responses.add_callback(responses.GET, PLANETS_URL, callback=portion, content_type="application/json")


def requested_pages() -> list[int]:
    return sorted(int(parse_qs(urlsplit(call.request.url).query)["page"][0]) for call in responses.calls)


@pytest.mark.unit
class TestBrowseCommand:
    @responses.activate
    def test_lists_first_page(self, config_path: Path) -> None:
        register_catalog(make_planets(23))

        result = runner.invoke(app, ["browse", "--config", str(config_path)])

        assert result.exit_code == 0, result.output
        assert "All results" in result.stdout
        assert "Planet 1\n" in result.stdout
        assert "Planet 23" in result.stdout
        assert "page 1/1" in result.stdout
        assert requested_pages() == [1, 2, 3]

    @responses.activate
    def test_page_and_size_options(self, config_path: Path) -> None:
        register_catalog(make_planets(23))

        result = runner.invoke(
            app, ["browse", "--config", str(config_path), "--page-size", "10", "--page", "2"]
        )

        assert result.exit_code == 0, result.output
        assert "Planet 11" in result.stdout
        assert "Planet 20" in result.stdout
        assert "Planet 21" not in result.stdout
        assert "page 2/3  [1 2 3]  (23 total)" in result.stdout
        assert requested_pages() == [1, 2]

    @responses.activate
    def test_search_term(self, config_path: Path) -> None:
        register_catalog(make_planets(3, prefix="Tatooine") + make_planets(3, prefix="Hoth"))

        result = runner.invoke(app, ["browse", "--config", str(config_path), "--term", "hoth"])

        assert result.exit_code == 0, result.output
        assert "Results for: hoth" in result.stdout
        assert "Hoth 3" in result.stdout
        assert "Tatooine" not in result.stdout

    @responses.activate
    def test_no_results(self, config_path: Path) -> None:
        register_catalog(make_planets(3))

        result = runner.invoke(app, ["browse", "--config", str(config_path), "--term", "zzz"])

        assert result.exit_code == 0, result.output
        assert "No results for: zzz" in result.stdout

    @responses.activate
    def test_server_error_exits_with_failure(self, config_path: Path) -> None:
        responses.add(responses.GET, PLANETS_URL, status=500)

        result = runner.invoke(app, ["browse", "--config", str(config_path)])

        assert result.exit_code == 1

    def test_bad_config_exits_with_usage_error(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["browse", "--config", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 2


@pytest.mark.unit
class TestShowCommand:
    @responses.activate
    def test_prints_record_as_json(self, config_path: Path) -> None:
        responses.add(responses.GET, f"{PLANETS_URL}5/", json={"name": "Dagobah", "climate": "murky"})

        result = runner.invoke(app, ["show", "5", "--config", str(config_path)])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"name": "Dagobah", "climate": "murky"}

    @responses.activate
    def test_missing_record(self, config_path: Path) -> None:
        responses.add(responses.GET, f"{PLANETS_URL}404/", json={"detail": "Not found"}, status=404)

        result = runner.invoke(app, ["show", "404", "--config", str(config_path)])

        assert result.exit_code == 1


@pytest.mark.unit
class TestLoggingSetup:
    def test_configured_section_with_level_override(self, tmp_path: Path) -> None:
        path = tmp_path / "browser.yaml"
        path.write_text("logging:\n  level: WARNING\n  format: json\n", encoding="utf-8")

        with mock.patch.object(UnifiedLogger, "configure") as configure:
            _load(path, "ERROR")

        configure.assert_called_once_with(LogConfig(level="ERROR", format=LogFormat.JSON))

    def test_configured_level_without_override(self, tmp_path: Path) -> None:
        path = tmp_path / "browser.yaml"
        path.write_text("logging:\n  level: DEBUG\n", encoding="utf-8")

        with mock.patch.object(UnifiedLogger, "configure") as configure:
            _load(path, None)

        configure.assert_called_once_with(LogConfig(level="DEBUG", format=LogFormat.KEY_VALUE))
