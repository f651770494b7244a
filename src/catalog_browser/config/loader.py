"""Configuration loading utilities.

Values are layered as::

    model defaults < YAML file < CATALOG_BROWSER__SECTION__KEY environment variables

Environment values are parsed as YAML scalars, so ``CATALOG_BROWSER__BROWSER__DEFAULT_PAGE_SIZE=10``
yields an ``int``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping, MutableMapping
from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import ValidationError

from catalog_browser.core.errors import ConfigError

from .models import AppConfig

ENV_PREFIX = "CATALOG_BROWSER__"


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load, merge and validate the application configuration."""

    payload: dict[str, Any] = {}
    config_file: str | None = None
    if path is not None:
        config_path = Path(path).expanduser()
        config_file = str(config_path)
        payload = _load_yaml(config_path)

    env_overrides = _collect_env_overrides(os.environ if environ is None else environ)
    if env_overrides:
        payload = _deep_merge(payload, env_overrides)

    try:
        return AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}", config_file=config_file) from exc


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}", config_file=str(path))
    try:
        with path.open("r", encoding="utf-8") as stream:
            data = yaml.safe_load(stream)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Malformed YAML in {path}: {exc}", config_file=str(path)) from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError(
            f"Top level of {path} must be a mapping, got {type(data).__name__}",
            config_file=str(path),
        )
    return dict(data)


def _deep_merge(
    base: Mapping[str, Any],
    override: Mapping[str, Any],
) -> dict[str, Any]:
    """Recursively merge two mapping-like objects."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], MutableMapping) and isinstance(value, Mapping):
            merged[key] = _deep_merge(
                cast(Mapping[str, Any], merged[key]),
                cast(Mapping[str, Any], value),
            )
        else:
            merged[key] = value
    return merged


def _coerce_value(value: Any) -> Any:
    """Best-effort conversion of environment override values."""
    if isinstance(value, str):
        try:
            return yaml.safe_load(value)
        except yaml.YAMLError:
            return value
    return value


def _collect_env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect prefixed environment variables into a nested override tree."""
    overrides: dict[str, Any] = {}
    for key, raw_value in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        parts = [segment.strip().lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment.strip()]
        if not parts:
            continue
        tree: dict[str, Any] = {parts[-1]: _coerce_value(raw_value)}
        for part in reversed(parts[:-1]):
            tree = {part: tree}
        overrides = _deep_merge(overrides, tree)
    return overrides
