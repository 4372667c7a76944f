"""Settings loading: YAML file first, then ``COINBRIDGE_*`` environment overrides."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .settings import Settings

logger = logging.getLogger(__name__)

ENV_PREFIX = "COINBRIDGE_"
DEFAULT_CONFIG_PATH = "config.yml"

# Variables under the prefix that configure the loader itself.
_RESERVED = {"CONFIG", "LOG_LEVEL"}


def _deep_set(obj: dict[str, Any], path: list[str], value: Any) -> None:
    cur: dict[str, Any] = obj
    for key in path[:-1]:
        nxt = cur.get(key)
        if not isinstance(nxt, dict):
            nxt = {}
            cur[key] = nxt
        cur = nxt
    cur[path[-1]] = value


def _parse_env_value(raw: str) -> Any:
    """Read an env value as a YAML scalar so ``true`` and ``5000`` get their types."""
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw


def _apply_env_overrides(data: dict[str, Any], *, prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """Overlay ``COINBRIDGE_A__B=value`` variables as ``data["a"]["b"] = value``."""
    merged: dict[str, Any] = dict(data)

    for key, raw_value in sorted(os.environ.items()):
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        if remainder in _RESERVED:
            continue

        path = [p.lower() for p in remainder.split("__") if p]
        if not path:
            continue

        logger.debug("Config override from %s", key)
        _deep_set(merged, path, _parse_env_value(raw_value))

    return merged


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        logger.debug("Config file %s not found, using defaults", path)
        return {}
    loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config root must be a mapping, got: {type(loaded)!r}")
    return loaded


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load and validate settings.

    The path falls back to ``$COINBRIDGE_CONFIG`` and then ``./config.yml``.
    A missing file means defaults. Validation errors are raised as ``ValueError``.
    """
    if config_path is None:
        config_path = os.environ.get(f"{ENV_PREFIX}CONFIG", DEFAULT_CONFIG_PATH)

    data = _apply_env_overrides(_read_yaml(Path(config_path)))

    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc
