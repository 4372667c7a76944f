"""Defensive field access, time conversion and URL helpers shared by adapters.

Exchange payloads are loosely typed: numbers arrive as strings, optional keys
go missing, booleans come as ``"true"``. The ``safe_*`` getters turn whatever
is there into the wanted type, or return the default when the value is absent
or malformed. A missing number is ``None``, never zero.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence, TypeVar
from urllib.parse import urlencode as _urlencode

T = TypeVar("T")

_PARAM_RE = re.compile(r"\{([^}]+)\}")


def _lookup(container: Any, key: Any) -> Any:
    if container is None:
        return None
    if isinstance(container, Mapping):
        return container.get(key)
    if isinstance(container, Sequence) and not isinstance(container, str) and isinstance(key, int):
        if -len(container) <= key < len(container):
            return container[key]
    return None


def safe_value(container: Any, key: Any, default: Any = None) -> Any:
    value = _lookup(container, key)
    return default if value is None else value


def safe_string(container: Any, key: Any, default: str | None = None) -> str | None:
    value = _lookup(container, key)
    if value is None or isinstance(value, (dict, list)):
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def safe_string_2(container: Any, key1: Any, key2: Any, default: str | None = None) -> str | None:
    value = safe_string(container, key1)
    return safe_string(container, key2, default) if value is None else value


def safe_float(container: Any, key: Any, default: float | None = None) -> float | None:
    value = _lookup(container, key)
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def safe_integer(container: Any, key: Any, default: int | None = None) -> int | None:
    value = _lookup(container, key)
    if value is None or value == "" or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def safe_bool(container: Any, key: Any, default: bool | None = None) -> bool | None:
    value = _lookup(container, key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes"}:
            return True
        if lowered in {"false", "0", "no"}:
            return False
        return default
    if isinstance(value, (int, float)):
        return bool(value)
    return default


def omit(params: Mapping[str, Any], keys: Iterable[str]) -> dict[str, Any]:
    skip = set(keys)
    return {k: v for k, v in params.items() if k not in skip}


def extract_params(path: str) -> list[str]:
    """Names of ``{placeholders}`` in an endpoint path."""
    return _PARAM_RE.findall(path)


def implode_params(path: str, params: Mapping[str, Any]) -> str:
    """Substitute ``{placeholders}`` in ``path`` with values from ``params``."""
    def _sub(match: re.Match[str]) -> str:
        key = match.group(1)
        return str(params[key]) if key in params else match.group(0)

    return _PARAM_RE.sub(_sub, path)


def urlencode(params: Mapping[str, Any]) -> str:
    """URL-encode params, dropping ``None`` and rendering booleans in lowercase."""
    cleaned: dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return _urlencode(cleaned, doseq=True)


def iso8601(timestamp: int | float | None) -> str | None:
    """Millisecond timestamp to ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    if timestamp is None:
        return None
    try:
        ms = int(timestamp)
        dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms % 1000:03d}Z"


def parse8601(value: str | None) -> int | None:
    """ISO-8601 string to millisecond timestamp. Naive strings are read as UTC."""
    if not value or not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(round(dt.timestamp() * 1000))


def sort_by(items: list[T], attr: str, descending: bool = False) -> list[T]:
    return sorted(items, key=lambda item: getattr(item, attr) or 0, reverse=descending)


def filter_by_since_limit(items: list[T], since: int | None = None, limit: int | None = None) -> list[T]:
    result = items
    if since is not None:
        result = [item for item in result if (getattr(item, "timestamp", None) or 0) >= since]
    if limit is not None:
        result = result[:limit]
    return result


def filter_by(items: list[T], attr: str, value: Any) -> list[T]:
    return [item for item in items if getattr(item, attr, None) == value]
