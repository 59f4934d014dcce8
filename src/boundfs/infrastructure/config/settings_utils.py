"""Loose environment parsing used by the boundfs settings."""

from __future__ import annotations

import os
from typing import Sequence


_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


def parse_bool(value: object, *, default: bool = False) -> bool:
    """Interpret flag-like strings; unknown values fall back to `default`."""
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    token = str(value).strip().lower()
    if token in _TRUTHY:
        return True
    if token in _FALSY:
        return False
    return default


def parse_int(
    value: object,
    default: int,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    """Integer clamped into [minimum, maximum]; unparseable values give `default`.

    A typo in the environment never prevents a boundary from being mounted.
    """
    if value is None or isinstance(value, bool):
        parsed = default
    else:
        try:
            parsed = int(str(value).strip())
        except ValueError:
            parsed = default
    if minimum is not None:
        parsed = max(parsed, minimum)
    if maximum is not None:
        parsed = min(parsed, maximum)
    return parsed


def parse_list(value: object, default: Sequence[str] | None = None) -> list[str]:
    """Comma-separated string or sequence; blank items are dropped."""
    fallback = list(default or [])
    if value is None:
        return fallback
    raw_items = value.split(",") if isinstance(value, str) else [str(item) for item in value]
    items = [item.strip() for item in raw_items if item.strip()]
    return items or fallback


def env_str(name: str, default: str = "") -> str:
    raw = os.environ.get(name)
    return default if raw is None else raw.strip()


def env_bool(name: str, default: bool = False) -> bool:
    return parse_bool(os.environ.get(name), default=default)


def env_int(
    name: str,
    default: int,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    return parse_int(os.environ.get(name), default, minimum=minimum, maximum=maximum)


def env_list(name: str, default: Sequence[str] | None = None) -> list[str]:
    return parse_list(os.environ.get(name), default)
