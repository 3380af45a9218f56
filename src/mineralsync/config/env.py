"""Typed readers over ``os.environ``; blank values count as unset."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, TypeVar

from .errors import ConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

T = TypeVar("T")

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def optional_env_var(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Read every name in ``names``, reporting all missing ones at once."""

    values = {name: optional_env_var(name) for name in names}
    missing = [name for name, value in values.items() if value is None]
    if missing:
        raise MissingConfigurationError(*missing)
    return {name: value for name, value in values.items() if value is not None}


def _parsed(name: str, default: T, parse: Callable[[str], T], kind: str) -> T:
    raw = optional_env_var(name)
    if raw is None:
        return default
    try:
        return parse(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be {kind}, got {raw!r}") from exc


def env_int(name: str, default: int) -> int:
    return _parsed(name, default, int, "an integer")


def env_float(name: str, default: float) -> float:
    return _parsed(name, default, float, "a number")


def _flag(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(raw)


def env_bool(name: str, default: bool = False) -> bool:
    return _parsed(name, default, _flag, "a boolean flag")
