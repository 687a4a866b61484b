"""Small helpers shared by configuration and playback code."""
from __future__ import annotations

import os
from typing import Callable, Optional, TypeVar

_Number = TypeVar("_Number", int, float)

_TRUE_VALUES = ("1", "true", "yes", "on")


def resolve_path(value: str, base_dir: str) -> str:
    """Resolve a path relative to base_dir when value is not absolute."""
    if os.path.isabs(value):
        return value
    return os.path.join(base_dir, value)


def clamp(value: _Number, low: _Number, high: _Number) -> _Number:
    if value < low:
        return low
    if value > high:
        return high
    return value


def _parse_number_env(
    name: str,
    default: _Number,
    cast: Callable[[str], _Number],
    min_value: Optional[_Number],
    max_value: Optional[_Number],
) -> _Number:
    raw = os.getenv(name)
    try:
        value = cast(raw) if raw is not None and raw.strip() else default
    except ValueError:
        value = default
    if min_value is not None and value < min_value:
        value = min_value
    if max_value is not None and value > max_value:
        value = max_value
    return value


def parse_int_env(
    name: str,
    default: int,
    *,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> int:
    """Parse an integer environment variable with optional bounds."""
    return _parse_number_env(name, default, int, min_value, max_value)


def parse_float_env(
    name: str,
    default: float,
    *,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
) -> float:
    """Parse a float environment variable with optional bounds."""
    return _parse_number_env(name, default, float, min_value, max_value)


def env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUE_VALUES
