"""Environment variable loaders for configuration."""

from __future__ import annotations

import os

from .errors import ConfigurationError

_FALSY_VALUES = frozenset({"", "0", "false", "no", "off"})


def optional_int_env(name: str, default: int) -> int:
    """Return a positive integer from the environment, falling back to ``default``."""

    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(name, f"expected an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(name, f"expected a positive integer, got {value}")
    return value


def is_ci_environment() -> bool:
    """Whether the process runs under a continuous-integration runner (``CI`` set)."""

    return os.getenv("CI", "").strip().lower() not in _FALSY_VALUES
