"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import ConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return the given environment variables or raise if any are missing/blank."""

    missing: list[str] = []
    values: dict[str, str] = {}
    for name in names:
        value = os.getenv(name)
        if value is None or not value.strip():
            missing.append(name)
            continue
        values[name] = value

    if missing:
        missing_list = ", ".join(sorted(missing))
        raise MissingConfigurationError(
            f"Missing configuration for: {missing_list}", names=sorted(missing)
        )

    return values


def env_flag(name: str, *, default: bool = False) -> bool:
    """Parse a boolean flag such as ``TRANSITGRAPH_SEND_EMAILS=true``."""

    raw = os.getenv(name)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean for {name}: {raw!r}", names=(name,))


def env_number[TNumber: (int, float)](
    name: str, default: TNumber, *, convert: type[TNumber]
) -> TNumber:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = convert(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"Invalid number for {name}: {raw!r}", names=(name,)) from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}", names=(name,))
    return value
