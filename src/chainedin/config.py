"""Registry configuration.

Settings are a plain dict; components read keys with ``config.get(key,
default)``. Sources, lowest to highest precedence:

1. DEFAULT_CONFIG below.
2. A .env file (``CHAINEDIN_*`` keys), read with python-dotenv.
3. The process environment (same keys).
4. Explicit overrides passed by the caller.

Values from files and the environment are strings and are parsed here;
a malformed value fails at load time rather than at first use.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Optional

from dotenv import dotenv_values

ENV_PREFIX = "CHAINEDIN_"

DEFAULT_CONFIG: dict[str, Any] = {
    "enforce_owner_actions": True,
    "endorsements_required": None,
    "certification_verifies": False,
    "log_level": "INFO",
    "log_format": "console",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_LOG_FORMATS = {"console", "json"}


def _parse_bool(key: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{key} must be a boolean, got {raw!r}")


def _parse_optional_count(key: str, raw: str) -> Optional[int]:
    value = raw.strip().lower()
    if value in ("", "none"):
        return None
    try:
        count = int(value)
    except ValueError:
        raise ValueError(f"{key} must be a positive integer or 'none', got {raw!r}") from None
    if count < 1:
        raise ValueError(f"{key} must be >= 1, got {count}")
    return count


def _parse_log_level(key: str, raw: str) -> str:
    value = raw.strip().upper()
    if value not in _LOG_LEVELS:
        raise ValueError(f"{key} must be one of {sorted(_LOG_LEVELS)}, got {raw!r}")
    return value


def _parse_log_format(key: str, raw: str) -> str:
    value = raw.strip().lower()
    if value not in _LOG_FORMATS:
        raise ValueError(f"{key} must be one of {sorted(_LOG_FORMATS)}, got {raw!r}")
    return value


_PARSERS: dict[str, Callable[[str, str], Any]] = {
    "enforce_owner_actions": _parse_bool,
    "endorsements_required": _parse_optional_count,
    "certification_verifies": _parse_bool,
    "log_level": _parse_log_level,
    "log_format": _parse_log_format,
}


def env_var(key: str) -> str:
    """Environment variable name for a config key."""
    return ENV_PREFIX + key.upper()


def load_config(
    env_file: Optional[Path] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Build the registry settings dict.

    Args:
        env_file: .env file to read. Defaults to ./.env when it exists.
        overrides: Already-typed values that win over every other source.

    Returns:
        A new dict containing every key in DEFAULT_CONFIG.

    Raises:
        ValueError: A file or environment value cannot be parsed, or an
            override names an unknown key.
    """
    if env_file is None:
        candidate = Path.cwd() / ".env"
        env_file = candidate if candidate.exists() else None

    raw: dict[str, Optional[str]] = {}
    if env_file is not None:
        raw.update(dotenv_values(env_file))
    raw.update({k: v for k, v in os.environ.items() if k.startswith(ENV_PREFIX)})

    config = dict(DEFAULT_CONFIG)
    for key, parser in _PARSERS.items():
        value = raw.get(env_var(key))
        if value is not None:
            config[key] = parser(env_var(key), value)

    for key, value in (overrides or {}).items():
        if key not in DEFAULT_CONFIG:
            raise ValueError(f"Unknown config key: {key}")
        config[key] = value

    return config
