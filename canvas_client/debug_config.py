"""Development-mode switches for the canvas client."""
from __future__ import annotations

import os
from typing import Optional

DEV_MODE_ENV_VAR = "SHARED_CANVAS_DEV_MODE"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def parse_flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    token = value.strip().lower()
    if token in _TRUTHY:
        return True
    if token in _FALSY:
        return False
    return default


def is_dev_build(version: Optional[str] = None) -> bool:
    """Dev mode is on for ``-dev`` versions or when the env var is truthy."""
    env_value = os.getenv(DEV_MODE_ENV_VAR)
    if env_value is not None:
        return parse_flag(env_value)
    return bool(version) and "dev" in str(version).lower()


try:  # pragma: no cover - version metadata is optional for source checkouts
    from canvas_client.version import __version__ as CLIENT_VERSION
except ImportError:  # pragma: no cover
    CLIENT_VERSION = "unknown"

DEBUG_CONFIG_ENABLED = is_dev_build(CLIENT_VERSION)
