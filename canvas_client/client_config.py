"""Configuration helpers for the shared canvas PyQt client."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

DEFAULT_ENDPOINT = "ws://localhost:8080/ws"
ENDPOINT_ENV_VAR = "SHARED_CANVAS_ENDPOINT"
SETTINGS_ENV_VAR = "SHARED_CANVAS_SETTINGS"
SETTINGS_FILE_NAME = "canvas_settings.json"


@dataclass(frozen=True)
class ClientSettings:
    """Values used to bootstrap a viewport."""

    endpoint: str = DEFAULT_ENDPOINT
    sample_hz: float = 24.0
    reconnect_initial_delay: float = 0.25
    reconnect_max_delay: float = 10.0
    reconnect_backoff_factor: float = 1.5
    polygon_scale: float = 0.1
    ball_radius: float = 10.0
    ball_color_mode: str = "hex"
    background_color: str = "black"
    line_color: str = "white"
    ball_color: str = "white"
    client_log_retention: int = 5
    initial_width: int = 800
    initial_height: int = 600


def _float(value: Any, fallback: float, *, minimum: Optional[float] = None) -> float:
    if value is None or isinstance(value, bool):
        return fallback
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return fallback
    if minimum is not None and numeric < minimum:
        return fallback
    return numeric


def _int(value: Any, fallback: int, *, minimum: int = 1) -> int:
    if value is None or isinstance(value, bool):
        return fallback
    try:
        numeric = int(value)
    except (TypeError, ValueError):
        return fallback
    return max(minimum, numeric)


def _str(value: Any, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return fallback


def settings_from_mapping(data: Mapping[str, Any], base: Optional[ClientSettings] = None) -> ClientSettings:
    """Coerce a JSON object into settings, keeping ``base`` values for bad fields."""
    defaults = base or ClientSettings()
    color_mode = _str(data.get("ball_color_mode"), defaults.ball_color_mode).lower()
    if color_mode not in ("hex", "hsl"):
        color_mode = defaults.ball_color_mode
    initial_delay = _float(data.get("reconnect_initial_delay"), defaults.reconnect_initial_delay, minimum=0.0)
    max_delay = _float(data.get("reconnect_max_delay"), defaults.reconnect_max_delay, minimum=0.0)
    return ClientSettings(
        endpoint=_str(data.get("endpoint"), defaults.endpoint),
        sample_hz=_float(data.get("sample_hz"), defaults.sample_hz, minimum=0.1),
        reconnect_initial_delay=initial_delay,
        reconnect_max_delay=max(initial_delay, max_delay),
        reconnect_backoff_factor=_float(data.get("reconnect_backoff_factor"), defaults.reconnect_backoff_factor, minimum=1.0),
        polygon_scale=_float(data.get("polygon_scale"), defaults.polygon_scale, minimum=0.0),
        ball_radius=_float(data.get("ball_radius"), defaults.ball_radius, minimum=0.0),
        ball_color_mode=color_mode,
        background_color=_str(data.get("background_color"), defaults.background_color),
        line_color=_str(data.get("line_color"), defaults.line_color),
        ball_color=_str(data.get("ball_color"), defaults.ball_color),
        client_log_retention=_int(data.get("client_log_retention"), defaults.client_log_retention),
        initial_width=_int(data.get("initial_width"), defaults.initial_width),
        initial_height=_int(data.get("initial_height"), defaults.initial_height),
    )


def load_client_settings(settings_path: Optional[Path]) -> ClientSettings:
    """Read settings JSON if it exists; any read or parse error yields defaults."""
    defaults = ClientSettings()
    if settings_path is None:
        return defaults
    try:
        raw = settings_path.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return defaults
    try:
        data: Dict[str, Any] = json.loads(raw)
    except json.JSONDecodeError:
        return defaults
    if not isinstance(data, dict):
        return defaults
    return settings_from_mapping(data, defaults)


def resolve_settings_path(cli_value: Optional[str], default_dir: Path) -> Path:
    if cli_value:
        return Path(cli_value).expanduser().resolve()
    env_override = os.getenv(SETTINGS_ENV_VAR)
    if env_override:
        return Path(env_override).expanduser().resolve()
    return (default_dir / SETTINGS_FILE_NAME).resolve()


def resolve_settings(
    settings_path: Optional[Path],
    *,
    endpoint: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ClientSettings:
    """Apply precedence CLI flag > environment > settings file > defaults."""
    env = os.environ if environ is None else environ
    settings = load_client_settings(settings_path)
    env_endpoint = (env.get(ENDPOINT_ENV_VAR) or "").strip()
    if env_endpoint:
        settings = replace(settings, endpoint=env_endpoint)
    if endpoint:
        settings = replace(settings, endpoint=endpoint.strip())
    return settings

