from __future__ import annotations

import json
from pathlib import Path

from canvas_client.client_config import (
    DEFAULT_ENDPOINT,
    ENDPOINT_ENV_VAR,
    SETTINGS_ENV_VAR,
    ClientSettings,
    load_client_settings,
    resolve_settings,
    resolve_settings_path,
)


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_missing_or_invalid_file_yields_defaults(tmp_path: Path) -> None:
    assert load_client_settings(tmp_path / "missing.json") == ClientSettings()
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    assert load_client_settings(bad) == ClientSettings()
    assert load_client_settings(_write(tmp_path / "list.json", [1, 2])) == ClientSettings()
    assert load_client_settings(None) == ClientSettings()


def test_fields_are_coerced_individually(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "settings.json",
        {
            "endpoint": "ws://example:9000/ws",
            "sample_hz": "30",
            "reconnect_initial_delay": 1,
            "reconnect_max_delay": 0.5,
            "reconnect_backoff_factor": 0.2,
            "ball_radius": "huge",
            "ball_color_mode": "HSL",
            "client_log_retention": 0,
            "polygon_scale": True,
        },
    )
    settings = load_client_settings(path)

    assert settings.endpoint == "ws://example:9000/ws"
    assert settings.sample_hz == 30.0
    assert settings.reconnect_initial_delay == 1.0
    assert settings.reconnect_max_delay == 1.0
    assert settings.reconnect_backoff_factor == 1.5
    assert settings.ball_radius == 10.0
    assert settings.ball_color_mode == "hsl"
    assert settings.client_log_retention == 1
    assert settings.polygon_scale == 0.1


def test_unknown_color_mode_falls_back(tmp_path: Path) -> None:
    settings = load_client_settings(_write(tmp_path / "s.json", {"ball_color_mode": "rainbow"}))
    assert settings.ball_color_mode == "hex"


def test_endpoint_precedence(tmp_path: Path) -> None:
    path = _write(tmp_path / "settings.json", {"endpoint": "ws://file/ws"})

    assert resolve_settings(path, environ={}).endpoint == "ws://file/ws"
    assert resolve_settings(path, environ={ENDPOINT_ENV_VAR: "ws://env/ws"}).endpoint == "ws://env/ws"
    assert (
        resolve_settings(path, endpoint="ws://cli/ws", environ={ENDPOINT_ENV_VAR: "ws://env/ws"}).endpoint
        == "ws://cli/ws"
    )
    assert resolve_settings(tmp_path / "none.json", environ={}).endpoint == DEFAULT_ENDPOINT


def test_settings_path_resolution(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv(SETTINGS_ENV_VAR, raising=False)
    assert resolve_settings_path(None, tmp_path) == (tmp_path / "canvas_settings.json").resolve()
    monkeypatch.setenv(SETTINGS_ENV_VAR, str(tmp_path / "env.json"))
    assert resolve_settings_path(None, tmp_path) == (tmp_path / "env.json").resolve()
    assert resolve_settings_path(str(tmp_path / "cli.json"), tmp_path) == (tmp_path / "cli.json").resolve()
