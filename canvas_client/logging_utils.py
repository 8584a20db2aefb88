from __future__ import annotations

import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from canvas_client.debug_config import parse_flag

CLIENT_LOGGER_NAME = "SharedCanvas.Client"
LOG_DIR_ENV_VAR = "SHARED_CANVAS_LOG_DIR"
PROPAGATE_ENV_VAR = "SHARED_CANVAS_PROPAGATE_LOGS"
LOG_FILE_NAME = "shared-canvas-client.log"
_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class ReleaseLogLevelFilter(logging.Filter):
    """Promote debug logs to INFO in release builds so diagnostics stay visible."""

    def __init__(self, release_mode: bool) -> None:
        super().__init__()
        self._release_mode = release_mode

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - logging shim
        if self._release_mode and record.levelno == logging.DEBUG:
            record.levelno = logging.INFO
            record.levelname = "INFO"
        return True


def resolve_logs_dir(override: Optional[str] = None, log_dir_name: str = "SharedCanvas") -> Path:
    """
    Resolve the directory to store client logs.

    Strategy:
    - Use the explicit override, then SHARED_CANVAS_LOG_DIR if set.
    - Fall back to XDG state/cache locations, then `cwd/logs/<log_dir_name>`.
    - Final fallback: tempdir/<log_dir_name>.
    """
    candidates = []
    for raw in (override, os.environ.get(LOG_DIR_ENV_VAR)):
        if raw:
            candidates.append(Path(raw).expanduser())

    state_home = Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))
    cache_home = Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))
    candidates.append(state_home / log_dir_name)
    candidates.append(cache_home / log_dir_name)
    candidates.append(Path.cwd() / "logs" / log_dir_name)

    for target in candidates:
        try:
            target.mkdir(parents=True, exist_ok=True)
            return target
        except OSError:
            continue

    temp_fallback = Path(tempfile.gettempdir()) / log_dir_name
    temp_fallback.mkdir(parents=True, exist_ok=True)
    return temp_fallback


def build_rotating_file_handler(
    log_dir: Path,
    filename: str = LOG_FILE_NAME,
    *,
    retention: int = 5,
    max_bytes: int = 512 * 1024,
    formatter: Optional[logging.Formatter] = None,
) -> logging.Handler:
    """Construct a rotating file handler with sane defaults."""
    retention = max(1, retention)
    backup_count = max(0, retention - 1)
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / filename,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(formatter or logging.Formatter(_LOG_FORMAT))
    return handler


def resolve_log_level(debug_enabled: bool) -> int:
    return logging.DEBUG if debug_enabled else logging.INFO


def configure_client_logger(debug_enabled: bool) -> logging.Logger:
    """Set level and propagation on the root client logger."""
    logger = logging.getLogger(CLIENT_LOGGER_NAME)
    logger.setLevel(resolve_log_level(debug_enabled))
    # Opt-in propagation for environments/tests that want client logs upstream.
    logger.propagate = parse_flag(os.environ.get(PROPAGATE_ENV_VAR))
    return logger


def attach_file_logging(
    logger: logging.Logger,
    log_dir: Path,
    *,
    retention: int,
) -> logging.Handler:
    for existing in list(logger.handlers):
        if isinstance(existing, RotatingFileHandler):
            logger.removeHandler(existing)
            existing.close()
    handler = build_rotating_file_handler(log_dir, retention=retention)
    logger.addHandler(handler)
    return handler
