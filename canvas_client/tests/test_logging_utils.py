from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from canvas_client import logging_utils
from canvas_client.debug_config import DEV_MODE_ENV_VAR, is_dev_build, parse_flag


@pytest.fixture
def client_logger():
    logger = logging.getLogger(logging_utils.CLIENT_LOGGER_NAME)
    saved = (logger.level, logger.propagate, list(logger.handlers))
    yield logger
    for handler in list(logger.handlers):
        if handler not in saved[2]:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(saved[0])
    logger.propagate = saved[1]


def test_propagation_disabled_by_default(monkeypatch, client_logger) -> None:
    monkeypatch.delenv(logging_utils.PROPAGATE_ENV_VAR, raising=False)
    logger = logging_utils.configure_client_logger(debug_enabled=False)
    assert logger.propagate is False
    assert logger.level == logging.INFO


def test_env_enables_propagation(monkeypatch, client_logger) -> None:
    monkeypatch.setenv(logging_utils.PROPAGATE_ENV_VAR, "yes")
    logger = logging_utils.configure_client_logger(debug_enabled=True)
    assert logger.propagate is True
    assert logger.level == logging.DEBUG


def test_attach_file_logging_replaces_previous_handler(tmp_path: Path, client_logger) -> None:
    first = logging_utils.attach_file_logging(client_logger, tmp_path, retention=3)
    second = logging_utils.attach_file_logging(client_logger, tmp_path, retention=1)

    rotating = [h for h in client_logger.handlers if isinstance(h, RotatingFileHandler)]
    assert rotating == [second]
    assert first not in client_logger.handlers
    assert second.backupCount == 0
    assert Path(second.baseFilename).name == logging_utils.LOG_FILE_NAME


def test_resolve_logs_dir_prefers_override(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv(logging_utils.LOG_DIR_ENV_VAR, str(tmp_path / "env"))
    assert logging_utils.resolve_logs_dir(str(tmp_path / "cli")) == tmp_path / "cli"
    assert logging_utils.resolve_logs_dir() == tmp_path / "env"
    assert (tmp_path / "env").is_dir()


def test_dev_mode_flag(monkeypatch) -> None:
    monkeypatch.setenv(DEV_MODE_ENV_VAR, "on")
    assert is_dev_build("1.0.0") is True
    monkeypatch.setenv(DEV_MODE_ENV_VAR, "off")
    assert is_dev_build("1.0.0-dev") is False
    monkeypatch.delenv(DEV_MODE_ENV_VAR)
    assert is_dev_build("1.0.0-dev") is True
    assert is_dev_build("1.0.0") is False
    assert parse_flag("maybe", default=True) is True
