from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Optional

from PyQt6.QtWidgets import QApplication

from canvas_client.canvas_window import CanvasWindow
from canvas_client.client_config import ClientSettings, resolve_settings, resolve_settings_path
from canvas_client.connection import CoordinatorConnection, ReconnectBackoff
from canvas_client.debug_config import DEBUG_CONFIG_ENABLED, DEV_MODE_ENV_VAR
from canvas_client.logging_utils import attach_file_logging, configure_client_logger, resolve_logs_dir
from canvas_client.version import __version__

CLIENT_DIR = Path(__file__).resolve().parent


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Shared canvas viewport client")
    parser.add_argument("--endpoint", help="Coordinator WebSocket URL (default ws://localhost:8080/ws)")
    parser.add_argument("--settings", help="Path to canvas_settings.json")
    parser.add_argument("--log-dir", help="Directory for rotating client logs")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def build_connection(settings: ClientSettings) -> CoordinatorConnection:
    backoff = ReconnectBackoff(
        initial=settings.reconnect_initial_delay,
        maximum=settings.reconnect_max_delay,
        factor=settings.reconnect_backoff_factor,
    )
    return CoordinatorConnection(settings.endpoint, backoff=backoff)


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings_path = resolve_settings_path(args.settings, CLIENT_DIR.parent)
    settings = resolve_settings(settings_path, endpoint=args.endpoint)
    debug_enabled = bool(args.debug) or DEBUG_CONFIG_ENABLED
    logger = configure_client_logger(debug_enabled)
    log_dir = resolve_logs_dir(args.log_dir)
    attach_file_logging(logger, log_dir, retention=settings.client_log_retention)
    if not debug_enabled:
        logger.debug("Debug logging disabled. Export %s=1 or pass --debug to enable it.", DEV_MODE_ENV_VAR)

    logger.info("Starting shared canvas client %s (pid=%s)", __version__, os.getpid())
    logger.debug("Resolved settings path to %s; logs in %s", settings_path, log_dir)
    logger.debug(
        "Settings: endpoint=%s sample_hz=%.1f backoff=%.2fs..%.2fs x%.2f",
        settings.endpoint,
        settings.sample_hz,
        settings.reconnect_initial_delay,
        settings.reconnect_max_delay,
        settings.reconnect_backoff_factor,
    )

    app = QApplication(sys.argv if argv is None else [sys.argv[0], *argv])
    connection = build_connection(settings)
    window = CanvasWindow(settings, connection)
    window.state_changed.connect(lambda state: logger.debug("Viewport state: %s", state))
    window.show()
    connection.start()

    exit_code = app.exec()
    connection.stop()
    logger.info("Client exiting with code %s", exit_code)
    return int(exit_code)
