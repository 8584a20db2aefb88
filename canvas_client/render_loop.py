"""Repaint loop bound to the lifetime of a viewport window."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from PyQt6.QtCore import QObject, QTimer

_LOGGER = logging.getLogger("SharedCanvas.Client.Render")

DEFAULT_REFRESH_HZ = 60.0


def refresh_interval_ms(refresh_hz: Optional[float]) -> int:
    """Frame interval for a display refresh rate, falling back to 60 Hz."""
    try:
        rate = float(refresh_hz) if refresh_hz is not None else DEFAULT_REFRESH_HZ
    except (TypeError, ValueError):
        rate = DEFAULT_REFRESH_HZ
    if rate <= 0:
        rate = DEFAULT_REFRESH_HZ
    return max(1, int(round(1000.0 / rate)))


class RenderLoop(QObject):
    """Requests a repaint every display frame until cancelled.

    Once cancelled the loop cannot be restarted; a new window gets a new loop.
    """

    def __init__(
        self,
        request_frame_fn: Callable[[], None],
        *,
        interval_ms: int = refresh_interval_ms(None),
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._request_frame = request_frame_fn
        self._timer = QTimer(self)
        self._timer.setInterval(max(1, int(interval_ms)))
        self._timer.timeout.connect(self._on_frame)
        self._cancelled = False
        self._frames = 0

    @property
    def is_running(self) -> bool:
        return self._timer.isActive()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def frames_requested(self) -> int:
        return self._frames

    def start(self) -> bool:
        if self._cancelled:
            _LOGGER.debug("Ignoring start request for a cancelled render loop")
            return False
        if not self._timer.isActive():
            self._timer.start()
            _LOGGER.debug("Render loop started (interval=%dms)", self._timer.interval())
        return True

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._timer.stop()
        _LOGGER.debug("Render loop cancelled after %d frames", self._frames)

    def _on_frame(self) -> None:
        if self._cancelled:
            return
        self._frames += 1
        self._request_frame()
