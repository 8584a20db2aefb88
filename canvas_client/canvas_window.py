"""Top-level viewport window: one tile of the shared canvas."""
from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import QPoint, Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QCloseEvent, QColor, QMouseEvent, QPainter, QPaintEvent, QShowEvent
from PyQt6.QtWidgets import QWidget

from canvas_client import protocol
from canvas_client.client_config import ClientSettings
from canvas_client.connection import CoordinatorConnection
from canvas_client.geometry_sampler import Geometry, GeometrySampler
from canvas_client.identity import ConnectionState, Registered
from canvas_client.input_bridge import InputBridge, color_factory
from canvas_client.qt_painter import QtCanvasPainterAdapter
from canvas_client.render_loop import RenderLoop, refresh_interval_ms
from canvas_client.renderer import FrameStats, RenderStyle, render_frame
from canvas_client.session import ViewportSession
from canvas_client.world_state import WorldStateCache

_LOGGER = logging.getLogger("SharedCanvas.Client")


class CanvasWindow(QWidget):
    """Samples its own geometry, mirrors world state, and paints its slice of it."""

    state_changed = pyqtSignal(str)

    def __init__(
        self,
        settings: ClientSettings,
        connection: CoordinatorConnection,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._settings = settings
        self._connection = connection
        self._status_text = "Starting"
        self._last_frame = FrameStats()
        self._style = RenderStyle(
            background_color=settings.background_color,
            line_color=settings.line_color,
            ball_color=settings.ball_color,
            polygon_scale=settings.polygon_scale,
        )
        self._cache = WorldStateCache()
        self._sampler = GeometrySampler(
            self.read_geometry,
            self._on_geometry_changed,
            interval_hz=settings.sample_hz,
        )
        self._session = ViewportSession(
            send_fn=connection.send,
            is_open_fn=connection.is_open,
            invalidate_geometry_fn=self._sampler.invalidate,
            on_registered_fn=self._on_registered,
        )
        self._session.add_state_listener(self._on_state_transition)
        self._input = InputBridge(
            send_fn=connection.send,
            geometry_fn=lambda: self._sampler.current,
            color_fn=color_factory(settings.ball_color_mode),
            radius=settings.ball_radius,
        )

        screen = self.screen()
        refresh_hz = screen.refreshRate() if screen is not None else None
        self._render_loop = RenderLoop(self.update, interval_ms=refresh_interval_ms(refresh_hz), parent=self)
        self._sample_timer = QTimer(self)
        self._sample_timer.setInterval(self._sampler.interval_ms)
        self._sample_timer.timeout.connect(self._sampler.tick)

        connection.subscribe(protocol.NEW_WINDOW, self._session.handle_new_window)
        connection.subscribe(protocol.POLYGON, self._cache.apply_polygon)
        connection.subscribe(protocol.BALLS, self._cache.apply_balls)
        connection.connecting.connect(self._session.handle_transport_connecting)
        connection.connect_failed.connect(self._session.handle_connect_failed)
        connection.opened.connect(self._session.handle_transport_open)
        connection.closed.connect(self._session.handle_transport_closed)
        connection.status_changed.connect(self.set_status_text)

        self.setAttribute(Qt.WidgetAttribute.WA_OpaquePaintEvent, True)
        self.resize(settings.initial_width, settings.initial_height)
        self._refresh_title()

    # Accessors ------------------------------------------------------------

    @property
    def session(self) -> ViewportSession:
        return self._session

    @property
    def world(self) -> WorldStateCache:
        return self._cache

    @property
    def sampler(self) -> GeometrySampler:
        return self._sampler

    @property
    def input_bridge(self) -> InputBridge:
        return self._input

    @property
    def render_loop(self) -> RenderLoop:
        return self._render_loop

    @property
    def last_frame(self) -> FrameStats:
        return self._last_frame

    @property
    def status_text(self) -> str:
        return self._status_text

    def read_geometry(self) -> Geometry:
        origin = self.mapToGlobal(QPoint(0, 0))
        return Geometry(
            width=int(self.width()),
            height=int(self.height()),
            screen_x=int(origin.x()),
            screen_y=int(origin.y()),
        )

    def set_status_text(self, status: str) -> None:
        self._status_text = status
        self._refresh_title()

    # Qt events ------------------------------------------------------------

    def showEvent(self, event: QShowEvent) -> None:  # noqa: N802 - Qt override
        super().showEvent(event)
        if not self._sample_timer.isActive():
            self._sample_timer.start()
            self._sampler.tick()

    def paintEvent(self, event: QPaintEvent) -> None:  # noqa: N802 - Qt override
        painter = QPainter(self)
        try:
            geometry = self._sampler.current
            if geometry is None:
                painter.fillRect(self.rect(), QColor(self._style.background_color))
                return
            polygon, balls = self._cache.snapshot()
            adapter = QtCanvasPainterAdapter(painter, fallback_color=self._style.ball_color)
            self._last_frame = render_frame(adapter, geometry, polygon, balls, style=self._style)
        finally:
            painter.end()

    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802 - Qt override
        if event.button() == Qt.MouseButton.LeftButton:
            position = event.position()
            self._input.handle_click(position.x(), position.y())
            event.accept()
            return
        super().mousePressEvent(event)

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802 - Qt override
        self.shutdown()
        super().closeEvent(event)

    def shutdown(self) -> None:
        self._sample_timer.stop()
        self._render_loop.cancel()
        self._session.shutdown()

    # Internals ------------------------------------------------------------

    def _on_geometry_changed(self, geometry: Geometry) -> bool:
        return self._session.report_geometry(geometry)

    def _on_registered(self, identity: Registered) -> None:
        self._render_loop.start()
        self._refresh_title()

    def _on_state_transition(self, old_state: ConnectionState, new_state: ConnectionState) -> None:
        self.state_changed.emit(new_state.value)
        self._refresh_title()

    def _refresh_title(self) -> None:
        identity = self._session.identity
        label = f"window {identity.window_id}" if isinstance(identity, Registered) else "unregistered"
        self.setWindowTitle(f"Shared Canvas - {label} [{self._session.state.value}] {self._status_text}")
