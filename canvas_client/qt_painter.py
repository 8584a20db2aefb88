"""QPainter-backed implementation of :class:`CanvasPainterAdapter`."""
from __future__ import annotations

from PyQt6.QtCore import QPointF, QRect, Qt
from PyQt6.QtGui import QBrush, QColor, QPainter, QPen

from canvas_client.renderer import CanvasPainterAdapter


def _resolve_color(color: str, fallback: str) -> QColor:
    q_color = QColor(color)
    if not q_color.isValid():
        q_color = QColor(fallback)
    return q_color


class QtCanvasPainterAdapter(CanvasPainterAdapter):
    def __init__(self, painter: QPainter, *, fallback_color: str = "white") -> None:
        self._painter = painter
        self._fallback = fallback_color
        self._rect = QRect()

    @property
    def rect(self) -> QRect:
        return QRect(self._rect)

    def resize(self, width: int, height: int) -> None:
        self._rect = QRect(0, 0, max(0, int(width)), max(0, int(height)))
        self._painter.setClipRect(self._rect)

    def clear(self, color: str) -> None:
        self._painter.fillRect(self._rect, _resolve_color(color, "black"))

    def draw_line(self, x1: float, y1: float, x2: float, y2: float, color: str) -> None:
        pen = QPen(_resolve_color(color, self._fallback))
        pen.setWidth(1)
        self._painter.setPen(pen)
        self._painter.setBrush(Qt.BrushStyle.NoBrush)
        self._painter.drawLine(QPointF(x1, y1), QPointF(x2, y2))

    def draw_filled_circle(self, x: float, y: float, radius: float, color: str) -> None:
        q_color = _resolve_color(color, self._fallback)
        self._painter.setPen(Qt.PenStyle.NoPen)
        self._painter.setBrush(QBrush(q_color))
        self._painter.drawEllipse(QPointF(x, y), radius, radius)
