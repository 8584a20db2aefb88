"""Frame composition for one viewport's slice of the shared canvas.

The polygon and the balls follow two different conventions: the polygon is a
fixed miniature (scaled, anchored at the viewport's own top-left) while balls
are world-aligned (full scale, shifted by the viewport's screen origin) so a
ball crossing between adjacent windows stays continuous.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from canvas_client.geometry_sampler import Geometry
from canvas_client.world_model import Ball, WorldPolygon

DEFAULT_POLYGON_SCALE = 0.1


class CanvasPainterAdapter:
    def resize(self, width: int, height: int) -> None: ...
    def clear(self, color: str) -> None: ...
    def draw_line(self, x1: float, y1: float, x2: float, y2: float, color: str) -> None: ...
    def draw_filled_circle(self, x: float, y: float, radius: float, color: str) -> None: ...


@dataclass(frozen=True)
class RenderStyle:
    background_color: str = "black"
    line_color: str = "white"
    ball_color: str = "white"
    polygon_scale: float = DEFAULT_POLYGON_SCALE


@dataclass
class FrameStats:
    lines_drawn: int = 0
    balls_drawn: int = 0
    balls_culled: int = 0


def ball_visible(ball: Ball, geometry: Geometry) -> bool:
    """True when any part of the ball's bounding box lies inside the viewport."""
    local_x = ball.position.x - geometry.screen_x
    local_y = ball.position.y - geometry.screen_y
    radius = abs(ball.radius)
    return (
        local_x + radius > 0
        and local_y + radius > 0
        and local_x - radius < geometry.width
        and local_y - radius < geometry.height
    )


def render_frame(
    adapter: CanvasPainterAdapter,
    geometry: Optional[Geometry],
    polygon: WorldPolygon,
    balls: Iterable[Ball],
    *,
    style: RenderStyle = RenderStyle(),
) -> FrameStats:
    stats = FrameStats()
    if geometry is None:
        return stats
    adapter.resize(geometry.width, geometry.height)
    adapter.clear(style.background_color)

    scale = style.polygon_scale
    for line in polygon.lines:
        adapter.draw_line(
            line.start.x * scale,
            line.start.y * scale,
            line.end.x * scale,
            line.end.y * scale,
            style.line_color,
        )
        stats.lines_drawn += 1

    for ball in balls:
        if not ball_visible(ball, geometry):
            stats.balls_culled += 1
            continue
        adapter.draw_filled_circle(
            ball.position.x - geometry.screen_x,
            ball.position.y - geometry.screen_y,
            ball.radius,
            ball.color or style.ball_color,
        )
        stats.balls_drawn += 1
    return stats
