from __future__ import annotations

from canvas_client.geometry_sampler import Geometry
from canvas_client.renderer import CanvasPainterAdapter, render_frame
from canvas_client.world_model import EMPTY_POLYGON, Point
from canvas_client.world_state import WorldStateCache


class _CountingAdapter(CanvasPainterAdapter):
    def __init__(self) -> None:
        self.circles = 0

    def draw_filled_circle(self, x, y, radius, color) -> None:
        self.circles += 1


def _ball(x: float, y: float) -> dict:
    return {"position": {"x": x, "y": y}, "velocity": {"x": 0, "y": 0}, "radius": 10, "color": "#ffffff"}


def test_empty_ball_list_replaces_previous_balls() -> None:
    cache = WorldStateCache()
    geometry = Geometry(800, 600, 0, 0)

    assert cache.apply_balls([_ball(100, 100), _ball(200, 200)])
    adapter = _CountingAdapter()
    render_frame(adapter, geometry, *cache.snapshot())
    assert adapter.circles == 2

    assert cache.apply_balls([])
    adapter = _CountingAdapter()
    render_frame(adapter, geometry, *cache.snapshot())
    assert adapter.circles == 0


def test_slots_are_independent() -> None:
    cache = WorldStateCache()
    cache.apply_balls([_ball(1, 2)])
    cache.apply_polygon({"lines": [], "points": [{"x": 5, "y": 6}]})

    assert cache.polygon.points == (Point(5, 6),)
    assert len(cache.balls) == 1
    assert cache.revision == 2


def test_malformed_payload_keeps_previous_value() -> None:
    cache = WorldStateCache()
    cache.apply_balls([_ball(1, 2)])

    assert cache.apply_balls({"unexpected": True}) is False
    assert cache.apply_polygon(["nope"]) is False
    assert len(cache.balls) == 1
    assert cache.polygon is EMPTY_POLYGON
    assert cache.revision == 1
