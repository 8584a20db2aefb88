from __future__ import annotations

import json

from canvas_client import protocol
from canvas_client.mock_coordinator import MockCoordinatorState
from canvas_client.world_model import Point


def _decode(frame):
    target, raw = frame
    return target, json.loads(raw)


def test_new_window_assigns_sequential_ids_and_outlines_windows() -> None:
    state = MockCoordinatorState()

    first = [_decode(frame) for frame in state.handle(10, protocol.NEW_WINDOW, {"width": 800, "height": 600, "x": 0, "y": 0})]
    second = [_decode(frame) for frame in state.handle(11, protocol.NEW_WINDOW, {"width": 800, "height": 600, "x": 800, "y": 0})]

    assert first[0] == (10, {"type": "new-window", "data": {"width": 800, "height": 600, "x": 0, "y": 0, "id": 0}})
    assert second[0][1]["data"]["id"] == 1
    target, polygon = second[1]
    assert target is None
    assert polygon["type"] == "polygon"
    assert polygon["data"]["points"] == [
        {"x": 0.0, "y": 0.0},
        {"x": 1600.0, "y": 0.0},
        {"x": 1600.0, "y": 600.0},
        {"x": 0.0, "y": 600.0},
    ]
    assert len(polygon["data"]["lines"]) == 4


def test_balls_are_relayed_unchanged() -> None:
    state = MockCoordinatorState()
    ball = protocol.new_ball_data(Point(10, 20), 10, "#ffffff")

    frames = state.handle(1, protocol.NEW_BALL, ball)

    assert [_decode(frame) for frame in frames] == [(None, {"type": "balls", "data": [ball]})]


def test_close_and_forget_remove_windows() -> None:
    state = MockCoordinatorState()
    state.handle(1, protocol.NEW_WINDOW, {"width": 10, "height": 10, "x": 0, "y": 0})
    state.handle(2, protocol.NEW_WINDOW, {"width": 10, "height": 10, "x": 10, "y": 0})

    state.handle(1, protocol.CLOSE_WINDOW, {"id": 0})
    assert list(state.windows) == [1]
    assert state.forget(1)
    assert state.polygon_data() == {"lines": [], "points": []}
    assert state.forget(None) == []


def test_unknown_or_unregistered_messages_produce_nothing() -> None:
    state = MockCoordinatorState()
    assert state.handle(1, protocol.UPDATE_WINDOW, {"id": 3, "width": 1}) == []
    assert state.handle(1, "mystery", {}) == []
    assert state.handle(1, protocol.NEW_BALL, None) == []
