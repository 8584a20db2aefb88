"""JSON envelope codec for the coordinator WebSocket protocol.

Every frame is a JSON object ``{"type": <str>, "data": <any>}``. Outbound
builders return plain dicts for the ``data`` member; inbound parsers turn the
coordinator's ``data`` member into :mod:`canvas_client.world_model` values and
raise :class:`WorldPayloadError` when a payload cannot be interpreted.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Hashable, Mapping, Optional, Tuple, Union

from canvas_client.geometry_sampler import Geometry
from canvas_client.world_model import Ball, Line, Point, WorldPolygon

NEW_WINDOW = "new-window"
UPDATE_WINDOW = "update-window"
CLOSE_WINDOW = "close-window"
NEW_BALL = "new-ball"
POLYGON = "polygon"
BALLS = "balls"


class EnvelopeError(ValueError):
    """Raised when a frame is not a ``{type, data}`` envelope."""


class WorldPayloadError(ValueError):
    """Raised when a world-state payload has the wrong shape."""


def encode_envelope(message_type: str, data: Any) -> str:
    return json.dumps({"type": message_type, "data": data}, ensure_ascii=False)


def decode_envelope(raw: Union[str, bytes]) -> Tuple[str, Any]:
    """Return ``(type, data)`` for a raw frame or raise :class:`EnvelopeError`."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EnvelopeError(f"frame is not UTF-8: {exc}") from exc
    try:
        payload = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        # ValueError also covers oversized integer literals, not just JSONDecodeError.
        raise EnvelopeError(f"invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise EnvelopeError("envelope must be a JSON object")
    message_type = payload.get("type")
    if not isinstance(message_type, str) or not message_type:
        raise EnvelopeError("envelope is missing a 'type' string")
    return message_type, payload.get("data")


# Outbound -----------------------------------------------------------------


def _geometry_fields(geometry: Geometry) -> Dict[str, int]:
    return {
        "width": geometry.width,
        "height": geometry.height,
        "x": geometry.screen_x,
        "y": geometry.screen_y,
    }


def new_window_data(geometry: Geometry) -> Dict[str, Any]:
    return _geometry_fields(geometry)


def update_window_data(window_id: Hashable, geometry: Geometry) -> Dict[str, Any]:
    data: Dict[str, Any] = {"id": window_id}
    data.update(_geometry_fields(geometry))
    return data


def close_window_data(window_id: Hashable) -> Dict[str, Any]:
    return {"id": window_id}


def new_ball_data(position: Point, radius: float, color: str) -> Dict[str, Any]:
    return {
        "position": {"x": position.x, "y": position.y},
        "velocity": {"x": 0, "y": 0},
        "radius": radius,
        "color": color,
    }


# Inbound ------------------------------------------------------------------


def parse_window_id(data: Any) -> Hashable:
    if not isinstance(data, Mapping):
        raise WorldPayloadError("new-window data must be an object")
    window_id = data.get("id")
    if window_id is None or isinstance(window_id, bool) or not isinstance(window_id, (int, str)):
        raise WorldPayloadError(f"new-window id is not usable: {window_id!r}")
    return window_id


def _number(value: Any, label: str) -> float:
    if isinstance(value, bool):
        raise WorldPayloadError(f"{label} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise WorldPayloadError(f"{label} must be a number, got {value!r}") from exc


def parse_point(data: Any, label: str = "point") -> Point:
    if not isinstance(data, Mapping):
        raise WorldPayloadError(f"{label} must be an object")
    return Point(_number(data.get("x", 0), f"{label}.x"), _number(data.get("y", 0), f"{label}.y"))


def _sequence(data: Any, label: str) -> list:
    # The reference coordinator serialises empty slices as null.
    if data is None:
        return []
    if not isinstance(data, list):
        raise WorldPayloadError(f"{label} must be a list")
    return data


def parse_polygon(data: Any) -> WorldPolygon:
    if not isinstance(data, Mapping):
        raise WorldPayloadError("polygon data must be an object")
    lines = []
    for index, item in enumerate(_sequence(data.get("lines"), "polygon.lines")):
        if not isinstance(item, Mapping):
            raise WorldPayloadError(f"polygon.lines[{index}] must be an object")
        lines.append(
            Line(
                parse_point(item.get("from"), f"lines[{index}].from"),
                parse_point(item.get("to"), f"lines[{index}].to"),
            )
        )
    points = [
        parse_point(item, f"points[{index}]")
        for index, item in enumerate(_sequence(data.get("points"), "polygon.points"))
    ]
    return WorldPolygon(lines=tuple(lines), points=tuple(points))


def parse_ball(data: Any, label: str = "ball") -> Ball:
    if not isinstance(data, Mapping):
        raise WorldPayloadError(f"{label} must be an object")
    velocity_raw: Optional[Any] = data.get("velocity")
    color = data.get("color")
    return Ball(
        position=parse_point(data.get("position"), f"{label}.position"),
        velocity=parse_point(velocity_raw, f"{label}.velocity") if velocity_raw is not None else Point(),
        radius=_number(data.get("radius", 0), f"{label}.radius"),
        color=color if isinstance(color, str) else "",
    )


def parse_balls(data: Any) -> Tuple[Ball, ...]:
    return tuple(parse_ball(item, f"balls[{index}]") for index, item in enumerate(_sequence(data, "balls")))
