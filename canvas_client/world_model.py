"""Immutable world-state values broadcast by the coordinator."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True, slots=True)
class Point:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True, slots=True)
class Line:
    """Polygon edge; serialised with ``from``/``to`` keys on the wire."""

    start: Point
    end: Point


@dataclass(frozen=True, slots=True)
class WorldPolygon:
    """Outline of the combined canvas in world coordinates."""

    lines: Tuple[Line, ...] = ()
    points: Tuple[Point, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.lines and not self.points


@dataclass(frozen=True, slots=True)
class Ball:
    position: Point
    velocity: Point = field(default_factory=Point)
    radius: float = 10.0
    color: str = ""


EMPTY_POLYGON = WorldPolygon()
