"""Poll-based tracking of the viewport's own size and screen position.

This module stays free of Qt types; the window drives :meth:`GeometrySampler.tick`
from a ``QTimer`` and injects the geometry reader.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

DEFAULT_SAMPLE_HZ = 24.0


@dataclass(frozen=True, slots=True)
class Geometry:
    """Viewport size and absolute position on the virtual desktop, in physical pixels."""

    width: int
    height: int
    screen_x: int
    screen_y: int


class GeometrySampler:
    """Detects geometry changes between ticks and reports them once."""

    def __init__(
        self,
        read_geometry_fn: Callable[[], Geometry],
        on_change_fn: Callable[[Geometry], bool],
        *,
        interval_hz: float = DEFAULT_SAMPLE_HZ,
    ) -> None:
        if interval_hz <= 0:
            raise ValueError(f"interval_hz must be positive, got {interval_hz}")
        self._read_geometry = read_geometry_fn
        self._on_change = on_change_fn
        self._interval_hz = float(interval_hz)
        self._current: Optional[Geometry] = None
        # None doubles as the "never reported" sentinel, so the first tick always reports.
        self._last_reported: Optional[Geometry] = None

    @property
    def current(self) -> Optional[Geometry]:
        """Most recently read geometry, whether or not it has been reported."""
        return self._current

    @property
    def last_reported(self) -> Optional[Geometry]:
        return self._last_reported

    @property
    def interval_ms(self) -> int:
        return max(1, int(round(1000.0 / self._interval_hz)))

    def tick(self) -> bool:
        geometry = self._read_geometry()
        self._current = geometry
        if geometry == self._last_reported:
            return False
        if not self._on_change(geometry):
            # Listener could not deliver; keep the change pending for the next tick.
            return False
        self._last_reported = geometry
        return True

    def invalidate(self) -> None:
        self._last_reported = None
