"""Turns local pointer clicks into ball creation requests."""
from __future__ import annotations

import logging
import random
from typing import Any, Callable, Dict, Optional

from canvas_client import protocol
from canvas_client.geometry_sampler import Geometry
from canvas_client.world_model import Point

_LOGGER = logging.getLogger("SharedCanvas.Client.Input")

DEFAULT_BALL_RADIUS = 10
COLOR_MODES = ("hex", "hsl")


def random_hex_color(rng: Optional[random.Random] = None) -> str:
    source = rng or random
    return "#{:06x}".format(source.randrange(0x1000000))


def hsl_to_hex(hue: float, saturation: float, lightness: float) -> str:
    """Convert HSL (degrees, percent, percent) to ``#rrggbb``."""
    lightness /= 100.0
    amount = saturation * min(lightness, 1 - lightness) / 100.0

    def channel(n: int) -> str:
        k = (n + hue / 30.0) % 12
        value = lightness - amount * max(min(k - 3, 9 - k, 1), -1)
        return "{:02x}".format(int(round(255 * value)))

    return f"#{channel(0)}{channel(8)}{channel(4)}"


def random_hsl_color(rng: Optional[random.Random] = None) -> str:
    source = rng or random
    return hsl_to_hex(source.uniform(0.0, 360.0), 100.0, 50.0)


def color_factory(mode: str, rng: Optional[random.Random] = None) -> Callable[[], str]:
    if mode == "hsl":
        return lambda: random_hsl_color(rng)
    return lambda: random_hex_color(rng)


class InputBridge:
    def __init__(
        self,
        *,
        send_fn: Callable[[str, Any], bool],
        geometry_fn: Callable[[], Optional[Geometry]],
        color_fn: Callable[[], str] = random_hex_color,
        radius: float = DEFAULT_BALL_RADIUS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._send = send_fn
        self._geometry = geometry_fn
        self._color = color_fn
        self._radius = radius
        self._logger = logger or _LOGGER

    @staticmethod
    def to_world(local_x: float, local_y: float, geometry: Geometry) -> Point:
        return Point(local_x + geometry.screen_x, local_y + geometry.screen_y)

    def handle_click(self, local_x: float, local_y: float) -> Optional[Dict[str, Any]]:
        """Send a ``new-ball`` request; returns the payload, or ``None`` if not sent."""
        geometry = self._geometry()
        if geometry is None:
            self._logger.debug("Click at (%s, %s) ignored; geometry not sampled yet", local_x, local_y)
            return None
        position = self.to_world(local_x, local_y, geometry)
        data = protocol.new_ball_data(position, self._radius, self._color())
        if not self._send(protocol.NEW_BALL, data):
            self._logger.debug("new-ball request dropped; connection not open")
            return None
        self._logger.debug("Requested ball at world (%s, %s)", position.x, position.y)
        return data
