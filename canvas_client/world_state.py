"""Latest world state received from the coordinator."""
from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

from canvas_client import protocol
from canvas_client.world_model import EMPTY_POLYGON, Ball, WorldPolygon

_LOGGER = logging.getLogger("SharedCanvas.Client.World")


class WorldStateCache:
    """Two independent slots, each replaced wholesale by its inbound message.

    Only touched from the GUI thread, so readers always see a complete value.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or _LOGGER
        self._polygon: WorldPolygon = EMPTY_POLYGON
        self._balls: Tuple[Ball, ...] = ()
        self._revision = 0

    @property
    def polygon(self) -> WorldPolygon:
        return self._polygon

    @property
    def balls(self) -> Tuple[Ball, ...]:
        return self._balls

    @property
    def revision(self) -> int:
        return self._revision

    def snapshot(self) -> Tuple[WorldPolygon, Tuple[Ball, ...]]:
        return self._polygon, self._balls

    def apply_polygon(self, data: Any) -> bool:
        try:
            polygon = protocol.parse_polygon(data)
        except protocol.WorldPayloadError as exc:
            self._logger.debug("Dropped malformed polygon payload: %s", exc)
            return False
        self._polygon = polygon
        self._revision += 1
        return True

    def apply_balls(self, data: Any) -> bool:
        try:
            balls = protocol.parse_balls(data)
        except protocol.WorldPayloadError as exc:
            self._logger.debug("Dropped malformed balls payload: %s", exc)
            return False
        self._balls = balls
        self._revision += 1
        return True
