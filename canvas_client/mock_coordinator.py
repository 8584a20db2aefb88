#!/usr/bin/env python3
"""Serve the coordinator wire protocol locally so viewports can be exercised by hand.

This stub has no physics: it assigns window ids, outlines the bounding box of
all registered windows, and rebroadcasts balls exactly where they were created.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import websockets
from websockets.exceptions import ConnectionClosed

from canvas_client import protocol

_LOGGER = logging.getLogger("SharedCanvas.MockCoordinator")

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8080
BROADCAST_INTERVAL = 0.04

Frame = Tuple[Optional[int], str]
"""Target client key (``None`` for broadcast) and encoded envelope."""


@dataclass
class _Window:
    x: float
    y: float
    width: float
    height: float


@dataclass
class MockCoordinatorState:
    next_id: int = 0
    windows: Dict[int, _Window] = field(default_factory=dict)
    balls: List[Dict[str, Any]] = field(default_factory=list)

    def handle(self, client_key: int, message_type: str, data: Any) -> List[Frame]:
        """Apply one inbound message and return the frames it produces."""
        if not isinstance(data, Mapping):
            return []
        if message_type == protocol.NEW_WINDOW:
            window_id = self.next_id
            self.next_id += 1
            self.windows[window_id] = _window_from(data)
            reply = dict(data)
            reply["id"] = window_id
            return [(client_key, protocol.encode_envelope(protocol.NEW_WINDOW, reply))] + self._polygon_frames()
        if message_type == protocol.UPDATE_WINDOW:
            window_id = data.get("id")
            if window_id not in self.windows:
                return []
            self.windows[window_id] = _window_from(data)
            return self._polygon_frames()
        if message_type == protocol.CLOSE_WINDOW:
            self.windows.pop(data.get("id"), None)
            return self._polygon_frames()
        if message_type == protocol.NEW_BALL:
            self.balls.append(dict(data))
            return [self.balls_frame()]
        return []

    def forget(self, window_id: Optional[int]) -> List[Frame]:
        if window_id is None or self.windows.pop(window_id, None) is None:
            return []
        return self._polygon_frames()

    def polygon_data(self) -> Dict[str, Any]:
        if not self.windows:
            return {"lines": [], "points": []}
        left = min(w.x for w in self.windows.values())
        top = min(w.y for w in self.windows.values())
        right = max(w.x + w.width for w in self.windows.values())
        bottom = max(w.y + w.height for w in self.windows.values())
        corners = [(left, top), (right, top), (right, bottom), (left, bottom)]
        points = [{"x": x, "y": y} for x, y in corners]
        lines = [{"from": points[i], "to": points[(i + 1) % 4]} for i in range(4)]
        return {"lines": lines, "points": points}

    def balls_frame(self) -> Frame:
        return None, protocol.encode_envelope(protocol.BALLS, self.balls)

    def _polygon_frames(self) -> List[Frame]:
        return [(None, protocol.encode_envelope(protocol.POLYGON, self.polygon_data()))]


def _window_from(data: Mapping[str, Any]) -> _Window:
    def _value(key: str) -> float:
        try:
            return float(data.get(key, 0))
        except (TypeError, ValueError):
            return 0.0

    return _Window(x=_value("x"), y=_value("y"), width=_value("width"), height=_value("height"))


class MockCoordinatorServer:
    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
        self.host = host
        self.port = port
        self.bound_port: Optional[int] = None
        self.state = MockCoordinatorState()
        self._clients: Dict[int, Any] = {}
        self._window_ids: Dict[int, int] = {}
        self._stopping: Optional[asyncio.Event] = None

    async def serve_forever(self) -> None:
        self._stopping = asyncio.Event()
        async with websockets.serve(self._handler, self.host, self.port) as server:
            self.bound_port = next(iter(server.sockets)).getsockname()[1]
            _LOGGER.info("Mock coordinator listening on ws://%s:%d/ws", self.host, self.bound_port)
            while not self._stopping.is_set():
                try:
                    await asyncio.wait_for(self._stopping.wait(), timeout=BROADCAST_INTERVAL)
                except asyncio.TimeoutError:
                    await self._deliver([self.state.balls_frame()])

    def stop(self) -> None:
        """Ask :meth:`serve_forever` to return; call on the server's loop."""
        if self._stopping is not None:
            self._stopping.set()

    async def drop_clients(self) -> None:
        for ws in list(self._clients.values()):
            await ws.close()

    async def _handler(self, ws: Any) -> None:
        client_key = id(ws)
        self._clients[client_key] = ws
        try:
            async for raw in ws:
                try:
                    message_type, data = protocol.decode_envelope(raw)
                except protocol.EnvelopeError as exc:
                    _LOGGER.debug("Ignoring invalid frame: %s", exc)
                    continue
                frames = self.state.handle(client_key, message_type, data)
                if message_type == protocol.NEW_WINDOW and frames:
                    self._window_ids[client_key] = json.loads(frames[0][1])["data"]["id"]
                await self._deliver(frames)
        except ConnectionClosed as exc:
            _LOGGER.info("Viewport connection closed: %s", exc)
        finally:
            self._clients.pop(client_key, None)
            await self._deliver(self.state.forget(self._window_ids.pop(client_key, None)))

    async def _deliver(self, frames: List[Frame]) -> None:
        for target, frame in frames:
            recipients = list(self._clients.values()) if target is None else [self._clients.get(target)]
            for ws in recipients:
                if ws is None:
                    continue
                try:
                    await ws.send(frame)
                except ConnectionClosed:
                    continue


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a physics-free coordinator for local viewport testing.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)
    try:
        asyncio.run(MockCoordinatorServer(args.host, args.port).serve_forever())
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
