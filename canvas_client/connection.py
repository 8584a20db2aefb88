"""WebSocket connection to the coordinator, bridged onto the Qt thread."""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException
from PyQt6.QtCore import QObject, pyqtSignal

from canvas_client import protocol
from canvas_client.debug_config import DEBUG_CONFIG_ENABLED
from canvas_client.logging_utils import ReleaseLogLevelFilter

_LOGGER_NAME = "SharedCanvas.Client.Connection"
_LOGGER = logging.getLogger(_LOGGER_NAME)
# Level is inherited from the client logger so --debug reaches connection logs.
_LOGGER.propagate = True
_LOGGER.addFilter(ReleaseLogLevelFilter(release_mode=not DEBUG_CONFIG_ENABLED))

MessageHandler = Callable[[Any], None]


class ReconnectBackoff:
    """Exponential reconnect delay with an upper bound, reset after a successful open."""

    def __init__(self, initial: float = 0.25, maximum: float = 10.0, factor: float = 1.5) -> None:
        self.initial = max(0.0, float(initial))
        self.maximum = max(self.initial, float(maximum))
        self.factor = max(1.0, float(factor))
        self._current = self.initial

    def next_delay(self) -> float:
        delay = self._current
        self._current = min(self._current * self.factor, self.maximum)
        return delay

    def reset(self) -> None:
        self._current = self.initial


class CoordinatorConnection(QObject):
    """Owns the single logical connection to the coordinator.

    The socket lives on a background asyncio loop; inbound envelopes are
    emitted as Qt signals and dispatched to subscribers on the GUI thread.
    """

    envelope_received = pyqtSignal(str, object)
    connecting = pyqtSignal()
    connect_failed = pyqtSignal(str)
    opened = pyqtSignal()
    closed = pyqtSignal(str)
    status_changed = pyqtSignal(str)

    def __init__(
        self,
        endpoint: str,
        *,
        backoff: Optional[ReconnectBackoff] = None,
        open_timeout: float = 5.0,
    ) -> None:
        super().__init__()
        self._endpoint = endpoint
        self._backoff = backoff or ReconnectBackoff()
        self._open_timeout = open_timeout
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._main_task: Optional[asyncio.Task[None]] = None
        self._stop_event = threading.Event()
        self._wake: Optional[asyncio.Event] = None
        self._open = threading.Event()
        # Mirrors opened/closed as seen by the Qt thread, so a new socket is not
        # reported open before the previous close has been handled there.
        self._open_on_gui = False
        self._outgoing: Optional[asyncio.Queue[Optional[str]]] = None
        self._subscribers: Dict[str, List[MessageHandler]] = {}
        self.opened.connect(self._mark_open)
        self.closed.connect(self._mark_closed)
        self.envelope_received.connect(self._dispatch)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def is_open(self) -> bool:
        return self._open_on_gui and self._open.is_set()

    def subscribe(self, message_type: str, handler: MessageHandler) -> None:
        self._subscribers.setdefault(message_type, []).append(handler)

    def unsubscribe(self, message_type: str, handler: MessageHandler) -> None:
        handlers = self._subscribers.get(message_type)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def send(self, message_type: str, data: Any) -> bool:
        """Queue an envelope for the socket; ``False`` when the connection is not open."""
        loop = self._loop
        queue_ref = self._outgoing
        if not self.is_open() or loop is None or queue_ref is None:
            return False
        try:
            frame = protocol.encode_envelope(message_type, data)
        except (TypeError, ValueError) as exc:
            _LOGGER.warning("Failed to serialise outgoing %s payload %r: %s", message_type, data, exc)
            return False
        try:
            loop.call_soon_threadsafe(queue_ref.put_nowait, frame)
        except RuntimeError as exc:
            _LOGGER.debug("Failed to enqueue %s; loop closing: %s", message_type, exc)
            return False
        return True

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._thread_main, name="SharedCanvas-Connection", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        loop = self._loop
        if loop is not None and loop.is_running():
            try:
                loop.call_soon_threadsafe(self._request_stop)
            except RuntimeError:
                pass
        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                _LOGGER.warning("Connection thread did not stop within %.1fs", timeout)
        self._thread = None

    # Qt thread ------------------------------------------------------------

    def _mark_open(self) -> None:
        self._open_on_gui = True

    def _mark_closed(self, reason: str = "") -> None:
        self._open_on_gui = False

    def _dispatch(self, message_type: str, data: Any) -> None:
        handlers = self._subscribers.get(message_type)
        if not handlers:
            _LOGGER.debug("Ignoring message with unhandled type %r", message_type)
            return
        for handler in list(handlers):
            try:
                handler(data)
            except protocol.WorldPayloadError as exc:
                _LOGGER.debug("Dropped malformed %s payload: %s", message_type, exc)
            except Exception:
                _LOGGER.exception("Handler for %s message failed", message_type)

    # Background thread ----------------------------------------------------

    def _thread_main(self) -> None:
        loop = asyncio.new_event_loop()
        self._loop = loop
        asyncio.set_event_loop(loop)
        try:
            self._main_task = loop.create_task(self._run())
            loop.run_until_complete(self._main_task)
        except asyncio.CancelledError:
            pass
        finally:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
            self._open.clear()
            self._outgoing = None
            self._main_task = None
            self._loop = None
            loop.close()

    def _request_stop(self) -> None:
        if self._wake is not None:
            self._wake.set()
        queue_ref = self._outgoing
        if queue_ref is not None:
            # Sender flushes what is queued (close-window) and then closes the socket.
            queue_ref.put_nowait(None)
        elif self._main_task is not None:
            self._main_task.cancel()

    async def _run(self) -> None:
        self._wake = asyncio.Event()
        while not self._stop_event.is_set():
            self.connecting.emit()
            self.status_changed.emit(f"Connecting to {self._endpoint}")
            was_open = False
            reason = "Server closed the connection"
            try:
                async with websockets.connect(self._endpoint, open_timeout=self._open_timeout) as ws:
                    was_open = True
                    self._backoff.reset()
                    await self._serve(ws)
            except asyncio.CancelledError:
                raise
            except ConnectionClosed as exc:
                reason = f"Connection closed: {exc}"
                _LOGGER.info("Coordinator connection closed: %s", exc)
            except (OSError, asyncio.TimeoutError) as exc:
                reason = f"Connect failed: {exc or exc.__class__.__name__}"
                _LOGGER.info("Coordinator unavailable at %s: %s", self._endpoint, exc or exc.__class__.__name__)
            except WebSocketException as exc:
                reason = f"Handshake failed: {exc}"
                _LOGGER.warning("WebSocket handshake with %s failed: %s", self._endpoint, exc)
            except Exception as exc:
                reason = f"Unexpected error: {exc!r}"
                _LOGGER.exception("Unexpected error on coordinator connection %s", self._endpoint)
            finally:
                self._open.clear()
                self._outgoing = None
            if self._stop_event.is_set():
                reason = "Client stopped"
            if was_open:
                _LOGGER.info("Disconnected from coordinator: %s", reason)
                self.closed.emit(reason)
            else:
                self.connect_failed.emit(reason)
            self.status_changed.emit(f"Disconnected: {reason}")
            if self._stop_event.is_set():
                break
            delay = self._backoff.next_delay()
            _LOGGER.debug("Reconnecting to %s in %.2fs", self._endpoint, delay)
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass

    async def _serve(self, ws: Any) -> None:
        outgoing: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._outgoing = outgoing
        self._open.set()
        _LOGGER.info("Connected to coordinator at %s", self._endpoint)
        self.status_changed.emit(f"Connected to {self._endpoint}")
        self.opened.emit()
        sender_task = asyncio.create_task(self._flush_outgoing(ws, outgoing))
        try:
            async for raw in ws:
                self._handle_frame(raw)
        finally:
            self._open.clear()
            self._outgoing = None
            if not sender_task.done():
                sender_task.cancel()
            await asyncio.gather(sender_task, return_exceptions=True)

    def _handle_frame(self, raw: Union[str, bytes]) -> None:
        try:
            message_type, data = protocol.decode_envelope(raw)
        except protocol.EnvelopeError as exc:
            _LOGGER.debug("Dropped invalid frame from coordinator: %s", exc)
            return
        self.envelope_received.emit(message_type, data)

    async def _flush_outgoing(self, ws: Any, queue_ref: "asyncio.Queue[Optional[str]]") -> None:
        while True:
            frame = await queue_ref.get()
            if frame is None:
                await ws.close()
                break
            try:
                await ws.send(frame)
            except (ConnectionClosed, OSError) as exc:
                _LOGGER.warning("Failed to write outgoing frame: %s", exc)
                break
