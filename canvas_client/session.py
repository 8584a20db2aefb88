"""Registration state machine between a viewport and the coordinator.

The session decides which window message a geometry change turns into
(``new-window`` before an identity exists, ``update-window`` afterwards) and
resets itself whenever the transport drops, so a reconnected viewport joins
as a new window. It owns no transport; sends go through injected callables.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from canvas_client import protocol
from canvas_client.geometry_sampler import Geometry
from canvas_client.identity import UNREGISTERED, ConnectionState, Registered, ViewportIdentity

_LOGGER = logging.getLogger("SharedCanvas.Client.Session")

SendFn = Callable[[str, Any], bool]
StateListener = Callable[[ConnectionState, ConnectionState], None]


class ViewportSession:
    def __init__(
        self,
        *,
        send_fn: SendFn,
        is_open_fn: Callable[[], bool],
        invalidate_geometry_fn: Optional[Callable[[], None]] = None,
        on_registered_fn: Optional[Callable[[Registered], None]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._send = send_fn
        self._is_open = is_open_fn
        self._invalidate_geometry = invalidate_geometry_fn
        self._on_registered = on_registered_fn
        self._logger = logger or _LOGGER
        self._identity: ViewportIdentity = UNREGISTERED
        self._state = ConnectionState.DISCONNECTED
        self._registration_sent = False
        self._latest_geometry: Optional[Geometry] = None
        self._listeners: List[StateListener] = []

    @property
    def identity(self) -> ViewportIdentity:
        return self._identity

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def latest_geometry(self) -> Optional[Geometry]:
        return self._latest_geometry

    def add_state_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    # Outbound -------------------------------------------------------------

    def report_geometry(self, geometry: Geometry) -> bool:
        """Forward a geometry change; ``False`` means the send was skipped."""
        self._latest_geometry = geometry
        if not self._is_open():
            return False
        identity = self._identity
        if isinstance(identity, Registered):
            if not self._send(protocol.UPDATE_WINDOW, protocol.update_window_data(identity.window_id, geometry)):
                return False
            if self._state is ConnectionState.REGISTERED:
                self._set_state(ConnectionState.ACTIVE)
            return True
        if self._state is ConnectionState.DISCONNECTED:
            self._set_state(ConnectionState.CONNECTING)
        if self._registration_sent:
            # The acknowledgement handler sends the latest geometry.
            return True
        if not self._send(protocol.NEW_WINDOW, protocol.new_window_data(geometry)):
            return False
        self._registration_sent = True
        self._logger.debug("Registration requested with geometry %s", geometry)
        return True

    def shutdown(self) -> bool:
        """Notify the coordinator that this viewport is closing (best-effort)."""
        identity = self._identity
        sent = False
        if isinstance(identity, Registered) and self._is_open():
            sent = self._send(protocol.CLOSE_WINDOW, protocol.close_window_data(identity.window_id))
            self._logger.debug("close-window for id=%s sent=%s", identity.window_id, sent)
        self._reset("shutdown")
        return sent

    # Inbound --------------------------------------------------------------

    def handle_transport_connecting(self) -> None:
        if self._state is ConnectionState.DISCONNECTED:
            self._set_state(ConnectionState.CONNECTING)

    def handle_transport_open(self) -> None:
        # Registration is driven by the next geometry tick, not by the open itself.
        self.handle_transport_connecting()

    def handle_connect_failed(self, reason: str = "") -> None:
        """An attempt that never opened; nothing was registered on it."""
        if self._state is ConnectionState.CONNECTING and not isinstance(self._identity, Registered):
            self._registration_sent = False
            self._set_state(ConnectionState.DISCONNECTED, reason=reason or "connect failed")

    def handle_transport_closed(self, reason: str = "") -> None:
        self._logger.debug("Transport closed (%s); resetting registration", reason or "no reason")
        self._reset(reason or "transport closed")
        if self._invalidate_geometry is not None:
            self._invalidate_geometry()

    def handle_new_window(self, data: Any) -> None:
        if isinstance(self._identity, Registered):
            self._logger.debug("Ignoring repeated new-window acknowledgement: %s", data)
            return
        window_id = protocol.parse_window_id(data)
        identity = Registered(window_id)
        self._identity = identity
        self._registration_sent = False
        self._logger.info("Registered with coordinator as window id=%s", window_id)
        self._set_state(ConnectionState.REGISTERED)
        geometry = self._latest_geometry
        if geometry is not None and self._is_open():
            if self._send(protocol.UPDATE_WINDOW, protocol.update_window_data(window_id, geometry)):
                self._set_state(ConnectionState.ACTIVE)
        if self._on_registered is not None:
            self._on_registered(identity)

    # Internals ------------------------------------------------------------

    def _reset(self, reason: str) -> None:
        self._identity = UNREGISTERED
        self._registration_sent = False
        self._set_state(ConnectionState.DISCONNECTED, reason=reason)

    def _set_state(self, new_state: ConnectionState, *, reason: str = "") -> None:
        old_state = self._state
        if new_state is old_state:
            return
        self._state = new_state
        self._logger.debug(
            "Connection state %s -> %s%s",
            old_state.value,
            new_state.value,
            f" ({reason})" if reason else "",
        )
        for listener in list(self._listeners):
            listener(old_state, new_state)
