from __future__ import annotations

import types
from typing import Any, List, Tuple

import pytest

from canvas_client import protocol
from canvas_client.geometry_sampler import Geometry
from canvas_client.identity import ConnectionState, Registered, Unregistered
from canvas_client.session import ViewportSession


def _build_session(*, is_open: bool = True):
    calls = types.SimpleNamespace(
        sent=[],
        invalidated=0,
        registered=[],
        transitions=[],
        is_open=is_open,
    )

    def _send(message_type: str, data: Any) -> bool:
        calls.sent.append((message_type, data))
        return True

    session = ViewportSession(
        send_fn=_send,
        is_open_fn=lambda: calls.is_open,
        invalidate_geometry_fn=lambda: setattr(calls, "invalidated", calls.invalidated + 1),
        on_registered_fn=calls.registered.append,
    )
    session.add_state_listener(lambda old, new: calls.transitions.append((old, new)))
    return session, calls


def _types(sent: List[Tuple[str, Any]]) -> List[str]:
    return [message_type for message_type, _ in sent]


GEOMETRY = Geometry(800, 600, 100, 50)


def test_first_geometry_registers_once_and_ack_sends_update() -> None:
    session, calls = _build_session()

    assert session.report_geometry(GEOMETRY) is True
    assert session.report_geometry(Geometry(810, 600, 100, 50)) is True

    assert calls.sent == [(protocol.NEW_WINDOW, {"width": 800, "height": 600, "x": 100, "y": 50})]
    assert session.state is ConnectionState.CONNECTING

    session.handle_new_window({"id": 3, "width": 800, "height": 600, "x": 100, "y": 50})

    assert session.identity == Registered(3)
    assert calls.registered == [Registered(3)]
    assert calls.sent[-1] == (
        protocol.UPDATE_WINDOW,
        {"id": 3, "width": 810, "height": 600, "x": 100, "y": 50},
    )
    assert session.state is ConnectionState.ACTIVE


def test_updates_carry_assigned_identity() -> None:
    session, calls = _build_session()
    session.report_geometry(GEOMETRY)
    session.handle_new_window({"id": 0})

    session.report_geometry(Geometry(800, 600, 900, 50))
    session.shutdown()

    assert _types(calls.sent) == [
        protocol.NEW_WINDOW,
        protocol.UPDATE_WINDOW,
        protocol.UPDATE_WINDOW,
        protocol.CLOSE_WINDOW,
    ]
    assert all(data["id"] == 0 for message_type, data in calls.sent[1:])


def test_repeated_acknowledgement_keeps_first_identity() -> None:
    session, calls = _build_session()
    session.report_geometry(GEOMETRY)
    session.handle_new_window({"id": 1})
    session.handle_new_window({"id": 2})

    assert session.identity == Registered(1)
    assert len(calls.registered) == 1


def test_transport_close_resets_identity_and_reregisters() -> None:
    session, calls = _build_session()
    session.report_geometry(GEOMETRY)
    session.handle_new_window({"id": 5})
    calls.sent.clear()

    session.handle_transport_closed("socket dropped")

    assert isinstance(session.identity, Unregistered)
    assert session.state is ConnectionState.DISCONNECTED
    assert calls.invalidated == 1

    session.handle_transport_open()
    session.report_geometry(GEOMETRY)
    assert _types(calls.sent) == [protocol.NEW_WINDOW]


def test_report_skipped_while_transport_closed() -> None:
    session, calls = _build_session(is_open=False)

    assert session.report_geometry(GEOMETRY) is False
    assert calls.sent == []
    assert session.latest_geometry == GEOMETRY


def test_state_machine_transitions_are_observable() -> None:
    session, calls = _build_session()
    session.handle_transport_connecting()
    session.handle_transport_open()
    session.report_geometry(GEOMETRY)
    session.handle_new_window({"id": "abc"})
    session.handle_transport_closed()

    assert calls.transitions == [
        (ConnectionState.DISCONNECTED, ConnectionState.CONNECTING),
        (ConnectionState.CONNECTING, ConnectionState.REGISTERED),
        (ConnectionState.REGISTERED, ConnectionState.ACTIVE),
        (ConnectionState.ACTIVE, ConnectionState.DISCONNECTED),
    ]


def test_ack_without_geometry_waits_for_next_report_to_activate() -> None:
    session, calls = _build_session()
    session.handle_new_window({"id": 9})
    assert session.state is ConnectionState.REGISTERED
    assert calls.sent == []

    session.report_geometry(GEOMETRY)
    assert calls.sent == [(protocol.UPDATE_WINDOW, {"id": 9, "width": 800, "height": 600, "x": 100, "y": 50})]
    assert session.state is ConnectionState.ACTIVE


def test_shutdown_without_identity_sends_nothing() -> None:
    session, calls = _build_session()
    assert session.shutdown() is False
    assert calls.sent == []


def test_malformed_acknowledgement_raises_payload_error() -> None:
    session, _ = _build_session()
    with pytest.raises(protocol.WorldPayloadError):
        session.handle_new_window({"width": 10})
    assert isinstance(session.identity, Unregistered)


def test_failed_connect_attempt_returns_to_disconnected() -> None:
    session, calls = _build_session(is_open=False)
    session.handle_transport_connecting()
    session.handle_connect_failed("Connect failed: refused")

    assert session.state is ConnectionState.DISCONNECTED
    assert calls.transitions == [
        (ConnectionState.DISCONNECTED, ConnectionState.CONNECTING),
        (ConnectionState.CONNECTING, ConnectionState.DISCONNECTED),
    ]

    calls.is_open = True
    assert session.report_geometry(GEOMETRY) is True
    assert _types(calls.sent) == [protocol.NEW_WINDOW]
