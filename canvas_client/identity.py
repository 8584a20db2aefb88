"""Viewport identity and connection lifecycle states."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Hashable, Union


@dataclass(frozen=True, slots=True)
class Unregistered:
    """No identity has been assigned on the current connection."""


@dataclass(frozen=True, slots=True)
class Registered:
    window_id: Hashable


ViewportIdentity = Union[Unregistered, Registered]

UNREGISTERED = Unregistered()


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    REGISTERED = "registered"
    ACTIVE = "active"
