"""
iotransit-cp — IoTransit control plane client for Python.

Applets authenticate once over a single WebSocket, declare the tags they
accept, and receive matching envelopes as named events.
"""

from iotransit_cp.client import AsyncIoTransit, IoTransit
from iotransit_cp.config import ClientConfig
from iotransit_cp.connection import ConnectionManager, ConnectionState
from iotransit_cp.errors import (
    IoTransitError,
    ConstructionError,
    ConnectionFailure,
    ConnectionError,
    SendError,
)
from iotransit_cp.events import ClientEvent, EventEmitter
from iotransit_cp.models.envelope import Envelope
from iotransit_cp.transport.base import Transport

__version__ = "0.1.0"
__all__ = [
    "AsyncIoTransit",
    "IoTransit",
    "ClientConfig",
    "ConnectionManager",
    "ConnectionState",
    "IoTransitError",
    "ConstructionError",
    "ConnectionFailure",
    "ConnectionError",
    "SendError",
    "ClientEvent",
    "EventEmitter",
    "Envelope",
    "Transport",
]
