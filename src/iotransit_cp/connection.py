"""
Control plane connection lifecycle.

    DISCONNECTED --connect()--> CONNECTING --open--> CONNECTED --close--> RECONNECTING | DISCONNECTED
    CONNECTING --open failed--> RECONNECTING | DISCONNECTED
    RECONNECTING --timer--> CONNECTING
    CONNECTED --disconnect()--> CLOSING --close--> DISCONNECTED

Every method runs on the event loop; transport callbacks and the reconnect
timer never overlap, so no locking is needed. At most one reconnect timer is
armed at a time and disconnect() always cancels it.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Mapping, Optional, Union

from iotransit_cp.auth import build_auth_envelope
from iotransit_cp.config import ClientConfig
from iotransit_cp.errors import ConnectionError, ConnectionFailure, SendError
from iotransit_cp.events import ClientEvent, EventEmitter
from iotransit_cp.models.envelope import Envelope
from iotransit_cp.router import MessageRouter
from iotransit_cp.state import RuntimeState
from iotransit_cp.transport.base import Frame, Transport
from iotransit_cp.transport.envelope import encode_envelope

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"
    RECONNECTING = "reconnecting"


class ConnectionManager:
    def __init__(
        self,
        config: ClientConfig,
        transport: Transport,
        router: MessageRouter,
        state: RuntimeState,
        events: EventEmitter,
    ):
        self._config = config
        self._transport = transport
        self._router = router
        self._state = state
        self._events = events
        self._status = ConnectionState.DISCONNECTED
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self.reconnect_attempts = 0
        transport.bind(self)

    @property
    def status(self) -> ConnectionState:
        return self._status

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    def _set_status(self, status: ConnectionState) -> None:
        if status is not self._status:
            logger.debug("Control plane connection %s -> %s", self._status.value, status.value)
            self._status = status

    # -- caller operations --

    def connect(self) -> None:
        if self._status is ConnectionState.RECONNECTING:
            self._cancel_reconnect()
        elif self._status is not ConnectionState.DISCONNECTED:
            logger.debug("connect() ignored while %s", self._status.value)
            return
        self._open()

    def disconnect(self) -> None:
        """Close the connection and stop automatic reconnection."""
        self._cancel_reconnect()
        status = self._status
        if status is ConnectionState.CONNECTED:
            logger.info("Disconnecting from control plane")
            self._set_status(ConnectionState.CLOSING)
            self._transport.close()
        elif status is ConnectionState.CONNECTING:
            self._set_status(ConnectionState.DISCONNECTED)
            self._transport.close()
        elif status is ConnectionState.RECONNECTING:
            self._set_status(ConnectionState.DISCONNECTED)

    def send(self, envelope: Union[Envelope, Mapping[str, Any]]) -> bool:
        """Best-effort send. Emits sendError instead of raising; returns whether the frame was handed to the transport."""
        if self._status is not ConnectionState.CONNECTED or not self._transport.connected:
            self._events.emit(ClientEvent.SEND_ERROR, SendError())
            return False
        try:
            data = encode_envelope(envelope)
        except (TypeError, ValueError) as e:
            self._events.emit(ClientEvent.SEND_ERROR, SendError(f"message not serializable: {e}"))
            return False
        self._transport.send(data)
        return True

    # -- transport callbacks --

    def on_open(self) -> None:
        if self._status is not ConnectionState.CONNECTING:
            # disconnect() won the race with the handshake
            self._transport.close()
            return
        self._transport.send(encode_envelope(build_auth_envelope(self._config)))
        self._state.set_connected(True)
        self._set_status(ConnectionState.CONNECTED)
        self.reconnect_attempts = 0
        logger.info("Connected to control plane at %s as %s", self._config.url, self._config.applet_id)
        self._events.emit(ClientEvent.CONNECTION_ESTABLISHED, "control plane connected")

    def on_open_failed(self, err: BaseException) -> None:
        if self._status is not ConnectionState.CONNECTING:
            return
        self._state.set_connected(False)
        self._set_status(self._next_after_loss())
        logger.warning("Control plane connection to %s failed: %s", self._config.url, err)
        self._events.emit(ClientEvent.CONNECTION_FAILED, ConnectionFailure(str(err)))
        self._maybe_arm_reconnect()

    def on_close(self, reason: str) -> None:
        status = self._status
        if status is ConnectionState.CLOSING:
            self._state.set_connected(False)
            self._set_status(ConnectionState.DISCONNECTED)
            logger.info("Control plane connection closed by client")
            self._events.emit(ClientEvent.CONNECTION_CLOSED, "control plane connection closed")
            return
        if status is not ConnectionState.CONNECTED:
            return
        self._state.set_connected(False)
        self._set_status(self._next_after_loss())
        logger.info("Control plane connection closed: %s", reason)
        self._events.emit(ClientEvent.CONNECTION_CLOSED, "control plane connection closed")
        self._maybe_arm_reconnect()

    def on_message(self, frame: Frame) -> None:
        if self._status is not ConnectionState.CONNECTED:
            return
        self._router.handle_frame(frame)

    def on_error(self, err: BaseException) -> None:
        if self._status is ConnectionState.DISCONNECTED:
            return
        logger.warning("Control plane connection error: %s", err)
        self._events.emit(ClientEvent.CONNECTION_ERROR, ConnectionError(str(err)))

    # -- reconnect timer --

    def _open(self) -> None:
        self._set_status(ConnectionState.CONNECTING)
        logger.info("Connecting to control plane at %s", self._config.url)
        try:
            self._transport.connect(self._config.url, self._config.subprotocol, self._config.origin)
        except RuntimeError as e:
            self.on_open_failed(e)

    def _next_after_loss(self) -> ConnectionState:
        return ConnectionState.RECONNECTING if self._config.auto_reconnect else ConnectionState.DISCONNECTED

    def _maybe_arm_reconnect(self) -> None:
        # handlers may have called connect() or disconnect() during emission
        if self._status is not ConnectionState.RECONNECTING:
            return
        if self._reconnect_handle is not None:
            logger.warning("Reconnect already scheduled; not arming a second timer")
            return
        delay = self._config.reconnect_delay_s
        logger.info("Reconnecting to control plane in %.1fs", delay)
        self._reconnect_handle = asyncio.get_running_loop().call_later(delay, self._reconnect)

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        if self._status is not ConnectionState.RECONNECTING:
            return
        self.reconnect_attempts += 1
        self._open()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None
