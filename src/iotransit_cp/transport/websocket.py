"""
WebSocket transport over the ``websockets`` asyncio client.

The subprotocol and origin are passed to the handshake verbatim. All callbacks
to the listener run on the event loop that called connect().
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException

from iotransit_cp.config import DEFAULT_OPEN_TIMEOUT_S
from iotransit_cp.transport.base import Transport

logger = logging.getLogger(__name__)


class WebSocketTransport(Transport):
    def __init__(self, open_timeout: float = DEFAULT_OPEN_TIMEOUT_S):
        super().__init__()
        self._open_timeout = open_timeout
        self._ws: Optional[Any] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._closing = False

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._closing

    def connect(self, url: str, subprotocol: str, origin: str) -> None:
        if self._task is not None and not self._task.done():
            if not self._closing:
                raise RuntimeError("transport already has a connection in progress")
            self._task.cancel()
        self._closing = False
        self._task = asyncio.get_running_loop().create_task(self._run(url, subprotocol, origin))

    async def _run(self, url: str, subprotocol: str, origin: str) -> None:
        listener = self._listener
        assert listener is not None, "bind() a listener before connect()"
        try:
            ws = await websockets.connect(
                url,
                subprotocols=[subprotocol],  # type: ignore[list-item]
                origin=origin,  # type: ignore[arg-type]
                open_timeout=self._open_timeout,
            )
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            self._release()
            listener.on_open_failed(e)
            return

        if self._closing:
            await ws.close()
            self._release()
            listener.on_close("closed by client")
            return

        self._ws = ws
        listener.on_open()
        reason = "control plane connection closed"
        try:
            async for frame in ws:
                listener.on_message(frame)
        except ConnectionClosedError as e:
            listener.on_error(e)
            reason = str(e)
        except ConnectionClosed as e:
            reason = str(e)
        finally:
            if self._ws is ws:
                self._ws = None
        self._release()
        listener.on_close(reason)

    def _release(self) -> None:
        # the listener may call connect() from on_open_failed/on_close
        if self._task is asyncio.current_task():
            self._task = None

    def send(self, data: str) -> None:
        ws = self._ws
        if ws is None:
            raise RuntimeError("transport not connected")

        async def _do_send() -> None:
            try:
                await ws.send(data)
            except (ConnectionClosed, OSError) as e:
                logger.error("Send failed: %s", e)
                if self._listener is not None:
                    self._listener.on_error(e)

        asyncio.get_running_loop().create_task(_do_send())

    def close(self) -> None:
        self._closing = True
        ws = self._ws
        if ws is not None:
            asyncio.get_running_loop().create_task(ws.close())
