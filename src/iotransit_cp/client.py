"""
AsyncIoTransit / IoTransit — control plane clients for applets.
"""

import asyncio
import threading
from typing import Any, Callable, Mapping, Optional, Union

from iotransit_cp.config import ClientConfig, ConfigInput
from iotransit_cp.connection import ConnectionManager, ConnectionState
from iotransit_cp.events import AnyHandler, ClientEvent, EventEmitter, Handler
from iotransit_cp.models.envelope import Envelope
from iotransit_cp.router import MessageRouter
from iotransit_cp.state import RuntimeState
from iotransit_cp.transport.base import Transport
from iotransit_cp.transport.websocket import WebSocketTransport


class AsyncIoTransit:
    """Async control plane client (primary).

    connect(), disconnect() and send() return immediately; outcomes arrive as
    events. Call them from inside the running event loop.
    """

    def __init__(
        self,
        options: Optional[ConfigInput] = None,
        *,
        transport: Optional[Transport] = None,
        **overrides: Any,
    ):
        self.config = ClientConfig.from_options(options, **overrides)
        self.events = EventEmitter()
        self.state = RuntimeState(self.config.patchable_keys)
        self.router = MessageRouter(self.config, self.state, self.events)
        self._transport = transport or WebSocketTransport(open_timeout=self.config.open_timeout_s)
        self._connection = ConnectionManager(
            self.config, self._transport, self.router, self.state, self.events,
        )

    @property
    def applet_id(self) -> str:
        return self.config.applet_id

    @property
    def connected(self) -> bool:
        return self._connection.status is ConnectionState.CONNECTED

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection.status

    @property
    def reconnect_attempts(self) -> int:
        return self._connection.reconnect_attempts

    def on(self, name: str, handler: Handler) -> Callable[[], None]:
        return self.events.on(name, handler)

    def on_any(self, handler: AnyHandler) -> Callable[[], None]:
        return self.events.on_any(handler)

    def once(self, name: str, handler: Handler) -> Callable[[], None]:
        return self.events.once(name, handler)

    def off(self, name: str, handler: Handler) -> None:
        self.events.off(name, handler)

    def connect(self) -> None:
        self._connection.connect()

    def disconnect(self) -> None:
        self._connection.disconnect()

    def send(self, envelope: Union[Envelope, Mapping[str, Any]]) -> bool:
        return self._connection.send(envelope)

    async def wait_connected(self, timeout: Optional[float] = None) -> None:
        """Wait for connectionEstablished. Raises asyncio.TimeoutError on timeout."""
        if self.connected:
            return
        established = asyncio.Event()
        remove = self.events.once(ClientEvent.CONNECTION_ESTABLISHED, lambda _value: established.set())
        try:
            await asyncio.wait_for(established.wait(), timeout=timeout)
        finally:
            remove()

    async def __aenter__(self) -> "AsyncIoTransit":
        self.connect()
        await self.wait_connected(timeout=self.config.open_timeout_s)
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.disconnect()


class IoTransit:
    """Sync wrapper around AsyncIoTransit. Runs the event loop on a daemon thread.

    Every call is marshalled onto the loop thread, and event handlers run there.
    """

    def __init__(self, options: Optional[ConfigInput] = None, **kwargs: Any):
        self._async = AsyncIoTransit(options, **kwargs)
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever,
            name=f"iotransit-{self._async.applet_id}",
            daemon=True,
        )
        self._thread.start()

    def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        if threading.current_thread() is self._thread:
            return fn(*args)

        async def _invoke() -> Any:
            return fn(*args)
        return asyncio.run_coroutine_threadsafe(_invoke(), self._loop).result()

    @property
    def config(self) -> ClientConfig:
        return self._async.config

    @property
    def connected(self) -> bool:
        return self._async.connected

    @property
    def connection_state(self) -> ConnectionState:
        return self._async.connection_state

    @property
    def state(self) -> dict[str, Any]:
        """Snapshot of the runtime state."""
        return self._call(self._async.state.snapshot)

    def on(self, name: str, handler: Handler) -> Callable[[], None]:
        remove = self._call(self._async.on, name, handler)
        return lambda: self._call(remove)

    def once(self, name: str, handler: Handler) -> Callable[[], None]:
        remove = self._call(self._async.once, name, handler)
        return lambda: self._call(remove)

    def off(self, name: str, handler: Handler) -> None:
        self._call(self._async.off, name, handler)

    def connect(self) -> None:
        self._call(self._async.connect)

    def disconnect(self) -> None:
        self._call(self._async.disconnect)

    def send(self, envelope: Union[Envelope, Mapping[str, Any]]) -> bool:
        return self._call(self._async.send, envelope)

    def wait_connected(self, timeout: Optional[float] = None) -> None:
        """Block until connected. Not callable from event handlers, which run on the loop thread."""
        if threading.current_thread() is self._thread:
            raise RuntimeError("wait_connected() would block the event loop thread; subscribe to connectionEstablished instead")
        asyncio.run_coroutine_threadsafe(self._async.wait_connected(timeout), self._loop).result()

    def close(self) -> None:
        """Disconnect and stop the loop thread."""
        if not self._thread.is_alive():
            return
        asyncio.run_coroutine_threadsafe(self._shutdown(), self._loop).result()
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()

    async def _shutdown(self) -> None:
        self._async.disconnect()
        pending = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
        if pending:
            await asyncio.wait(pending, timeout=self._async.config.open_timeout_s)

    def __enter__(self) -> "IoTransit":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
