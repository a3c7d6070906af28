"""Shared fixtures: a scriptable in-memory transport and a client factory."""

import json
from typing import Any, Optional, Union

import pytest

from iotransit_cp import AsyncIoTransit
from iotransit_cp.transport.base import Transport


class FakeTransport(Transport):
    """Records calls from the connection manager; tests drive the callbacks."""

    def __init__(self) -> None:
        super().__init__()
        self.connect_calls: list[tuple[str, str, str]] = []
        self.sent: list[str] = []
        self.close_calls = 0
        self._open = False

    @property
    def connected(self) -> bool:
        return self._open

    def connect(self, url: str, subprotocol: str, origin: str) -> None:
        self.connect_calls.append((url, subprotocol, origin))

    def send(self, data: str) -> None:
        self.sent.append(data)

    def close(self) -> None:
        self.close_calls += 1

    @property
    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(s) for s in self.sent]

    # -- driven by tests --

    def open(self) -> None:
        self._open = True
        self._listener.on_open()

    def fail(self, err: Optional[BaseException] = None) -> None:
        self._listener.on_open_failed(err or OSError("connection refused"))

    def drop(self, reason: str = "connection reset") -> None:
        self._open = False
        self._listener.on_close(reason)

    def receive(self, frame: Union[str, bytes, dict]) -> None:
        if isinstance(frame, dict):
            frame = json.dumps(frame)
        self._listener.on_message(frame)

    def error(self, err: BaseException) -> None:
        self._listener.on_error(err)


class EventRecorder:
    def __init__(self, client: AsyncIoTransit) -> None:
        self.events: list[tuple[str, Any]] = []
        client.on_any(lambda name, value: self.events.append((name, value)))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def values(self, name: str) -> list[Any]:
        return [value for n, value in self.events if n == name]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_client(transport):
    def _make(options: Any = None, **overrides: Any) -> AsyncIoTransit:
        if options is None and "applet_id" not in overrides:
            options = "A"
        return AsyncIoTransit(options, transport=transport, **overrides)
    return _make


@pytest.fixture
def recorder_for():
    return EventRecorder
