"""
Transport seam between the connection manager and a streaming socket library.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol, Union

Frame = Union[str, bytes]


class TransportListener(Protocol):
    def on_open(self) -> None: ...

    def on_open_failed(self, err: BaseException) -> None: ...

    def on_close(self, reason: str) -> None: ...

    def on_message(self, frame: Frame) -> None: ...

    def on_error(self, err: BaseException) -> None: ...


class Transport(ABC):
    """One bidirectional connection. Outcomes are reported to the bound listener."""

    def __init__(self) -> None:
        self._listener: TransportListener | None = None

    def bind(self, listener: TransportListener) -> None:
        self._listener = listener

    @property
    @abstractmethod
    def connected(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def connect(self, url: str, subprotocol: str, origin: str) -> None:
        """Start opening a connection. Must not block; reports on_open or on_open_failed."""
        raise NotImplementedError

    @abstractmethod
    def send(self, data: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Start closing. on_close follows once the connection is down."""
        raise NotImplementedError
