"""
Named-event surface the host application subscribes to.

System events have fixed names (ClientEvent). Application events are named by
the ``cmd`` of the ``evt`` envelope that carried them.
"""

import asyncio
import logging
from functools import partial
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]
AnyHandler = Callable[[str, Any], Any]


class ClientEvent:
    CONNECTION_ESTABLISHED = "connectionEstablished"
    CONNECTION_FAILED = "connectionFailed"
    CONNECTION_CLOSED = "connectionClosed"
    CONNECTION_ERROR = "connectionError"
    SEND_ERROR = "sendError"
    RAW_ENVELOPE = "rawEnvelope"

    ALL = frozenset({
        CONNECTION_ESTABLISHED, CONNECTION_FAILED, CONNECTION_CLOSED,
        CONNECTION_ERROR, SEND_ERROR, RAW_ENVELOPE,
    })


class EventEmitter:
    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}
        self._any_handlers: list[AnyHandler] = []

    def on(self, name: str, handler: Handler) -> Callable[[], None]:
        """Subscribe to an event. Returns a function that removes the handler."""
        self._handlers.setdefault(name, []).append(handler)

        def remove() -> None:
            self.off(name, handler)
        return remove

    def on_any(self, handler: AnyHandler) -> Callable[[], None]:
        """Subscribe to every event; the handler receives (name, value)."""
        self._any_handlers.append(handler)

        def remove() -> None:
            try:
                self._any_handlers.remove(handler)
            except ValueError:
                pass
        return remove

    def once(self, name: str, handler: Handler) -> Callable[[], None]:
        def wrapper(value: Any) -> Any:
            remove()
            return handler(value)
        remove = self.on(name, wrapper)
        return remove

    def off(self, name: str, handler: Handler) -> None:
        handlers = self._handlers.get(name)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            pass
        if not handlers:
            del self._handlers[name]

    def listener_count(self, name: str) -> int:
        return len(self._handlers.get(name, ()))

    def emit(self, name: str, value: Any = None) -> bool:
        """Call every handler for ``name`` with ``value``, then the catch-all handlers.

        Coroutine handlers are scheduled on the running loop. A failing handler
        is logged and does not stop the others. Returns whether any handler ran.
        """
        calls: list[Callable[[], Any]] = [partial(h, value) for h in self._handlers.get(name, ())]
        calls += [partial(h, name, value) for h in self._any_handlers]
        for call in calls:
            try:
                result = call()
            except Exception:
                logger.exception("Handler for %r failed", name)
                continue
            if asyncio.iscoroutine(result):
                task = asyncio.ensure_future(result)
                task.add_done_callback(lambda t, n=name: _log_task_failure(n, t))
        return bool(calls)


def _log_task_failure(name: str, task: "asyncio.Future[Any]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Async handler for %r failed: %s", name, exc, exc_info=exc)
