"""
Inbound envelope routing.

Order per envelope: tag filter, then command side effects, then emission.
Envelopes that fail the tag filter have no observable effect.
"""

import logging
from typing import Union

from pydantic import ValidationError

from iotransit_cp.config import ClientConfig
from iotransit_cp.events import ClientEvent, EventEmitter
from iotransit_cp.models.envelope import Envelope, EventPayload
from iotransit_cp.state import RuntimeState
from iotransit_cp.transport.envelope import parse_envelope

logger = logging.getLogger(__name__)

EVENT_TYPE = "evt"
WILDCARD_TAG = "all"

CMD_LOGLEVELS = "loglevels"
CMD_SETCONFIG = "setconfig"


class MessageRouter:
    def __init__(self, config: ClientConfig, state: RuntimeState, events: EventEmitter):
        self._config = config
        self._state = state
        self._events = events
        self._accept_tags = frozenset(config.accept_tags)
        self.binary_frames = 0
        self.binary_bytes = 0

    def accepts(self, tag: str) -> bool:
        return tag == WILDCARD_TAG or tag in self._accept_tags

    def handle_frame(self, frame: Union[str, bytes]) -> None:
        if isinstance(frame, (bytes, bytearray, memoryview)):
            size = len(frame)
            self.binary_frames += 1
            self.binary_bytes += size
            logger.info("Control plane client received a binary frame of %d bytes; binary frames are not supported", size)
            return
        envelope = parse_envelope(frame)
        if envelope is None:
            logger.warning("Dropping malformed control plane frame: %.200s", frame)
            return
        self.route(envelope)

    def route(self, envelope: Envelope) -> None:
        if envelope.type == EVENT_TYPE:
            self._route_event(envelope)
            return

        if not self.accepts(envelope.type):
            logger.debug("Filtered envelope for tag %r", envelope.type)
            return

        cmd = envelope.cmd
        if cmd == CMD_LOGLEVELS:
            pass
        elif cmd == CMD_SETCONFIG:
            self._state.apply_patch(envelope.payload)

        self._events.emit(ClientEvent.RAW_ENVELOPE, envelope)

    def _route_event(self, envelope: Envelope) -> None:
        # evt envelopes are filtered server-side
        if self._config.emit_raw_envelopes:
            self._events.emit(ClientEvent.RAW_ENVELOPE, envelope)
            return
        try:
            event = EventPayload.model_validate(envelope.payload)
        except ValidationError:
            logger.warning("Dropping evt envelope without a cmd: %r", envelope.payload)
            return
        self._events.emit(event.cmd, {"args": event.args, "dto": event.dto})
