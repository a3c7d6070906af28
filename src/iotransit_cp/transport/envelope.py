"""
Envelope encoding and parsing for text frames.
"""

import json
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from iotransit_cp.models.envelope import Envelope


def build_envelope(type: str, payload: Optional[Mapping[str, Any]] = None) -> Envelope:
    return Envelope(type=type, payload=dict(payload or {}))


def encode_envelope(envelope: Union[Envelope, Mapping[str, Any]]) -> str:
    """Serialize an envelope (model or plain {"t", "p"} mapping) to a compact JSON text frame."""
    if isinstance(envelope, Envelope):
        data: Any = envelope.to_wire()
    else:
        data = dict(envelope)
    return json.dumps(data, separators=(",", ":"))


def parse_envelope(raw: Union[str, Mapping[str, Any]]) -> Optional[Envelope]:
    """Parse an inbound text frame. Returns None if invalid."""
    try:
        data = json.loads(raw) if isinstance(raw, str) else raw
        return Envelope.model_validate(data)
    except (ValueError, ValidationError):
        return None
