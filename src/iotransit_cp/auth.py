"""
Applet authentication — sent once on every successful transport open.

The control plane does not acknowledge authentication; whether it succeeded
shows only in whether tagged traffic arrives afterwards.
"""

from iotransit_cp.config import ClientConfig
from iotransit_cp.models.envelope import AuthPayload, Envelope

AUTH_ENVELOPE_TYPE = "authapp"


def build_auth_envelope(config: ClientConfig) -> Envelope:
    payload = AuthPayload(
        user=config.auth_user,
        password=config.auth_pass,
        accept=list(config.accept_tags),
    )
    return Envelope(type=AUTH_ENVELOPE_TYPE, payload=payload.model_dump(by_alias=True))
