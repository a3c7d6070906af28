"""
Client configuration.

The constructor accepts either a bare applet id or a mapping of options. Every
option may be given by its Python field name or by the camelCase name used by
other IoTransit clients (``appletId``, ``reconnectionTimer``, ...).
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from iotransit_cp.errors import ConstructionError

DEFAULT_AUTH_USER = "ext"
DEFAULT_AUTH_PASS = "external"
DEFAULT_CONTROL_PLANE_HOST = "127.0.0.1"
DEFAULT_CONTROL_PLANE_PORT = 10022
DEFAULT_SUBPROTOCOL = "cp.iotransit.net"
DEFAULT_ORIGIN = "control"
DEFAULT_AUTO_RECONNECT = True
DEFAULT_RECONNECT_DELAY_MS = 5000
DEFAULT_SECURE_TRANSPORT = False
DEFAULT_EMIT_RAW_ENVELOPES = False
DEFAULT_OPEN_TIMEOUT_S = 10.0

ConfigInput = Union[str, Mapping[str, Any], "ClientConfig"]


class ClientConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    applet_id: str = Field(alias="appletId", min_length=1)
    accepts: Optional[tuple[str, ...]] = None
    auth_user: str = Field(default=DEFAULT_AUTH_USER, alias="authUser")
    auth_pass: str = Field(default=DEFAULT_AUTH_PASS, alias="authPass")
    control_plane_host: str = Field(default=DEFAULT_CONTROL_PLANE_HOST, alias="controlPlaneUri", min_length=1)
    control_plane_port: int = Field(default=DEFAULT_CONTROL_PLANE_PORT, alias="controlPlanePort", ge=1, le=65535)
    subprotocol: str = Field(default=DEFAULT_SUBPROTOCOL, alias="controlPlaneSubProtocol")
    origin: str = Field(default=DEFAULT_ORIGIN, alias="controlPlaneOrigin")
    auto_reconnect: bool = Field(default=DEFAULT_AUTO_RECONNECT, alias="autoReconnect")
    reconnect_delay_ms: int = Field(default=DEFAULT_RECONNECT_DELAY_MS, alias="reconnectionTimer", ge=0)
    use_secure_transport: bool = Field(default=DEFAULT_SECURE_TRANSPORT, alias="secureWebSocket")
    emit_raw_envelopes: bool = Field(default=DEFAULT_EMIT_RAW_ENVELOPES, alias="emitEventsAsCP")
    open_timeout_s: float = Field(default=DEFAULT_OPEN_TIMEOUT_S, alias="openTimeout", gt=0)
    # None means any key except the reserved ones may be patched by setconfig
    patchable_keys: Optional[frozenset[str]] = Field(default=None, alias="patchableKeys")

    @field_validator("accepts", mode="before")
    @classmethod
    def _normalize_accepts(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return None if value is None else (value,)
        if isinstance(value, (list, tuple, set, frozenset)):
            tags: list[str] = []
            for tag in value:
                if not isinstance(tag, str) or not tag:
                    raise ValueError(f"accept tags must be non-empty strings, got {tag!r}")
                if tag not in tags:
                    tags.append(tag)
            return tuple(tags) or None
        raise ValueError(f"accepts must be a string or a list of strings, got {type(value).__name__}")

    @property
    def accept_tags(self) -> tuple[str, ...]:
        """Tags declared at authentication. Never empty: defaults to the applet id."""
        return self.accepts or (self.applet_id,)

    @property
    def url(self) -> str:
        scheme = "wss" if self.use_secure_transport else "ws"
        return f"{scheme}://{self.control_plane_host}:{self.control_plane_port}/"

    @property
    def reconnect_delay_s(self) -> float:
        return self.reconnect_delay_ms / 1000.0

    @classmethod
    def from_options(cls, options: Optional[ConfigInput], **overrides: Any) -> "ClientConfig":
        """Build a config from an applet id, a mapping, or another config.

        Raises ConstructionError synchronously when the applet id is missing or
        any option is invalid. Options set to None fall back to their defaults.
        """
        if isinstance(options, ClientConfig):
            if not overrides:
                return options
            data: dict[str, Any] = options.model_dump(exclude_none=True)
        elif options is None:
            data = {}
        elif isinstance(options, str):
            data = {"applet_id": options}
        elif isinstance(options, Mapping):
            data = {k: v for k, v in options.items() if v is not None}
        else:
            raise ConstructionError(
                f"options must be an applet id or a mapping, got {type(options).__name__}"
            )
        data.update({k: v for k, v in overrides.items() if v is not None})
        if "applet_id" not in data and "appletId" not in data:
            raise ConstructionError("mandatory appletId not provided in config")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConstructionError(
                f"invalid client configuration: {e.error_count()} error(s)",
                details={"errors": e.errors(include_url=False)},
            ) from e
