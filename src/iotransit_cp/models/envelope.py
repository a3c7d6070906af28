"""
Control plane envelope — one JSON object per text frame: {"t": <type>, "p": <payload>}.
"""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(alias="t")
    payload: dict[str, Any] = Field(default_factory=dict, alias="p")

    @property
    def cmd(self) -> Optional[str]:
        cmd = self.payload.get("cmd")
        return cmd if isinstance(cmd, str) else None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class EventPayload(BaseModel):
    """payload of an "evt" envelope"""
    cmd: str
    args: Optional[Any] = None
    dto: Optional[Any] = None


class AuthPayload(BaseModel):
    """payload of the "authapp" envelope"""
    model_config = ConfigDict(populate_by_name=True)

    user: str
    password: str = Field(alias="pass")
    accept: list[str]
