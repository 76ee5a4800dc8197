from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class IdentifyProperties(BaseModel):
    """Client description attached to IDENTIFY."""

    model_config = ConfigDict(populate_by_name=True)

    os: str = Field(alias="$os")
    browser: str = Field(alias="$browser")
    device: str = Field(alias="$device")


class IdentifyPayload(BaseModel):
    """Payload of the IDENTIFY frame sent in response to HELLO."""

    token: str
    properties: IdentifyProperties
    large_threshold: int = Field(default=250, ge=50, le=250)
    compress: bool = False
