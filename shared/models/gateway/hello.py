from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class HelloPayload(BaseModel):
    """Payload of the HELLO frame sent by the gateway right after connect."""

    heartbeat_interval: Optional[int] = Field(
        default=None,
        ge=0,
        description="Heartbeat cadence in milliseconds; 0 or missing disables heartbeating.",
    )
