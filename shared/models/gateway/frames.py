"""Gateway frame models, one per opcode."""

from __future__ import annotations

from typing import Any, ClassVar, Optional, Union

from pydantic import BaseModel

from shared.models.gateway.hello import HelloPayload
from shared.models.gateway.identify import IdentifyPayload
from shared.models.gateway.opcodes import Opcode


class GatewayFrame(BaseModel):
    """Generic ``{op, d, s, t}`` envelope.

    Also used as-is for opcodes without a dedicated model.
    """

    opcode: ClassVar[Optional[Opcode]] = None

    op: int
    d: Any = None
    s: Optional[int] = None
    t: Optional[str] = None


class DispatchFrame(GatewayFrame):
    opcode: ClassVar[Optional[Opcode]] = Opcode.DISPATCH

    t: str


class HeartbeatRequestFrame(GatewayFrame):
    opcode: ClassVar[Optional[Opcode]] = Opcode.HEARTBEAT

    d: Optional[int] = None


class ReconnectFrame(GatewayFrame):
    opcode: ClassVar[Optional[Opcode]] = Opcode.RECONNECT


class InvalidSessionFrame(GatewayFrame):
    opcode: ClassVar[Optional[Opcode]] = Opcode.INVALID_SESSION

    d: Optional[bool] = None


class HelloFrame(GatewayFrame):
    opcode: ClassVar[Optional[Opcode]] = Opcode.HELLO

    d: HelloPayload


class HeartbeatAckFrame(GatewayFrame):
    opcode: ClassVar[Optional[Opcode]] = Opcode.HEARTBEAT_ACK


class HeartbeatFrame(GatewayFrame):
    """Client heartbeat; ``d`` is the last sequence seen (or null)."""

    opcode: ClassVar[Optional[Opcode]] = Opcode.HEARTBEAT

    op: int = int(Opcode.HEARTBEAT)
    d: Optional[int] = None


class IdentifyFrame(GatewayFrame):
    opcode: ClassVar[Optional[Opcode]] = Opcode.IDENTIFY

    op: int = int(Opcode.IDENTIFY)
    d: IdentifyPayload


InboundFrame = Union[
    DispatchFrame,
    HeartbeatRequestFrame,
    ReconnectFrame,
    InvalidSessionFrame,
    HelloFrame,
    HeartbeatAckFrame,
    GatewayFrame,
]

INBOUND_FRAME_MODELS: dict[int, type[GatewayFrame]] = {
    model.opcode: model
    for model in (
        DispatchFrame,
        HeartbeatRequestFrame,
        ReconnectFrame,
        InvalidSessionFrame,
        HelloFrame,
        HeartbeatAckFrame,
    )
    if model.opcode is not None
}
