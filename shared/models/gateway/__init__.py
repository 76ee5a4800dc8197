from .frames import (
    DispatchFrame,
    GatewayFrame,
    HeartbeatAckFrame,
    HeartbeatFrame,
    HeartbeatRequestFrame,
    HelloFrame,
    IdentifyFrame,
    InboundFrame,
    INBOUND_FRAME_MODELS,
    InvalidSessionFrame,
    ReconnectFrame,
)
from .hello import HelloPayload
from .identify import IdentifyPayload, IdentifyProperties
from .opcodes import Opcode, READY_EVENT

__all__ = [
    "DispatchFrame",
    "GatewayFrame",
    "HeartbeatAckFrame",
    "HeartbeatFrame",
    "HeartbeatRequestFrame",
    "HelloFrame",
    "HelloPayload",
    "IdentifyFrame",
    "IdentifyPayload",
    "IdentifyProperties",
    "InboundFrame",
    "INBOUND_FRAME_MODELS",
    "InvalidSessionFrame",
    "Opcode",
    "READY_EVENT",
    "ReconnectFrame",
]
