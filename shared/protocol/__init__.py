from .close_codes import CloseCode, CloseDecision, classify_close, describe_close
from .codec import (
    GatewayDecodeError,
    encode_frame,
    frame_dict,
    make_heartbeat_frame,
    make_identify_frame,
    parse_frame,
)
from shared.models.gateway.opcodes import Opcode, READY_EVENT

__all__ = [
    "CloseCode",
    "CloseDecision",
    "classify_close",
    "describe_close",
    "GatewayDecodeError",
    "encode_frame",
    "frame_dict",
    "make_heartbeat_frame",
    "make_identify_frame",
    "parse_frame",
    "Opcode",
    "READY_EVENT",
]
