"""Helpers for building and parsing gateway frames."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from pydantic import ValidationError

from shared.models.gateway import (
    GatewayFrame,
    HeartbeatFrame,
    IdentifyFrame,
    IdentifyPayload,
    IdentifyProperties,
    InboundFrame,
    INBOUND_FRAME_MODELS,
)


class GatewayDecodeError(ValueError):
    """Raised when an inbound frame cannot be decoded into a known shape."""


def parse_frame(raw: str | bytes) -> InboundFrame:
    """Decode a raw text frame and validate it against the model for its opcode.

    Opcodes without a dedicated model come back as a plain ``GatewayFrame``.
    """

    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise GatewayDecodeError(f"Frame is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise GatewayDecodeError(f"Frame must be a JSON object, got {type(data).__name__}")
    op = data.get("op")
    if isinstance(op, bool) or not isinstance(op, int):
        raise GatewayDecodeError(f"Frame has no integer opcode: {op!r}")
    model = INBOUND_FRAME_MODELS.get(op, GatewayFrame)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise GatewayDecodeError(f"Invalid frame for opcode {op}: {exc}") from exc


def frame_dict(frame: GatewayFrame) -> Dict[str, Any]:
    """Serialise a frame; ``op`` and ``d`` are always present, ``s``/``t`` only when set."""

    data = frame.model_dump(mode="json", by_alias=True)
    return {key: value for key, value in data.items() if key in ("op", "d") or value is not None}


def encode_frame(frame: GatewayFrame) -> str:
    return json.dumps(frame_dict(frame))


def make_heartbeat_frame(sequence: Optional[int]) -> HeartbeatFrame:
    return HeartbeatFrame(d=sequence)


def make_identify_frame(
    *,
    token: str,
    os: str,
    browser: str,
    device: str,
    large_threshold: int = 250,
    compress: bool = False,
) -> IdentifyFrame:
    """Helper to construct an IDENTIFY frame."""

    payload = IdentifyPayload(
        token=token,
        properties=IdentifyProperties(os=os, browser=browser, device=device),
        large_threshold=large_threshold,
        compress=compress,
    )
    return IdentifyFrame(d=payload)
