"""Close codes sent by the gateway and the reconnect policy derived from them."""

from __future__ import annotations

import enum
from typing import Optional


class CloseCode(enum.IntEnum):
    UNKNOWN_ERROR = 4000
    UNKNOWN_OPCODE = 4001
    DECODE_ERROR = 4002
    NOT_AUTHENTICATED = 4003
    AUTHENTICATION_ERROR = 4004
    ALREADY_AUTHENTICATED = 4005
    INVALID_SEQ = 4007
    RATE_LIMITED = 4008
    SESSION_TIMED_OUT = 4009
    INVALID_SHARD = 4010
    SHARDING_REQUIRED = 4011
    INVALID_API_VERSION = 4012
    INVALID_INTENTS = 4013
    DISALLOWED_INTENTS = 4014


class CloseDecision(enum.Enum):
    """What the connection should do after the transport closed."""

    FATAL = "fatal"
    RECOVERABLE = "recoverable"


FATAL_CLOSE_CODES: frozenset[int] = frozenset({CloseCode.AUTHENTICATION_ERROR})


def classify_close(code: Optional[int]) -> CloseDecision:
    """Map a transport close code to a reconnect decision.

    Only an authentication failure is terminal. Every other code, including
    codes outside the gateway range and a missing code, is recoverable.
    """

    if code is not None and code in FATAL_CLOSE_CODES:
        return CloseDecision.FATAL
    return CloseDecision.RECOVERABLE


def describe_close(code: Optional[int]) -> str:
    if code is None:
        return "no code"
    try:
        return CloseCode(code).name
    except ValueError:
        return str(code)
