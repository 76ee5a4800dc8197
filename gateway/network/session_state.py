"""Session tracking for the gateway connection."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

LOGGER = logging.getLogger(__name__)


class ConnectionState(enum.Enum):
    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"


@dataclass
class SequenceTracker:
    """Latest sequence number observed from the gateway."""

    value: Optional[int] = None

    def observe(self, seq: Optional[int]) -> bool:
        """Record ``seq`` if it moves the tracker forward; return whether it did."""

        if seq is None:
            return False
        if self.value is not None and seq < self.value:
            LOGGER.debug("Ignoring stale sequence %s (current %s)", seq, self.value)
            return False
        self.value = seq
        return True

    def reset(self) -> None:
        self.value = None


@dataclass
class GatewaySession:
    """In-memory state of the current (or last) gateway session."""

    state: ConnectionState = ConnectionState.IDLE
    sequence: SequenceTracker = field(default_factory=SequenceTracker)
    heartbeat_interval_ms: Optional[int] = None
    heartbeat_sent_at: Optional[float] = None
    latency_ms: Optional[float] = None
    last_disconnect_at: Optional[float] = None
    closed_by_local: bool = False
    session_id: Optional[str] = None
    last_transition_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def transition(self, next_state: ConnectionState) -> None:
        """Move the session into a new state, validating allowed transitions."""

        if not self._is_valid_transition(self.state, next_state):
            raise ValueError(f"Invalid transition {self.state.value} → {next_state.value}")
        self.state = next_state
        self.last_transition_at = datetime.now(tz=timezone.utc)

    @staticmethod
    def _is_valid_transition(current: ConnectionState, nxt: ConnectionState) -> bool:
        allowed = {
            ConnectionState.IDLE: {ConnectionState.CONNECTING, ConnectionState.IDLE},
            ConnectionState.CONNECTING: {ConnectionState.CONNECTED, ConnectionState.IDLE},
            ConnectionState.CONNECTED: {ConnectionState.IDLE},
        }
        return nxt in allowed.get(current, set())

    def reset_for_connect(self) -> None:
        """Clear per-connection state once a new transport is open."""

        self.sequence.reset()
        self.heartbeat_interval_ms = None
        self.heartbeat_sent_at = None
        self.session_id = None
