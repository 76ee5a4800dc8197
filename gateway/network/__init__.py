"""Network stack (transport/session/connection) for the gateway client."""

from gateway.network.backoff import BackoffController
from gateway.network.connection import GatewayConnection
from gateway.network.errors import GatewayConnectError
from gateway.network.events import EventBus, EventKind, GatewayEvent
from gateway.network.handler import ProtocolHandler
from gateway.network.heartbeat import HeartbeatScheduler
from gateway.network.scheduler import AsyncioScheduler, Scheduler, TimerHandle
from gateway.network.session_state import ConnectionState, GatewaySession, SequenceTracker
from gateway.network.transport import BaseTransport, DummyTransport, TransportClosed, WebSocketTransport

__all__ = [
    "BackoffController",
    "GatewayConnection",
    "GatewayConnectError",
    "EventBus",
    "EventKind",
    "GatewayEvent",
    "ProtocolHandler",
    "HeartbeatScheduler",
    "AsyncioScheduler",
    "Scheduler",
    "TimerHandle",
    "ConnectionState",
    "GatewaySession",
    "SequenceTracker",
    "BaseTransport",
    "DummyTransport",
    "TransportClosed",
    "WebSocketTransport",
]
