"""Async client for the Knockaut home automation backend."""

from __future__ import annotations

from .api import KnockautError, RPCClient, RPCError, TransportFailure
from .auth import AuthorizationStore, AuthorizationTier
from .backend.ws_client import (
    ListenerRegistrationConflict,
    ReconnectExhausted,
    SessionNotConnected,
    SessionState,
    StoreSink,
    WebSocketListener,
    WebSocketSession,
)
from .client import KnockautClient
from .codecs.models import Snapshot, SnapshotObject, VariableProfile, WebSocketMessage
from .const import ObjectType, VariableType, WebSocketMessageType
from .endpoints import classify, resolve_route
from .icons import IconResolver
from .options import ApiOptions, WebSocketOptions

__all__ = [
    "ApiOptions",
    "AuthorizationStore",
    "AuthorizationTier",
    "IconResolver",
    "KnockautClient",
    "KnockautError",
    "ListenerRegistrationConflict",
    "ObjectType",
    "RPCClient",
    "RPCError",
    "ReconnectExhausted",
    "SessionNotConnected",
    "SessionState",
    "Snapshot",
    "SnapshotObject",
    "StoreSink",
    "TransportFailure",
    "VariableProfile",
    "VariableType",
    "WebSocketListener",
    "WebSocketMessage",
    "WebSocketMessageType",
    "WebSocketOptions",
    "WebSocketSession",
    "classify",
    "resolve_route",
]
