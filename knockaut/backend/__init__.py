"""Backend package exports."""
from __future__ import annotations

from typing import Any

__all__ = [
    "ListenerRegistrationConflict",
    "ReconnectExhausted",
    "SessionNotConnected",
    "SessionState",
    "StoreSink",
    "WebSocketListener",
    "WebSocketSession",
]


def __getattr__(name: str) -> Any:
    """Lazily import the websocket session to avoid circular imports."""

    if name in __all__:
        from . import ws_client

        value = getattr(ws_client, name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
