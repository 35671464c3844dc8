"""Connection options for the Knockaut client."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from .const import (
    DEFAULT_FRAME_FORMAT,
    DEFAULT_RECONNECTION,
    DEFAULT_RECONNECTION_ATTEMPTS,
    DEFAULT_RECONNECTION_DELAY,
    WFC_WS_PATH_FMT,
)

# Keys accepted from JavaScript style option objects.
_CAMEL_CASE_KEYS = {
    "baseUrl": "base_url",
    "reconnectionAttempts": "reconnection_attempts",
    "reconnectionDelay": "reconnection_delay",
    "protocol": "protocols",
}


@dataclass(slots=True)
class ApiOptions:
    """Where the backend lives and the optional default tier credentials."""

    host: str
    username: str | None = None
    password: str | None = None
    request_timeout: float | None = None


@dataclass(slots=True)
class WebSocketOptions:
    """Push channel endpoint and reconnect policy."""

    url: str = ""
    base_url: str = ""
    reconnection: bool = DEFAULT_RECONNECTION
    reconnection_attempts: int = DEFAULT_RECONNECTION_ATTEMPTS
    reconnection_delay: float = DEFAULT_RECONNECTION_DELAY
    format: str = DEFAULT_FRAME_FORMAT
    protocols: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None) -> WebSocketOptions:
        """Merge a partial option mapping over the defaults.

        ``reconnectionDelay`` given in the camelCase form is interpreted as
        milliseconds, matching the browser client option of the same name.
        """
        known = {item.name for item in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in (options or {}).items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                continue
            if key == "reconnectionDelay":
                value = float(value) / 1000
            values[name] = value
        if "protocols" in values:
            values["protocols"] = tuple(values["protocols"] or ())
        return cls(**values)

    def resolve_url(self, configurator_id: int | None) -> str:
        """Return the websocket URL, scoped to ``configurator_id`` when possible."""

        if configurator_id is not None and self.base_url:
            path = WFC_WS_PATH_FMT.format(configurator_id=configurator_id)
            return f"{self.base_url.rstrip('/')}{path}"
        return self.url


__all__ = ["ApiOptions", "WebSocketOptions"]
