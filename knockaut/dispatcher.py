"""Relay websocket session events onto the Home Assistant dispatcher."""

from __future__ import annotations

from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.helpers.dispatcher import async_dispatcher_send

from .const import VENDOR, signal_socket_event

SOCKET_ONOPEN = "SOCKET_ONOPEN"
SOCKET_ONMESSAGE = "SOCKET_ONMESSAGE"
SOCKET_ONERROR = "SOCKET_ONERROR"
SOCKET_ONCLOSE = "SOCKET_ONCLOSE"
SOCKET_RECONNECT = "SOCKET_RECONNECT"
SOCKET_RECONNECT_ERROR = "SOCKET_RECONNECT_ERROR"


class DispatcherStoreSink:
    """Store sink that forwards each session event as a dispatcher signal.

    Signals are named ``<prefix>_<EVENT>`` (see :func:`signal_socket_event`)
    and carry a single payload argument.
    """

    def __init__(self, hass: HomeAssistant, *, prefix: str = VENDOR) -> None:
        self.hass = hass
        self._prefix = prefix
        self._dispatcher = async_dispatcher_send

    def signal(self, event: str) -> str:
        """Return the signal name used for ``event``."""

        return signal_socket_event(self._prefix, event)

    def _send(self, event: str, payload: Any = None) -> None:
        self._dispatcher(self.hass, self.signal(event), payload)

    def on_socket_open(self) -> None:
        self._send(SOCKET_ONOPEN)

    def on_socket_message(self, payload: Any) -> None:
        self._send(SOCKET_ONMESSAGE, payload)

    def on_socket_error(self, error: BaseException | None) -> None:
        self._send(SOCKET_ONERROR, error)

    def on_socket_close(self, code: int | None) -> None:
        self._send(SOCKET_ONCLOSE, code)

    def on_socket_reconnect(self, attempt: int) -> None:
        self._send(SOCKET_RECONNECT, attempt)

    def on_socket_reconnect_error(self) -> None:
        self._send(SOCKET_RECONNECT_ERROR)


__all__ = [
    "SOCKET_ONCLOSE",
    "SOCKET_ONERROR",
    "SOCKET_ONMESSAGE",
    "SOCKET_ONOPEN",
    "SOCKET_RECONNECT",
    "SOCKET_RECONNECT_ERROR",
    "DispatcherStoreSink",
]
