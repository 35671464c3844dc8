"""Websocket session with bounded reconnects and observer fan-out."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import Enum
import json
import logging
import sys
from typing import Any, Protocol

import aiohttp
from pydantic import ValidationError

from ..api import KnockautError
from ..codecs.models import WebSocketMessage
from ..options import WebSocketOptions
from .sanitize import redact_text

_LOGGER = logging.getLogger(__name__)

# Attempt counter value marking a caller requested close.
INTENTIONAL_CLOSE = sys.maxsize


class ListenerRegistrationConflict(KnockautError):
    """A listener or store is already attached to the session."""


class ReconnectExhausted(KnockautError):
    """Reconnect attempts ran out with nobody observing the session."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"websocket reconnect gave up after {attempts} attempts")
        self.attempts = attempts


class SessionNotConnected(KnockautError):
    """A frame was sent while no websocket is open."""


class SessionState(Enum):
    """Lifecycle states of :class:`WebSocketSession`."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED_INTENTIONAL = "closed_intentional"
    CLOSED_UNEXPECTED = "closed_unexpected"
    RECONNECT_SCHEDULED = "reconnect_scheduled"
    RECONNECT_EXHAUSTED = "reconnect_exhausted"


class WebSocketListener:
    """Base class for the single listener a session may carry.

    Override the callbacks of interest. When ``accepted_message_types`` is
    non-empty, frames are parsed and only matching ones reach
    :meth:`on_filtered_message`; otherwise raw text reaches :meth:`on_message`.
    """

    accepted_message_types: frozenset[int] = frozenset()

    def on_open(self) -> None:
        """Handle a newly opened socket."""

    def on_message(self, data: str) -> None:
        """Handle a raw text frame."""

    def on_filtered_message(self, message: WebSocketMessage) -> None:
        """Handle a parsed frame whose type is accepted."""

    def on_error(self, error: BaseException | None) -> None:
        """Handle a socket error."""

    def on_close(self, code: int | None) -> None:
        """Handle a closed socket."""

    def on_reconnect(self, attempt: int) -> None:
        """Handle a scheduled reconnect attempt."""

    def on_reconnect_error(self) -> None:
        """Handle exhaustion of the reconnect attempts."""


class StoreSink(Protocol):
    """External state container notified of every session event."""

    def on_socket_open(self) -> None:
        """Record that the socket opened."""

    def on_socket_message(self, payload: Any) -> None:
        """Record an inbound frame (parsed for the json format)."""

    def on_socket_error(self, error: BaseException | None) -> None:
        """Record a socket error."""

    def on_socket_close(self, code: int | None) -> None:
        """Record a socket close."""

    def on_socket_reconnect(self, attempt: int) -> None:
        """Record a scheduled reconnect attempt."""

    def on_socket_reconnect_error(self) -> None:
        """Record reconnect exhaustion."""


class WebSocketSession:
    """Own the push channel socket and its reconnect state machine."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        options: WebSocketOptions | None = None,
        *,
        listener: WebSocketListener | None = None,
        store: StoreSink | None = None,
    ) -> None:
        """Initialise an idle session; nothing connects until :meth:`connect`."""

        self._session = session
        self._options = options or WebSocketOptions()
        self._listener = listener
        self._store = store
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._task: asyncio.Task | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._reconnect_attempt = 0
        self._generation = 0
        self._closed_generation: int | None = None
        self._configurator_id: int | None = None
        self._state = SessionState.IDLE
        self.protocols: tuple[str, ...] = tuple(self._options.protocols)

    # ----------------- Properties -----------------

    @property
    def options(self) -> WebSocketOptions:
        """Return the session options."""

        return self._options

    @property
    def state(self) -> SessionState:
        """Return the current lifecycle state."""

        return self._state

    @property
    def reconnect_attempt(self) -> int:
        """Return the number of consecutive reconnect attempts."""

        return self._reconnect_attempt

    @property
    def configurator_id(self) -> int | None:
        """Return the configurator the channel is scoped to."""

        return self._configurator_id

    @property
    def url(self) -> str:
        """Return the URL the next connection will use."""

        return self._options.resolve_url(self._configurator_id)

    @property
    def has_observers(self) -> bool:
        """Return True when a listener or a store is attached."""

        return self._listener is not None or self._store is not None

    def is_connected(self) -> bool:
        """Return True while a socket is open."""

        return self._ws is not None and not self._ws.closed

    def set_configurator_id(self, configurator_id: int | None) -> None:
        """Scope subsequent connections to ``configurator_id``."""

        self._configurator_id = configurator_id

    # ----------------- Observers -----------------

    def set_listener(self, listener: WebSocketListener) -> None:
        """Attach the listener; a second registration is refused."""

        if self._listener is not None:
            raise ListenerRegistrationConflict("Listener already registered")
        self._listener = listener

    def remove_listener(self) -> None:
        """Detach the current listener, if any."""

        self._listener = None

    def attach_store(self, store: StoreSink) -> None:
        """Attach the state sink; a second registration is refused."""

        if self._store is not None:
            raise ListenerRegistrationConflict("Store already attached")
        self._store = store

    def detach_store(self) -> None:
        """Detach the current state sink, if any."""

        self._store = None

    def _emit(
        self,
        listener_callback: str,
        store_callback: str,
        *args: Any,
    ) -> None:
        """Invoke the named callback on the listener and the store."""

        for target, name in (
            (self._listener, listener_callback),
            (self._store, store_callback),
        ):
            if target is None:
                continue
            self._invoke(getattr(target, name, None), *args)

    @staticmethod
    def _invoke(callback: Callable[..., Any] | None, *args: Any) -> None:
        if not callable(callback):
            return
        try:
            callback(*args)
        except Exception:
            _LOGGER.exception("WS: observer callback %r failed", callback)

    # ----------------- Lifecycle -----------------

    def connect(self) -> asyncio.Task:
        """Open a socket at the resolved URL, replacing any existing one."""

        if self._task is not None and not self._task.done():
            _LOGGER.debug("WS: replacing existing socket")
            self._task.cancel()
        self._cancel_reconnect()
        if self._reconnect_attempt == INTENTIONAL_CLOSE:
            self._reconnect_attempt = 0
        self._generation += 1
        self._state = SessionState.CONNECTING
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(
            self._runner(self._generation), name="knockaut-ws"
        )
        return self._task

    async def close(self) -> None:
        """Close the socket on purpose; no reconnect follows."""

        # Mark first so the close event below is seen as intentional.
        self._reconnect_attempt = INTENTIONAL_CLOSE
        self._closed_generation = self._generation
        self._cancel_reconnect()
        self._state = SessionState.CLOSED_INTENTIONAL
        task, self._task = self._task, None
        self._ws = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def reconnect(self) -> None:
        """Schedule the next connection attempt or report exhaustion."""

        if self._reconnect_attempt <= self._options.reconnection_attempts:
            self._reconnect_attempt += 1
            attempt = self._reconnect_attempt
            self._cancel_reconnect()
            loop = asyncio.get_running_loop()
            self._reconnect_handle = loop.call_later(
                self._options.reconnection_delay, self._fire_reconnect
            )
            self._state = SessionState.RECONNECT_SCHEDULED
            _LOGGER.info(
                "WS: reconnect attempt %s/%s in %.1fs",
                attempt,
                self._options.reconnection_attempts + 1,
                self._options.reconnection_delay,
            )
            self._emit("on_reconnect", "on_socket_reconnect", attempt)
            return

        self._state = SessionState.RECONNECT_EXHAUSTED
        ceiling = self._options.reconnection_attempts
        attempts = min(self._reconnect_attempt, ceiling + 1)
        _LOGGER.warning("WS: giving up after %s reconnect attempts", attempts)
        if not self.has_observers:
            raise ReconnectExhausted(attempts)
        self._emit("on_reconnect_error", "on_socket_reconnect_error")

    def _fire_reconnect(self) -> None:
        self._reconnect_handle = None
        self.connect()

    def _cancel_reconnect(self) -> None:
        handle, self._reconnect_handle = self._reconnect_handle, None
        if handle is not None:
            handle.cancel()

    async def send_obj(self, obj: Any) -> None:
        """Serialise ``obj`` as JSON and send it on the open socket."""

        ws = self._ws
        if ws is None or ws.closed:
            raise SessionNotConnected("websocket is not connected")
        await ws.send_str(json.dumps(obj))

    # ----------------- Socket loop -----------------

    async def _runner(self, generation: int) -> None:
        url = self.url
        _LOGGER.debug("WS: connecting to %s", redact_text(url))
        try:
            ws = await self._session.ws_connect(url, protocols=self.protocols)
        except asyncio.CancelledError:
            raise
        except Exception as err:
            _LOGGER.debug("WS: connect failed: %s", redact_text(str(err)))
            self._handle_error(err)
            self._handle_close(generation, None)
            return

        self._ws = ws
        self._handle_open()
        try:
            while True:
                msg = await ws.receive()
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_message(msg.data)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    self._handle_message(msg.data.decode("utf-8", "replace"))
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    self._handle_error(ws.exception())
                elif msg.type in {
                    aiohttp.WSMsgType.CLOSE,
                    aiohttp.WSMsgType.CLOSING,
                    aiohttp.WSMsgType.CLOSED,
                }:
                    break
        finally:
            if not ws.closed:
                await ws.close()
            if self._ws is ws:
                self._ws = None
            self._handle_close(generation, ws.close_code)

    def _handle_open(self) -> None:
        self._reconnect_attempt = 0
        self._state = SessionState.OPEN
        _LOGGER.info("WS: connected")
        self._emit("on_open", "on_socket_open")

    def _handle_message(self, data: str) -> None:
        payload: Any = None
        parsed = False
        listener = self._listener
        accepted = getattr(listener, "accepted_message_types", None) or frozenset()
        wants_filter = bool(accepted)
        if wants_filter or self._options.format == "json":
            try:
                payload = json.loads(data)
                parsed = True
            except ValueError:
                _LOGGER.debug("WS: ignoring non-JSON frame: %.80s", data)

        if listener is not None:
            if wants_filter:
                message = self._coerce_message(payload) if parsed else None
                if message is not None and message.message in accepted:
                    self._invoke(getattr(listener, "on_filtered_message", None), message)
            else:
                self._invoke(getattr(listener, "on_message", None), data)

        store = self._store
        if store is None:
            return
        if self._options.format != "json":
            self._invoke(getattr(store, "on_socket_message", None), data)
        elif parsed:
            self._invoke(getattr(store, "on_socket_message", None), payload)

    @staticmethod
    def _coerce_message(payload: Any) -> WebSocketMessage | None:
        if not isinstance(payload, dict):
            return None
        try:
            return WebSocketMessage.model_validate(payload)
        except ValidationError:
            _LOGGER.debug("WS: frame without a message type: %r", payload)
            return None

    def _handle_error(self, error: BaseException | None) -> None:
        _LOGGER.debug("WS: socket error: %s", error)
        self._emit("on_error", "on_socket_error", error)

    def _handle_close(self, generation: int, code: int | None) -> None:
        _LOGGER.debug("WS: socket closed (code=%s)", code)
        self._emit("on_close", "on_socket_close", code)
        if generation != self._generation:
            return
        if generation == self._closed_generation:
            self._state = SessionState.CLOSED_INTENTIONAL
            return
        self._state = SessionState.CLOSED_UNEXPECTED
        if self._options.reconnection and self.has_observers:
            self.reconnect()


__all__ = [
    "INTENTIONAL_CLOSE",
    "ListenerRegistrationConflict",
    "ReconnectExhausted",
    "SessionNotConnected",
    "SessionState",
    "StoreSink",
    "WebSocketListener",
    "WebSocketSession",
]
