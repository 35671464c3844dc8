# ruff: noqa: D100,D101,D102,D103,D105,D107,INP001
from __future__ import annotations

import asyncio
import copy
import json
import types
from collections.abc import Callable
from typing import Any

import aiohttp
import pytest

from knockaut.backend.ws_client import WebSocketListener
from knockaut.codecs.models import WebSocketMessage

WSMsgType = aiohttp.WSMsgType


class MockResponse:
    def __init__(
        self,
        status: int,
        body: Any,
        *,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status = status
        self._body = body
        self.headers = headers or {"Content-Type": "application/json"}
        self.request_info = None
        self.history = ()
        self.text_calls = 0

    async def __aenter__(self) -> MockResponse:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def text(self) -> str:
        self.text_calls += 1
        body = self._body
        if isinstance(body, str):
            return body
        return json.dumps(body)


def rpc_result(result: Any, *, status: int = 200) -> MockResponse:
    return MockResponse(status, {"jsonrpc": "2.0", "id": 1, "result": result})


def rpc_error(error: Any, *, status: int = 200) -> MockResponse:
    return MockResponse(status, {"jsonrpc": "2.0", "id": 1, "error": error})


class FakeWebSocket:
    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] | None = None
        self.sent: list[str] = []
        self.closed = False
        self.close_code: int | None = None
        self.close_calls = 0
        self._exception: BaseException | None = None

    @property
    def queue(self) -> asyncio.Queue[Any]:
        if self._queue is None:
            self._queue = asyncio.Queue()
        return self._queue

    def feed_text(self, data: str | dict[str, Any]) -> None:
        text = data if isinstance(data, str) else json.dumps(data)
        self.queue.put_nowait(types.SimpleNamespace(type=WSMsgType.TEXT, data=text))

    def feed_error(self, exc: BaseException) -> None:
        self._exception = exc
        self.queue.put_nowait(types.SimpleNamespace(type=WSMsgType.ERROR, data=exc))

    def feed_close(self, code: int = 1006) -> None:
        self.closed = True
        self.close_code = code
        self.queue.put_nowait(types.SimpleNamespace(type=WSMsgType.CLOSED, data=None))

    async def receive(self) -> Any:
        return await self.queue.get()

    async def send_str(self, data: str) -> None:
        self.sent.append(data)

    async def close(self, *, code: int = 1000, message: bytes = b"") -> bool:
        self.close_calls += 1
        self.closed = True
        if self.close_code is None:
            self.close_code = code
        return True

    def exception(self) -> BaseException | None:
        return self._exception


class FakeSession:
    """Stand-in for ``aiohttp.ClientSession`` recording posts and upgrades."""

    def __init__(self) -> None:
        self._post_queue: list[Any] = []
        self._ws_queue: list[Any] = []
        self.post_calls: list[tuple[str, dict[str, Any]]] = []
        self.ws_connect_calls: list[tuple[str, dict[str, Any]]] = []

    def queue_post(self, *responses: Any) -> None:
        self._post_queue.extend(responses)

    def queue_ws(self, *sockets: Any) -> None:
        self._ws_queue.extend(sockets)

    def post(self, url: str, **kwargs: Any) -> Any:
        self.post_calls.append((url, copy.deepcopy(kwargs)))
        if not self._post_queue:
            raise AssertionError("Unexpected post call with no queued response")
        result = self._post_queue.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def ws_connect(self, url: str, **kwargs: Any) -> Any:
        self.ws_connect_calls.append((url, dict(kwargs)))
        if not self._ws_queue:
            raise aiohttp.ClientConnectionError("no socket queued")
        result = self._ws_queue.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class RecordingListener(WebSocketListener):
    def __init__(self, accepted: frozenset[int] = frozenset()) -> None:
        self.accepted_message_types = accepted
        self.events: list[tuple[str, Any]] = []

    def on_open(self) -> None:
        self.events.append(("open", None))

    def on_message(self, data: str) -> None:
        self.events.append(("message", data))

    def on_filtered_message(self, message: WebSocketMessage) -> None:
        self.events.append(("filtered", message))

    def on_error(self, error: BaseException | None) -> None:
        self.events.append(("error", error))

    def on_close(self, code: int | None) -> None:
        self.events.append(("close", code))

    def on_reconnect(self, attempt: int) -> None:
        self.events.append(("reconnect", attempt))

    def on_reconnect_error(self) -> None:
        self.events.append(("reconnect_error", None))

    def of(self, kind: str) -> list[Any]:
        return [value for name, value in self.events if name == kind]


class RecordingStore:
    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def on_socket_open(self) -> None:
        self.events.append(("open", None))

    def on_socket_message(self, payload: Any) -> None:
        self.events.append(("message", payload))

    def on_socket_error(self, error: BaseException | None) -> None:
        self.events.append(("error", error))

    def on_socket_close(self, code: int | None) -> None:
        self.events.append(("close", code))

    def on_socket_reconnect(self, attempt: int) -> None:
        self.events.append(("reconnect", attempt))

    def on_socket_reconnect_error(self) -> None:
        self.events.append(("reconnect_error", None))

    def of(self, kind: str) -> list[Any]:
        return [value for name, value in self.events if name == kind]


async def wait_for(predicate: Callable[[], bool], *, timeout: float = 1.0) -> None:
    """Spin the loop until ``predicate`` holds or fail after ``timeout``."""

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)


async def settle(rounds: int = 20) -> None:
    """Let pending callbacks and tasks run."""

    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()
