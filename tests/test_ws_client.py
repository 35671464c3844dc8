"""Unit tests for the websocket session state machine."""

from __future__ import annotations

import asyncio
import json
import logging

import aiohttp
import pytest

from conftest import (
    FakeSession,
    FakeWebSocket,
    RecordingListener,
    RecordingStore,
    settle,
    wait_for,
)
from knockaut.backend import ws_client as module
from knockaut.backend.ws_client import (
    INTENTIONAL_CLOSE,
    ListenerRegistrationConflict,
    ReconnectExhausted,
    SessionNotConnected,
    SessionState,
    WebSocketSession,
)
from knockaut.codecs.models import WebSocketMessage
from knockaut.const import WebSocketMessageType
from knockaut.options import WebSocketOptions


def _options(**overrides) -> WebSocketOptions:
    values = {
        "url": "wss://knockaut.local/wfc/1/api/",
        "reconnection_delay": 0.0,
        "reconnection_attempts": 3,
    }
    values.update(overrides)
    return WebSocketOptions(**values)


def test_open_resets_attempts_and_notifies_observers(fake_session: FakeSession) -> None:
    async def _run() -> None:
        ws = FakeWebSocket()
        fake_session.queue_ws(ws)
        listener = RecordingListener()
        store = RecordingStore()
        session = WebSocketSession(
            fake_session, _options(), listener=listener, store=store
        )
        session._reconnect_attempt = 2

        session.connect()
        await wait_for(lambda: session.state is SessionState.OPEN)

        assert session.reconnect_attempt == 0
        assert session.is_connected()
        assert listener.of("open") == [None]
        assert store.of("open") == [None]
        url, kwargs = fake_session.ws_connect_calls[0]
        assert url == "wss://knockaut.local/wfc/1/api/"
        assert kwargs["protocols"] == ()

        await session.close()

    asyncio.run(_run())


def test_connect_uses_configurator_url_and_protocols(
    fake_session: FakeSession,
) -> None:
    async def _run() -> None:
        fake_session.queue_ws(FakeWebSocket())
        session = WebSocketSession(
            fake_session,
            _options(url="", base_url="wss://knockaut.local/"),
            listener=RecordingListener(),
        )
        session.set_configurator_id(12345)
        session.protocols = ("dXNlcjpwdw%3D%3D",)

        session.connect()
        await wait_for(lambda: session.state is SessionState.OPEN)

        url, kwargs = fake_session.ws_connect_calls[0]
        assert url == "wss://knockaut.local/wfc/12345/api/"
        assert kwargs["protocols"] == ("dXNlcjpwdw%3D%3D",)

        await session.close()

    asyncio.run(_run())


def test_listener_filter_and_store_are_independent(fake_session: FakeSession) -> None:
    async def _run() -> None:
        ws = FakeWebSocket()
        fake_session.queue_ws(ws)
        listener = RecordingListener(
            accepted=frozenset({WebSocketMessageType.VM_UPDATE})
        )
        store = RecordingStore()
        session = WebSocketSession(
            fake_session, _options(), listener=listener, store=store
        )
        session.connect()
        await wait_for(lambda: session.state is SessionState.OPEN)

        update = {"Message": 10603, "Data": [42, True], "SenderID": 4711, "TimeStamp": 1}
        rename = {"Message": 10404, "Data": ["Kitchen"], "SenderID": 4711, "TimeStamp": 2}
        ws.feed_text(update)
        ws.feed_text(rename)
        ws.feed_text("not json")
        await wait_for(lambda: len(store.of("message")) == 2)
        await settle()

        filtered = listener.of("filtered")
        assert len(filtered) == 1
        assert isinstance(filtered[0], WebSocketMessage)
        assert filtered[0].message == WebSocketMessageType.VM_UPDATE
        assert filtered[0].data == [42, True]
        assert filtered[0].sender_id == 4711
        assert listener.of("message") == []
        assert store.of("message") == [update, rename]

        await session.close()

    asyncio.run(_run())


def test_unfiltered_listener_receives_raw_frames(fake_session: FakeSession) -> None:
    async def _run() -> None:
        ws = FakeWebSocket()
        fake_session.queue_ws(ws)
        listener = RecordingListener()
        session = WebSocketSession(fake_session, _options(), listener=listener)
        session.connect()
        await wait_for(lambda: session.state is SessionState.OPEN)

        ws.feed_text('{"Message": 10603}')
        ws.feed_text("plain text")
        await wait_for(lambda: len(listener.of("message")) == 2)

        assert listener.of("message") == ['{"Message": 10603}', "plain text"]
        assert listener.of("filtered") == []

        await session.close()

    asyncio.run(_run())


def test_store_receives_raw_text_for_non_json_format(
    fake_session: FakeSession,
) -> None:
    async def _run() -> None:
        ws = FakeWebSocket()
        fake_session.queue_ws(ws)
        store = RecordingStore()
        session = WebSocketSession(fake_session, _options(format="text"), store=store)
        session.connect()
        await wait_for(lambda: session.state is SessionState.OPEN)

        ws.feed_text('{"Message": 10603}')
        await wait_for(lambda: bool(store.of("message")))

        assert store.of("message") == ['{"Message": 10603}']

        await session.close()

    asyncio.run(_run())


def test_error_is_forwarded_without_reconnect(fake_session: FakeSession) -> None:
    async def _run() -> None:
        ws = FakeWebSocket()
        fake_session.queue_ws(ws)
        listener = RecordingListener()
        store = RecordingStore()
        session = WebSocketSession(
            fake_session, _options(), listener=listener, store=store
        )
        session.connect()
        await wait_for(lambda: session.state is SessionState.OPEN)

        boom = RuntimeError("boom")
        ws.feed_error(boom)
        await wait_for(lambda: bool(store.of("error")))
        await settle()

        assert listener.of("error") == [boom]
        assert store.of("error") == [boom]
        assert listener.of("reconnect") == []
        assert session.state is SessionState.OPEN

        await session.close()

    asyncio.run(_run())


def test_unexpected_close_schedules_reconnect(fake_session: FakeSession) -> None:
    async def _run() -> None:
        first, second = FakeWebSocket(), FakeWebSocket()
        fake_session.queue_ws(first, second)
        listener = RecordingListener()
        session = WebSocketSession(fake_session, _options(), listener=listener)
        session.connect()
        await wait_for(lambda: session.state is SessionState.OPEN)

        first.feed_close(1006)
        await wait_for(lambda: len(fake_session.ws_connect_calls) == 2)
        await wait_for(lambda: session.state is SessionState.OPEN)

        assert listener.of("close") == [1006]
        assert listener.of("reconnect") == [1]
        assert listener.of("open") == [None, None]
        assert session.reconnect_attempt == 0

        await session.close()

    asyncio.run(_run())


def test_reconnect_attempts_are_bounded(fake_session: FakeSession) -> None:
    async def _run() -> None:
        listener = RecordingListener()
        store = RecordingStore()
        session = WebSocketSession(
            fake_session, _options(), listener=listener, store=store
        )

        session.connect()
        await wait_for(lambda: session.state is SessionState.RECONNECT_EXHAUSTED)
        await settle()

        # Attempts are scheduled while the counter is within the ceiling of 3.
        assert len(fake_session.ws_connect_calls) == 5
        assert listener.of("reconnect") == [1, 2, 3, 4]
        assert store.of("reconnect") == [1, 2, 3, 4]
        assert listener.of("reconnect_error") == [None]
        assert store.of("reconnect_error") == [None]
        assert len(listener.of("close")) == 5
        assert all(
            isinstance(err, aiohttp.ClientConnectionError)
            for err in listener.of("error")
        )

    asyncio.run(_run())


def test_open_between_failures_restarts_the_count(fake_session: FakeSession) -> None:
    async def _run() -> None:
        ws = FakeWebSocket()
        fake_session.queue_ws(OSError("refused"), ws, FakeWebSocket())
        listener = RecordingListener()
        session = WebSocketSession(fake_session, _options(), listener=listener)

        session.connect()
        await wait_for(lambda: session.state is SessionState.OPEN)
        assert listener.of("reconnect") == [1]
        assert session.reconnect_attempt == 0

        ws.feed_close(1011)
        await wait_for(lambda: len(listener.of("open")) == 2)

        assert listener.of("reconnect") == [1, 1]
        await session.close()

    asyncio.run(_run())


def test_close_without_observers_is_terminal(fake_session: FakeSession) -> None:
    async def _run() -> None:
        session = WebSocketSession(fake_session, _options())

        session.connect()
        await wait_for(lambda: session.state is SessionState.CLOSED_UNEXPECTED)
        await settle()

        assert len(fake_session.ws_connect_calls) == 1
        assert session.reconnect_attempt == 0

    asyncio.run(_run())


def test_reconnection_disabled_keeps_socket_closed(fake_session: FakeSession) -> None:
    async def _run() -> None:
        listener = RecordingListener()
        session = WebSocketSession(
            fake_session, _options(reconnection=False), listener=listener
        )

        session.connect()
        await wait_for(lambda: session.state is SessionState.CLOSED_UNEXPECTED)
        await settle()

        assert len(fake_session.ws_connect_calls) == 1
        assert listener.of("reconnect") == []

    asyncio.run(_run())


def test_intentional_close_never_reconnects(fake_session: FakeSession) -> None:
    async def _run() -> None:
        ws = FakeWebSocket()
        fake_session.queue_ws(ws)
        listener = RecordingListener()
        store = RecordingStore()
        session = WebSocketSession(
            fake_session, _options(), listener=listener, store=store
        )
        session.connect()
        await wait_for(lambda: session.state is SessionState.OPEN)

        await session.close()
        await settle()

        assert ws.closed is True
        assert ws.close_calls == 1
        assert session.state is SessionState.CLOSED_INTENTIONAL
        assert session.reconnect_attempt == INTENTIONAL_CLOSE
        assert session.is_connected() is False
        assert listener.of("close") == [1000]
        assert store.of("close") == [1000]
        assert listener.of("reconnect") == []
        assert listener.of("reconnect_error") == []
        assert len(fake_session.ws_connect_calls) == 1

    asyncio.run(_run())


def test_close_cancels_pending_reconnect(fake_session: FakeSession) -> None:
    async def _run() -> None:
        listener = RecordingListener()
        session = WebSocketSession(
            fake_session, _options(reconnection_delay=30.0), listener=listener
        )
        session.connect()
        await wait_for(lambda: session.state is SessionState.RECONNECT_SCHEDULED)
        handle = session._reconnect_handle
        assert handle is not None

        await session.close()

        assert handle.cancelled()
        assert session._reconnect_handle is None
        assert session.state is SessionState.CLOSED_INTENTIONAL
        assert len(fake_session.ws_connect_calls) == 1

    asyncio.run(_run())


def test_connect_replaces_existing_socket(fake_session: FakeSession) -> None:
    async def _run() -> None:
        first, second = FakeWebSocket(), FakeWebSocket()
        fake_session.queue_ws(first, second)
        listener = RecordingListener()
        session = WebSocketSession(fake_session, _options(), listener=listener)
        session.connect()
        await wait_for(lambda: session.state is SessionState.OPEN)

        session.connect()
        await wait_for(lambda: first.closed and len(listener.of("open")) == 2)
        await settle()

        assert listener.of("close") == [1000]
        assert listener.of("reconnect") == []
        assert len(fake_session.ws_connect_calls) == 2
        assert session.state is SessionState.OPEN
        assert session.is_connected()

        await session.close()
        assert second.closed is True

    asyncio.run(_run())


def test_reconnect_without_observers_raises_when_exhausted(
    fake_session: FakeSession,
) -> None:
    async def _run() -> None:
        session = WebSocketSession(fake_session, _options(reconnection_attempts=2))
        for _ in range(3):
            session.reconnect()
        assert session.reconnect_attempt == 3

        with pytest.raises(ReconnectExhausted) as excinfo:
            session.reconnect()

        assert excinfo.value.attempts == 3
        assert session.state is SessionState.RECONNECT_EXHAUSTED
        await session.close()

    asyncio.run(_run())


def test_reconnect_notifies_before_timer_fires(fake_session: FakeSession) -> None:
    async def _run() -> None:
        listener = RecordingListener()
        session = WebSocketSession(
            fake_session, _options(reconnection_delay=30.0), listener=listener
        )

        session.reconnect()

        assert listener.of("reconnect") == [1]
        assert fake_session.ws_connect_calls == []
        await session.close()

    asyncio.run(_run())


def test_second_listener_is_rejected(fake_session: FakeSession) -> None:
    session = WebSocketSession(fake_session, _options(), listener=RecordingListener())

    with pytest.raises(ListenerRegistrationConflict):
        session.set_listener(RecordingListener())

    session.remove_listener()
    replacement = RecordingListener()
    session.set_listener(replacement)
    assert session._listener is replacement


def test_second_store_is_rejected(fake_session: FakeSession) -> None:
    session = WebSocketSession(fake_session, _options(), store=RecordingStore())

    with pytest.raises(ListenerRegistrationConflict):
        session.attach_store(RecordingStore())

    session.detach_store()
    assert session.has_observers is False


def test_send_obj_serialises_json(fake_session: FakeSession) -> None:
    async def _run() -> None:
        ws = FakeWebSocket()
        fake_session.queue_ws(ws)
        session = WebSocketSession(
            fake_session, _options(), listener=RecordingListener()
        )

        with pytest.raises(SessionNotConnected):
            await session.send_obj({"ping": 1})

        session.connect()
        await wait_for(lambda: session.state is SessionState.OPEN)
        await session.send_obj({"ping": 1})

        assert [json.loads(item) for item in ws.sent] == [{"ping": 1}]
        await session.close()

    asyncio.run(_run())


def test_failing_observer_does_not_break_fan_out(
    fake_session: FakeSession, caplog: pytest.LogCaptureFixture
) -> None:
    class ExplodingListener(RecordingListener):
        def on_open(self) -> None:
            raise ValueError("listener bug")

    caplog.set_level(logging.ERROR, logger=module.__name__)

    async def _run() -> None:
        ws = FakeWebSocket()
        fake_session.queue_ws(ws)
        store = RecordingStore()
        session = WebSocketSession(
            fake_session, _options(), listener=ExplodingListener(), store=store
        )
        session.connect()
        await wait_for(lambda: session.state is SessionState.OPEN)

        assert store.of("open") == [None]
        await session.close()

    asyncio.run(_run())

    assert any("observer callback" in record.getMessage() for record in caplog.records)


def test_failed_connect_after_close_still_reconnects(
    fake_session: FakeSession,
) -> None:
    async def _run() -> None:
        first, third = FakeWebSocket(), FakeWebSocket()
        fake_session.queue_ws(first, OSError("refused"), third)
        listener = RecordingListener()
        session = WebSocketSession(fake_session, _options(), listener=listener)
        session.connect()
        await wait_for(lambda: session.state is SessionState.OPEN)
        await session.close()

        session.connect()
        await wait_for(lambda: len(fake_session.ws_connect_calls) == 3)
        await wait_for(lambda: session.state is SessionState.OPEN)

        assert listener.of("reconnect") == [1]
        assert listener.of("reconnect_error") == []
        assert session.reconnect_attempt == 0
        assert session.is_connected()

        await session.close()

    asyncio.run(_run())


def test_reconnect_waits_for_configured_delay(fake_session: FakeSession) -> None:
    async def _run() -> None:
        listener = RecordingListener()
        session = WebSocketSession(
            fake_session, _options(reconnection_delay=7.5), listener=listener
        )
        loop = asyncio.get_running_loop()

        before = loop.time()
        session.reconnect()
        after = loop.time()

        handle = session._reconnect_handle
        assert handle is not None
        assert before + 7.5 <= handle.when() <= after + 7.5
        assert session.state is SessionState.RECONNECT_SCHEDULED
        await session.close()

    asyncio.run(_run())
