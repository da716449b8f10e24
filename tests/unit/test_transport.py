# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import json
from typing import Any

import pytest

import client.transport as transport_mod
from client.transport import CONNECTION_ERROR, ConnectionLostError, NotConnectedError, ReconnectingClient
from session.connection_status import ConnectionStatus


# ---------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------

class FakeSocket:
    """Async-iterable socket; inbound frames are pushed by the test."""

    def __init__(self) -> None:
        self.inbox: asyncio.Queue[str | None] = asyncio.Queue()
        self.sent: list[dict[str, Any]] = []
        self.close_code: int | None = None

    async def send(self, text: str) -> None:
        self.sent.append(json.loads(text))

    async def close(self, code: int = 1000) -> None:
        self.close_code = code
        self.inbox.put_nowait(None)

    def push(self, message: dict[str, Any] | str) -> None:
        self.inbox.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def drop(self, code: int = 1006) -> None:
        self.close_code = code
        self.inbox.put_nowait(None)

    def __aiter__(self) -> "FakeSocket":
        return self

    async def __anext__(self) -> str:
        item = await self.inbox.get()
        if item is None:
            raise StopAsyncIteration
        return item


class FakeConnector:
    def __init__(self, fail_from: int | None = None) -> None:
        self.fail_from = fail_from
        self.calls = 0
        self.sockets: list[FakeSocket] = []

    async def __call__(self, url: str) -> FakeSocket:
        self.calls += 1
        if self.fail_from is not None and self.calls >= self.fail_from:
            raise ConnectionRefusedError("server down")
        sock = FakeSocket()
        self.sockets.append(sock)
        return sock


class FakeSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture(autouse=True)
def logs(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(transport_mod, "log_event", emitted.append)
    return emitted


async def spin(times: int = 20) -> None:
    for _ in range(times):
        await asyncio.sleep(0)


# ---------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------

def test_send_frames_envelope() -> None:
    async def scenario() -> FakeConnector:
        connector = FakeConnector()
        client = ReconnectingClient("ws://test/ws", connector=connector)
        await client.connect()
        assert client.is_connected
        await client.send("audio_chunk", audio="AAEC")
        await client.disconnect()
        return connector

    connector = asyncio.run(scenario())
    assert connector.sockets[0].sent == [{"type": "audio_chunk", "audio": "AAEC"}]
    assert connector.sockets[0].close_code == 1000


def test_send_while_disconnected_raises() -> None:
    async def scenario() -> None:
        client = ReconnectingClient("ws://test/ws", connector=FakeConnector())
        with pytest.raises(NotConnectedError):
            await client.send("ping")

    asyncio.run(scenario())


def test_inbound_messages_reach_listeners_by_type(logs: list[dict[str, Any]]) -> None:
    async def scenario() -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        connector = FakeConnector()
        client = ReconnectingClient("ws://test/ws", connector=connector)
        pongs: list[dict[str, Any]] = []
        errors: list[dict[str, Any]] = []
        client.on("pong", pongs.append)
        client.on("error", errors.append)

        await client.connect()
        sock = connector.sockets[0]
        sock.push({"type": "pong"})
        sock.push("garbage")
        sock.push({"type": "error", "message": "Already processing audio"})
        await spin()

        client.off("pong", pongs.append)
        sock.push({"type": "pong"})
        await spin()
        await client.disconnect()
        return pongs, errors

    pongs, errors = asyncio.run(scenario())
    assert pongs == [{"type": "pong"}]
    assert errors == [{"type": "error", "message": "Already processing audio"}]
    assert any(e["event_type"] == "CLIENT_MESSAGE_DECODE_ERROR" for e in logs)


def test_abnormal_close_reconnects_and_resets_attempts() -> None:
    async def scenario() -> tuple[ReconnectingClient, FakeConnector, FakeSleep]:
        connector = FakeConnector()
        sleep = FakeSleep()
        client = ReconnectingClient("ws://test/ws", connector=connector, sleep=sleep)
        await client.connect()

        connector.sockets[0].drop(code=1006)
        await spin()
        return client, connector, sleep

    client, connector, sleep = asyncio.run(scenario())
    assert connector.calls == 2
    assert sleep.delays == [1.0]
    assert client.attempts == 0
    assert client.status is ConnectionStatus.UP


def test_normal_close_does_not_reconnect() -> None:
    async def scenario() -> tuple[ReconnectingClient, FakeConnector]:
        connector = FakeConnector()
        client = ReconnectingClient("ws://test/ws", connector=connector, sleep=FakeSleep())
        await client.connect()
        connector.sockets[0].drop(code=1000)
        await spin()
        return client, connector

    client, connector = asyncio.run(scenario())
    assert connector.calls == 1
    assert client.status is ConnectionStatus.DOWN


def test_backoff_is_linear_and_gives_up_after_max_attempts() -> None:
    async def scenario() -> tuple[ReconnectingClient, FakeSleep, list[dict[str, Any]]]:
        connector = FakeConnector(fail_from=2)
        sleep = FakeSleep()
        client = ReconnectingClient("ws://test/ws", connector=connector, sleep=sleep)
        lost: list[dict[str, Any]] = []
        client.on(CONNECTION_ERROR, lost.append)

        await client.connect()
        connector.sockets[0].drop(code=1006)
        await spin(50)
        return client, sleep, lost

    client, sleep, lost = asyncio.run(scenario())
    assert sleep.delays == [1.0, 2.0, 3.0, 4.0, 5.0]
    assert client.attempts == 5
    assert isinstance(client.error, ConnectionLostError)
    assert client.status is ConnectionStatus.DOWN
    assert len(lost) == 1
    assert lost[0]["type"] == CONNECTION_ERROR


def test_manual_reconnect_resets_budget() -> None:
    async def scenario() -> ReconnectingClient:
        connector = FakeConnector()
        client = ReconnectingClient("ws://test/ws", connector=connector, sleep=FakeSleep())
        client.attempts = 5
        client.error = ConnectionLostError("gone")
        await client.reconnect()
        return client

    client = asyncio.run(scenario())
    assert client.attempts == 0
    assert client.error is None
    assert client.is_connected
