"""
Unit tests for the client session.

A scripted in-memory transport stands in for a server so the tests
exercise request correlation without any I/O.
"""

import asyncio
from typing import Any, Dict

import pytest

from mcpconnect.client import Client, ClientError
from mcpconnect.protocol import (
    Error,
    ErrorCode,
    Implementation,
    Notification,
    Request,
    Response,
)
from mcpconnect.transport import (
    Transport,
    TransportError,
    TransportInfo,
    TransportType,
)


class ScriptedTransport(Transport):
    """Transport that answers requests from a method -> result table."""

    def __init__(self, results: Dict[str, Any]):
        super().__init__()
        self.results = results
        self.sent = []
        self.started = False
        self.closed = False

    @property
    def info(self) -> TransportInfo:
        return TransportInfo(type=TransportType.STDIO)

    def describe(self):
        return {"type": "scripted"}

    async def start(self) -> None:
        if self.started:
            raise TransportError("already started")
        self.started = True

    async def send(self, message) -> None:
        self.sent.append(message)
        if not isinstance(message, Request):
            return

        outcome = self.results.get(message.method)
        if outcome is None:
            return
        if isinstance(outcome, Error):
            reply = Response(id=message.id, error=outcome)
        else:
            reply = Response(id=message.id, result=outcome)
        asyncio.get_running_loop().call_soon(asyncio.ensure_future, self.on_message(reply))

    async def close(self) -> None:
        self.closed = True
        await self._dispatch_close()


INITIALIZE_RESULT = {
    "protocolVersion": "2025-03-26",
    "capabilities": {"tools": {}, "resources": {}},
    "serverInfo": {"name": "scripted", "version": "0.9"},
    "instructions": "Be nice",
}


@pytest.fixture
def transport():
    return ScriptedTransport({
        "initialize": INITIALIZE_RESULT,
        "ping": {},
        "tools/list": {"tools": [{"name": "echo"}]},
        "tools/call": {"content": [{"type": "text", "text": "hi"}]},
        "resources/list": {"resources": []},
        "prompts/list": {"prompts": [{"name": "greet"}]},
        "broken": Error(code=ErrorCode.INTERNAL_ERROR, message="boom", data={"trace": "x"}),
    })


@pytest.mark.asyncio
class TestClient:
    """Tests for Client."""

    async def test_connect_initializes(self, transport):
        client = Client(transport, client_info=Implementation(name="tests", version="1.0"))
        result = await client.connect()

        assert result.server_info.name == "scripted"
        assert client.server_info.version == "0.9"
        assert client.protocol_version == "2025-03-26"
        assert client.instructions == "Be nice"
        assert set(client.server_capabilities) == {"tools", "resources"}

        initialize, initialized = transport.sent
        assert initialize.method == "initialize"
        assert initialize.params["clientInfo"] == {"name": "tests", "version": "1.0"}
        assert isinstance(initialized, Notification)
        assert initialized.method == "notifications/initialized"

        await client.close()
        assert transport.closed is True
        assert client.connected is False

    async def test_helpers(self, transport):
        async with Client(transport) as client:
            await client.ping()
            assert await client.list_tools() == [{"name": "echo"}]
            assert await client.call_tool("echo", {"text": "hi"}) == {
                "content": [{"type": "text", "text": "hi"}]
            }
            assert await client.list_resources() == []
            assert await client.list_prompts() == [{"name": "greet"}]

        call = [m for m in transport.sent if isinstance(m, Request) and m.method == "tools/call"][0]
        assert call.params == {"name": "echo", "arguments": {"text": "hi"}}

    async def test_request_ids_increase(self, transport):
        async with Client(transport) as client:
            await client.ping()
            await client.ping()

        ids = [m.id for m in transport.sent if isinstance(m, Request)]
        assert ids == [1, 2, 3]

    async def test_error_response(self, transport):
        async with Client(transport) as client:
            with pytest.raises(ClientError) as exc_info:
                await client.request("broken")

        assert exc_info.value.message == "boom"
        assert exc_info.value.error_code == ErrorCode.INTERNAL_ERROR
        assert exc_info.value.data == {"trace": "x"}

    async def test_timeout_sends_cancellation(self, transport):
        async with Client(transport) as client:
            with pytest.raises(ClientError, match="timed out"):
                await client.request("never/answered", timeout=0.05)

        cancelled = [m for m in transport.sent if isinstance(m, Notification) and m.method == "notifications/cancelled"]
        assert cancelled[0].params["reason"] == "timeout"

    async def test_request_when_not_connected(self, transport):
        with pytest.raises(ClientError, match="Not connected"):
            await Client(transport).ping()

    async def test_start_failure(self, transport):
        transport.started = True
        with pytest.raises(ClientError, match="Failed to connect"):
            await Client(transport).connect()

    async def test_close_fails_pending_requests(self, transport):
        client = Client(transport)
        await client.connect()

        pending = asyncio.ensure_future(client.request("never/answered"))
        await asyncio.sleep(0)
        await client.close()

        with pytest.raises(ClientError, match="Connection closed"):
            await pending

    async def test_answers_server_ping(self, transport):
        async with Client(transport) as client:
            await client._handle_message(Request(id="srv-1", method="ping"))
            await client._handle_message(Request(id="srv-2", method="sampling/createMessage"))

        replies = [m for m in transport.sent if isinstance(m, Response)]
        assert replies[0].id == "srv-1"
        assert replies[0].result == {}
        assert replies[1].error.code == ErrorCode.METHOD_NOT_FOUND

    async def test_notification_handlers(self, transport):
        received = []

        async def on_progress(notification):
            received.append(notification.params)

        async with Client(transport) as client:
            client.register_notification_handler("notifications/progress", on_progress)
            await client._handle_message(Notification(method="notifications/progress", params={"progress": 1}))
            await client._handle_message(Notification(method="notifications/other"))

        assert received == [{"progress": 1}]
