"""
Tests unitaires des canaux SSE et de la liaison des handlers.
"""
import asyncio
import json

import pytest

from mcp_hub.core.exceptions import ChannelNotBoundError
from mcp_hub.transport.channel import BaseChannel, SSEChannel


def _post_scope(path: str = "/messages/alpha") -> dict:
    return {
        "type": "http",
        "method": "POST",
        "path": path,
        "raw_path": path.encode(),
        "query_string": b"",
        "headers": [(b"content-type", b"application/json")],
    }


async def _call_post(channel: SSEChannel, body: bytes):
    sent = []
    messages = [{"type": "http.request", "body": body, "more_body": False}]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    async def send(message):
        sent.append(message)

    await channel.handle_post_message(_post_scope(), receive, send)
    return sent


def test_base_channel_requires_send():
    with pytest.raises(TypeError):
        BaseChannel("alpha")


@pytest.mark.unit
async def test_sse_channel_queues_messages_in_order():
    channel = SSEChannel("alpha", endpoint="/messages/alpha")

    await channel.send({"jsonrpc": "2.0", "id": 1, "result": {}})
    await channel.send({"jsonrpc": "2.0", "id": 2, "result": {}})

    first = await channel.next_event()
    second = await channel.next_event()
    assert first["event"] == "message"
    assert json.loads(first["data"])["id"] == 1
    assert json.loads(second["data"])["id"] == 2
    assert channel.messages_sent == 2
    assert channel.endpoint_event() == {"event": "endpoint", "data": "/messages/alpha"}


@pytest.mark.unit
async def test_sse_channel_ends_when_closed():
    channel = SSEChannel("alpha", endpoint="/messages/alpha")

    channel.close()
    assert channel.closed
    assert await channel.next_event() is None

    # Un canal fermé ignore les envois
    await channel.send({"jsonrpc": "2.0", "id": 3, "result": {}})
    assert channel.messages_sent == 0


@pytest.mark.unit
async def test_dispatch_without_bound_handler_raises():
    channel = SSEChannel("alpha", endpoint="/messages/alpha")
    with pytest.raises(ChannelNotBoundError):
        await channel.dispatch({"jsonrpc": "2.0", "method": "ping", "id": 1})


@pytest.mark.unit
async def test_handle_post_message_accepts_then_dispatches():
    channel = SSEChannel("alpha", endpoint="/messages/alpha")
    received = []

    async def handler(message):
        received.append(message)

    channel.bind(handler)
    sent = await _call_post(channel, b'{"jsonrpc": "2.0", "method": "ping", "id": 7}')

    assert sent[0]["type"] == "http.response.start"
    assert sent[0]["status"] == 202
    assert received == [{"jsonrpc": "2.0", "method": "ping", "id": 7}]


@pytest.mark.unit
@pytest.mark.parametrize(
    "body, error",
    [
        (b"{not json", "Invalid JSON message"),
        (b"[1, 2]", "Message must be a JSON object"),
    ],
)
async def test_handle_post_message_rejects_malformed_bodies(body, error):
    channel = SSEChannel("alpha", endpoint="/messages/alpha")
    received = []

    async def handler(message):
        received.append(message)

    channel.bind(handler)
    sent = await _call_post(channel, body)

    assert sent[0]["status"] == 400
    assert json.loads(sent[1]["body"]) == {"error": error}
    assert received == []


@pytest.mark.unit
async def test_handler_error_surfaces_after_response_started():
    channel = SSEChannel("alpha", endpoint="/messages/alpha")

    async def handler(message):
        raise RuntimeError("handler boom")

    channel.bind(handler)
    sent = []
    messages = [{"type": "http.request", "body": b'{"jsonrpc": "2.0", "method": "x", "id": 1}'}]

    async def receive():
        return messages.pop(0) if messages else {"type": "http.disconnect"}

    async def send(message):
        sent.append(message)

    with pytest.raises(RuntimeError):
        await channel.handle_post_message(_post_scope(), receive, send)
    assert sent[0]["status"] == 202


@pytest.mark.unit
async def test_rebinding_replaces_previous_handler():
    channel = SSEChannel("alpha", endpoint="/messages/alpha")
    calls = []

    async def first(message):
        calls.append("first")

    async def second(message):
        calls.append("second")

    channel.bind(first)
    channel.bind(second)
    await channel.dispatch({"jsonrpc": "2.0", "method": "ping", "id": 1})
    await asyncio.sleep(0)

    assert calls == ["second"]
    channel.unbind()
    assert not channel.is_bound
