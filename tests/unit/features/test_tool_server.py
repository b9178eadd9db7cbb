"""
Tests unitaires du dispatcher JSON-RPC des outils.
"""
import json

import pytest
from pydantic import BaseModel, Field

from mcp_hub.core.jsonrpc import prompt_message, tool_result
from mcp_hub.features.mcp.base import BaseServerInstance, PromptArgument, ToolServer
from mcp_hub.transport.channel import BaseChannel


class EchoArgs(BaseModel):
    text: str = Field(..., min_length=1)


class RecordingChannel(BaseChannel):
    def __init__(self, server_id: str = "echo"):
        super().__init__(server_id)
        self.sent = []

    async def send(self, message):
        self.sent.append(message)


@pytest.fixture
def server() -> ToolServer:
    server = ToolServer("echo-server", "2.0.0")

    @server.tool("echo", "Echo the text back", EchoArgs)
    async def echo(args: EchoArgs):
        return tool_result(args.text)

    @server.tool("explode", "Always fails")
    async def explode(args):
        raise ValueError("kaboom")

    return server


@pytest.mark.unit
async def test_initialize_echoes_protocol_version_and_server_info(server):
    resp = await server.handle_message(
        {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {"protocolVersion": "2025-03-26"}}
    )

    assert resp["result"]["protocolVersion"] == "2025-03-26"
    assert resp["result"]["serverInfo"] == {"name": "echo-server", "version": "2.0.0"}


@pytest.mark.unit
async def test_initialized_notification_has_no_response(server):
    resp = await server.handle_message({"jsonrpc": "2.0", "method": "notifications/initialized"})

    assert resp is None
    assert server.client_initialized


@pytest.mark.unit
async def test_tools_list_publishes_json_schema(server):
    resp = await server.handle_message({"jsonrpc": "2.0", "id": 2, "method": "tools/list"})

    tools = {tool["name"]: tool for tool in resp["result"]["tools"]}
    assert set(tools) == {"echo", "explode"}
    assert tools["echo"]["inputSchema"]["required"] == ["text"]
    assert tools["echo"]["description"] == "Echo the text back"


@pytest.mark.unit
async def test_tools_call_validates_before_handler(server):
    ok = await server.handle_message(
        {"jsonrpc": "2.0", "id": 3, "method": "tools/call", "params": {"name": "echo", "arguments": {"text": "hi"}}}
    )
    bad = await server.handle_message(
        {"jsonrpc": "2.0", "id": 4, "method": "tools/call", "params": {"name": "echo", "arguments": {"text": ""}}}
    )

    assert ok["result"] == {"content": [{"type": "text", "text": "hi"}]}
    assert bad["error"]["code"] == -32602
    assert tuple(bad["error"]["data"][0]["loc"]) == ("text",)


@pytest.mark.unit
async def test_tool_exception_becomes_error_envelope(server):
    resp = await server.handle_message(
        {"jsonrpc": "2.0", "id": 5, "method": "tools/call", "params": {"name": "explode"}}
    )

    assert resp["result"]["isError"] is True
    assert "kaboom" in resp["result"]["content"][0]["text"]


@pytest.mark.unit
@pytest.mark.parametrize(
    "message, code",
    [
        ({"jsonrpc": "2.0", "id": 6, "method": "nope"}, -32601),
        ({"jsonrpc": "2.0", "id": 7, "method": "tools/call", "params": {"name": "missing"}}, -32602),
        ({"jsonrpc": "2.0", "id": 8, "method": "tools/call", "params": {}}, -32602),
        ({"id": 9, "method": "ping"}, -32600),
    ],
)
async def test_protocol_errors(server, message, code):
    resp = await server.handle_message(message)

    assert resp["error"]["code"] == code
    assert resp["id"] == message["id"]


@pytest.fixture
def catalog_server() -> ToolServer:
    server = ToolServer("catalog-server")

    @server.resource("memo://index", "Index", "All memos")
    async def index(uri):
        return json.dumps({"memos": ["a", "b"]})

    @server.resource_template("memo://items/{memo_id}", "Memo", "One memo")
    async def item(uri, memo_id):
        if memo_id == "broken":
            raise RuntimeError("disk full")
        return json.dumps({"id": memo_id})

    @server.prompt("greet", "Say hello", (PromptArgument("who", "Name to greet", required=True),))
    async def greet(args):
        return [prompt_message("user", f"Hello {args['who']}")]

    return server


def _request(method: str, params: dict = None):
    return {"jsonrpc": "2.0", "id": 10, "method": method, "params": params or {}}


@pytest.mark.unit
async def test_listings_describe_registered_entries(catalog_server, server):
    resources = await catalog_server.handle_message(_request("resources/list"))
    templates = await catalog_server.handle_message(_request("resources/templates/list"))
    prompts = await catalog_server.handle_message(_request("prompts/list"))
    empty = await server.handle_message(_request("resources/list"))
    ping = await server.handle_message({"jsonrpc": "2.0", "id": 12, "method": "ping"})

    assert resources["result"]["resources"] == [
        {"uri": "memo://index", "mimeType": "application/json", "name": "Index", "description": "All memos"}
    ]
    assert templates["result"]["resourceTemplates"][0]["uriTemplate"] == "memo://items/{memo_id}"
    assert prompts["result"]["prompts"] == [
        {
            "name": "greet",
            "description": "Say hello",
            "arguments": [{"name": "who", "description": "Name to greet", "required": True}],
        }
    ]
    assert empty["result"] == {"resources": []}
    assert ping["result"] == {}


@pytest.mark.unit
async def test_read_resource_by_uri_then_by_template(catalog_server):
    exact = await catalog_server.handle_message(_request("resources/read", {"uri": "memo://index"}))
    templated = await catalog_server.handle_message(_request("resources/read", {"uri": "memo://items/42"}))

    assert exact["result"]["contents"] == [
        {"uri": "memo://index", "mimeType": "application/json", "text": '{"memos": ["a", "b"]}'}
    ]
    assert json.loads(templated["result"]["contents"][0]["text"]) == {"id": "42"}


@pytest.mark.unit
@pytest.mark.parametrize(
    "params, code, message",
    [
        ({"uri": "memo://nowhere"}, -32600, "Resource not found: memo://nowhere"),
        ({"uri": "memo://items/42/extra"}, -32600, "Resource not found: memo://items/42/extra"),
        ({}, -32602, "Invalid params: missing resource uri"),
    ],
)
async def test_read_resource_errors(catalog_server, params, code, message):
    resp = await catalog_server.handle_message(_request("resources/read", params))

    assert resp["error"]["code"] == code
    assert resp["error"]["message"] == message


@pytest.mark.unit
async def test_failing_reader_is_internal_error(catalog_server):
    resp = await catalog_server.handle_message(_request("resources/read", {"uri": "memo://items/broken"}))

    assert resp["error"]["code"] == -32603
    assert "disk full" in resp["error"]["message"]


@pytest.mark.unit
async def test_get_prompt_renders_messages(catalog_server):
    resp = await catalog_server.handle_message(_request("prompts/get", {"name": "greet", "arguments": {"who": "Ada"}}))

    assert resp["result"] == {
        "description": "Say hello",
        "messages": [{"role": "user", "content": {"type": "text", "text": "Hello Ada"}}],
    }


@pytest.mark.unit
@pytest.mark.parametrize(
    "params, message",
    [
        ({"name": "farewell"}, "Unknown prompt: farewell"),
        ({"name": "greet", "arguments": {}}, "Missing required arguments for prompt 'greet': who"),
        ({}, "Invalid params: missing prompt name"),
    ],
)
async def test_get_prompt_errors_are_invalid_params(catalog_server, params, message):
    resp = await catalog_server.handle_message(_request("prompts/get", params))

    assert resp["error"]["code"] == -32602
    assert resp["error"]["message"] == message


def test_server_instance_requires_tool_registration():
    class Bare(BaseServerInstance):
        server_id = "bare"

    with pytest.raises(TypeError):
        Bare()


@pytest.mark.unit
async def test_connect_sends_responses_on_channel(server):
    channel = RecordingChannel()
    server.connect(channel)

    await channel.dispatch({"jsonrpc": "2.0", "id": 13, "method": "ping"})
    await channel.dispatch({"jsonrpc": "2.0", "method": "notifications/initialized"})

    assert channel.sent == [{"jsonrpc": "2.0", "id": 13, "result": {}}]
