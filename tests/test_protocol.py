"""Tests for the MCP protocol engine."""

import pytest

from shared.models import CodeTool, PromptArgument, PromptDefinition
from gateway.executor import ToolExecutor
from gateway.protocol import ProtocolEngine, is_initialize_request
from gateway.registry import ToolRegistry
from conftest import INITIALIZE_REQUEST


async def echo(arguments, context, api):
    return {"echo": arguments.get("value"), "tenant": context.tenant.base_url}


@pytest.fixture
def engine(http_client) -> ProtocolEngine:
    registry = ToolRegistry()
    registry.register(CodeTool(
        name="echo",
        description="Echo a value",
        input_schema={"type": "object", "properties": {"value": {"type": "string"}}},
        process=echo,
    ))
    registry.register_prompt(PromptDefinition(
        name="greet",
        description="Greeting",
        arguments=[PromptArgument(name="who", description="Name", required=True)],
        template="Say hello to {who}.",
    ))
    executor = ToolExecutor(registry=registry, http_client=http_client)
    return ProtocolEngine(registry, executor, "test-server", "9.9.9")


def request(method, params=None, request_id=1):
    message = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


class TestInitializeDetection:
    """Tests for recognizing session-creating requests."""

    def test_single_initialize(self):
        assert is_initialize_request(INITIALIZE_REQUEST)

    def test_batch_with_initialize(self):
        assert is_initialize_request([request("ping"), INITIALIZE_REQUEST])

    def test_incomplete_params(self):
        body = dict(INITIALIZE_REQUEST, params={"protocolVersion": "2025-06-18"})
        assert not is_initialize_request(body)

    def test_other_methods(self):
        assert not is_initialize_request(request("tools/list"))
        assert not is_initialize_request([])
        assert not is_initialize_request("initialize")


class TestProtocolEngine:
    """Tests for JSON-RPC dispatch."""

    @pytest.mark.asyncio
    async def test_initialize(self, engine, context):
        response = await engine.handle_message(INITIALIZE_REQUEST, context)

        result = response["result"]
        assert response["id"] == 1
        assert result["protocolVersion"] == "2025-06-18"
        assert result["serverInfo"] == {"name": "test-server", "version": "9.9.9"}
        assert "tools" in result["capabilities"]
        assert "prompts" in result["capabilities"]

    @pytest.mark.asyncio
    async def test_unsupported_version_gets_latest(self, engine, context):
        message = dict(INITIALIZE_REQUEST, params=dict(
            INITIALIZE_REQUEST["params"], protocolVersion="1999-01-01"
        ))
        response = await engine.handle_message(message, context)

        assert response["result"]["protocolVersion"] == "2025-06-18"

    @pytest.mark.asyncio
    async def test_unknown_method(self, engine, context):
        response = await engine.handle_message(request("resources/list"), context)

        assert response["error"]["code"] == -32601
        assert response["error"]["message"] == "Method not found: resources/list"

    @pytest.mark.asyncio
    async def test_notifications_get_no_response(self, engine, context):
        notification = {"jsonrpc": "2.0", "method": "notifications/initialized"}
        assert await engine.handle_message(notification, context) is None
        assert engine.initialized

        unknown = {"jsonrpc": "2.0", "method": "notifications/whatever"}
        assert await engine.handle_message(unknown, context) is None

    @pytest.mark.asyncio
    async def test_invalid_request(self, engine, context):
        response = await engine.handle_message({"jsonrpc": "2.0", "id": 3}, context)
        assert response["error"]["code"] == -32600

        response = await engine.handle_message(42, context)
        assert response["error"]["code"] == -32600

    @pytest.mark.asyncio
    async def test_ping(self, engine, context):
        response = await engine.handle_message(request("ping", request_id="p"), context)
        assert response == {"jsonrpc": "2.0", "id": "p", "result": {}}

    @pytest.mark.asyncio
    async def test_tools_list(self, engine, context):
        response = await engine.handle_message(request("tools/list"), context)

        tools = response["result"]["tools"]
        assert [t["name"] for t in tools] == ["echo"]
        assert tools[0]["inputSchema"]["type"] == "object"

    @pytest.mark.asyncio
    async def test_tools_call_uses_context(self, engine, context):
        response = await engine.handle_message(
            request("tools/call", {"name": "echo", "arguments": {"value": "hi"}}),
            context,
        )

        result = response["result"]
        assert result["isError"] is False
        assert '"echo": "hi"' in result["content"][0]["text"]
        assert context.tenant.base_url in result["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_tools_call_unknown_tool_is_a_result(self, engine, context):
        response = await engine.handle_message(
            request("tools/call", {"name": "missing"}), context
        )

        assert response["result"]["isError"] is True
        assert response["result"]["content"][0]["text"] == \
            "Error: Unknown tool requested: missing"

    @pytest.mark.asyncio
    async def test_tools_call_without_name(self, engine, context):
        response = await engine.handle_message(request("tools/call", {}), context)
        assert response["error"]["code"] == -32602

    @pytest.mark.asyncio
    async def test_prompts(self, engine, context):
        listing = await engine.handle_message(request("prompts/list"), context)
        assert listing["result"]["prompts"][0]["name"] == "greet"

        response = await engine.handle_message(
            request("prompts/get", {"name": "greet", "arguments": {"who": "Ada"}}),
            context,
        )
        message = response["result"]["messages"][0]
        assert message["role"] == "user"
        assert message["content"]["text"] == "Say hello to Ada."

    @pytest.mark.asyncio
    async def test_prompt_missing_argument(self, engine, context):
        response = await engine.handle_message(
            request("prompts/get", {"name": "greet"}), context
        )
        assert response["error"]["code"] == -32602
        assert "who" in response["error"]["message"]

    @pytest.mark.asyncio
    async def test_prompt_arguments_must_be_an_object(self, engine, context):
        for arguments in (["Ada"], "Ada"):
            response = await engine.handle_message(
                request("prompts/get", {"name": "greet", "arguments": arguments}),
                context,
            )
            assert response["error"]["code"] == -32602
            assert "must be an object" in response["error"]["message"]
