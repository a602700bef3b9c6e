"""MCP protocol engine.

A JSON-RPC 2.0 dispatcher implementing the MCP server methods the gateway
supports. One engine is created per session and bound to that session's
transport; it never sees HTTP.
"""

from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from shared.errors import GatewayError
from shared.logging import get_logger
from shared.models import (
    InitializeRequest,
    JsonRpcErrorCode,
    JsonRpcRequest,
    RequestContext,
    jsonrpc_error,
    jsonrpc_result,
)
from gateway.executor import ToolExecutor
from gateway.registry import ToolRegistry

logger = get_logger(__name__)

SUPPORTED_PROTOCOL_VERSIONS = ["2025-06-18", "2025-03-26", "2024-11-05"]
LATEST_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[0]

Handler = Callable[[dict[str, Any], RequestContext], Awaitable[Any]]


class InvalidParamsError(GatewayError):
    """Request params do not fit the method."""
    pass


def is_initialize_request(body: Any) -> bool:
    """
    Check whether a body is a session-creating initialize call.

    A batch qualifies when at least one of its elements does.
    """
    if isinstance(body, list):
        return any(is_initialize_request(message) for message in body)
    if not isinstance(body, dict):
        return False
    try:
        InitializeRequest.model_validate(body)
    except ValidationError:
        return False
    return True


class ProtocolEngine:
    """
    Per-session MCP method dispatcher.

    Supports initialize, ping, tools/list, tools/call, prompts/list and
    prompts/get. Unknown requests get -32601; unknown notifications are
    ignored.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        executor: ToolExecutor,
        server_name: str,
        server_version: str
    ) -> None:
        self.registry = registry
        self.executor = executor
        self.server_name = server_name
        self.server_version = server_version

        self.protocol_version: Optional[str] = None
        self.client_info: dict[str, Any] = {}
        self.initialized = False

        self._handlers: dict[str, Handler] = {
            "initialize": self._initialize,
            "notifications/initialized": self._initialized,
            "notifications/cancelled": self._cancelled,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
            "prompts/list": self._list_prompts,
            "prompts/get": self._get_prompt,
        }

    async def handle_message(
        self,
        message: Any,
        context: RequestContext
    ) -> Optional[dict[str, Any]]:
        """
        Handle one JSON-RPC message.

        Returns:
            The response object, or None for notifications and client responses
        """
        if not isinstance(message, dict):
            return jsonrpc_error(
                None, JsonRpcErrorCode.INVALID_REQUEST, "Invalid Request"
            )

        try:
            request = JsonRpcRequest.model_validate(message)
        except ValidationError:
            if "method" not in message and ("result" in message or "error" in message):
                return None
            return jsonrpc_error(
                message.get("id"), JsonRpcErrorCode.INVALID_REQUEST, "Invalid Request"
            )

        handler = self._handlers.get(request.method)
        if not handler:
            if request.is_notification:
                logger.debug("Ignoring unknown notification", method=request.method)
                return None
            return jsonrpc_error(
                request.id,
                JsonRpcErrorCode.METHOD_NOT_FOUND,
                f"Method not found: {request.method}"
            )

        try:
            result = await handler(request.params or {}, context)
        except InvalidParamsError as e:
            if request.is_notification:
                return None
            return jsonrpc_error(request.id, JsonRpcErrorCode.INVALID_PARAMS, str(e))

        if request.is_notification:
            return None
        return jsonrpc_result(request.id, result)

    async def _initialize(self, params: dict[str, Any], context: RequestContext) -> dict:
        requested = params.get("protocolVersion")
        self.protocol_version = (
            requested if requested in SUPPORTED_PROTOCOL_VERSIONS
            else LATEST_PROTOCOL_VERSION
        )
        self.client_info = params.get("clientInfo") or {}

        logger.info(
            "Client initializing",
            client=self.client_info.get("name", "unknown"),
            protocol_version=self.protocol_version,
            tenant=context.tenant.base_url,
        )

        return {
            "protocolVersion": self.protocol_version,
            "capabilities": {
                "tools": {"listChanged": False},
                "prompts": {"listChanged": False},
            },
            "serverInfo": {
                "name": self.server_name,
                "version": self.server_version,
            },
        }

    async def _initialized(self, params: dict[str, Any], context: RequestContext) -> None:
        self.initialized = True

    async def _cancelled(self, params: dict[str, Any], context: RequestContext) -> None:
        # outbound calls are not cancellable mid-flight
        logger.debug("Cancellation received", request_id=params.get("requestId"))

    async def _ping(self, params: dict[str, Any], context: RequestContext) -> dict:
        return {}

    async def _list_tools(self, params: dict[str, Any], context: RequestContext) -> dict:
        return {"tools": self.registry.get_tools_for_protocol()}

    async def _call_tool(self, params: dict[str, Any], context: RequestContext) -> dict:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidParamsError("tools/call requires a tool name")

        result = await self.executor.execute(name, params.get("arguments") or {}, context)
        return result.to_protocol()

    async def _list_prompts(self, params: dict[str, Any], context: RequestContext) -> dict:
        return {"prompts": [p.to_protocol() for p in self.registry.list_prompts()]}

    async def _get_prompt(self, params: dict[str, Any], context: RequestContext) -> dict:
        name = params.get("name")
        prompt = self.registry.get_prompt(name) if isinstance(name, str) else None
        if not prompt:
            raise InvalidParamsError(f"Unknown prompt: {name}")

        raw_arguments = params.get("arguments") or {}
        if not isinstance(raw_arguments, dict):
            raise InvalidParamsError("prompts/get arguments must be an object")

        arguments = {k: str(v) for k, v in raw_arguments.items()}
        missing = [
            a.name for a in prompt.arguments
            if a.required and not arguments.get(a.name)
        ]
        if missing:
            raise InvalidParamsError(
                f"Missing required arguments for prompt '{name}': {', '.join(missing)}"
            )

        values = {a.name: arguments.get(a.name, "") for a in prompt.arguments}
        return {
            "description": prompt.description,
            "messages": [
                {
                    "role": "user",
                    "content": {"type": "text", "text": prompt.template.format(**values)},
                }
            ],
        }
