"""Core data models for the LMS MCP Gateway.

This module defines the shared data structures used across the gateway:
request context (tenant + caller), tool descriptions, invocation results,
JSON-RPC envelopes and audit entries.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

JSONRPC_VERSION = "2.0"

PLACEHOLDER_PATTERN = re.compile(r"\{([^{}]+)\}")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Request context ---


class TenantMode(str, Enum):
    """How the backend base URL was chosen."""
    SINGLE = "single-tenant"
    MULTI = "multi-tenant"


class TenantContext(BaseModel):
    """Backend tenant a request belongs to. Derived fresh per request."""
    model_config = ConfigDict(frozen=True)

    base_url: str
    mode: TenantMode


class CallerIdentity(BaseModel):
    """
    Who a request is acting for.

    The bearer token is opaque and forwarded as-is; it is excluded from
    repr so it never ends up in log lines.
    """
    model_config = ConfigDict(frozen=True)

    token: Optional[str] = Field(default=None, repr=False)
    client_id: Optional[str] = None
    scopes: tuple[str, ...] = ()
    base_url: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return bool(self.token)


class RequestContext(BaseModel):
    """Immutable per-request context passed explicitly through every layer."""
    model_config = ConfigDict(frozen=True)

    caller: CallerIdentity
    tenant: TenantContext
    session_id: Optional[str] = None


# --- Tool descriptions ---


class ParameterLocation(str, Enum):
    """Where a tool argument is bound on the outbound request."""
    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    BODY = "body"


class ParameterBinding(BaseModel):
    """Binding of one argument to a request location."""
    name: str
    location: ParameterLocation = Field(alias="in")

    model_config = ConfigDict(populate_by_name=True)


class ToolAnnotations(BaseModel):
    """Behavioral hints that help a client reason about side effects."""
    title: Optional[str] = None
    read_only: Optional[bool] = Field(default=None, alias="readOnlyHint")
    destructive: Optional[bool] = Field(default=None, alias="destructiveHint")
    idempotent: Optional[bool] = Field(default=None, alias="idempotentHint")
    open_world: Optional[bool] = Field(default=None, alias="openWorldHint")

    model_config = ConfigDict(populate_by_name=True)


class ToolSpec(BaseModel):
    """Fields every tool exposes to clients through tools/list."""
    name: str = Field(..., description="Globally unique tool name")
    description: str = Field(..., description="Clear description for LLM usage")
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON Schema for input validation"
    )
    annotations: Optional[ToolAnnotations] = None

    def to_protocol(self) -> dict[str, Any]:
        """Return the tool as an MCP `Tool` object."""
        tool: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }
        if self.annotations:
            tool["annotations"] = self.annotations.model_dump(
                by_alias=True, exclude_none=True
            )
        return tool


class DeclarativeTool(ToolSpec):
    """
    Declarative description of one backend REST operation.

    Executed generically: arguments are bound to the path template, query
    string, headers and body, then sent to the tenant's API.
    """
    kind: Literal["declarative"] = "declarative"
    method: str = Field(default="GET")
    path_template: str
    parameters: list[ParameterBinding] = Field(default_factory=list)
    request_body_content_type: Optional[str] = None
    security_requirements: list[dict[str, list[str]]] = Field(
        default_factory=lambda: [{"bearerAuth": []}]
    )

    @model_validator(mode="after")
    def _check_path_placeholders(self) -> "DeclarativeTool":
        placeholders = PLACEHOLDER_PATTERN.findall(self.path_template)
        path_params = [
            p.name for p in self.parameters if p.location == ParameterLocation.PATH
        ]
        for placeholder in placeholders:
            if path_params.count(placeholder) != 1:
                raise ValueError(
                    f"Placeholder '{{{placeholder}}}' in '{self.path_template}' "
                    f"must be bound by exactly one path parameter"
                )
        return self

    @property
    def is_read_only(self) -> bool:
        return self.method.upper() == "GET"


# Signature of a code tool's process step: (arguments, context, api) -> data
ProcessFunc = Callable[[dict[str, Any], RequestContext, Any], Awaitable[Any]]


class CodeTool(ToolSpec):
    """A tool that supplies its own process step instead of one HTTP call."""
    kind: Literal["code"] = "code"
    process: ProcessFunc = Field(exclude=True)


ToolEntry = Union[DeclarativeTool, CodeTool]


# --- Results ---


class ContentPart(BaseModel):
    """One typed part of a tool result."""
    type: Literal["text"] = "text"
    text: str


class ToolInvocationResult(BaseModel):
    """
    Result of a tool invocation.

    Errors are normal results with `is_error` set, never protocol errors.
    """
    content: list[ContentPart] = Field(default_factory=list)
    is_error: bool = Field(default=False, alias="isError")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def text(cls, text: str) -> "ToolInvocationResult":
        return cls(content=[ContentPart(text=text)])

    @classmethod
    def error(cls, message: str) -> "ToolInvocationResult":
        return cls(content=[ContentPart(text=message)], is_error=True)

    @property
    def first_text(self) -> str:
        return self.content[0].text if self.content else ""

    def to_protocol(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


# --- Prompts ---


class PromptArgument(BaseModel):
    """Argument accepted by a prompt template."""
    name: str
    description: str
    required: bool = False


class PromptDefinition(BaseModel):
    """A reusable prompt rendered into user messages."""
    name: str
    description: str
    arguments: list[PromptArgument] = Field(default_factory=list)
    template: str

    def to_protocol(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "arguments": [a.model_dump() for a in self.arguments],
        }


# --- JSON-RPC envelopes ---


class JsonRpcErrorCode(int, Enum):
    """JSON-RPC error codes used by the gateway."""
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    BAD_REQUEST = -32000


class JsonRpcRequest(BaseModel):
    """Standard JSON-RPC 2.0 request or notification."""
    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    method: str
    params: Optional[dict[str, Any]] = None
    id: Optional[Union[str, int]] = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


class InitializeParams(BaseModel):
    """Parameters of the MCP `initialize` request."""
    protocolVersion: str
    capabilities: dict[str, Any]
    clientInfo: dict[str, Any]


class InitializeRequest(BaseModel):
    """Structural shape of a session-creating initialize call."""
    jsonrpc: Literal["2.0"]
    method: Literal["initialize"]
    params: InitializeParams
    id: Union[str, int]


class JsonRpcErrorObj(BaseModel):
    """Structure of a JSON-RPC 2.0 error."""
    code: int
    message: str
    data: Optional[Any] = None


def jsonrpc_result(request_id: Any, result: Any) -> dict[str, Any]:
    """Build a JSON-RPC success response."""
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def jsonrpc_error(
    request_id: Any,
    code: int,
    message: str,
    data: Any = None,
) -> dict[str, Any]:
    """Build a JSON-RPC error response."""
    error = JsonRpcErrorObj(code=int(code), message=message, data=data)
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": error.model_dump(exclude_none=True),
    }


# --- Audit ---


class AuditStatus(str, Enum):
    """Outcome of an audited tool invocation."""
    SUCCESS = "success"
    ERROR = "error"


class AuditEntry(BaseModel):
    """
    Audit log entry for tool invocations.

    Captures tool, session, tenant and outcome. The caller's token is never
    part of an entry.
    """
    id: str
    timestamp: datetime = Field(default_factory=utcnow)

    tool_name: str
    tool_kind: str
    session_id: Optional[str] = None
    tenant_base_url: str
    client_id: Optional[str] = None

    arguments: dict[str, Any] = Field(default_factory=dict)

    status: AuditStatus
    error: Optional[str] = None
    execution_time_ms: float = 0
