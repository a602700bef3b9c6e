"""Tool Execution Engine.

Turns a tool name, raw arguments and the request context into a
ToolInvocationResult. Declarative tools are interpreted generically: the
arguments are bound to an HTTP request against the tenant's API and the
response is normalized to text. Code tools supply their own process step
but share validation and error formatting, so callers cannot tell the two
kinds apart.

Every failure becomes a result with the error flag set; nothing raised
here escapes to the protocol layer.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import quote

import httpx

from shared.errors import GatewayError, UnresolvedPathParameterError
from shared.logging import get_logger
from shared.models import (
    CodeTool,
    DeclarativeTool,
    ParameterLocation,
    RequestContext,
    ToolInvocationResult,
    PLACEHOLDER_PATTERN,
)
from shared.schema import apply_defaults
from gateway.api_client import ApiClient, format_api_error, join_url
from gateway.audit import AuditLogger
from gateway.registry import ToolRegistry

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_CHARACTER_LIMIT = 25000
BODY_ARGUMENT = "requestBody"

TRUNCATION_NOTICE = (
    "\n\n[Response truncated to {limit} characters. Narrow the results with "
    "pagination (page, page_size) or filters to see the rest.]"
)

# Keys commonly used for pagination metadata, per concept
PAGINATION_KEYS = {
    "total_count": ("total_count", "total", "count"),
    "current_page": ("current_page", "page"),
    "page_size": ("current_page_size", "page_size", "per_page"),
    "has_more": ("has_more_data", "has_more", "has_next"),
}

SUMMARY_NAME_KEYS = ("name", "title", "fullname", "username", "course_name")
SUMMARY_ID_KEYS = ("id", "id_course", "id_user", "user_id", "course_id", "enrollment_id")
SUMMARY_DETAIL_KEYS = ("status", "type", "course_type", "email", "completion_percentage")


@dataclass
class BoundRequest:
    """An outbound request produced from a tool and its arguments."""
    method: str
    path: str
    query: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None


def bind_request(tool: DeclarativeTool, arguments: dict[str, Any]) -> BoundRequest:
    """
    Bind validated arguments to an outbound request.

    Raises:
        UnresolvedPathParameterError: If a path placeholder stays unresolved
    """
    path = tool.path_template
    bound = BoundRequest(
        method=tool.method.upper(),
        path=path,
        headers={"accept": "application/json"},
    )

    for param in tool.parameters:
        value = arguments.get(param.name)
        if value is None:
            continue

        if param.location == ParameterLocation.PATH:
            path = path.replace(f"{{{param.name}}}", quote(str(value), safe=""))
        elif param.location == ParameterLocation.QUERY:
            bound.query[param.name] = value
        elif param.location == ParameterLocation.HEADER:
            bound.headers[param.name.lower()] = str(value)

    if PLACEHOLDER_PATTERN.search(path):
        raise UnresolvedPathParameterError(path)
    bound.path = path

    if tool.request_body_content_type and arguments.get(BODY_ARGUMENT) is not None:
        bound.body = arguments[BODY_ARGUMENT]
        bound.headers["content-type"] = tool.request_body_content_type

    return bound


def truncate(text: str, limit: int = DEFAULT_CHARACTER_LIMIT) -> str:
    """Cap text at ``limit`` characters, appending a truncation notice."""
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_NOTICE.format(limit=limit)


def _first_present(source: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in source and source[key] is not None:
            return source[key]
    return None


def extract_pagination(data: Any) -> Optional[dict[str, Any]]:
    """
    Find pagination metadata in common response shapes.

    Looks at the top level and inside a ``data`` envelope.
    """
    if not isinstance(data, dict):
        return None

    candidates = [data]
    if isinstance(data.get("data"), dict):
        candidates.insert(0, data["data"])

    for source in candidates:
        found = {}
        for concept, keys in PAGINATION_KEYS.items():
            value = _first_present(source, keys)
            if value is not None:
                found[concept] = value
        # a lone "count" or "page" is too weak a signal on its own
        if len(found) >= 2:
            return found
    return None


def format_pagination(pagination: dict[str, Any]) -> str:
    parts = [f"{key}={json.dumps(value)}" for key, value in pagination.items()]
    return "Pagination: " + ", ".join(parts)


def _find_items(data: Any) -> Optional[list[Any]]:
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        return None
    for envelope in (data.get("data"), data):
        if isinstance(envelope, list):
            return envelope
        if isinstance(envelope, dict) and isinstance(envelope.get("items"), list):
            return envelope["items"]
    return None


def summarize(data: Any) -> str:
    """Condensed, human-readable rendering of a JSON payload."""
    items = _find_items(data)

    if items is None:
        source = data.get("data", data) if isinstance(data, dict) else data
        if not isinstance(source, dict):
            return json.dumps(source, indent=2, ensure_ascii=False)
        lines = [
            f"- {key}: {value}"
            for key, value in source.items()
            if not isinstance(value, (dict, list))
        ]
        return "\n".join(lines) if lines else "(no scalar fields)"

    lines = [f"Found {len(items)} item(s)"]
    for item in items:
        if not isinstance(item, dict):
            lines.append(f"- {item}")
            continue
        name = _first_present(item, SUMMARY_NAME_KEYS)
        item_id = _first_present(item, SUMMARY_ID_KEYS)
        line = f"- **{name if name is not None else '(unnamed)'}**"
        if item_id is not None:
            line += f" (id: {item_id})"
        details = [
            f"{key}: {item[key]}"
            for key in SUMMARY_DETAIL_KEYS
            if item.get(key) is not None
        ]
        if details:
            line += " | " + ", ".join(details)
        lines.append(line)
    return "\n".join(lines)


def _is_textual(content_type: str) -> bool:
    return (
        content_type.startswith("text/")
        or "json" in content_type
        or "xml" in content_type
        or "javascript" in content_type
    )


def format_response(
    response: httpx.Response,
    tool: DeclarativeTool,
    arguments: dict[str, Any],
    character_limit: int = DEFAULT_CHARACTER_LIMIT,
) -> str:
    """
    Normalize a successful backend response to text.

    The body is capped at ``character_limit`` before the pagination line is
    appended.
    """
    content_type = response.headers.get("content-type", "").lower()
    data: Any = None
    is_json = False

    if "application/json" in content_type and response.content:
        try:
            data = response.json()
            is_json = True
        except ValueError:
            is_json = False

    if is_json and tool.is_read_only and arguments.get("response_format") == "markdown":
        body = summarize(data)
    elif is_json:
        body = json.dumps(data, indent=2, ensure_ascii=False)
    elif response.content and _is_textual(content_type):
        body = response.text
    else:
        body = f"(Status: {response.status_code} - No body content)"

    text = truncate(
        f"API Response (Status: {response.status_code}):\n{body}", character_limit
    )

    if is_json and tool.is_read_only:
        pagination = extract_pagination(data)
        if pagination:
            text += "\n\n" + format_pagination(pagination)

    return text


def describe_security(requirements: list[dict[str, list[str]]]) -> str:
    """Render security requirements as e.g. ``[bearerAuth] OR [apiKey (scopes: a)]``."""
    rendered = []
    for requirement in requirements:
        parts = [
            f"{name} (scopes: {', '.join(scopes)})" if scopes else name
            for name, scopes in requirement.items()
        ]
        rendered.append(f"[{' AND '.join(parts)}]")
    return " OR ".join(rendered)


class ToolExecutor:
    """
    Executes tool invocations.

    Responsibilities:
    - Look up tools in the registry
    - Validate arguments, aggregating every violation
    - Run declarative tools as one HTTP call, code tools via their process step
    - Normalize and bound the result text
    - Audit every invocation
    """

    def __init__(
        self,
        registry: ToolRegistry,
        http_client: httpx.AsyncClient,
        audit_logger: Optional[AuditLogger] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        character_limit: int = DEFAULT_CHARACTER_LIMIT,
        fail_closed_without_token: bool = False
    ) -> None:
        self.registry = registry
        self.http_client = http_client
        self.audit_logger = audit_logger
        self.timeout = timeout
        self.character_limit = character_limit
        self.fail_closed_without_token = fail_closed_without_token

    async def execute(
        self,
        tool_name: str,
        raw_args: Any,
        context: RequestContext
    ) -> ToolInvocationResult:
        """
        Execute a tool invocation.

        Args:
            tool_name: Name of the tool to run
            raw_args: Arguments as sent by the client
            context: Tenant and caller the call acts for

        Returns:
            The invocation result; errors are flagged, never raised
        """
        start_time = time.time()

        tool = self.registry.get(tool_name)
        if not tool:
            logger.warning("Unknown tool requested", tool=tool_name)
            return ToolInvocationResult.error(
                f"Error: Unknown tool requested: {tool_name}"
            )

        arguments = raw_args if isinstance(raw_args, dict) else {}
        arguments = apply_defaults(arguments, tool.input_schema)

        is_valid, errors = self.registry.validate_input(tool_name, arguments)
        if not is_valid:
            result = ToolInvocationResult.error(
                f"Invalid arguments for tool '{tool_name}': {', '.join(errors)}"
            )
        else:
            logger.debug(
                "Executing tool",
                tool=tool_name,
                kind=tool.kind,
                session_id=context.session_id,
            )
            try:
                if isinstance(tool, CodeTool):
                    result = await self._execute_code_tool(tool, arguments, context)
                else:
                    result = await self._execute_declarative(tool, arguments, context)
            except Exception as e:
                logger.error(
                    "Tool execution failed",
                    tool=tool_name,
                    error=str(e),
                    exc_info=not isinstance(e, GatewayError)
                )
                result = ToolInvocationResult.error(str(e) or type(e).__name__)

        if self.audit_logger:
            await self.audit_logger.log(
                tool,
                arguments,
                context,
                result,
                execution_time_ms=(time.time() - start_time) * 1000
            )

        return result

    async def _execute_declarative(
        self,
        tool: DeclarativeTool,
        arguments: dict[str, Any],
        context: RequestContext
    ) -> ToolInvocationResult:
        """Bind, send and normalize one HTTP call."""
        bound = bind_request(tool, arguments)
        url = join_url(context.tenant.base_url, bound.path)

        if context.caller.authenticated:
            bound.headers["authorization"] = f"Bearer {context.caller.token}"
        elif tool.security_requirements:
            requirements = describe_security(tool.security_requirements)
            logger.warning(
                "Tool requires security but no bearer token was presented",
                tool=tool.name,
                requirements=requirements,
            )
            if self.fail_closed_without_token:
                return ToolInvocationResult.error(
                    f"Tool '{tool.name}' requires {requirements}, "
                    "but no bearer token was presented."
                )

        request_kwargs: dict[str, Any] = {
            "params": bound.query,
            "headers": bound.headers,
            "timeout": self.timeout,
        }
        if bound.body is not None:
            if isinstance(bound.body, (dict, list)) and "json" in (
                tool.request_body_content_type or ""
            ):
                request_kwargs["content"] = json.dumps(bound.body)
            elif isinstance(bound.body, (dict, list)):
                request_kwargs["data"] = bound.body
            else:
                request_kwargs["content"] = str(bound.body)

        logger.info("Calling backend", tool=tool.name, method=bound.method, url=url)

        try:
            response = await self.http_client.request(bound.method, url, **request_kwargs)
            response.raise_for_status()
        except httpx.HTTPError as e:
            message = format_api_error(e)
            logger.warning("Backend call failed", tool=tool.name, error=message)
            return ToolInvocationResult.error(message)

        return ToolInvocationResult.text(
            format_response(response, tool, arguments, self.character_limit)
        )

    async def _execute_code_tool(
        self,
        tool: CodeTool,
        arguments: dict[str, Any],
        context: RequestContext
    ) -> ToolInvocationResult:
        """Run a code tool's own process step."""
        api = ApiClient.for_context(self.http_client, context, timeout=self.timeout)
        data = await tool.process(arguments, context, api)

        if not isinstance(data, str):
            data = json.dumps(data, indent=2, ensure_ascii=False)
        return ToolInvocationResult.text(truncate(data, self.character_limit))


__all__ = [
    "BoundRequest",
    "ToolExecutor",
    "bind_request",
    "extract_pagination",
    "format_api_error",
    "summarize",
    "truncate",
]
