"""LMS MCP Gateway - sessions, tenancy, OAuth and tool execution.

The gateway is the authoritative component for tool execution. It resolves
the tenant for each request, guards the protocol endpoint, keeps one
protocol session per client, and executes tools against the tenant's API.
"""

from gateway.registry import ToolRegistry
from gateway.executor import ToolExecutor
from gateway.protocol import ProtocolEngine
from gateway.sessions import SessionManager, SessionStore
from gateway.tenant import TenantResolver
from gateway.audit import AuditLogger

__all__ = [
    "ToolRegistry",
    "ToolExecutor",
    "ProtocolEngine",
    "SessionManager",
    "SessionStore",
    "TenantResolver",
    "AuditLogger",
]
