"""Shared models, configuration and utilities for the LMS MCP Gateway."""

from shared.models import (
    CallerIdentity,
    CodeTool,
    DeclarativeTool,
    RequestContext,
    TenantContext,
    ToolInvocationResult,
    AuditEntry,
)
from shared.config import Settings, get_settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "CallerIdentity",
    "CodeTool",
    "DeclarativeTool",
    "RequestContext",
    "TenantContext",
    "ToolInvocationResult",
    "AuditEntry",
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
]
