"""Audit logging for tool invocations.

Records one entry per invocation: tool, session, tenant, outcome and
duration. The caller's bearer token is never recorded, and sensitive
arguments are redacted.
"""

import asyncio
import uuid
from pathlib import Path
from typing import Any, Optional

import aiofiles

from shared.logging import get_logger
from shared.models import (
    AuditEntry,
    AuditStatus,
    RequestContext,
    ToolEntry,
    ToolInvocationResult,
)

logger = get_logger(__name__)


class AuditLogger:
    """
    Audit logger for tool invocations.

    Entries go to the structured log immediately and are buffered for
    batched JSON-lines writes to the audit file.
    """

    # Arguments that should be redacted in audit logs
    SENSITIVE_PARAMS = {
        "password", "token", "access_token", "refresh_token",
        "secret", "client_secret", "api_key", "apikey", "credential",
    }

    def __init__(
        self,
        log_path: str = "logs/audit.log",
        enabled: bool = True,
        buffer_size: int = 100
    ) -> None:
        self.log_path = Path(log_path)
        self.enabled = enabled
        self.buffer_size = buffer_size
        self._buffer: list[AuditEntry] = []
        self._lock = asyncio.Lock()

        if self.enabled:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def _redact_sensitive(self, params: dict[str, Any]) -> dict[str, Any]:
        """Redact sensitive arguments from audit logs."""
        redacted = {}
        for key, value in params.items():
            if key.lower() in self.SENSITIVE_PARAMS:
                redacted[key] = "[REDACTED]"
            elif isinstance(value, dict):
                redacted[key] = self._redact_sensitive(value)
            else:
                redacted[key] = value
        return redacted

    def create_entry(
        self,
        tool: ToolEntry,
        arguments: dict[str, Any],
        context: RequestContext,
        result: ToolInvocationResult,
        execution_time_ms: float = 0
    ) -> AuditEntry:
        """
        Create an audit entry from invocation data.

        Args:
            tool: Tool that was invoked
            arguments: Validated arguments
            context: Request context of the invocation
            result: Invocation result
            execution_time_ms: Wall-clock duration

        Returns:
            Audit entry
        """
        return AuditEntry(
            id=str(uuid.uuid4()),
            tool_name=tool.name,
            tool_kind=tool.kind,
            session_id=context.session_id,
            tenant_base_url=context.tenant.base_url,
            client_id=context.caller.client_id,
            arguments=self._redact_sensitive(arguments),
            status=AuditStatus.ERROR if result.is_error else AuditStatus.SUCCESS,
            error=result.first_text if result.is_error else None,
            execution_time_ms=execution_time_ms,
        )

    async def log(
        self,
        tool: ToolEntry,
        arguments: dict[str, Any],
        context: RequestContext,
        result: ToolInvocationResult,
        execution_time_ms: float = 0
    ) -> None:
        """Log a tool invocation."""
        if not self.enabled:
            return

        entry = self.create_entry(tool, arguments, context, result, execution_time_ms)

        logger.info(
            "Tool invoked",
            audit_id=entry.id,
            tool=entry.tool_name,
            session_id=entry.session_id,
            tenant=entry.tenant_base_url,
            status=entry.status.value,
            execution_time_ms=round(entry.execution_time_ms, 1)
        )

        async with self._lock:
            self._buffer.append(entry)

            if len(self._buffer) >= self.buffer_size:
                await self._flush()

    async def _flush(self) -> None:
        """Flush buffered entries to file."""
        if not self._buffer:
            return

        entries_to_write = self._buffer.copy()
        self._buffer.clear()

        try:
            async with aiofiles.open(self.log_path, "a") as f:
                for entry in entries_to_write:
                    await f.write(entry.model_dump_json() + "\n")
        except OSError as e:
            logger.error("Failed to write audit log", error=str(e))
            # Keep entries for the next flush attempt
            self._buffer.extend(entries_to_write)

    async def flush(self) -> None:
        """Public method to flush audit buffer."""
        async with self._lock:
            await self._flush()

    @property
    def pending(self) -> int:
        return len(self._buffer)


def create_audit_logger(log_path: str, enabled: bool) -> Optional[AuditLogger]:
    """Audit logger for the given settings, or None when disabled."""
    return AuditLogger(log_path=log_path, enabled=True) if enabled else None
