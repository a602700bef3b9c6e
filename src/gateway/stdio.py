"""Stdio entry point.

Serves a single protocol session over newline-delimited JSON-RPC on
stdin/stdout, for desktop clients that spawn the gateway as a subprocess.
Logs go to stderr; stdout carries protocol traffic only.
"""

import asyncio
import json
import sys
from typing import Optional, TextIO

import httpx

from shared.config import Settings, get_settings
from shared.errors import TokenAcquisitionError
from shared.logging import get_logger, setup_logging
from shared.models import (
    CallerIdentity,
    JsonRpcErrorCode,
    RequestContext,
    TenantContext,
    TenantMode,
    jsonrpc_error,
)
from gateway.credentials import PasswordGrantTokenProvider
from gateway.executor import ToolExecutor
from gateway.main import SERVER_NAME, SERVER_VERSION
from gateway.protocol import ProtocolEngine
from gateway.registry import ToolRegistry
from gateway.sessions import SessionTransport

logger = get_logger(__name__)


class StdioServer:
    """One engine, one transport, one stream pair."""

    def __init__(
        self,
        engine: ProtocolEngine,
        api_base_url: str,
        token_provider: Optional[PasswordGrantTokenProvider] = None,
        client_id: Optional[str] = None
    ) -> None:
        self.transport = SessionTransport(engine)
        self.tenant = TenantContext(base_url=api_base_url, mode=TenantMode.SINGLE)
        self.token_provider = token_provider
        self.client_id = client_id

    async def build_context(self) -> RequestContext:
        """Context for one message, with a token fetched from the cache or server."""
        token = None
        if self.token_provider:
            try:
                token = await self.token_provider.get_access_token()
            except TokenAcquisitionError as e:
                logger.error("Could not obtain access token", error=str(e))

        caller = CallerIdentity(
            token=token,
            client_id=self.client_id,
            scopes=("api",),
            base_url=self.tenant.base_url,
        )
        return RequestContext(
            caller=caller, tenant=self.tenant, session_id=self.transport.session_id
        )

    async def handle_line(self, line: str) -> Optional[str]:
        """
        Handle one input line.

        Returns:
            The serialized response line, or None when nothing is to be sent
        """
        line = line.strip()
        if not line:
            return None

        try:
            body = json.loads(line)
        except ValueError:
            logger.warning("Unparseable stdio message")
            return json.dumps(jsonrpc_error(None, JsonRpcErrorCode.PARSE_ERROR, "Parse error"))

        context = await self.build_context()
        result = await self.transport.handle_request(body, context)
        if result.payload is None:
            return None
        return json.dumps(result.payload)

    async def serve(self, input_stream: TextIO, output_stream: TextIO) -> None:
        """Read messages until EOF."""
        logger.info("Stdio server running", api_base_url=self.tenant.base_url)
        while True:
            line = await asyncio.to_thread(input_stream.readline)
            if not line:
                break
            response = await self.handle_line(line)
            if response is not None:
                output_stream.write(response + "\n")
                output_stream.flush()
        self.transport.close()
        logger.info("Stdio input closed")


async def run(
    settings: Settings,
    registry: ToolRegistry,
    input_stream: TextIO,
    output_stream: TextIO
) -> None:
    gateway_settings = settings.gateway
    credentials = settings.credentials

    async with httpx.AsyncClient(timeout=gateway_settings.request_timeout_seconds) as client:
        token_provider = PasswordGrantTokenProvider(
            gateway_settings.api_base_url, credentials, client
        )
        executor = ToolExecutor(
            registry=registry,
            http_client=client,
            timeout=gateway_settings.request_timeout_seconds,
            character_limit=gateway_settings.character_limit,
            fail_closed_without_token=gateway_settings.fail_closed_without_token,
        )
        server = StdioServer(
            ProtocolEngine(registry, executor, SERVER_NAME, SERVER_VERSION),
            api_base_url=gateway_settings.api_base_url,
            token_provider=token_provider,
            client_id=credentials.client_id,
        )
        await server.serve(input_stream, output_stream)


def main():
    """Run the gateway over stdio."""
    from catalog import build_registry

    settings = get_settings()
    setup_logging(settings.log_level, json_output=False, stream=sys.stderr)

    if not settings.gateway.api_base_url:
        logger.error("GATEWAY_API_BASE_URL is required for stdio mode")
        sys.exit(1)

    missing = [
        f"DOCEBO_{name.upper()}"
        for name in ("client_id", "client_secret", "username", "password")
        if not getattr(settings.credentials, name)
    ]
    if missing:
        logger.error("Missing required credential settings", missing=missing)
        sys.exit(1)

    asyncio.run(run(settings, build_registry(), sys.stdin, sys.stdout))


if __name__ == "__main__":
    main()
