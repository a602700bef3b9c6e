"""LMS MCP Gateway - FastAPI Application.

Exposes the learning platform API as MCP tools over a session-scoped
JSON-RPC endpoint. Tenancy is resolved per request, bearer tokens are
forwarded to the backend untouched, and every tool call is audited.
"""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, Header, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from shared.config import Settings, get_settings
from shared.errors import TenantResolutionError
from shared.logging import bind_context, clear_context, get_logger, setup_logging
from shared.models import CallerIdentity, RequestContext, TenantContext
from gateway.audit import create_audit_logger
from gateway.executor import ToolExecutor
from gateway.oauth import (
    AUTHORIZATION_SERVER_PATH,
    PROTECTED_RESOURCE_PATH,
    TOKEN_PROXY_PATH,
    OAuthConfig,
    OAuthResourceGuard,
    anonymous_caller,
    create_oauth_router,
)
from gateway.protocol import ProtocolEngine
from gateway.registry import ToolRegistry
from gateway.sessions import SESSION_ID_HEADER, SessionManager, TransportResponse
from gateway.tenant import TenantResolver, get_tenant_context

logger = get_logger(__name__)

SERVER_NAME = "docebo-mcp-server"
SERVER_VERSION = "0.1.0"
MCP_PATH = "/mcp"


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    server: str
    version: str


def _to_response(result: TransportResponse) -> Response:
    if result.payload is None:
        return Response(status_code=result.status_code, headers=result.headers)
    return JSONResponse(
        status_code=result.status_code,
        content=result.payload,
        headers=result.headers,
    )


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[ToolRegistry] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        settings: Application settings; loaded from the environment when omitted
        registry: Tool registry; the bundled catalog when omitted
        http_client: Shared outbound client; created in the lifespan when omitted

    Returns:
        The configured FastAPI app
    """
    settings = settings or get_settings()
    gateway_settings = settings.gateway

    if registry is None:
        from catalog import build_registry
        registry = build_registry()

    resolver = TenantResolver(
        static_override=gateway_settings.api_base_url,
        platform_domain=gateway_settings.platform_domain,
    )
    guard = OAuthResourceGuard(OAuthConfig(
        server_url=gateway_settings.server_url,
        authorization_server_url=gateway_settings.authorization_server_url,
        client_id=gateway_settings.client_id,
        client_secret=gateway_settings.client_secret,
    ))
    caller_dependency = guard if gateway_settings.oauth_enabled else anonymous_caller

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        setup_logging(settings.log_level, json_output=settings.environment == "production")
        logger.info("Starting LMS MCP Gateway", tenant_mode=resolver.mode.value)

        owns_client = http_client is None
        client = http_client or httpx.AsyncClient(
            timeout=gateway_settings.request_timeout_seconds
        )
        audit_logger = create_audit_logger(
            gateway_settings.audit_log_path, gateway_settings.enable_audit
        )
        executor = ToolExecutor(
            registry=registry,
            http_client=client,
            audit_logger=audit_logger,
            timeout=gateway_settings.request_timeout_seconds,
            character_limit=gateway_settings.character_limit,
            fail_closed_without_token=gateway_settings.fail_closed_without_token,
        )

        app.state.http_client = client
        app.state.session_manager = SessionManager(
            engine_factory=lambda: ProtocolEngine(
                registry, executor, SERVER_NAME, SERVER_VERSION
            )
        )

        logger.info(
            "LMS MCP Gateway started",
            tool_count=len(registry),
            prompt_count=len(registry.list_prompts()),
            oauth_enabled=gateway_settings.oauth_enabled,
        )

        yield

        # Shutdown
        logger.info("Shutting down LMS MCP Gateway")
        app.state.session_manager.close_all()
        if audit_logger:
            await audit_logger.flush()
        if owns_client:
            await client.aclose()

    app = FastAPI(
        title="LMS MCP Gateway",
        description="MCP gateway for the learning platform API",
        version=SERVER_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[SESSION_ID_HEADER],
    )

    @app.middleware("http")
    async def resolve_tenant(request: Request, call_next):
        """Attach the tenant context before routing; unresolvable hosts get 400."""
        try:
            request.state.tenant = resolver.resolve(request.headers.get("host"))
        except TenantResolutionError as e:
            logger.info("Tenant resolution failed", error=str(e))
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": "Could not resolve tenant"},
            )
        return await call_next(request)

    def build_context(
        caller: CallerIdentity = Depends(caller_dependency),
        tenant: TenantContext = Depends(get_tenant_context),
    ) -> RequestContext:
        return RequestContext(caller=caller, tenant=tenant)

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(status="OK", server=SERVER_NAME, version=SERVER_VERSION)

    @app.get("/info", tags=["System"])
    async def info(
        request: Request,
        tenant: TenantContext = Depends(get_tenant_context),
    ):
        """Service description and endpoint URLs."""
        base = guard.server_base(request)
        endpoints = {
            "mcp": f"{base}{MCP_PATH}",
            "health": f"{base}/health",
        }
        if gateway_settings.oauth_enabled:
            endpoints["protected_resource_metadata"] = f"{base}{PROTECTED_RESOURCE_PATH}"
            endpoints["authorization_server_metadata"] = f"{base}{AUTHORIZATION_SERVER_PATH}"
            if guard.config.use_token_proxy:
                endpoints["token_proxy"] = f"{base}{TOKEN_PROXY_PATH}"

        body = {
            "name": SERVER_NAME,
            "version": SERVER_VERSION,
            "tenant_mode": tenant.mode.value,
            "api_base_url": tenant.base_url,
            "tool_count": len(registry),
            "endpoints": endpoints,
        }
        if gateway_settings.oauth_enabled:
            auth_server = guard.authorization_server(tenant)
            body["oauth"] = {
                "authorization_endpoint": f"{auth_server}/oauth2/authorize",
                "token_endpoint": guard.token_endpoint(request, tenant),
                "scopes": guard.config.scopes,
            }
        return body

    if gateway_settings.oauth_enabled:
        app.include_router(create_oauth_router(guard))

    @app.post(MCP_PATH, tags=["MCP"])
    async def mcp_post(
        request: Request,
        context: RequestContext = Depends(build_context),
        session_id: Optional[str] = Header(default=None, alias=SESSION_ID_HEADER),
    ):
        """Protocol traffic."""
        bind_context(session_id=session_id, tenant=context.tenant.base_url)
        try:
            raw_body = await request.body()
            result = await request.app.state.session_manager.handle_post(
                raw_body, session_id, context
            )
        finally:
            clear_context()
        return _to_response(result)

    @app.get(MCP_PATH, tags=["MCP"])
    async def mcp_get():
        """Server-initiated streams are not offered."""
        return JSONResponse(
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
            content={"error": "Method Not Allowed"},
            headers={"Allow": "POST, DELETE"},
        )

    @app.delete(MCP_PATH, tags=["MCP"])
    async def mcp_delete(
        request: Request,
        context: RequestContext = Depends(build_context),
        session_id: Optional[str] = Header(default=None, alias=SESSION_ID_HEADER),
    ):
        """Terminate a session."""
        manager: SessionManager = request.app.state.session_manager
        if not session_id or not manager.terminate(session_id):
            return _to_response(manager.bad_request_response())

        logger.info("Session terminated by client", session_id=session_id)
        return JSONResponse(content={"terminated": session_id})

    return app


def main():
    """Run the gateway."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "gateway.main:create_app",
        factory=True,
        host=settings.gateway.host,
        port=settings.gateway.port,
        reload=settings.environment == "development"
    )


if __name__ == "__main__":
    main()
