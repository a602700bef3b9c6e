"""OAuth 2.0 protected-resource support for the gateway.

Handles:
- Discovery metadata (RFC 9728 protected resource, RFC 8414 authorization server)
- Bearer token presence checks on the protocol endpoint
- An optional token-exchange proxy for public clients without a secret

Tokens are never validated locally. They are forwarded to the backend API,
which is the final arbiter of authorization.
"""

from typing import Optional
from urllib.parse import parse_qsl

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from shared.logging import get_logger
from shared.models import CallerIdentity, TenantContext
from gateway.tenant import get_tenant_context

logger = get_logger(__name__)

PROTECTED_RESOURCE_PATH = "/.well-known/oauth-protected-resource"
AUTHORIZATION_SERVER_PATH = "/.well-known/oauth-authorization-server"
TOKEN_PROXY_PATH = "/oauth/token"

security = HTTPBearer(auto_error=False)


class OAuthConfig(BaseModel):
    """OAuth resource server configuration."""
    server_url: Optional[str] = None
    authorization_server_url: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    scopes: list[str] = ["api"]

    @property
    def use_token_proxy(self) -> bool:
        return bool(self.client_id and self.client_secret)


def request_base_url(request: Request) -> str:
    """Public base URL of this server as seen by the client."""
    forwarded = request.headers.get("x-forwarded-proto")
    proto = forwarded.split(",")[0].strip() if forwarded else request.url.scheme
    host = request.headers.get("host") or request.url.netloc
    return f"{proto}://{host}"


class OAuthResourceGuard:
    """
    Protected-resource side of the OAuth 2.0 flow.

    Holds no state of its own; every URL it advertises is derived from the
    static configuration plus the tenant resolved for the current request.
    """

    def __init__(self, config: OAuthConfig) -> None:
        self.config = config

    def server_base(self, request: Request) -> str:
        """This server's public URL, static when configured."""
        if self.config.server_url:
            return self.config.server_url.rstrip("/")
        return request_base_url(request)

    def resource_metadata_url(self, request: Request) -> str:
        return f"{self.server_base(request)}{PROTECTED_RESOURCE_PATH}"

    def authorization_server(self, tenant: TenantContext) -> str:
        """Authorization server trusted for this tenant."""
        base = self.config.authorization_server_url or tenant.base_url
        return base.rstrip("/")

    def token_endpoint(self, request: Request, tenant: TenantContext) -> str:
        if self.config.use_token_proxy:
            return f"{self.server_base(request)}{TOKEN_PROXY_PATH}"
        return f"{self.authorization_server(tenant)}/oauth2/token"

    def protected_resource_metadata(
        self,
        request: Request,
        tenant: TenantContext
    ) -> dict:
        """RFC 9728 protected resource metadata."""
        return {
            "resource": self.config.server_url or self.server_base(request),
            "authorization_servers": [self.authorization_server(tenant)],
            "scopes_supported": self.config.scopes,
            "bearer_methods_supported": ["header"],
        }

    def authorization_server_metadata(
        self,
        request: Request,
        tenant: TenantContext
    ) -> dict:
        """RFC 8414 authorization server metadata, mirrored for the upstream."""
        auth_server = self.authorization_server(tenant)
        return {
            "issuer": auth_server,
            "authorization_endpoint": f"{auth_server}/oauth2/authorize",
            "token_endpoint": self.token_endpoint(request, tenant),
            "response_types_supported": ["code"],
            "grant_types_supported": ["authorization_code", "refresh_token"],
            "code_challenge_methods_supported": ["S256"],
            "scopes_supported": self.config.scopes,
        }

    def challenge(self, request: Request) -> HTTPException:
        """401 carrying the RFC 9728 discovery challenge."""
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={
                "WWW-Authenticate": (
                    f'Bearer resource_metadata="{self.resource_metadata_url(request)}"'
                )
            },
        )

    async def proxy_token(
        self,
        body: bytes,
        tenant: TenantContext,
        http_client: httpx.AsyncClient
    ) -> httpx.Response:
        """
        Forward a form-encoded token request upstream.

        The confidential client id/secret are injected so public clients can
        complete an authorization-code exchange.

        Raises:
            UnicodeDecodeError: If the body is not UTF-8
            httpx.HTTPError: If the authorization server cannot be reached
        """
        params = dict(parse_qsl(body.decode("utf-8"), keep_blank_values=True))
        params["client_id"] = self.config.client_id or ""
        params["client_secret"] = self.config.client_secret or ""

        logger.info(
            "Forwarding token request",
            grant_type=params.get("grant_type"),
            authorization_server=self.authorization_server(tenant),
        )

        return await http_client.post(
            f"{self.authorization_server(tenant)}/oauth2/token",
            data=params,
            headers={"Accept": "application/json"},
        )

    async def __call__(
        self,
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        tenant: TenantContext = Depends(get_tenant_context),
    ) -> CallerIdentity:
        """
        FastAPI dependency guarding the protocol endpoint.

        Missing, non-Bearer, or empty-token requests get a 401 challenge.
        """
        if not credentials or not credentials.credentials.strip():
            logger.info("Rejected unauthenticated request", path=request.url.path)
            raise self.challenge(request)

        return CallerIdentity(
            token=credentials.credentials,
            client_id="oauth",
            scopes=tuple(self.config.scopes),
            base_url=tenant.base_url,
        )


def anonymous_caller(
    tenant: TenantContext = Depends(get_tenant_context),
) -> CallerIdentity:
    """Caller identity used when OAuth is disabled for a deployment."""
    return CallerIdentity(base_url=tenant.base_url)


def create_oauth_router(guard: OAuthResourceGuard) -> APIRouter:
    """Build the discovery and token-proxy routes for a guard."""
    router = APIRouter(tags=["OAuth"])

    @router.get(PROTECTED_RESOURCE_PATH)
    async def protected_resource(
        request: Request,
        tenant: TenantContext = Depends(get_tenant_context),
    ):
        """RFC 9728 protected resource metadata."""
        return guard.protected_resource_metadata(request, tenant)

    @router.get(AUTHORIZATION_SERVER_PATH)
    async def authorization_server(
        request: Request,
        tenant: TenantContext = Depends(get_tenant_context),
    ):
        """RFC 8414 authorization server metadata."""
        return guard.authorization_server_metadata(request, tenant)

    if guard.config.use_token_proxy:

        @router.post(TOKEN_PROXY_PATH)
        async def token_proxy(
            request: Request,
            tenant: TenantContext = Depends(get_tenant_context),
        ):
            """Token-exchange proxy for public clients."""
            body = await request.body()
            try:
                upstream = await guard.proxy_token(
                    body, tenant, request.app.state.http_client
                )
            except UnicodeDecodeError:
                logger.info("Rejected token request with undecodable body")
                return JSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content={
                        "error": "invalid_request",
                        "error_description": "Request body must be UTF-8 form data",
                    },
                )
            except httpx.HTTPError as e:
                logger.error("Token proxy failed", error=str(e))
                return JSONResponse(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    content={
                        "error": "server_error",
                        "error_description": "Token proxy failed",
                    },
                )

            return Response(
                content=upstream.content,
                status_code=upstream.status_code,
                media_type=upstream.headers.get("content-type", "application/json"),
            )

    return router
