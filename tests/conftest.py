"""Shared fixtures for gateway tests."""

import json

import httpx
import pytest

from shared.config import GatewaySettings, Settings
from shared.models import (
    CallerIdentity,
    RequestContext,
    TenantContext,
    TenantMode,
)

TENANT_HOST = "acme.mcp.example.com"
TENANT_BASE_URL = "https://acme.docebosaas.com"

INITIALIZE_REQUEST = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "initialize",
    "params": {
        "protocolVersion": "2025-06-18",
        "capabilities": {},
        "clientInfo": {"name": "pytest-client", "version": "1.0"},
    },
}


class RecordingBackend:
    """Stand-in for the platform API; records every request it receives."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], tuple[int, dict]] = {}

    def add(self, method: str, path: str, status_code: int = 200, **kwargs) -> None:
        self.routes[(method.upper(), path)] = (status_code, kwargs)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "Not found"})
        status_code, kwargs = route
        return httpx.Response(status_code, **kwargs)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_form(self) -> dict[str, str]:
        return dict(httpx.QueryParams(self.last.content.decode()))

    def last_json(self):
        return json.loads(self.last.content)


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def http_client(backend):
    return httpx.AsyncClient(transport=httpx.MockTransport(backend))


@pytest.fixture
def context() -> RequestContext:
    return make_context()


def make_context(
    token: str = "test-token",
    base_url: str = TENANT_BASE_URL,
    session_id: str = None
) -> RequestContext:
    tenant = TenantContext(base_url=base_url, mode=TenantMode.MULTI)
    caller = CallerIdentity(
        token=token,
        client_id="oauth",
        scopes=("api",),
        base_url=base_url,
    )
    return RequestContext(caller=caller, tenant=tenant, session_id=session_id)


def make_settings(**gateway_overrides) -> Settings:
    gateway_overrides.setdefault("enable_audit", False)
    return Settings(gateway=GatewaySettings(**gateway_overrides))
