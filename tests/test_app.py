"""End-to-end tests for the gateway HTTP surface."""

import pytest
from fastapi.testclient import TestClient

from catalog import build_registry
from gateway.main import create_app
from gateway.sessions import SESSION_ID_HEADER
from conftest import INITIALIZE_REQUEST, TENANT_HOST, make_settings

AUTH = {"Authorization": "Bearer user-token"}


@pytest.fixture
def client(backend, http_client):
    app = create_app(make_settings(), build_registry(), http_client)
    with TestClient(app, base_url=f"http://{TENANT_HOST}") as test_client:
        yield test_client


def initialize(client) -> str:
    response = client.post("/mcp", json=INITIALIZE_REQUEST, headers=AUTH)
    assert response.status_code == 200
    return response.headers[SESSION_ID_HEADER]


def call_tool(name, arguments, request_id=2) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments},
    }


class TestProtocolEndpoint:
    """Tests for POST/GET/DELETE /mcp."""

    def test_initialize_then_call_targets_tenant(self, client, backend):
        """A session opened on acme's host calls acme's API."""
        backend.add("GET", "/learn/v1/courses/42", json={"data": {"id_course": 42}})
        session_id = initialize(client)

        response = client.post(
            "/mcp",
            json=call_tool("get-a-course", {"course_id": "42"}),
            headers={**AUTH, SESSION_ID_HEADER: session_id},
        )

        assert response.status_code == 200
        result = response.json()["result"]
        assert result["isError"] is False
        assert result["content"][0]["text"].startswith("API Response (Status: 200):")
        assert str(backend.last.url) == "https://acme.docebosaas.com/learn/v1/courses/42"
        assert backend.last.headers["authorization"] == "Bearer user-token"

    def test_call_without_session_is_rejected(self, client, backend):
        initialize(client)

        response = client.post(
            "/mcp", json=call_tool("get-a-course", {"course_id": "42"}), headers=AUTH
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"]["code"] == -32000
        assert body["error"]["message"] == "Bad Request: invalid session ID or method"
        assert backend.requests == []

    def test_tools_list_includes_catalog(self, client):
        session_id = initialize(client)

        response = client.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": 3, "method": "tools/list"},
            headers={**AUTH, SESSION_ID_HEADER: session_id},
        )

        names = {tool["name"] for tool in response.json()["result"]["tools"]}
        assert {"list-all-courses", "get-a-course", "global_search", "get_my_profile"} <= names

    def test_notification_returns_202(self, client):
        session_id = initialize(client)

        response = client.post(
            "/mcp",
            json={"jsonrpc": "2.0", "method": "notifications/initialized"},
            headers={**AUTH, SESSION_ID_HEADER: session_id},
        )

        assert response.status_code == 202
        assert response.content == b""

    def test_parse_error(self, client):
        response = client.post(
            "/mcp",
            content=b"{oops",
            headers={**AUTH, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == -32700

    def test_get_not_allowed(self, client):
        response = client.get("/mcp")

        assert response.status_code == 405
        assert response.headers["allow"] == "POST, DELETE"

    def test_delete_terminates_session(self, client):
        session_id = initialize(client)

        response = client.delete("/mcp", headers={**AUTH, SESSION_ID_HEADER: session_id})
        assert response.status_code == 200

        response = client.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": 4, "method": "ping"},
            headers={**AUTH, SESSION_ID_HEADER: session_id},
        )
        assert response.json()["error"]["code"] == -32000

    def test_delete_unknown_session(self, client):
        response = client.delete("/mcp", headers={**AUTH, SESSION_ID_HEADER: "missing"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == -32000

    def test_cors_exposes_session_header(self, client):
        response = client.post(
            "/mcp",
            json=INITIALIZE_REQUEST,
            headers={**AUTH, "Origin": "https://claude.example"},
        )

        assert SESSION_ID_HEADER in response.headers["access-control-expose-headers"]


class TestSystemEndpoints:
    """Tests for health, info and tenant rejection."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "OK",
            "server": "docebo-mcp-server",
            "version": "0.1.0",
        }

    def test_info(self, client):
        body = client.get("/info").json()

        assert body["name"] == "docebo-mcp-server"
        assert body["tenant_mode"] == "multi-tenant"
        assert body["api_base_url"] == "https://acme.docebosaas.com"
        assert body["endpoints"]["mcp"] == f"http://{TENANT_HOST}/mcp"
        assert body["oauth"]["authorization_endpoint"] == \
            "https://acme.docebosaas.com/oauth2/authorize"

    def test_unresolvable_tenant_is_rejected_everywhere(self, http_client):
        app = create_app(make_settings(), build_registry(), http_client)
        with TestClient(app, base_url="http://localhost:3000") as client:
            for response in (client.get("/health"), client.post("/mcp", json={})):
                assert response.status_code == 400
                assert response.json() == {"error": "Could not resolve tenant"}

    def test_single_tenant_accepts_any_host(self, backend, http_client):
        backend.add("GET", "/learn/v1/courses/1", json={})
        settings = make_settings(api_base_url="https://static.example.com")
        app = create_app(settings, build_registry(), http_client)

        with TestClient(app, base_url="http://localhost:3000") as client:
            session_id = initialize(client)
            client.post(
                "/mcp",
                json=call_tool("get-a-course", {"course_id": "1"}),
                headers={**AUTH, SESSION_ID_HEADER: session_id},
            )

        assert str(backend.last.url) == "https://static.example.com/learn/v1/courses/1"


class TestOAuthDisabled:
    """With OAuth off the protocol endpoint is open."""

    def test_open_endpoint_without_metadata(self, http_client):
        app = create_app(make_settings(oauth_enabled=False), build_registry(), http_client)

        with TestClient(app, base_url=f"http://{TENANT_HOST}") as client:
            response = client.post("/mcp", json=INITIALIZE_REQUEST)
            assert response.status_code == 200

            response = client.get("/.well-known/oauth-protected-resource")
            assert response.status_code == 404
