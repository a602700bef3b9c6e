"""Tests for the OAuth resource guard."""

import httpx
import pytest
from fastapi.testclient import TestClient

from catalog import build_registry
from gateway.main import create_app
from conftest import INITIALIZE_REQUEST, TENANT_HOST, make_settings

RESOURCE_METADATA_URL = f"http://{TENANT_HOST}/.well-known/oauth-protected-resource"


def make_client(http_client, **settings) -> TestClient:
    app = create_app(make_settings(**settings), build_registry(), http_client)
    return TestClient(app, base_url=f"http://{TENANT_HOST}")


class TestProtectedResourceMetadata:
    """Tests for RFC 9728 discovery."""

    def test_multi_tenant_metadata(self, http_client):
        with make_client(http_client) as client:
            body = client.get("/.well-known/oauth-protected-resource").json()

        assert body["resource"] == f"http://{TENANT_HOST}"
        assert body["authorization_servers"] == ["https://acme.docebosaas.com"]
        assert body["scopes_supported"] == ["api"]
        assert body["bearer_methods_supported"] == ["header"]

    def test_forwarded_proto(self, http_client):
        with make_client(http_client) as client:
            body = client.get(
                "/.well-known/oauth-protected-resource",
                headers={"X-Forwarded-Proto": "https"},
            ).json()

        assert body["resource"] == f"https://{TENANT_HOST}"

    def test_static_configuration(self, http_client):
        with make_client(
            http_client,
            api_base_url="https://static.example.com",
            server_url="https://mcp.example.com",
        ) as client:
            body = client.get("/.well-known/oauth-protected-resource").json()

        assert body["resource"] == "https://mcp.example.com"
        assert body["authorization_servers"] == ["https://static.example.com"]

    def test_authorization_server_override(self, http_client):
        with make_client(http_client, authorization_server_url="https://auth.example.com/") as client:
            body = client.get("/.well-known/oauth-protected-resource").json()

        assert body["authorization_servers"] == ["https://auth.example.com"]


class TestAuthorizationServerMetadata:
    """Tests for RFC 8414 discovery."""

    def test_direct_token_endpoint(self, http_client):
        with make_client(http_client) as client:
            body = client.get("/.well-known/oauth-authorization-server").json()

        assert body["issuer"] == "https://acme.docebosaas.com"
        assert body["authorization_endpoint"] == "https://acme.docebosaas.com/oauth2/authorize"
        assert body["token_endpoint"] == "https://acme.docebosaas.com/oauth2/token"
        assert body["code_challenge_methods_supported"] == ["S256"]

    def test_proxied_token_endpoint(self, http_client):
        with make_client(http_client, client_id="cid", client_secret="secret") as client:
            body = client.get("/.well-known/oauth-authorization-server").json()

        assert body["token_endpoint"] == f"http://{TENANT_HOST}/oauth/token"


class TestBearerChallenge:
    """Tests for the 401 challenge on the protocol endpoint."""

    @pytest.mark.parametrize("headers", [
        {},
        {"Authorization": "Basic dXNlcjpwYXNz"},
        {"Authorization": "Bearer "},
    ])
    def test_challenge(self, http_client, headers):
        with make_client(http_client) as client:
            response = client.post("/mcp", json=INITIALIZE_REQUEST, headers=headers)

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == \
            f'Bearer resource_metadata="{RESOURCE_METADATA_URL}"'

    def test_delete_is_guarded(self, http_client):
        with make_client(http_client) as client:
            response = client.delete("/mcp", headers={"mcp-session-id": "x"})

        assert response.status_code == 401

    def test_token_is_not_validated_locally(self, http_client):
        with make_client(http_client) as client:
            response = client.post(
                "/mcp",
                json=INITIALIZE_REQUEST,
                headers={"Authorization": "Bearer not-a-jwt"},
            )

        assert response.status_code == 200


class TestTokenProxy:
    """Tests for the token-exchange proxy."""

    def test_absent_without_client_credentials(self, http_client):
        with make_client(http_client) as client:
            response = client.post("/oauth/token", data={"grant_type": "authorization_code"})

        assert response.status_code == 404

    def test_injects_credentials_and_passes_through(self, backend, http_client):
        backend.add(
            "POST", "/oauth2/token", status_code=400,
            json={"error": "invalid_grant"},
        )

        with make_client(http_client, client_id="cid", client_secret="secret") as client:
            response = client.post(
                "/oauth/token",
                data={"grant_type": "authorization_code", "code": "abc", "code_verifier": "v"},
            )

        assert response.status_code == 400
        assert response.json() == {"error": "invalid_grant"}
        assert response.headers["content-type"].startswith("application/json")

        assert str(backend.last.url) == "https://acme.docebosaas.com/oauth2/token"
        form = backend.last_form()
        assert form["client_id"] == "cid"
        assert form["client_secret"] == "secret"
        assert form["code"] == "abc"
        assert form["grant_type"] == "authorization_code"

    def test_network_failure(self):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(unreachable))
        with make_client(http_client, client_id="cid", client_secret="secret") as client:
            response = client.post("/oauth/token", data={"grant_type": "refresh_token"})

        assert response.status_code == 500
        assert response.json() == {
            "error": "server_error",
            "error_description": "Token proxy failed",
        }

    def test_undecodable_body_rejected(self, backend, http_client):
        with make_client(http_client, client_id="cid", client_secret="secret") as client:
            response = client.post(
                "/oauth/token",
                content=b"grant_type=\xff\xfe",
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"
        assert backend.requests == []
