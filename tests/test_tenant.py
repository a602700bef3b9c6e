"""Tests for tenant resolution."""

import pytest

from shared.errors import TenantResolutionError
from shared.models import TenantMode
from gateway.tenant import TenantResolver, extract_tenant, is_valid_tenant_slug, resolve


class TestExtractTenant:
    """Tests for slug extraction from the Host header."""

    def test_first_label_of_four_label_host(self):
        assert extract_tenant("acme.mcp.example.com") == "acme"

    def test_port_is_ignored(self):
        assert extract_tenant("acme.mcp.example.com:8443") == "acme"

    @pytest.mark.parametrize("host", [
        None,
        "",
        "localhost",
        "localhost:3000",
        "127.0.0.1",
        "10.0.0.12:3000",
        "mcp.example.com",
    ])
    def test_unresolvable_hosts(self, host):
        assert extract_tenant(host) is None

    def test_invalid_slug_rejected(self):
        assert extract_tenant("-acme.mcp.example.com") is None
        assert extract_tenant("Acme_Corp.mcp.example.com") is None

    def test_slug_rules(self):
        assert is_valid_tenant_slug("a")
        assert is_valid_tenant_slug("acme-corp-2")
        assert not is_valid_tenant_slug("acme-")
        assert not is_valid_tenant_slug("a" * 64)


class TestResolve:
    """Tests for base URL resolution."""

    def test_static_override_wins(self):
        """The override is used whatever the Host header says."""
        assert resolve("acme.mcp.example.com", "https://static.example.com") == \
            "https://static.example.com"
        assert resolve("localhost", "https://static.example.com") == \
            "https://static.example.com"
        assert resolve(None, "https://static.example.com") == \
            "https://static.example.com"

    def test_subdomain_derivation(self):
        assert resolve("acme.mcp.example.com", None) == "https://acme.docebosaas.com"

    def test_custom_platform_domain(self):
        assert resolve("acme.mcp.example.com", None, "lms.example.org") == \
            "https://acme.lms.example.org"

    def test_unresolved_returns_none(self):
        assert resolve("localhost:3000", None) is None


class TestTenantResolver:
    """Tests for the per-request resolver."""

    def test_single_tenant_mode(self):
        resolver = TenantResolver(static_override="https://static.example.com")
        tenant = resolver.resolve("anything")

        assert resolver.mode == TenantMode.SINGLE
        assert tenant.base_url == "https://static.example.com"
        assert tenant.mode == TenantMode.SINGLE

    def test_multi_tenant_mode(self):
        resolver = TenantResolver()
        tenant = resolver.resolve("globex.mcp.example.com")

        assert tenant.base_url == "https://globex.docebosaas.com"
        assert tenant.mode == TenantMode.MULTI

    def test_unresolvable_host_raises(self):
        resolver = TenantResolver()

        with pytest.raises(TenantResolutionError):
            resolver.resolve("localhost")
