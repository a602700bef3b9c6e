"""Tenant resolution.

Decides which backend base URL a request belongs to: a static override in
single-tenant deployments, or a URL derived from the first label of the
Host header in multi-tenant ones.
"""

import re
from typing import Optional

from fastapi import Request

from shared.errors import TenantResolutionError
from shared.models import TenantContext, TenantMode

TENANT_SLUG_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$")
IPV4_PATTERN = re.compile(r"^\d+\.\d+\.\d+\.\d+$")

# tenant + at least three more labels, e.g. acme.mcp.example.com
MIN_HOST_LABELS = 4

DEFAULT_PLATFORM_DOMAIN = "docebosaas.com"


def is_valid_tenant_slug(slug: str) -> bool:
    """Lowercase alphanumerics and hyphens, 1-63 chars, no edge hyphens."""
    return bool(TENANT_SLUG_PATTERN.match(slug))


def extract_tenant(host: Optional[str]) -> Optional[str]:
    """
    Extract the tenant slug from a Host header value.

    Returns None for localhost, bare IPv4 addresses, hosts with fewer than
    four labels, and invalid slugs.
    """
    if not host:
        return None

    hostname = host.split(":")[0]

    if hostname == "localhost" or IPV4_PATTERN.match(hostname):
        return None

    parts = hostname.split(".")
    if len(parts) < MIN_HOST_LABELS:
        return None

    tenant = parts[0]
    return tenant if is_valid_tenant_slug(tenant) else None


def resolve(
    host: Optional[str],
    static_override: Optional[str],
    platform_domain: str = DEFAULT_PLATFORM_DOMAIN,
) -> Optional[str]:
    """
    Resolve the backend base URL for a request.

    Args:
        host: Raw Host header value
        static_override: Configured base URL; wins unconditionally when set
        platform_domain: Domain tenant slugs are mounted under

    Returns:
        The base URL, or None when no tenant can be resolved
    """
    if static_override:
        return static_override

    tenant = extract_tenant(host)
    if not tenant:
        return None

    return f"https://{tenant}.{platform_domain}"


class TenantResolver:
    """Produces a fresh TenantContext for every request."""

    def __init__(
        self,
        static_override: Optional[str] = None,
        platform_domain: str = DEFAULT_PLATFORM_DOMAIN,
    ) -> None:
        self.static_override = static_override
        self.platform_domain = platform_domain

    @property
    def mode(self) -> TenantMode:
        return TenantMode.SINGLE if self.static_override else TenantMode.MULTI

    def resolve(self, host: Optional[str]) -> TenantContext:
        """
        Resolve a Host header to a tenant context.

        Raises:
            TenantResolutionError: If no tenant can be derived
        """
        base_url = resolve(host, self.static_override, self.platform_domain)
        if base_url is None:
            raise TenantResolutionError(f"Cannot resolve tenant from host {host!r}")
        return TenantContext(base_url=base_url, mode=self.mode)


def get_tenant_context(request: Request) -> TenantContext:
    """FastAPI dependency returning the tenant resolved by the middleware."""
    return request.state.tenant
