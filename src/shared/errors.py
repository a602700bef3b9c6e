"""Exception hierarchy for the LMS MCP Gateway.

Every gateway exception converts to a structured result at the boundary
where it occurs: an HTTP status, a JSON-RPC error, or a tool result with
its error flag set.
"""

from typing import Optional


class GatewayError(Exception):
    """Base exception for gateway errors."""
    pass


class TenantResolutionError(GatewayError):
    """No backend base URL could be resolved for a request."""
    pass


class UnresolvedPathParameterError(GatewayError):
    """A path template placeholder was left unresolved after binding.

    Indicates a mismatch between a tool definition and its arguments,
    not a user error.
    """

    def __init__(self, path: str) -> None:
        super().__init__(f"Failed to resolve path parameters: {path}")
        self.path = path


class MissingCredentialsError(GatewayError):
    """A call needs a bearer token but the caller presented none."""
    pass


class ApiError(GatewayError):
    """A backend API call failed."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class TokenAcquisitionError(GatewayError):
    """An access token could not be obtained from the authorization server."""
    pass
