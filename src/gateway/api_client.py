"""Backend REST client for code tools.

Binds the tenant base URL and the caller's bearer token so code tools can
issue several calls without repeating URL and auth handling.
"""

from typing import Any, Optional

import httpx

from shared.errors import ApiError, MissingCredentialsError
from shared.logging import get_logger
from shared.models import RequestContext

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
ERROR_BODY_EXCERPT = 200


def join_url(base_url: str, path: str) -> str:
    """Join base and path with exactly one separating slash."""
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def format_api_error(error: httpx.HTTPError) -> str:
    """Single-line diagnostic for a failed backend call."""
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        reason = response.reason_phrase or "Status text not available"
        message = f"API Error: Status {response.status_code} ({reason}). "
        body = response.text
        if body:
            excerpt = body[:ERROR_BODY_EXCERPT]
            ellipsis = "..." if len(body) > ERROR_BODY_EXCERPT else ""
            message += f"Response: {excerpt}{ellipsis}"
        else:
            message += "No response body received."
        return message

    return (
        "API Network Error: No response received from server. "
        f"(Code: {type(error).__name__})"
    )


class ApiClient:
    """
    Thin async client for the learning platform API.

    One instance per tool invocation; the underlying httpx client is shared
    and owned by the application.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        token: Optional[str],
        timeout: float = DEFAULT_TIMEOUT_SECONDS
    ) -> None:
        self._client = http_client
        self.base_url = base_url.rstrip("/")
        self._token = token
        self.timeout = timeout

    @classmethod
    def for_context(
        cls,
        http_client: httpx.AsyncClient,
        context: RequestContext,
        timeout: float = DEFAULT_TIMEOUT_SECONDS
    ) -> "ApiClient":
        return cls(http_client, context.tenant.base_url, context.caller.token, timeout)

    async def get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        return await self._request("GET", path, params=params)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self._request("POST", path, json=body)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """
        Make an HTTP request to the backend.

        Raises:
            MissingCredentialsError: If no bearer token is available
            ApiError: On non-2xx responses or network failures
        """
        if not self._token:
            raise MissingCredentialsError("Missing authentication token")

        url = join_url(self.base_url, path)
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
        }

        logger.debug("Backend request", method=method, url=url)

        try:
            response = await self._client.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ApiError(
                format_api_error(e),
                status_code=e.response.status_code,
                detail=e.response.text,
            ) from e
        except httpx.RequestError as e:
            raise ApiError(format_api_error(e)) from e

        if not response.content:
            return None
        return response.json()
