"""Access tokens for interactive use.

The stdio entry point has no OAuth client in front of it, so it obtains a
token itself with the resource owner password grant and caches it on disk
as ``{"access_token": ..., "expires_at": <epoch seconds>}``.
"""

import json
import time
from pathlib import Path
from typing import Callable, Optional

import aiofiles
import httpx

from shared.config import CredentialSettings
from shared.errors import TokenAcquisitionError
from shared.logging import get_logger
from gateway.api_client import join_url

logger = get_logger(__name__)

DEFAULT_EXPIRES_IN = 3600
DEFAULT_EXPIRY_BUFFER_SECONDS = 300


class TokenCache:
    """
    Single-token disk cache.

    A cached token counts as valid only while it has more than
    ``expiry_buffer`` seconds left.
    """

    def __init__(
        self,
        path: str | Path,
        expiry_buffer: int = DEFAULT_EXPIRY_BUFFER_SECONDS,
        clock: Callable[[], float] = time.time
    ) -> None:
        self.path = Path(path)
        self.expiry_buffer = expiry_buffer
        self._clock = clock

    async def load(self) -> Optional[str]:
        """Return the cached token if it is still valid."""
        if not self.path.exists():
            return None

        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                data = json.loads(await f.read())
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable token cache", path=str(self.path), error=str(e))
            return None

        if not isinstance(data, dict):
            return None

        token = data.get("access_token")
        expires_at = data.get("expires_at")
        if not token or not isinstance(expires_at, (int, float)):
            return None
        if expires_at <= self._clock() + self.expiry_buffer:
            return None
        return token

    async def save(self, access_token: str, expires_in: int) -> None:
        data = {
            "access_token": access_token,
            "expires_at": int(self._clock()) + expires_in,
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2))


class PasswordGrantTokenProvider:
    """
    Supplies a bearer token, from the cache when possible.

    Called before every tool invocation, so an expired token is replaced
    transparently during long stdio sessions.
    """

    def __init__(
        self,
        api_base_url: str,
        credentials: CredentialSettings,
        http_client: httpx.AsyncClient,
        cache: Optional[TokenCache] = None
    ) -> None:
        self.api_base_url = api_base_url
        self.credentials = credentials
        self.http_client = http_client
        self.cache = cache or TokenCache(
            credentials.token_cache_path, credentials.expiry_buffer_seconds
        )

    async def get_access_token(self) -> str:
        cached = await self.cache.load()
        if cached:
            logger.debug("Using cached access token")
            return cached

        logger.info("No valid cached token, requesting a new one via password grant")
        return await self.obtain_token()

    async def obtain_token(self) -> str:
        """
        Request a token with the password grant and cache it.

        Raises:
            TokenAcquisitionError: If the request fails or returns no token
        """
        form = {
            "grant_type": "password",
            "client_id": self.credentials.client_id or "",
            "client_secret": self.credentials.client_secret or "",
            "username": self.credentials.username or "",
            "password": self.credentials.password or "",
            "scope": "api",
        }

        try:
            response = await self.http_client.post(
                join_url(self.api_base_url, "oauth2/token"),
                data=form,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise TokenAcquisitionError(
                f"Token request failed with status {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise TokenAcquisitionError(f"Token request failed: {type(e).__name__}") from e

        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token:
            raise TokenAcquisitionError("Token response did not contain an access_token")

        expires_in = payload.get("expires_in") or DEFAULT_EXPIRES_IN
        await self.cache.save(access_token, int(expires_in))
        logger.info("Obtained new access token via password grant", expires_in=expires_in)
        return access_token
