"""
OAuth2 client-credentials cache for the Reddit adapter.

Holds one bearer token and its expiry. Tokens are refreshed lazily by
``get_token()``; concurrent callers that find the token expired wait on
a single exchange instead of each starting their own.
"""

import asyncio
import time
from enum import Enum
from typing import Callable, Optional

import httpx

from mediavault.adapters.exceptions import AuthenticationError, FetchError
from mediavault.adapters.http import AsyncHTTPClient
from mediavault.utils.logger import get_logger

logger = get_logger(__name__)

REDDIT_AUTH_URL = "https://www.reddit.com"
TOKEN_PATH = "/api/v1/access_token"

# Refresh this many seconds before the server-side expiry
SAFETY_MARGIN_SECONDS = 300

# Status codes meaning the credentials themselves were rejected
_REJECTED_STATUS_CODES = {400, 401, 403}


class TokenState(str, Enum):
    UNSET = "unset"
    VALID = "valid"
    EXPIRED = "expired"


class CredentialCache:
    """
    Cached application-only bearer token.

    Attributes:
        client_id: OAuth2 client id
        user_agent: User-Agent sent with the exchange
        safety_margin: Seconds subtracted from the server TTL

    Example:
        >>> cache = CredentialCache("id", "secret", user_agent="MediaVault/1.0")
        >>> token = await cache.get_token()
    """

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        user_agent: str,
        http: Optional[AsyncHTTPClient] = None,
        safety_margin: int = SAFETY_MARGIN_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.client_id = client_id
        self._client_secret = client_secret
        self.user_agent = user_agent
        self.safety_margin = safety_margin
        self._http = http or AsyncHTTPClient(REDDIT_AUTH_URL, service="Reddit OAuth")
        self._clock = clock or time.time
        self._lock = asyncio.Lock()

        self._token: Optional[str] = None
        self._expires_at: float = 0.0
        self.exchange_count = 0

    @property
    def state(self) -> TokenState:
        if self._token is None:
            return TokenState.UNSET
        if self._clock() < self._expires_at:
            return TokenState.VALID
        return TokenState.EXPIRED

    @property
    def expires_at(self) -> float:
        return self._expires_at

    async def get_token(self) -> str:
        """
        Return a valid bearer token, exchanging credentials if needed.

        Returns:
            Access token string

        Raises:
            AuthenticationError: ``fatal=True`` when credentials are missing
                or rejected, ``fatal=False`` when the exchange failed in transit
        """
        if self.state is TokenState.VALID:
            return self._token  # type: ignore[return-value]

        async with self._lock:
            # Another caller may have refreshed while we waited
            if self.state is TokenState.VALID:
                return self._token  # type: ignore[return-value]
            return await self._exchange()

    def invalidate(self) -> None:
        """Drop the cached token so the next call exchanges again."""
        self._token = None
        self._expires_at = 0.0
        logger.info("reddit_token_invalidated")

    async def close(self) -> None:
        await self._http.close()

    async def _exchange(self) -> str:
        if not self.client_id:
            logger.error("reddit_client_id_missing")
            raise AuthenticationError("REDDIT_CLIENT_ID is required", fatal=True)
        if not self._client_secret:
            logger.error("reddit_client_secret_missing")
            raise AuthenticationError("REDDIT_CLIENT_SECRET is required", fatal=True)

        logger.info(
            "reddit_token_exchange_started",
            client_id=f"{self.client_id[:8]}...",
            previous_state=self.state.value,
        )

        self.exchange_count += 1
        try:
            body = await self._http.post(
                TOKEN_PATH,
                data={"grant_type": "client_credentials"},
                headers={"User-Agent": self.user_agent},
                auth=httpx.BasicAuth(self.client_id, self._client_secret),
            )
        except FetchError as e:
            fatal = e.status_code in _REJECTED_STATUS_CODES
            logger.error(
                "reddit_token_exchange_failed",
                status_code=e.status_code,
                error=e.message,
                fatal=fatal,
            )
            raise AuthenticationError(
                "Failed to authenticate with Reddit API", fatal=fatal
            ) from e

        if not isinstance(body, dict) or not body.get("access_token"):
            logger.error("reddit_token_response_invalid")
            raise AuthenticationError(
                "Reddit token response did not contain an access token", fatal=True
            )

        ttl = int(body.get("expires_in", 3600))
        self._token = body["access_token"]
        self._expires_at = self._clock() + ttl - self.safety_margin

        logger.info("reddit_token_exchange_completed", expires_in=ttl)
        return self._token
