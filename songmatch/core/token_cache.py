"""
Expiring cache for a client-credentials access token.

The music metadata client needs a short-lived bearer token. The cache is an
ordinary object handed to whoever needs it through dependency injection, so
tests and workers each own their own instance.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional, Tuple

from songmatch.core.clock import utc_now
from songmatch.core.config import Settings, get_settings
from songmatch.core.logging import get_logger

logger = get_logger(__name__)

# Fetcher returns (access_token, expires_in_seconds)
TokenFetcher = Callable[[], Awaitable[Tuple[str, int]]]


@dataclass
class CachedToken:
    access_token: str
    expires_at: datetime


class AccessTokenCache:
    """
    Holds one access token and refreshes it through ``fetcher`` once expired.

    Args:
        fetcher: Coroutine returning ``(token, expires_in_seconds)``
        expiry_skew_seconds: Refresh this many seconds before the real expiry
        clock: Callable returning the current aware datetime
    """

    def __init__(
        self,
        fetcher: TokenFetcher,
        expiry_skew_seconds: int = 60,
        clock: Callable[[], datetime] = utc_now
    ):
        self._fetcher = fetcher
        self._skew = timedelta(seconds=expiry_skew_seconds)
        self._clock = clock
        self._token: Optional[CachedToken] = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, fetcher: TokenFetcher, settings: Optional[Settings] = None) -> "AccessTokenCache":
        settings = settings or get_settings()
        return cls(fetcher, expiry_skew_seconds=settings.TOKEN_EXPIRY_SKEW_SECONDS)

    @property
    def is_valid(self) -> bool:
        return self._token is not None and self._clock() < self._token.expires_at

    async def get_token(self) -> str:
        if self.is_valid:
            return self._token.access_token

        async with self._lock:
            # Another caller may have refreshed while we waited
            if self.is_valid:
                return self._token.access_token

            access_token, expires_in = await self._fetcher()
            self._token = CachedToken(
                access_token=access_token,
                expires_at=self._clock() + timedelta(seconds=expires_in) - self._skew
            )
            logger.debug("Access token refreshed", expires_at=self._token.expires_at.isoformat())
            return access_token

    def invalidate(self) -> None:
        self._token = None
