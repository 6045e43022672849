"""
Singleton HTTP client for geolocation providers with rate limiting using aiolimiter.
"""
from aiohttp import ClientError, ClientSession, ClientTimeout
from aiolimiter import AsyncLimiter
from typing import Dict, Any, Optional
from loguru import logger

from locus.config import CONCURRENCY, PROVIDER_TIMEOUT_MS, PROVIDER_USER_AGENT
from locus.errors import ProviderUnavailable


class GeoHttpClient:
    """
    Singleton client shared by every provider so that one aiohttp session and one
    rate limiter serve all concurrent lookups.
    """
    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not GeoHttpClient._initialized:
            # Token bucket: CONCURRENCY requests per second across all providers
            self.rate_limiter = AsyncLimiter(max_rate=CONCURRENCY, time_period=1.0)
            self._session: Optional[ClientSession] = None
            GeoHttpClient._initialized = True

    async def _get_session(self) -> ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = ClientSession(
                timeout=ClientTimeout(total=PROVIDER_TIMEOUT_MS / 1000.0),
                headers={"User-Agent": PROVIDER_USER_AGENT},
            )
        return self._session

    async def get_json(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout_s: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Send a GET request and return the parsed JSON body.

        Args:
            url: Target URL to request.
            params: Optional query parameters.
            headers: Optional HTTP headers.
            timeout_s: Optional per-request total timeout in seconds.

        Returns:
            Parsed JSON response as a dictionary.

        Raises:
            ProviderUnavailable: On non-200 status, rate limiting or a non-JSON body.
        """
        async with self.rate_limiter:
            session = await self._get_session()
            timeout = ClientTimeout(total=timeout_s) if timeout_s else session.timeout
            try:
                async with session.get(url, params=params, headers=headers, timeout=timeout) as resp:
                    if resp.status == 429:
                        raise ProviderUnavailable(f"rate limited by {url}")
                    if resp.status != 200:
                        raise ProviderUnavailable(f"HTTP {resp.status} from {url}")
                    data = await resp.json(content_type=None)
            except ClientError as e:
                logger.debug(f"⚠️ GET {url} failed: {e}")
                raise ProviderUnavailable(f"connection error for {url}: {e}") from e
            except ValueError as e:
                raise ProviderUnavailable(f"malformed JSON from {url}: {e}") from e

            if not isinstance(data, dict):
                raise ProviderUnavailable(f"unexpected JSON payload from {url}: {type(data).__name__}")
            return data

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
