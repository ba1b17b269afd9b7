"""
Async REST Client

Streamlined aiohttp client used at the provider boundary.

Key Features:
- Connection pooling and session reuse with aiohttp
- JSON decoding with msgspec
- Simple exponential backoff retry logic (disabled with max_retries=0)
- Transport failures mapped onto RestClientError subclasses
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp
import msgspec

from infrastructure.exceptions import (
    RestClientError, RestConnectionError, RestTimeoutError, RestResponseError
)
from infrastructure.logging import get_logger
from .structs import HTTPMethod, RestConfig

MSGSPEC_ENCODER = msgspec.json.encode


class RestClient:
    """
    Async REST API client.

    Features:
    - Single execution path with unified request handling
    - Connection pooling with persistent sessions
    - msgspec JSON parsing
    """

    def __init__(self, base_url: str, config: Optional[RestConfig] = None):
        self.base_url = base_url.rstrip('/')
        self.config = config or RestConfig()

        self._session: Optional[aiohttp.ClientSession] = None
        self._semaphore = asyncio.Semaphore(self.config.max_concurrent)

        self.logger = get_logger(__name__)

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self) -> None:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.config.max_concurrent,
                ttl_dns_cache=300,
                keepalive_timeout=60,
            )
            timeout = aiohttp.ClientTimeout(
                total=self.config.timeout,
                connect=self.config.connect_timeout,
            )
            headers = {
                'Accept': 'application/json',
                'Accept-Encoding': 'gzip, deflate',
            }
            if self.config.headers:
                headers.update(self.config.headers)

            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout,
                json_serialize=lambda obj: MSGSPEC_ENCODER(obj).decode('utf-8'),
                headers=headers
            )

    def _parse_response(self, body: bytes) -> Any:
        if not body:
            return None
        try:
            # msgspec validates UTF-8 itself; bad encoding is a DecodeError like bad JSON
            return msgspec.json.decode(body)
        except msgspec.DecodeError:
            raise RestResponseError(200, f"Invalid JSON response: {body[:100]!r}...")

    async def request(
        self,
        method: HTTPMethod,
        endpoint: str = "",
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Execute HTTP request.

        Connection errors and timeouts are retried up to config.max_retries
        times with exponential backoff; HTTP error statuses are not retried.
        """
        await self._ensure_session()
        url = f"{self.base_url}{endpoint}"

        request_kwargs: Dict[str, Any] = {}
        if params:
            request_kwargs['params'] = params
        if json_data is not None and method != HTTPMethod.GET:
            request_kwargs['json'] = json_data

        async with self._semaphore:
            for attempt in range(self.config.max_retries + 1):
                try:
                    async with self._session.request(method.value, url, **request_kwargs) as response:
                        body = await response.read()
                        if response.status >= 400:
                            raise RestResponseError(response.status, body[:200].decode("utf-8", errors="replace"))
                        return self._parse_response(body)

                except asyncio.TimeoutError as e:
                    if attempt == self.config.max_retries:
                        raise RestTimeoutError(408, f"Request to {url} timed out after {self.config.timeout}s") from e
                    await self._backoff(attempt, url, e)

                except aiohttp.ClientError as e:
                    if attempt == self.config.max_retries:
                        raise RestConnectionError(503, f"Connection to {url} failed: {e}") from e
                    await self._backoff(attempt, url, e)

        raise RestClientError(500, f"Request to {url} exhausted retries")

    async def _backoff(self, attempt: int, url: str, error: Exception) -> None:
        delay = self.config.retry_delay * (2 ** attempt)
        self.logger.warning("Request failed, retrying",
                            url=url, attempt=attempt + 1, delay=delay, error=str(error))
        await asyncio.sleep(delay)

    async def get(self, endpoint: str = "", params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request(HTTPMethod.GET, endpoint, params=params)

    async def post(self, endpoint: str = "", json_data: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request(HTTPMethod.POST, endpoint, json_data=json_data)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self.logger.debug("RestClient closed", base_url=self.base_url)
