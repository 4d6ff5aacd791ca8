"""Async HTTP client with retry logic.

Features:
- Async HTTP client with connection pooling
- Automatic retry with exponential backoff on timeouts and network errors
"""

import logging

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


# Retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_MIN_WAIT = 0.5  # seconds
DEFAULT_MAX_WAIT = 5  # seconds


class AsyncHttpClient:
    """Async HTTP client with retry logic and connection pooling.

    Usage:
        async with AsyncHttpClient() as client:
            await client.post("https://hooks.example.com/rewards", json=payload)
    """

    def __init__(
        self,
        timeout: float = 5.0,
        connect_timeout: float = 2.0,
        max_connections: int = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HTTP client.

        Args:
            timeout: Total request timeout in seconds
            connect_timeout: Connection timeout in seconds
            max_connections: Maximum concurrent connections
            transport: Optional transport (tests pass httpx.MockTransport)
        """
        self._timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self._limits = httpx.Limits(max_connections=max_connections)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "AsyncHttpClient":
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            limits=self._limits,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the underlying httpx client."""
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")
        return self._client

    @retry(
        stop=stop_after_attempt(DEFAULT_MAX_RETRIES),
        wait=wait_exponential(multiplier=0.5, min=DEFAULT_MIN_WAIT, max=DEFAULT_MAX_WAIT),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    async def post(self, url: str, **kwargs) -> httpx.Response:
        """POST request with retry.

        Raises:
            httpx.HTTPStatusError: Non-2xx response
        """
        response = await self.client.post(url, **kwargs)
        response.raise_for_status()
        return response
