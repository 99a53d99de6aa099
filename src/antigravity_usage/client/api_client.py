# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
HTTPS client for the local language server API.

Requests are POSTed to https://127.0.0.1:<port><path> with the CSRF token
header. Server errors (5xx), transport errors and timeouts are retried with
a linear backoff (base_delay * attempt); client errors (4xx) are not, since
they mean the token or request shape is wrong.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from ..core.constants import (
    CSRF_HEADER,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_BASE_DELAY,
    LOCALHOST,
)
from ..core.errors import (
    ApiClientError,
    HttpStatusError,
    InvalidResponseError,
    NetworkError,
    RequestTimeoutError,
)

lib_logger = logging.getLogger("antigravity_usage")

SleepFn = Callable[[float], Awaitable[None]]


class LanguageServerClient:
    """
    Authenticated JSON-over-HTTPS client with bounded retries.

    Usage:
        async with LanguageServerClient(verify_ssl=False) as client:
            data = await client.request(port, token, path, body)
    """

    def __init__(
        self,
        verify_ssl: bool = True,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        sleep: SleepFn = asyncio.sleep,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            verify_ssl: Verify the server certificate (the language server
                uses a self-signed certificate, so this is often disabled)
            max_attempts: Total attempts per request, including the first
            retry_base_delay: Seconds; attempt N waits base * N before retrying
            timeout: Per-request timeout in seconds
            sleep: Awaitable sleep, replaceable in tests
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.verify_ssl = verify_ssl
        self.max_attempts = max(1, max_attempts)
        self.retry_base_delay = max(0.0, retry_base_delay)
        self.timeout = timeout
        self._sleep = sleep
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "LanguageServerClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.aclose()
        return False

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                verify=self.verify_ssl,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _send_once(
        self, url: str, token: str, body: Dict[str, Any]
    ) -> Any:
        """Single attempt; maps httpx failures onto the library taxonomy."""
        headers = {
            "Content-Type": "application/json",
            CSRF_HEADER: token,
        }
        try:
            response = await self._get_client().post(url, json=body, headers=headers)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"Request timeout after {self.timeout}s") from e
        except httpx.TransportError as e:
            raise NetworkError(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise HttpStatusError(response.status_code, response.text[:200])

        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponseError(f"Failed to parse response: {e}") from e

    @staticmethod
    def _is_retryable(error: ApiClientError) -> bool:
        if isinstance(error, (NetworkError, RequestTimeoutError)):
            return True
        return isinstance(error, HttpStatusError) and error.is_server_error

    async def request(
        self,
        port: int,
        token: str,
        path: str,
        body: Dict[str, Any],
    ) -> Any:
        """
        POST body to the language server and return the decoded JSON.

        Raises:
            HttpStatusError: Non-2xx response (after retries for 5xx)
            NetworkError: Transport failure on the last attempt
            RequestTimeoutError: Timeout on the last attempt
            InvalidResponseError: 2xx response that is not JSON
        """
        url = f"https://{LOCALHOST}:{port}{path}"

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._send_once(url, token, body)
            except ApiClientError as e:
                if not self._is_retryable(e) or attempt >= self.max_attempts:
                    raise
                delay = self.retry_base_delay * attempt
                lib_logger.warning(
                    f"Request to port {port} failed ({e}), "
                    f"retrying ({attempt}/{self.max_attempts}) in {delay:.2f}s..."
                )
                await self._sleep(delay)

        # Unreachable: the loop either returns or raises
        raise ApiClientError("request loop exited without a result")
