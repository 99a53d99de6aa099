# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Connection Cache

Produces and reuses a validated (port, token) Connection:

    Empty/Expired -> Locating -> Scanning -> Validating(port_i) -> Cached

A cached connection is returned without any I/O while it is younger than
the TTL. The TTL is measured with the injected wall clock and does not
correct for clock changes; a jump forward only causes an early rediscovery.
"""

import logging
import time
from typing import Callable, List, Optional

from ..core.constants import (
    DEFAULT_CACHE_TTL,
    GET_USER_STATUS_PATH,
    STATUS_REQUEST_BODY,
)
from ..core.errors import (
    ApiClientError,
    NoPortsError,
    PortValidationAggregateError,
    mask_token,
)
from ..core.types import Connection, PortFailure
from ..discovery.locator import ProcessLocator
from ..discovery.port_scanner import PortScanner
from .api_client import LanguageServerClient

lib_logger = logging.getLogger("antigravity_usage")


class ConnectionCache:
    """
    Owns the single cached Connection for a UsageService.
    """

    def __init__(
        self,
        locator: ProcessLocator,
        scanner: PortScanner,
        client: LanguageServerClient,
        ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ):
        self._locator = locator
        self._scanner = scanner
        self._client = client
        self._ttl = ttl
        self._clock = clock
        self._cached: Optional[Connection] = None

    @property
    def cached(self) -> Optional[Connection]:
        return self._cached

    def invalidate(self) -> None:
        """Drop the cached connection so the next call rediscovers."""
        if self._cached is not None:
            lib_logger.debug(f"Invalidating cached connection on port {self._cached.port}")
        self._cached = None

    def _is_fresh(self, connection: Connection) -> bool:
        return self._clock() - connection.established_at < self._ttl

    async def get_connection(self) -> Connection:
        """
        Return a validated connection, rediscovering when needed.

        Raises:
            NotFoundError, TokenMissingError: from the locator
            ScanError: port discovery failed (NoPortsError when no ports)
            PortValidationAggregateError: every port failed the probe
        """
        cached = self._cached
        if cached is not None and self._is_fresh(cached):
            return cached

        lib_logger.info("Establishing fresh connection...")
        handle = await self._locator.locate()
        ports = await self._scanner.scan_ports(handle.pid)
        if not ports:
            raise NoPortsError(handle.pid)

        lib_logger.debug(
            f"Validating ports {sorted(ports)} for PID {handle.pid} "
            f"(token {mask_token(handle.auth_token)})"
        )

        failures: List[PortFailure] = []
        for port in sorted(ports):
            try:
                await self._client.request(
                    port, handle.auth_token, GET_USER_STATUS_PATH, STATUS_REQUEST_BODY
                )
            except ApiClientError as e:
                lib_logger.warning(f"Port {port} failed validation: {e}")
                failures.append(PortFailure(port=port, reason=str(e)))
                continue

            connection = Connection(
                port=port,
                auth_token=handle.auth_token,
                established_at=self._clock(),
            )
            self._cached = connection
            lib_logger.info(f"Successfully connected on port {port}")
            return connection

        raise PortValidationAggregateError(failures)
