# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
UsageService facade.

One call to get_usage_data() is one refresh cycle:

    ConnectionCache.get_connection()
      -> LanguageServerClient.request(GetUserStatus)
      -> parse_user_status()
      -> UsageTracker.record_snapshots()

Cycles are serialized with an asyncio.Lock, so a manual refresh that fires
while the timer-driven one is running waits instead of racing the
persisted history.
"""

import asyncio
import logging
from typing import Any, Optional

from .client.api_client import LanguageServerClient
from .client.connection_cache import ConnectionCache
from .client.status import parse_user_status
from .config import UsageConfig
from .core.constants import GET_USER_STATUS_PATH, STATUS_REQUEST_BODY
from .core.errors import (
    HttpStatusError,
    NetworkError,
    PersistenceError,
    RequestTimeoutError,
)
from .core.types import Connection, UsageData
from .discovery.locator import ProcessLocator
from .discovery.platforms import PlatformProbe, select_platform_probe
from .discovery.port_scanner import PortScanner
from .usage.storage import JsonFileStore, KeyValueStore
from .usage.tracker import UsageTracker

lib_logger = logging.getLogger("antigravity_usage")

# Failures on a cached connection that mean the server moved or restarted
_STALE_CONNECTION_ERRORS = (HttpStatusError, NetworkError, RequestTimeoutError)


class UsageService:
    """
    Main entry point for fetching usage data.

    Example:
        config = UsageConfig.from_env()
        async with UsageService.from_config(config) as service:
            data = await service.get_usage_data()
            print(data.weekly_usage)
    """

    def __init__(
        self,
        cache: ConnectionCache,
        client: LanguageServerClient,
        tracker: UsageTracker,
    ):
        self.cache = cache
        self.client = client
        self.tracker = tracker
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(
        cls,
        config: UsageConfig,
        store: Optional[KeyValueStore] = None,
        probe: Optional[PlatformProbe] = None,
    ) -> "UsageService":
        """
        Wire the default collaborators for the running platform.

        Args:
            config: Runtime settings
            store: Persistence backend (defaults to a JsonFileStore at
                config.state_file)
            probe: Platform probe override (defaults to the running OS)
        """
        probe = probe or select_platform_probe()
        client = LanguageServerClient(
            verify_ssl=config.verify_ssl,
            max_attempts=config.max_attempts,
            retry_base_delay=config.retry_base_delay,
            timeout=config.request_timeout,
        )
        cache = ConnectionCache(
            locator=ProcessLocator(probe),
            scanner=PortScanner(probe),
            client=client,
            ttl=config.cache_ttl,
        )
        tracker = UsageTracker(
            store=store if store is not None else JsonFileStore(config.state_file),
            window_seconds=config.history_window,
            min_threshold=config.min_threshold,
            max_threshold=config.max_threshold,
        )
        return cls(cache, client, tracker)

    async def __aenter__(self) -> "UsageService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False

    async def close(self) -> None:
        await self.client.aclose()

    async def _query_status(self, connection: Connection) -> Any:
        return await self.client.request(
            connection.port,
            connection.auth_token,
            GET_USER_STATUS_PATH,
            STATUS_REQUEST_BODY,
        )

    async def fetch_raw_status(self) -> Any:
        """
        Return the raw GetUserStatus JSON.

        A cached connection that stops answering (the language server
        restarted on another port, or rotated its token) is dropped and
        discovery runs once more before the error is surfaced.
        """
        previous = self.cache.cached
        connection = await self.cache.get_connection()
        try:
            return await self._query_status(connection)
        except _STALE_CONNECTION_ERRORS as e:
            self.cache.invalidate()
            if connection is not previous:
                raise
            lib_logger.warning(
                f"Cached connection on port {connection.port} failed ({e}), rediscovering..."
            )
        connection = await self.cache.get_connection()
        return await self._query_status(connection)

    async def get_usage_data(self) -> UsageData:
        """
        Run one refresh cycle.

        Raises:
            Discovery and API errors unchanged. Persistence failures are
            logged and the previously persisted weekly total is reported.
        """
        async with self._lock:
            payload = await self.fetch_raw_status()
            data = parse_user_status(payload)

            try:
                data.weekly_usage = await self.tracker.record_snapshots(data.snapshots())
            except PersistenceError as e:
                lib_logger.error(f"Failed to track local usage: {e}")
                data.weekly_usage = self.tracker.window_total()
            return data
