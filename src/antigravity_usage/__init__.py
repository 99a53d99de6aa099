# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
antigravity_usage - discover the local Antigravity language server and
track model quota consumption from its status snapshots.
"""

from .config import UsageConfig
from .core.errors import (
    ApiClientError,
    CommandError,
    DiscoveryError,
    HttpStatusError,
    InvalidResponseError,
    NetworkError,
    NoPortsError,
    NotFoundError,
    PersistenceError,
    PortValidationAggregateError,
    RequestTimeoutError,
    ScanError,
    TokenMissingError,
    UsageMonitorError,
)
from .core.types import (
    Connection,
    GlobalStats,
    ModelQuota,
    ProcessHandle,
    QuotaSnapshot,
    UsageData,
    UsageHistoryEntry,
)
from .service import UsageService

__version__ = "0.3.0"

__all__ = [
    "UsageConfig",
    "UsageService",
    "Connection",
    "GlobalStats",
    "ModelQuota",
    "ProcessHandle",
    "QuotaSnapshot",
    "UsageData",
    "UsageHistoryEntry",
    "UsageMonitorError",
    "DiscoveryError",
    "CommandError",
    "NotFoundError",
    "TokenMissingError",
    "ScanError",
    "NoPortsError",
    "PortValidationAggregateError",
    "ApiClientError",
    "HttpStatusError",
    "NetworkError",
    "RequestTimeoutError",
    "InvalidResponseError",
    "PersistenceError",
]
