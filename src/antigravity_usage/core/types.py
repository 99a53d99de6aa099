# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Shared type definitions for the usage library.

Discovery results, validated connections, quota snapshots and the mapped
status response all live here so every layer speaks the same types.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


# =============================================================================
# DISCOVERY TYPES
# =============================================================================


@dataclass(frozen=True)
class ProcessHandle:
    """
    A running language server process and the CSRF token taken from its args.

    Produced once per discovery pass and owned by the connection cache
    while it validates ports.
    """

    pid: int
    auth_token: str


@dataclass(frozen=True)
class Connection:
    """
    A (port, token) pair proven to work by an authenticated status probe.
    """

    port: int
    auth_token: str
    established_at: float  # Unix timestamp


@dataclass(frozen=True)
class PortFailure:
    """Why a single candidate port failed validation."""

    port: int
    reason: str


# =============================================================================
# QUOTA / USAGE TYPES
# =============================================================================


@dataclass(frozen=True)
class QuotaSnapshot:
    """
    Instantaneous remaining quota for one model.

    reset_at is None for unbounded models, which are never tracked.
    """

    label: str
    remaining_fraction: float
    reset_at: Optional[datetime] = None

    @property
    def is_finite(self) -> bool:
        return self.reset_at is not None


@dataclass(frozen=True)
class UsageHistoryEntry:
    """One inferred consumption event (aggregate drop of one refresh cycle)."""

    timestamp: float
    delta: float

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary for JSON serialization."""
        return {"timestamp": self.timestamp, "delta": self.delta}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageHistoryEntry":
        """Create from dictionary."""
        return cls(timestamp=float(data["timestamp"]), delta=float(data["delta"]))


# =============================================================================
# STATUS RESPONSE TYPES
# =============================================================================


@dataclass
class ModelSkills:
    image: bool = False
    video: bool = False
    audio: bool = False
    docs: bool = False


@dataclass
class ModelQuota:
    """
    A model entry from clientModelConfigs, flattened for display and tracking.
    """

    label: str
    remaining_fraction: float
    reset_time: Optional[str]  # Raw ISO string as sent by the server
    reset_at: Optional[datetime]
    is_recommended: bool = False
    tag: Optional[str] = None
    skills: ModelSkills = field(default_factory=ModelSkills)

    @property
    def percent(self) -> int:
        return round(self.remaining_fraction * 100)

    def to_snapshot(self) -> QuotaSnapshot:
        return QuotaSnapshot(
            label=self.label,
            remaining_fraction=self.remaining_fraction,
            reset_at=self.reset_at,
        )


@dataclass
class CreditPool:
    total: int = 0
    available: int = 0


@dataclass
class GlobalStats:
    """
    Plan-level information from userStatus.planStatus.
    """

    plan_name: str = "Unknown"
    # Feature flags
    fast_autocomplete: bool = False
    premium_models: bool = False
    web_search: bool = False
    chat_input_limit: str = "Unknown"
    # Capabilities
    browser: bool = False
    knowledge_base: bool = False
    mcp: bool = False
    auto_run: bool = False
    # Credits
    prompt_credits: CreditPool = field(default_factory=CreditPool)
    flow_credits: CreditPool = field(default_factory=CreditPool)


@dataclass
class UsageData:
    """
    Result of one refresh cycle.
    """

    global_stats: GlobalStats
    models: List[ModelQuota]
    weekly_usage: float = 0.0
    fetched_at: float = 0.0

    def snapshots(self) -> List[QuotaSnapshot]:
        return [m.to_snapshot() for m in self.models]
