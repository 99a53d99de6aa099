# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Usage Tracker

The status API only reports how much quota is left right now. Consumption
is inferred by comparing each snapshot with the previous one per model:

- A drop within (min_threshold, max_threshold) counts as usage. The lower
  bound filters float noise; drops at or above the upper bound are
  discarded as anomalies.
- A rise (including a reset back to full) only moves the baseline.
- All drops of one refresh cycle are summed into a single history entry.
- History is pruned to the rolling window on every update.

Persisted keys:
    usageHistory: [{"timestamp": float, "delta": float}, ...]
    lastQuotas:   {label: remaining_fraction}
"""

import logging
import time
from typing import Any, Callable, Dict, List, Sequence

from ..core.constants import (
    DEFAULT_HISTORY_WINDOW,
    DEFAULT_MAX_THRESHOLD,
    DEFAULT_MIN_THRESHOLD,
    STORAGE_KEY_HISTORY,
    STORAGE_KEY_LAST_QUOTAS,
)
from ..core.errors import PersistenceError
from ..core.types import QuotaSnapshot, UsageHistoryEntry
from .storage import KeyValueStore

lib_logger = logging.getLogger("antigravity_usage")


class UsageTracker:
    """
    Converts successive quota snapshots into a rolling consumption history.
    """

    def __init__(
        self,
        store: KeyValueStore,
        window_seconds: float = DEFAULT_HISTORY_WINDOW,
        min_threshold: float = DEFAULT_MIN_THRESHOLD,
        max_threshold: float = DEFAULT_MAX_THRESHOLD,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self.window_seconds = window_seconds
        self.min_threshold = min_threshold
        self.max_threshold = max_threshold
        self._clock = clock

    # =========================================================================
    # LOADING
    # =========================================================================

    def _load_history(self) -> List[UsageHistoryEntry]:
        raw = self._store.get(STORAGE_KEY_HISTORY, [])
        if not isinstance(raw, list):
            lib_logger.debug("Stored usage history is not a list, ignoring it")
            return []
        history = []
        for item in raw:
            try:
                entry = UsageHistoryEntry.from_dict(item)
            except (KeyError, TypeError, ValueError):
                lib_logger.debug(f"Skipping malformed history entry: {item!r}")
                continue
            if entry.delta > 0:
                history.append(entry)
        return history

    def _load_last_quotas(self) -> Dict[str, float]:
        raw = self._store.get(STORAGE_KEY_LAST_QUOTAS, {})
        if not isinstance(raw, dict):
            lib_logger.debug("Stored last quotas is not a mapping, ignoring it")
            return {}
        last_quotas = {}
        for label, value in raw.items():
            try:
                last_quotas[str(label)] = float(value)
            except (TypeError, ValueError):
                lib_logger.debug(f"Skipping malformed last quota for {label!r}")
        return last_quotas

    def _prune(self, history: List[UsageHistoryEntry], now: float) -> List[UsageHistoryEntry]:
        return [h for h in history if now - h.timestamp < self.window_seconds]

    # =========================================================================
    # TRACKING
    # =========================================================================

    def compute_delta(
        self, snapshots: Sequence[QuotaSnapshot], last_quotas: Dict[str, float]
    ) -> float:
        """
        Sum the qualifying drops and update last_quotas in place.

        Only finite snapshots (with a reset time) are considered.
        """
        total_delta = 0.0
        for snapshot in snapshots:
            if not snapshot.is_finite:
                continue

            current = snapshot.remaining_fraction
            last = last_quotas.get(snapshot.label)

            if last is not None and current < last:
                diff = last - current
                if self.min_threshold < diff < self.max_threshold:
                    total_delta += diff
                else:
                    lib_logger.debug(
                        f"Ignoring drop of {diff:.4f} for {snapshot.label} "
                        f"(outside {self.min_threshold}..{self.max_threshold})"
                    )

            last_quotas[snapshot.label] = current
        return total_delta

    async def record_snapshots(self, snapshots: Sequence[QuotaSnapshot]) -> float:
        """
        Record one refresh cycle and return the rolling-window total.

        Raises:
            PersistenceError: The store rejected a write. The previously
                persisted history is restored, so the failed cycle leaves
                no partial state behind.
        """
        previous_history_raw: Any = self._store.get(STORAGE_KEY_HISTORY, [])
        history = self._load_history()
        last_quotas = self._load_last_quotas()
        now = self._clock()

        total_delta = self.compute_delta(snapshots, last_quotas)
        if total_delta > 0:
            history.append(UsageHistoryEntry(timestamp=now, delta=total_delta))
            lib_logger.debug(f"Recorded usage delta {total_delta:.4f}")

        history = self._prune(history, now)

        await self._store.update(STORAGE_KEY_HISTORY, [h.to_dict() for h in history])
        try:
            await self._store.update(STORAGE_KEY_LAST_QUOTAS, last_quotas)
        except PersistenceError:
            try:
                await self._store.update(STORAGE_KEY_HISTORY, previous_history_raw)
            except PersistenceError as rollback_error:
                lib_logger.error(f"Failed to restore usage history: {rollback_error}")
            raise

        return sum(h.delta for h in history)

    def window_total(self) -> float:
        """
        Sum of persisted deltas still inside the rolling window. No writes.
        """
        now = self._clock()
        return sum(h.delta for h in self._prune(self._load_history(), now))
