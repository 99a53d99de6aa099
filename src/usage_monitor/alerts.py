# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
Per-model quota alerts raised between two consecutive refreshes.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List

from antigravity_usage.core.types import ModelQuota

# Percent thresholds
QUOTA_CRITICAL_THRESHOLD = 20
QUOTA_RESET_LOW_THRESHOLD = 10
QUOTA_RESET_HIGH_THRESHOLD = 90


@dataclass(frozen=True)
class QuotaAlert:
    level: str  # "info" or "warning"
    label: str
    message: str


class QuotaAlertTracker:
    """
    Remembers the last percentage per model and reports resets and
    threshold crossings.

    The first observation of a model never alerts.
    """

    def __init__(self):
        self._last_percent: Dict[str, int] = {}

    def check(self, models: Iterable[ModelQuota]) -> List[QuotaAlert]:
        alerts = []
        for model in models:
            percent = model.percent
            previous = self._last_percent.get(model.label)
            if previous is not None:
                if (
                    previous < QUOTA_RESET_LOW_THRESHOLD
                    and percent > QUOTA_RESET_HIGH_THRESHOLD
                ):
                    alerts.append(
                        QuotaAlert(
                            "info",
                            model.label,
                            f"Refreshed: {model.label} quota has reset to {percent}%!",
                        )
                    )
                if (
                    previous >= QUOTA_CRITICAL_THRESHOLD
                    and percent < QUOTA_CRITICAL_THRESHOLD
                ):
                    alerts.append(
                        QuotaAlert(
                            "warning",
                            model.label,
                            f"Low Quota: {model.label} is down to {percent}%!",
                        )
                    )
            self._last_percent[model.label] = percent
        return alerts
