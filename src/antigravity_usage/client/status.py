# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Mapping of the raw GetUserStatus response into UsageData.

Response shape (fields used):
    {
        "userStatus": {
            "planStatus": {
                "planInfo": {"planName": str, "monthlyPromptCredits": int, ...},
                "availablePromptCredits": int,
                "availableFlowCredits": int
            },
            "cascadeModelConfigData": {
                "clientModelConfigs": [
                    {
                        "label": str,
                        "quotaInfo": {"remainingFraction": float, "resetTime": str},
                        "isRecommended": bool,
                        "supportedMimeTypes": {"image/png": true, ...},
                        "tagTitle": str
                    }
                ]
            }
        }
    }
"""

import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..core.errors import InvalidResponseError
from ..core.types import CreditPool, GlobalStats, ModelQuota, ModelSkills, UsageData

lib_logger = logging.getLogger("antigravity_usage")

_IMAGE_TYPES = ("image/jpeg", "image/png")
_VIDEO_TYPES = ("video/mp4", "video/mpeg", "video/webm")
_AUDIO_TYPES = ("audio/wav", "audio/mpeg")
_DOC_TYPES = ("application/pdf", "text/csv", "application/rtf")

# Protobuf JSON timestamps may carry nanoseconds; datetime takes exactly
# microseconds on older interpreters
_FRACTION = re.compile(r"\.(\d+)")


def parse_reset_time(iso_time: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 reset timestamp into an aware datetime.

    Returns None for missing or unparseable values.
    """
    if not iso_time:
        return None
    try:
        normalized = _FRACTION.sub(
            lambda m: "." + m.group(1)[:6].ljust(6, "0"),
            iso_time.replace("Z", "+00:00"),
        )
        dt = datetime.fromisoformat(normalized)
    except (ValueError, AttributeError):
        lib_logger.debug(f"Unparseable resetTime: {iso_time!r}")
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _clamp_fraction(value: Any) -> float:
    try:
        fraction = float(value)
    except (TypeError, ValueError):
        return 0.0
    return min(1.0, max(0.0, fraction))


def _parse_skills(model: Dict[str, Any]) -> ModelSkills:
    mime = model.get("supportedMimeTypes") or {}
    return ModelSkills(
        image=bool(model.get("supportsImages")) or any(mime.get(t) for t in _IMAGE_TYPES),
        video=any(mime.get(t) for t in _VIDEO_TYPES),
        audio=any(mime.get(t) for t in _AUDIO_TYPES),
        docs=any(mime.get(t) for t in _DOC_TYPES),
    )


def parse_model(model: Dict[str, Any]) -> ModelQuota:
    quota_info = model.get("quotaInfo") or {}
    reset_time = quota_info.get("resetTime") or None
    return ModelQuota(
        label=model.get("label", "Unknown"),
        remaining_fraction=_clamp_fraction(quota_info.get("remainingFraction", 0.0)),
        reset_time=reset_time,
        reset_at=parse_reset_time(reset_time),
        is_recommended=bool(model.get("isRecommended", False)),
        tag=model.get("tagTitle") or None,
        skills=_parse_skills(model),
    )


def parse_global_stats(user_status: Dict[str, Any]) -> GlobalStats:
    plan_status = user_status.get("planStatus") or {}
    plan_info = plan_status.get("planInfo") or {}
    team_config = plan_info.get("defaultTeamConfig") or {}

    return GlobalStats(
        plan_name=plan_info.get("planName") or "Unknown",
        fast_autocomplete=bool(plan_info.get("hasAutocompleteFastMode", False)),
        premium_models=bool(plan_info.get("allowPremiumCommandModels", False)),
        web_search=bool(plan_info.get("cascadeWebSearchEnabled", False)),
        chat_input_limit=str(plan_info.get("maxNumChatInputTokens") or "Unknown"),
        browser=bool(plan_info.get("browserEnabled", False)),
        knowledge_base=bool(plan_info.get("knowledgeBaseEnabled", False)),
        mcp=bool(team_config.get("allowMcpServers", False)),
        auto_run=bool(plan_info.get("cascadeCanAutoRunCommands", False)),
        prompt_credits=CreditPool(
            total=int(plan_info.get("monthlyPromptCredits") or 0),
            available=int(plan_status.get("availablePromptCredits") or 0),
        ),
        flow_credits=CreditPool(
            total=int(plan_info.get("monthlyFlowCredits") or 0),
            available=int(plan_status.get("availableFlowCredits") or 0),
        ),
    )


def parse_user_status(payload: Any) -> UsageData:
    """
    Map a GetUserStatus response into UsageData (weekly_usage left at 0).

    Raises:
        InvalidResponseError: userStatus is missing
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("userStatus"), dict):
        raise InvalidResponseError("Invalid response: missing userStatus")

    user_status = payload["userStatus"]
    model_data = user_status.get("cascadeModelConfigData") or {}
    raw_models: List[Dict[str, Any]] = model_data.get("clientModelConfigs") or []

    models = [parse_model(m) for m in raw_models if isinstance(m, dict)]
    if not models:
        lib_logger.debug("clientModelConfigs was empty or missing")

    return UsageData(
        global_stats=parse_global_stats(user_status),
        models=models,
        fetched_at=time.time(),
    )
