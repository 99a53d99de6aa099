"""
Shared fakes: command runners replaying captured output, a manual clock,
recorded sleeps and a JSON status payload.
"""

from typing import Any, Dict, List, Sequence, Union

import pytest

from antigravity_usage.core.errors import CommandError


class FakeRunner:
    """
    Replays canned output keyed by the command's program name.

    A value that is an Exception is raised instead of returned.
    """

    def __init__(self, outputs: Dict[str, Union[str, Exception]]):
        self.outputs = outputs
        self.calls: List[List[str]] = []

    async def __call__(self, argv: Sequence[str]) -> str:
        self.calls.append(list(argv))
        result = self.outputs.get(argv[0])
        if result is None:
            raise CommandError(argv, "failed to start: not found")
        if isinstance(result, Exception):
            raise result
        return result

    def programs(self) -> List[str]:
        return [call[0] for call in self.calls]


class ManualClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordedSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_status_payload(models: List[Dict[str, Any]] = None) -> Dict[str, Any]:
    if models is None:
        models = [
            {
                "label": "Gemini 3 Pro (High)",
                "quotaInfo": {
                    "remainingFraction": 0.75,
                    "resetTime": "2026-10-18T12:00:00Z",
                },
                "isRecommended": True,
                "supportedMimeTypes": {"image/png": True, "application/pdf": True},
                "tagTitle": "New",
            },
            {
                "label": "Claude Sonnet 4.5",
                "quotaInfo": {
                    "remainingFraction": 1.0,
                    "resetTime": "2026-10-18T17:30:00.123456789Z",
                },
            },
            {
                "label": "GPT-OSS 120B",
                "quotaInfo": {"remainingFraction": 1.0},
            },
        ]
    return {
        "userStatus": {
            "planStatus": {
                "planInfo": {
                    "planName": "Pro",
                    "monthlyPromptCredits": 50000,
                    "monthlyFlowCredits": 150000,
                    "hasAutocompleteFastMode": True,
                    "allowPremiumCommandModels": True,
                    "cascadeWebSearchEnabled": True,
                    "maxNumChatInputTokens": "16384",
                    "browserEnabled": True,
                    "defaultTeamConfig": {"allowMcpServers": True},
                },
                "availablePromptCredits": 42000,
                "availableFlowCredits": 149000,
            },
            "cascadeModelConfigData": {"clientModelConfigs": models},
        }
    }


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def recorded_sleep() -> RecordedSleep:
    return RecordedSleep()


@pytest.fixture
def status_payload() -> Dict[str, Any]:
    return make_status_payload()
