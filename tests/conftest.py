import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from core.feedback import FeedbackChannel, SpeechRequest, ToneSpec
from core.timers import ManualScheduler

# 2026-01-05 12:00:00 UTC, a Monday at noon (no time-of-day fatigue factor)
NOON_UTC_MS = 1_767_614_400_000.0


class RecordingToneSink:
    def __init__(self) -> None:
        self.played: list[ToneSpec] = []

    def play(self, tone: ToneSpec) -> None:
        self.played.append(tone)

    @property
    def names(self) -> list[str]:
        return [tone.name for tone in self.played]


class RecordingSpeechSink:
    def __init__(self) -> None:
        self.requests: list[SpeechRequest] = []

    def speak(self, request: SpeechRequest) -> None:
        self.requests.append(request)

    @property
    def texts(self) -> list[str]:
        return [request.text for request in self.requests]


@pytest.fixture(autouse=True)
def _default_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SPEED_LIMIT_SERVICE_URL", raising=False)
    monkeypatch.setenv("SPEED_UNIT", "km/h")
    monkeypatch.setenv("LOCAL_TIMEZONE", "UTC")


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler(start_ms=NOON_UTC_MS)


@pytest.fixture
def tones() -> RecordingToneSink:
    return RecordingToneSink()


@pytest.fixture
def speech() -> RecordingSpeechSink:
    return RecordingSpeechSink()


@pytest.fixture
def feedback(tones: RecordingToneSink, speech: RecordingSpeechSink) -> FeedbackChannel:
    return FeedbackChannel(tone_sink=tones, speech_sink=speech)
