"""
Turn-severity warnings from the heading stream.

Keeps a 3 second window of heading samples and compares the oldest against
the newest. A large change inside the window means the vehicle is turning
hard at speed. Sharp turns also start a cooldown so a single bend does not
produce a stream of warnings.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum

from core.constants import (
    TURN_COOLDOWN_MS,
    TURN_MILD_CLEAR_MS,
    TURN_MILD_DEG,
    TURN_MIN_SPAN_MS,
    TURN_MIN_SPEED_KMH,
    TURN_SHARP_DEG,
    TURN_WINDOW_MS,
)
from core.feedback import TURN_WARNING_TONE, FeedbackChannel, SpeechRequest
from core.math_utils import heading_change
from core.timers import Scheduler, TimerSlot

logger = logging.getLogger(__name__)

SHARP_TURN_WARNING = SpeechRequest(text="Sharp turn ahead", rate=1.2)


class TurnSeverity(str, Enum):
    MILD = "mild"
    SHARP = "sharp"


@dataclass(frozen=True)
class HeadingSample:
    heading: float
    timestamp: float


class TurnDetector:
    """Sliding-window turn classifier with cooldown-suppressed warnings."""

    def __init__(self, scheduler: Scheduler, feedback: FeedbackChannel) -> None:
        self._scheduler = scheduler
        self._feedback = feedback
        self.window: deque[HeadingSample] = deque()
        self.is_turning = False
        self.severity: TurnSeverity | None = None
        self._cooldown = False
        self._voice_spoken = False
        self._mild_clear = TimerSlot(scheduler, "turn_mild_clear")
        self._cooldown_timer = TimerSlot(scheduler, "turn_cooldown")

    @property
    def in_cooldown(self) -> bool:
        return self._cooldown

    def update_heading(
        self,
        heading: float | None,
        speed_kmh: float | None,
        timestamp_ms: float | None = None,
    ) -> TurnSeverity | None:
        if heading is None:
            return self.severity

        now = self._scheduler.now_ms() if timestamp_ms is None else timestamp_ms
        self.window.append(HeadingSample(heading, now))
        cutoff = now - TURN_WINDOW_MS
        while self.window and self.window[0].timestamp < cutoff:
            self.window.popleft()

        # Heading from a slow-moving receiver is mostly noise.
        if speed_kmh is None or speed_kmh < TURN_MIN_SPEED_KMH:
            if self.is_turning:
                self._clear_turn()
            return self.severity

        if len(self.window) < 2:
            return self.severity

        oldest, newest = self.window[0], self.window[-1]
        span_ms = newest.timestamp - oldest.timestamp
        if span_ms < TURN_MIN_SPAN_MS or span_ms > TURN_WINDOW_MS:
            return self.severity

        change = heading_change(oldest.heading, newest.heading)
        if change >= TURN_SHARP_DEG:
            self._raise_sharp(change)
        elif change >= TURN_MILD_DEG:
            self._raise_mild(change)
        return self.severity

    def _raise_sharp(self, change: float) -> None:
        if self._cooldown:
            return
        self._cooldown = True
        self._mild_clear.cancel()
        self.is_turning = True
        self.severity = TurnSeverity.SHARP
        logger.info("Sharp turn detected (%.0f deg)", change)
        self._feedback.play(TURN_WARNING_TONE)
        if not self._voice_spoken:
            self._feedback.speak(SHARP_TURN_WARNING)
            self._voice_spoken = True
        self._cooldown_timer.schedule(TURN_COOLDOWN_MS, self._end_cooldown)

    def _raise_mild(self, change: float) -> None:
        if self._cooldown or self.severity is TurnSeverity.MILD:
            return
        self.is_turning = True
        self.severity = TurnSeverity.MILD
        logger.debug("Mild turn detected (%.0f deg)", change)
        self._feedback.play(TURN_WARNING_TONE)
        self._mild_clear.schedule(TURN_MILD_CLEAR_MS, self._clear_turn)

    def _end_cooldown(self) -> None:
        self._cooldown = False
        self._voice_spoken = False
        self.is_turning = False
        self.severity = None

    def _clear_turn(self) -> None:
        self._mild_clear.cancel()
        self.is_turning = False
        self.severity = None

    def stop(self) -> None:
        self._mild_clear.cancel()
        self._cooldown_timer.cancel()
        self.window.clear()
        self._cooldown = False
        self._voice_spoken = False
        self.is_turning = False
        self.severity = None

    def as_dict(self) -> dict[str, object]:
        return {
            "isTurning": self.is_turning,
            "turnSeverity": self.severity.value if self.severity else None,
            "inCooldown": self._cooldown,
        }
