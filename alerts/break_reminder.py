"""
Take-a-break reminders for long drives.

A 1 Hz timer tracks continuous driving time. The first reminder fires after
two hours; after that one fires every 30 minutes, counted from the last
reminder or from the moment the driver dismissed it.
"""

from __future__ import annotations

import logging

from core.constants import (
    BREAK_FIRST_ALERT_MS,
    BREAK_REPEAT_ALERT_MS,
    BREAK_TICK_MS,
)
from core.feedback import BREAK_CHIME_TONE, FeedbackChannel, SpeechRequest
from core.math_utils import round_half_up
from core.timers import Scheduler, TimerSlot

logger = logging.getLogger(__name__)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count > 1 else ''}"


def format_driving_time(elapsed_ms: float) -> str:
    """
    Spoken form of a driving duration.

    Example:
        >>> format_driving_time(2.5 * 60 * 60 * 1000)
        '2 hours and 30 minutes'
    """
    hours = elapsed_ms / (60 * 60 * 1000)
    if hours >= 1:
        whole_hours = int(hours)
        minutes = int(round_half_up((hours - whole_hours) * 60))
        if minutes > 0:
            return f"{_plural(whole_hours, 'hour')} and {_plural(minutes, 'minute')}"
        return _plural(whole_hours, "hour")
    return _plural(int(round_half_up(hours * 60)), "minute")


class BreakReminder:
    def __init__(self, scheduler: Scheduler, feedback: FeedbackChannel) -> None:
        self._scheduler = scheduler
        self._feedback = feedback
        self._tick = TimerSlot(scheduler, "break_tick")
        self._started_at: float | None = None
        self._next_alert_at = BREAK_FIRST_ALERT_MS
        self.driving_time = 0.0
        self.should_take_break = False
        self.breaks_dismissed = 0

    @property
    def is_running(self) -> bool:
        return self._started_at is not None

    def start(self) -> None:
        self._started_at = self._scheduler.now_ms()
        self._next_alert_at = BREAK_FIRST_ALERT_MS
        self.driving_time = 0.0
        self.should_take_break = False
        self.breaks_dismissed = 0
        self._tick.schedule(BREAK_TICK_MS, self._on_tick)

    def _on_tick(self) -> None:
        if self._started_at is None:
            return
        elapsed = self._scheduler.now_ms() - self._started_at
        self.driving_time = elapsed

        if elapsed >= self._next_alert_at:
            self.should_take_break = True
            logger.info("Break reminder after %.0f minutes", elapsed / 60000)
            self._feedback.play(BREAK_CHIME_TONE)
            self._feedback.speak(
                SpeechRequest(
                    text=(
                        f"You've been driving for {format_driving_time(elapsed)}. "
                        "Consider taking a break."
                    ),
                    rate=0.9,
                ),
            )
            self._next_alert_at = elapsed + BREAK_REPEAT_ALERT_MS

        self._tick.schedule(BREAK_TICK_MS, self._on_tick)

    def dismiss(self) -> None:
        self.should_take_break = False
        self.breaks_dismissed += 1
        self._next_alert_at += BREAK_REPEAT_ALERT_MS

    def stop(self) -> None:
        self._tick.cancel()
        self._started_at = None

    def as_dict(self) -> dict[str, object]:
        return {
            "drivingTime": self.driving_time,
            "shouldTakeBreak": self.should_take_break,
            "breaksDismissed": self.breaks_dismissed,
        }
