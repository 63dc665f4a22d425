"""
Tiered over-speed alarm.

The tier is recomputed from scratch on every ``update()`` call from how far
the vehicle is over the posted limit. Each non-none tier owns a
self-rescheduling cycle of tones (and, above mild, a short visual flash).
Only one cycle may run at a time: switching tier cancels the old cycle before
starting the new one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from core.constants import (
    ALARM_AGGRESSIVE_INTERVAL_MS,
    ALARM_AGGRESSIVE_OVER_KMH,
    ALARM_FLASH_MS,
    ALARM_MILD_INTERVAL_MS,
    ALARM_MILD_OVER_KMH,
    ALARM_MODERATE_INTERVAL_MS,
    ALARM_MODERATE_OVER_KMH,
)
from core.feedback import (
    AGGRESSIVE_ALARM_TONE,
    MILD_ALARM_TONE,
    MODERATE_ALARM_TONE,
    FeedbackChannel,
    SpeechRequest,
    ToneSpec,
)
from core.timers import Scheduler, TimerSlot

logger = logging.getLogger(__name__)

REDUCE_SPEED_WARNING = SpeechRequest(text="Reduce speed.", rate=1.1)


class AlarmTier(str, Enum):
    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


@dataclass(frozen=True)
class _TierCycle:
    tone: ToneSpec
    interval_ms: float
    flash: bool


_CYCLES: dict[AlarmTier, _TierCycle] = {
    AlarmTier.MILD: _TierCycle(MILD_ALARM_TONE, ALARM_MILD_INTERVAL_MS, flash=False),
    AlarmTier.MODERATE: _TierCycle(
        MODERATE_ALARM_TONE,
        ALARM_MODERATE_INTERVAL_MS,
        flash=True,
    ),
    AlarmTier.AGGRESSIVE: _TierCycle(
        AGGRESSIVE_ALARM_TONE,
        ALARM_AGGRESSIVE_INTERVAL_MS,
        flash=True,
    ),
}


def tier_for(over_by: float) -> AlarmTier:
    """Map km/h over the limit to an alarm tier."""
    if over_by >= ALARM_AGGRESSIVE_OVER_KMH:
        return AlarmTier.AGGRESSIVE
    if over_by >= ALARM_MODERATE_OVER_KMH:
        return AlarmTier.MODERATE
    if over_by >= ALARM_MILD_OVER_KMH:
        return AlarmTier.MILD
    return AlarmTier.NONE


@dataclass
class AlarmState:
    tier: AlarmTier = AlarmTier.NONE
    is_muted: bool = False
    is_flashing: bool = False
    voice_spoken: bool = False

    def as_dict(self) -> dict[str, object]:
        return {
            "tier": self.tier.value,
            "isMuted": self.is_muted,
            "isFlashing": self.is_flashing,
        }


class AlarmTierController:
    """Four-tier over-speed alarm state machine."""

    def __init__(self, scheduler: Scheduler, feedback: FeedbackChannel) -> None:
        self._scheduler = scheduler
        self._feedback = feedback
        self.state = AlarmState()
        self._cycle = TimerSlot(scheduler, "alarm_cycle")
        self._flash = TimerSlot(scheduler, "alarm_flash")
        self._playing = False

    @property
    def tier(self) -> AlarmTier:
        return self.state.tier

    @property
    def cycle_active(self) -> bool:
        return self._cycle.active

    def update(self, over_by: float) -> AlarmTier:
        new_tier = tier_for(max(0.0, over_by))

        if self.state.is_muted or new_tier is AlarmTier.NONE:
            if self._playing:
                self._cancel_cycle()
            if self.state.tier is not AlarmTier.NONE:
                logger.info("Speed alarm cleared (was %s)", self.state.tier.value)
            self.state.tier = AlarmTier.NONE
            if new_tier is AlarmTier.NONE:
                self.state.voice_spoken = False
            return self.state.tier

        if new_tier is self.state.tier and self._playing:
            return self.state.tier

        self._cancel_cycle()
        logger.info(
            "Speed alarm tier %s -> %s (%.1f km/h over)",
            self.state.tier.value,
            new_tier.value,
            over_by,
        )
        self.state.tier = new_tier
        self._playing = True

        if new_tier is AlarmTier.AGGRESSIVE and not self.state.voice_spoken:
            self._feedback.speak(REDUCE_SPEED_WARNING)
            self.state.voice_spoken = True

        self._run_cycle(new_tier)
        return self.state.tier

    def _run_cycle(self, tier: AlarmTier) -> None:
        if not self._playing or self.state.tier is not tier:
            return
        cycle = _CYCLES[tier]
        if cycle.flash:
            self._trigger_flash()
        self._feedback.play(cycle.tone)
        self._cycle.schedule(cycle.interval_ms, lambda: self._run_cycle(tier))

    def _trigger_flash(self) -> None:
        self.state.is_flashing = True
        self._flash.schedule(ALARM_FLASH_MS, self._end_flash)

    def _end_flash(self) -> None:
        self.state.is_flashing = False

    def _cancel_cycle(self) -> None:
        self._cycle.cancel()
        self._flash.cancel()
        self._playing = False
        self.state.is_flashing = False

    def set_muted(self, muted: bool) -> None:
        if muted == self.state.is_muted:
            return
        self.state.is_muted = muted
        if muted:
            self.stop()
        logger.info("Speed alarm %s", "muted" if muted else "unmuted")

    def toggle_mute(self) -> bool:
        self.set_muted(not self.state.is_muted)
        return self.state.is_muted

    def stop(self) -> None:
        """Hard reset: tier none, latches cleared, no pending continuation."""
        self._cancel_cycle()
        self.state.tier = AlarmTier.NONE
        self.state.voice_spoken = False
