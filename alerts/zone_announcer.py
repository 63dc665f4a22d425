"""
Debounced voice announcements for speed-limit and school-zone changes.

Lookups can flap while the vehicle crosses a boundary, so every announcement
waits for a short settle delay. Both channels share one pending slot: a newer
announcement replaces one that has not been spoken yet.
"""

from __future__ import annotations

import logging

from core.constants import SCHOOL_ZONE_SETTLE_MS, SPEED_LIMIT_SETTLE_MS
from core.feedback import FeedbackChannel, SpeechRequest
from core.timers import Scheduler, TimerSlot
from core.units import SpeedUnit, display_limit, spoken_unit

logger = logging.getLogger(__name__)

ENTER_SCHOOL_ZONE_TEXT = "Caution. School zone."
LEAVE_SCHOOL_ZONE_TEXT = "Leaving school zone."


class ZoneAnnouncer:
    """Watches lookup results and voices zone transitions."""

    def __init__(
        self,
        scheduler: Scheduler,
        feedback: FeedbackChannel,
        *,
        unit: SpeedUnit = "km/h",
        enabled: bool = True,
    ) -> None:
        self._feedback = feedback
        self._pending = TimerSlot(scheduler, "zone_announce")
        self.unit: SpeedUnit = unit
        self.enabled = enabled
        self.previous_limit: float | None = None
        self.previous_school_zone = False
        self.in_school_zone = False
        self.last_announced: float | None = None

    @property
    def has_pending(self) -> bool:
        return self._pending.active

    def update(self, speed_limit: float | None, is_school_zone: bool) -> None:
        """Feed the latest lookup result."""
        if not self.enabled:
            # Track silently so re-enabling does not replay old transitions.
            self.in_school_zone = is_school_zone
            self.previous_school_zone = is_school_zone
            if speed_limit is not None:
                self.previous_limit = speed_limit
            return

        self._check_school_zone(is_school_zone)
        self._check_speed_limit(speed_limit)

    def _check_school_zone(self, is_school_zone: bool) -> None:
        if is_school_zone == self.previous_school_zone:
            return
        self.previous_school_zone = is_school_zone
        self.in_school_zone = is_school_zone
        text = ENTER_SCHOOL_ZONE_TEXT if is_school_zone else LEAVE_SCHOOL_ZONE_TEXT
        logger.debug("School zone %s", "entered" if is_school_zone else "left")
        self._pending.schedule(
            SCHOOL_ZONE_SETTLE_MS,
            lambda: self._announce(text),
        )

    def _check_speed_limit(self, speed_limit: float | None) -> None:
        if speed_limit is None:
            return
        if self.previous_limit is None:
            self.previous_limit = speed_limit
            return
        if speed_limit == self.previous_limit:
            return
        self.previous_limit = speed_limit
        self._pending.schedule(
            SPEED_LIMIT_SETTLE_MS,
            lambda: self._announce_limit(speed_limit),
        )

    def _announce(self, text: str) -> None:
        logger.info("Zone announcement: %s", text)
        self._feedback.speak(SpeechRequest(text=text, interrupt=True))

    def _announce_limit(self, speed_limit: float) -> None:
        shown = display_limit(speed_limit, self.unit)
        self._announce(f"Speed limit now {shown} {spoken_unit(self.unit)}")
        self.last_announced = speed_limit

    def set_enabled(self, enabled: bool) -> None:
        if enabled == self.enabled:
            return
        self.enabled = enabled
        if not enabled:
            self._pending.cancel()
        logger.info("Zone announcements %s", "enabled" if enabled else "disabled")

    def toggle_announcements(self) -> bool:
        self.set_enabled(not self.enabled)
        return self.enabled

    def set_unit(self, unit: SpeedUnit) -> None:
        self.unit = unit

    def cancel(self) -> None:
        self._pending.cancel()

    def clear(self) -> None:
        """Forget all zone history; the next limit becomes a fresh baseline."""
        self._pending.cancel()
        self.previous_limit = None
        self.previous_school_zone = False
        self.in_school_zone = False
        self.last_announced = None

    def as_dict(self) -> dict[str, object]:
        return {
            "isAnnouncementEnabled": self.enabled,
            "inSchoolZone": self.in_school_zone,
            "lastAnnounced": self.last_announced,
        }
