"""Hands-free periodic readout of the current speed."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.constants import READOUT_INTERVAL_MS
from core.feedback import FeedbackChannel, SpeechRequest
from core.math_utils import round_half_up
from core.timers import Scheduler, TimerSlot
from core.units import SpeedUnit, kmh_to_unit, spoken_unit

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class SpeedReadout:
    """
    Speaks the current speed now and then every 30 seconds.

    ``speed_source`` is read at each readout so the value is always the
    latest tick, not the one seen when the readout was scheduled.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        feedback: FeedbackChannel,
        speed_source: Callable[[], float | None],
        *,
        unit: SpeedUnit = "km/h",
    ) -> None:
        self._feedback = feedback
        self._speed_source = speed_source
        self._timer = TimerSlot(scheduler, "speed_readout")
        self.unit: SpeedUnit = unit
        self.enabled = False

    @property
    def is_running(self) -> bool:
        return self._timer.active

    def start(self) -> None:
        self.enabled = True
        self._speak_now()

    def _speak_now(self) -> None:
        if not self.enabled:
            return
        speed = kmh_to_unit(self._speed_source() or 0.0, self.unit)
        if speed > 0:
            self._feedback.speak(
                SpeechRequest(
                    text=f"{int(round_half_up(speed))} {spoken_unit(self.unit)}",
                    volume=0.6,
                ),
            )
        self._timer.schedule(READOUT_INTERVAL_MS, self._speak_now)

    def stop(self) -> None:
        self.enabled = False
        self._timer.cancel()
