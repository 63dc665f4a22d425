"""
Driver alert package.

Stateful alert components driven by the live tick stream:
- Tiered over-speed alarm
- Turn-severity warnings
- Debounced zone announcements
- Take-a-break reminders
- Hands-free speed readout

Usage:
    from alerts import AlarmTierController

    alarm = AlarmTierController(scheduler, feedback)
    alarm.update(over_by=12.0)
"""

from alerts.break_reminder import BreakReminder, format_driving_time
from alerts.speed_alarm import AlarmState, AlarmTier, AlarmTierController, tier_for
from alerts.speed_readout import SpeedReadout
from alerts.turn_warning import TurnDetector, TurnSeverity
from alerts.zone_announcer import ZoneAnnouncer

__all__ = [
    "AlarmState",
    "AlarmTier",
    "AlarmTierController",
    "BreakReminder",
    "SpeedReadout",
    "TurnDetector",
    "TurnSeverity",
    "ZoneAnnouncer",
    "format_driving_time",
    "tier_for",
]
