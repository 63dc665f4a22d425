"""Global constants for the core package.

This module contains the thresholds shared by the tracking, scoring and
alerting components.
"""

from typing import Final

# Kinematics
MS_TO_KMH: Final[float] = 3.6
SPEED_NOISE_FLOOR_KMH: Final[float] = 1.0
DISTANCE_JITTER_FLOOR_M: Final[float] = 2.0
GRAVITY_MS2: Final[float] = 9.81

# Derivative windows (seconds, exclusive bounds)
MIN_TICK_INTERVAL_S: Final[float] = 0.0
MAX_TICK_INTERVAL_S: Final[float] = 10.0

# Speed alarm tiers (km/h over the posted limit)
ALARM_MILD_OVER_KMH: Final[float] = 5.0
ALARM_MODERATE_OVER_KMH: Final[float] = 10.0
ALARM_AGGRESSIVE_OVER_KMH: Final[float] = 20.0
ALARM_MILD_INTERVAL_MS: Final[float] = 3000.0
ALARM_MODERATE_INTERVAL_MS: Final[float] = 2000.0
ALARM_AGGRESSIVE_INTERVAL_MS: Final[float] = 1500.0
ALARM_FLASH_MS: Final[float] = 150.0

# Turn warning
TURN_WINDOW_MS: Final[float] = 3000.0
TURN_MIN_SPAN_MS: Final[float] = 500.0
TURN_MIN_SPEED_KMH: Final[float] = 30.0
TURN_MILD_DEG: Final[float] = 25.0
TURN_SHARP_DEG: Final[float] = 45.0
TURN_MILD_CLEAR_MS: Final[float] = 3000.0
TURN_COOLDOWN_MS: Final[float] = 5000.0

# Zone announcements
SCHOOL_ZONE_SETTLE_MS: Final[float] = 300.0
SPEED_LIMIT_SETTLE_MS: Final[float] = 500.0

# Speed-limit lookup throttle
LOOKUP_MIN_INTERVAL_MS: Final[float] = 5000.0
LOOKUP_MIN_MOVE_DEG: Final[float] = 0.0005

# Break reminder
BREAK_FIRST_ALERT_MS: Final[float] = 2 * 60 * 60 * 1000
BREAK_REPEAT_ALERT_MS: Final[float] = 30 * 60 * 1000
BREAK_TICK_MS: Final[float] = 1000.0

# Hands-free readout
READOUT_INTERVAL_MS: Final[float] = 30_000.0

# Unit conversion
KMH_TO_MPH: Final[float] = 0.621371
