"""Anti-cheat speed ceilings.

A finished activity is rejected when its average speed is physically
implausible for its type. Equal to the ceiling passes; strictly above fails.

    RUN   24 km/h  (~15 mph elite sprint)
    WALK  10 km/h  (~6 mph fast walk)
    RIDE  60 km/h  (~37 mph descent/sprint)

Activities with zero distance or zero duration are not speed-checked.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from turf.errors import AntiCheatError, InputContractError, UnknownActivityTypeError

SPEED_CEILINGS_KMH: dict[str, float] = {
    "RUN": 24.0,
    "WALK": 10.0,
    "RIDE": 60.0,
}

_VIOLATION_MESSAGES: dict[str, str] = {
    "RUN": "Running speed exceeds realistic limits",
    "WALK": "Walking speed exceeds realistic limits",
    "RIDE": "Cycling speed exceeds realistic limits",
}


@dataclass(frozen=True)
class SpeedCheck:
    activity_type: str
    speed_kmh: float | None
    ceiling_kmh: float

    @property
    def checked(self) -> bool:
        return self.speed_kmh is not None


def require_activity_type(activity_type: str) -> str:
    if activity_type not in SPEED_CEILINGS_KMH:
        msg = f"{activity_type!r} is not a valid activity type"
        raise UnknownActivityTypeError(msg, activity_type=str(activity_type))
    return activity_type


def speed_kmh(distance_m: float, duration_s: float) -> float:
    return (distance_m / 1000) / (duration_s / 3600)


def check_speed(activity_type: str, distance_m: float, duration_s: float) -> SpeedCheck:
    """Validate average speed for an activity.

    Raises:
        UnknownActivityTypeError: ``activity_type`` is not RUN, WALK or RIDE.
        InputContractError: negative or non-finite distance/duration.
        AntiCheatError: speed strictly above the type's ceiling.
    """
    require_activity_type(activity_type)
    ceiling = SPEED_CEILINGS_KMH[activity_type]
    for name, value in (("distance_m", distance_m), ("duration_s", duration_s)):
        if not math.isfinite(value) or value < 0:
            msg = f"{name} must be a non-negative number"
            raise InputContractError(msg, field=name)

    if distance_m <= 0 or duration_s <= 0:
        return SpeedCheck(activity_type, None, ceiling)

    speed = speed_kmh(distance_m, duration_s)
    # 10000 m / 1500 s lands a hair over 24.0 in floating point.
    if speed > ceiling and not math.isclose(speed, ceiling, rel_tol=1e-12):
        raise AntiCheatError(
            _VIOLATION_MESSAGES[activity_type],
            activity_type=activity_type,
            speed_kmh=speed,
            ceiling_kmh=ceiling,
        )
    return SpeedCheck(activity_type, speed, ceiling)
