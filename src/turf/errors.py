"""Error taxonomy for the territory engine.

Every failure the core raises is a ``TurfError``. Each class fixes the HTTP
status the API surfaces and whether the caller may retry.
"""

from __future__ import annotations

from typing import Any


class TurfError(Exception):
    """Base class for all core failures."""

    status_code: int = 400
    retryable: bool = False
    code: str = "turf_error"

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "error": self.code, "retryable": self.retryable, **self.extra}


# ── Input contract ──


class InputContractError(TurfError, ValueError):
    status_code = 422
    code = "invalid_input"


class InvalidResolutionError(InputContractError):
    code = "invalid_resolution"


class InvalidCoordinateError(InputContractError):
    code = "invalid_coordinate"


class InvalidBBoxError(InputContractError):
    code = "invalid_bbox"


class ViewportTooLargeError(InputContractError):
    code = "viewport_too_large"


class InvalidCellError(InputContractError):
    code = "invalid_cell"


class InvalidTrackError(InputContractError):
    code = "invalid_track"


class UnknownActivityTypeError(InputContractError):
    code = "unknown_activity_type"


# ── Authorization ──


class AuthorizationError(TurfError):
    status_code = 401
    code = "unauthorized"


class ForbiddenError(AuthorizationError):
    status_code = 403
    code = "forbidden"


# ── Referential ──


class ReferentialError(TurfError):
    status_code = 404
    code = "not_found"


class ActivityNotFoundError(ReferentialError):
    code = "activity_not_found"

    def __init__(self, message: str = "Activity not found or not owned by user", **extra: Any) -> None:
        super().__init__(message, **extra)


class SeasonNotFoundError(ReferentialError):
    code = "season_not_found"


class SeasonInactiveError(ReferentialError):
    status_code = 422
    code = "invalid_season"

    def __init__(self, message: str = "Invalid or inactive season", **extra: Any) -> None:
        super().__init__(message, **extra)


# ── Activity lifecycle ──


class ActivityStateError(TurfError):
    status_code = 409
    code = "activity_state"


class ActivityNotClosedError(ActivityStateError):
    code = "activity_not_closed"


class ActivityAlreadyClosedError(ActivityStateError):
    code = "activity_already_closed"


# ── Anti-cheat ──


class AntiCheatError(TurfError):
    status_code = 422
    code = "speed_limit_exceeded"

    def __init__(self, message: str, *, activity_type: str, speed_kmh: float, ceiling_kmh: float) -> None:
        super().__init__(
            message,
            activity_type=activity_type,
            speed_kmh=round(speed_kmh, 3),
            ceiling_kmh=ceiling_kmh,
        )
        self.activity_type = activity_type
        self.speed_kmh = speed_kmh
        self.ceiling_kmh = ceiling_kmh


# ── Persistence ──


class CollaboratorUnavailableError(TurfError):
    status_code = 503
    retryable = True
    code = "persistence_unavailable"


class PartialClaimError(TurfError):
    """Some ownership upserts are durable but the claim did not complete.

    No audit event was written. Re-running the same claim is safe because
    each per-cell upsert is idempotent.
    """

    status_code = 500
    retryable = True
    code = "partial_claim"

    def __init__(self, message: str, *, applied: int, total: int) -> None:
        super().__init__(message, applied=applied, total=total)
        self.applied = applied
        self.total = total
