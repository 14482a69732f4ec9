from typing import Any, Optional


class AvailabilityError(Exception):
    """Base class for errors raised while computing availability."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AmbiguousTimeError(AvailabilityError):
    """A wall-clock value does not map to exactly one instant (DST gap or fold)."""

    def __init__(self, local_value: str, timezone: str, reason: str):
        super().__init__(
            f"Local time {local_value} in {timezone} is {reason}",
            {"local_value": local_value, "timezone": timezone, "reason": reason},
        )
        self.local_value = local_value
        self.timezone = timezone
        self.reason = reason


class SourceUnavailableError(AvailabilityError):
    """An occupancy or schedule source could not be read."""

    def __init__(self, source: str, message: Optional[str] = None):
        super().__init__(
            message or f"Could not read availability source '{source}'",
            {"source": source},
        )
        self.source = source


class InvalidRequestError(AvailabilityError):
    """The availability request itself is malformed or out of range."""


class StaffNotFoundError(InvalidRequestError):
    """The staff member does not exist or is not bookable."""

    def __init__(self, staff_id: str):
        super().__init__(f"Staff member not found: {staff_id}", {"staff_id": staff_id})
        self.staff_id = staff_id
