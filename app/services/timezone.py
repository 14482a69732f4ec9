"""Time normalization for the salon calendar.

Every wall-clock value (calendar dates, times of day, timestamp strings) is
turned into an aware UTC ``datetime`` here, and only here. Values without an
offset are read as wall-clock time in the salon timezone, never as UTC and
never as the host's local time. Values that carry an offset are converted by
offset arithmetic only.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.exceptions import AmbiguousTimeError, InvalidRequestError
from app.services.intervals import Interval

TimezoneLike = Union[str, ZoneInfo]


def get_zone(tz: TimezoneLike) -> ZoneInfo:
    if isinstance(tz, ZoneInfo):
        return tz
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidRequestError(f"Unknown timezone: {tz}", {"timezone": tz}) from e


def to_instant(
    local_date: date,
    local_time: time,
    tz: TimezoneLike,
    fold: Optional[int] = None,
) -> datetime:
    """Convert a wall-clock date and time in ``tz`` to a UTC instant.

    Raises AmbiguousTimeError when the wall-clock value falls in a DST gap
    (it never happens) or is repeated by a DST fall-back and no ``fold`` was
    given to pick the earlier (0) or later (1) occurrence.

    A ``local_time`` that carries its own tzinfo is converted by that offset
    and ``tz`` does not affect the result.
    """
    if fold not in (None, 0, 1):
        raise InvalidRequestError(f"fold must be 0 or 1, got {fold!r}", {"fold": fold})
    zone = get_zone(tz)
    if local_time.tzinfo is not None:
        return datetime.combine(local_date, local_time).astimezone(timezone.utc)
    naive = datetime.combine(local_date, local_time)

    candidates = []
    for f in (0, 1):
        instant = naive.replace(tzinfo=zone, fold=f).astimezone(timezone.utc)
        # zoneinfo maps non-existent times to an instant that reads back differently
        if instant.astimezone(zone).replace(tzinfo=None) == naive:
            if instant not in candidates:
                candidates.append(instant)

    if not candidates:
        raise AmbiguousTimeError(
            naive.isoformat(), zone.key, "inside a daylight-saving gap"
        )
    if len(candidates) > 1:
        if fold is None:
            raise AmbiguousTimeError(
                naive.isoformat(), zone.key, "repeated by a daylight-saving transition"
            )
        return sorted(candidates)[fold]
    return candidates[0]


def to_local(instant: datetime, tz: TimezoneLike) -> tuple[date, time]:
    """Split a UTC instant into the wall-clock date and time in ``tz``."""
    if instant.tzinfo is None:
        raise ValueError("to_local() requires an aware datetime")
    local = instant.astimezone(get_zone(tz))
    return local.date(), local.time()


def local_label(instant: datetime, tz: TimezoneLike) -> str:
    """Wall-clock "HH:MM" of an instant, as shown to clients."""
    return instant.astimezone(get_zone(tz)).strftime("%H:%M")


def day_window(local_date: date, tz: TimezoneLike) -> Interval:
    """The instants of one local calendar day, ``[midnight, next midnight)``.

    A midnight skipped by a DST jump resolves to the transition instant, which
    is the first instant of that local day.
    """
    zone = get_zone(tz)
    start = datetime.combine(local_date, time.min, tzinfo=zone)
    end = datetime.combine(local_date + timedelta(days=1), time.min, tzinfo=zone)
    return Interval(start.astimezone(timezone.utc), end.astimezone(timezone.utc))


def parse_local_date(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError) as e:
        raise InvalidRequestError(
            f"Invalid date '{value}', expected YYYY-MM-DD", {"date": value}
        ) from e


def parse_time_of_day(value: str) -> time:
    try:
        parsed = time.fromisoformat(value.strip())
    except (AttributeError, ValueError) as e:
        raise InvalidRequestError(
            f"Invalid time '{value}', expected HH:MM", {"time": value}
        ) from e
    if parsed.tzinfo is not None:
        raise InvalidRequestError(
            f"Time of day '{value}' must not carry an offset", {"time": value}
        )
    return parsed


def _parse_datetime(value: str) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise InvalidRequestError(
            f"Invalid timestamp '{value}'", {"timestamp": value}
        ) from e


def parse_instant(value: str, tz: TimezoneLike) -> datetime:
    """Parse a timestamp string supplied by a caller.

    ``2025-03-26T10:00`` is 10:00 wall-clock time in ``tz``;
    ``2025-03-26T10:00:00-03:00`` and ``...Z`` are converted by their offset.
    """
    parsed = _parse_datetime(value)
    if parsed.tzinfo is not None:
        return parsed.astimezone(timezone.utc)
    return to_instant(parsed.date(), parsed.time(), tz)


def combine_local(date_value: str, time_value: str, tz: TimezoneLike) -> datetime:
    """Instant for a separate date string and time-of-day string in ``tz``."""
    return to_instant(parse_local_date(date_value), parse_time_of_day(time_value), tz)


def from_storage(value: Union[datetime, str]) -> datetime:
    """Normalize a timestamp read from storage to an aware UTC datetime.

    Storage holds UTC instants; a value without offset is UTC by that
    contract, unlike caller input.
    """
    if isinstance(value, str):
        value = _parse_datetime(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SystemClock:
    """Reads the host clock, always as a UTC instant."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock pinned to one instant."""

    def __init__(self, instant: datetime):
        self.instant = from_storage(instant)

    def now(self) -> datetime:
        return self.instant
