"""Half-open time intervals ``[start, end)`` and the algebra used on them."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable


@dataclass(frozen=True, order=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("Interval bounds must be aware datetimes")
        if not self.start < self.end:
            raise ValueError(
                f"Interval start must be before end ({self.start} >= {self.end})"
            )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        return overlaps(self, other)

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end

    def __repr__(self):
        return f"Interval({self.start.isoformat()} - {self.end.isoformat()})"


def overlaps(a: Interval, b: Interval) -> bool:
    """Touching endpoints do not overlap."""
    return a.start < b.end and b.start < a.end


def merge(intervals: Iterable[Interval]) -> list[Interval]:
    """Coalesce overlapping or touching intervals into a sorted disjoint list."""
    merged: list[Interval] = []
    for interval in sorted(intervals):
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            if interval.end > last.end:
                merged[-1] = Interval(last.start, interval.end)
        else:
            merged.append(interval)
    return merged


def subtract(window: Interval, blockers: Iterable[Interval]) -> list[Interval]:
    """Free parts of ``window`` once every blocker is removed, in time order."""
    free: list[Interval] = []
    cursor = window.start
    for blocker in merge(blockers):
        if blocker.end <= cursor:
            continue
        if blocker.start >= window.end:
            break
        if blocker.start > cursor:
            free.append(Interval(cursor, blocker.start))
        cursor = max(cursor, blocker.end)
        if cursor >= window.end:
            break
    if cursor < window.end:
        free.append(Interval(cursor, window.end))
    return free


def clip(intervals: Iterable[Interval], bounds: Interval) -> list[Interval]:
    """Parts of ``intervals`` that fall inside ``bounds``; empty parts are dropped."""
    clipped: list[Interval] = []
    for interval in intervals:
        start = max(interval.start, bounds.start)
        end = min(interval.end, bounds.end)
        if start < end:
            clipped.append(Interval(start, end))
    return clipped
