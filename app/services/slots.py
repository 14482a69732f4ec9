import logging
from datetime import datetime, timedelta
from typing import Iterable

from app.schemas.scheduling import Slot
from app.services.intervals import Interval, merge, subtract
from app.services.timezone import TimezoneLike, get_zone, local_label, to_local

logger = logging.getLogger(__name__)


class SlotGenerator:
    """Carves bookable slots out of working windows on a fixed start-time grid."""

    def __init__(self, granularity_minutes: int, tz: TimezoneLike):
        if granularity_minutes <= 0:
            raise ValueError("granularity_minutes must be positive")
        self.granularity = timedelta(minutes=granularity_minutes)
        self.zone = get_zone(tz)

    def generate(
        self,
        windows: Iterable[Interval],
        occupancy: Iterable[Interval],
        duration_minutes: int,
        now: datetime,
    ) -> list[Slot]:
        """Slots of ``duration_minutes`` that fit in free time and start after ``now``.

        Each free sub-window is walked from its own start in granularity steps;
        a slot never spans a gap left by an occupancy range.
        """
        duration = timedelta(minutes=duration_minutes)
        blockers = merge(occupancy)
        slots: list[Slot] = []
        skipped_past = 0

        for window in merge(windows):
            for free in subtract(window, blockers):
                cursor = free.start
                while cursor + duration <= free.end:
                    if cursor <= now:
                        skipped_past += 1
                    else:
                        slots.append(self._make_slot(cursor, cursor + duration))
                    cursor += self.granularity

        logger.debug(
            f"Generated {len(slots)} slots of {duration_minutes} minutes "
            f"({skipped_past} skipped as past)"
        )
        return slots

    def _make_slot(self, start: datetime, end: datetime) -> Slot:
        local_date, _ = to_local(start, self.zone)
        return Slot(
            start_datetime=start,
            end_datetime=end,
            local_date=local_date,
            local_time=local_label(start, self.zone),
        )
