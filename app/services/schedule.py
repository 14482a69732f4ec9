import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from app.core.config import DailyWindow
from app.models.staff_schedule import WeekDay
from app.schemas.scheduling import BlockedTimeRecord, WeeklyScheduleEntry
from app.services.intervals import Interval, clip, merge
from app.services.store import AvailabilityStore
from app.services.timezone import TimezoneLike, day_window, to_instant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailableSlotOverride:
    """Bookable time opened for one staff member on one date."""

    staff_id: str
    date: date
    interval: Interval


class BaseScheduleResolver:
    """Works out when a staff member is meant to be working on a given date."""

    def __init__(
        self, store: AvailabilityStore, default_daily_window: Optional[DailyWindow] = None
    ):
        self.store = store
        self.default_daily_window = default_daily_window

    async def resolve(
        self, staff_id: str, local_date: date, tz: TimezoneLike
    ) -> list[Interval]:
        """Candidate working windows for the date, sorted and disjoint.

        Overrides for the date replace the weekly schedule entirely. Windows
        are clipped to the local day, so an override running past midnight
        never offers time on the next day. An empty list means the staff
        member does not work that day.
        """
        windows = await self._candidate_windows(staff_id, local_date, tz)
        return clip(windows, day_window(local_date, tz))

    async def _candidate_windows(
        self, staff_id: str, local_date: date, tz: TimezoneLike
    ) -> list[Interval]:
        overrides = await self.get_overrides(staff_id, local_date, tz)
        if overrides:
            windows = merge(override.interval for override in overrides)
            logger.info(
                f"Using {len(overrides)} override slots for staff {staff_id} "
                f"on {local_date}: {len(windows)} windows"
            )
            return windows

        schedule = await self.store.get_weekly_schedule(staff_id)
        if not schedule:
            if self.default_daily_window is None:
                logger.info(f"Staff {staff_id} has no schedule configured")
                return []
            logger.info(
                f"Staff {staff_id} has no schedule configured, "
                f"using default window {self.default_daily_window.start_time}"
                f"-{self.default_daily_window.end_time}"
            )
            return [
                self._local_window(
                    local_date,
                    self.default_daily_window.start_time,
                    self.default_daily_window.end_time,
                    tz,
                )
            ]

        weekday = WeekDay.from_date(local_date)
        entries = [entry for entry in schedule if entry.weekday == weekday.value]
        if not entries:
            logger.info(f"Staff {staff_id} does not work on {weekday.name}")
            return []

        windows = merge(
            self._local_window(local_date, entry.start_time, entry.end_time, tz)
            for entry in entries
            if self._is_valid_entry(entry)
        )
        logger.debug(
            f"Weekly schedule for staff {staff_id} on {weekday.name}: {windows}"
        )
        return windows

    async def get_overrides(
        self, staff_id: str, local_date: date, tz: TimezoneLike
    ) -> list[AvailableSlotOverride]:
        rows = await self.store.get_override_slots(staff_id, day_window(local_date, tz))
        overrides = []
        for row in rows:
            override = self._to_override(staff_id, local_date, row)
            if override is not None:
                overrides.append(override)
        return overrides

    @staticmethod
    def _to_override(
        staff_id: str, local_date: date, row: BlockedTimeRecord
    ) -> Optional[AvailableSlotOverride]:
        if row.end_datetime <= row.start_datetime:
            logger.warning(
                f"Skipping override slot {row.id} with empty range "
                f"{row.start_datetime} - {row.end_datetime}"
            )
            return None
        return AvailableSlotOverride(
            staff_id=staff_id,
            date=local_date,
            interval=Interval(row.start_datetime, row.end_datetime),
        )

    @staticmethod
    def _is_valid_entry(entry: WeeklyScheduleEntry) -> bool:
        if entry.start_time >= entry.end_time:
            logger.warning(
                f"Skipping schedule entry for weekday {entry.weekday} with "
                f"start {entry.start_time} not before end {entry.end_time}"
            )
            return False
        return True

    @staticmethod
    def _local_window(local_date, start_time, end_time, tz) -> Interval:
        return Interval(
            to_instant(local_date, start_time, tz),
            to_instant(local_date, end_time, tz),
        )
