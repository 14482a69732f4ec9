import asyncio
import logging
from dataclasses import dataclass
from datetime import date, timedelta

from app.core.exceptions import SourceUnavailableError
from app.schemas.scheduling import (
    AppointmentRecord,
    BlockedTimeRecord,
    OccupancyReason,
    OccupancySource,
)
from app.services.intervals import Interval
from app.services.store import AvailabilityStore
from app.services.timezone import TimezoneLike, day_window

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OccupancyRange:
    """A period during which the staff member cannot take a booking."""

    interval: Interval
    reason: OccupancyReason
    source_id: str


class OccupancyCollector:
    """Gathers everything that occupies a staff member on one local day."""

    def __init__(self, store: AvailabilityStore):
        self.store = store

    async def collect(
        self, staff_id: str, local_date: date, tz: TimezoneLike
    ) -> list[OccupancyRange]:
        """Read appointments, guest appointments and blocked times for the day.

        The three sources are read concurrently and must all succeed; a failure
        in any of them aborts the collection with SourceUnavailableError.
        """
        window = day_window(local_date, tz)
        logger.debug(
            f"Collecting occupancy for staff {staff_id} on {local_date} "
            f"({window.start.isoformat()} - {window.end.isoformat()})"
        )

        sources = (
            OccupancySource.APPOINTMENTS,
            OccupancySource.GUEST_APPOINTMENTS,
            OccupancySource.BLOCKED_TIMES,
        )
        results = await asyncio.gather(
            self.store.get_appointments(staff_id, window),
            self.store.get_guest_appointments(staff_id, window),
            self.store.get_blocked_times(staff_id, window),
            return_exceptions=True,
        )

        for source, result in zip(sources, results):
            if isinstance(result, SourceUnavailableError):
                raise result
            if isinstance(result, BaseException):
                raise SourceUnavailableError(source.value) from result

        appointments, guest_appointments, blocked_times = results

        ranges = [
            self._appointment_range(row, OccupancyReason.APPOINTMENT)
            for row in appointments
        ]
        ranges.extend(
            self._appointment_range(row, OccupancyReason.GUEST_APPOINTMENT)
            for row in guest_appointments
        )
        for row in blocked_times:
            block = self._blocked_range(row)
            if block is not None:
                ranges.append(block)

        logger.info(
            f"Occupancy for staff {staff_id} on {local_date}: "
            f"{len(appointments)} appointments, "
            f"{len(guest_appointments)} guest appointments, "
            f"{len(blocked_times)} blocked times"
        )
        return ranges

    @staticmethod
    def _appointment_range(
        row: AppointmentRecord, reason: OccupancyReason
    ) -> OccupancyRange:
        start = row.start_datetime
        return OccupancyRange(
            interval=Interval(start, start + timedelta(minutes=row.duration_minutes)),
            reason=reason,
            source_id=row.id,
        )

    @staticmethod
    def _blocked_range(row: BlockedTimeRecord):
        if row.is_available_slot:
            # Opened time belongs to the schedule, not to occupancy
            return None
        if row.end_datetime <= row.start_datetime:
            logger.warning(
                f"Skipping blocked time {row.id} with empty range "
                f"{row.start_datetime} - {row.end_datetime}"
            )
            return None
        return OccupancyRange(
            interval=Interval(row.start_datetime, row.end_datetime),
            reason=OccupancyReason.BLOCKED_TIME,
            source_id=row.id,
        )
