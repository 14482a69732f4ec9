import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Optional

from app.core.config import AvailabilityConfig
from app.core.exceptions import InvalidRequestError, StaffNotFoundError
from app.schemas.scheduling import Slot
from app.services.occupancy import OccupancyCollector
from app.services.schedule import BaseScheduleResolver
from app.services.slots import SlotGenerator
from app.services.store import AvailabilityStore
from app.services.timezone import SystemClock, to_local

logger = logging.getLogger(__name__)

MAX_SERVICE_DURATION_MINUTES = 24 * 60


class AvailabilityEngine:
    """Answers "which slots can staff S take for a D-minute service on date Y?".

    Results are advisory: they reflect the snapshot read for the query, and a
    booking must be re-validated by the storage layer when it is written.
    """

    def __init__(
        self,
        store: AvailabilityStore,
        config: AvailabilityConfig,
        clock=None,
    ):
        self.store = store
        self.config = config
        self.clock = clock or SystemClock()
        self.tz = config.tz
        self.occupancy = OccupancyCollector(store)
        self.schedule = BaseScheduleResolver(store, config.default_daily_window)
        self.generator = SlotGenerator(config.slot_granularity_minutes, self.tz)

    async def get_available_slots(
        self, staff_id: str, local_date: date, service_duration_minutes: int
    ) -> list[Slot]:
        """Bookable slots for one staff member on one local date.

        An empty list means nothing can be booked that day; failures to read
        any source raise SourceUnavailableError instead.
        """
        staff_id = self._validate_staff_id(staff_id)
        self._validate_duration(service_duration_minutes)
        now = self.clock.now()
        self._validate_date(local_date, now)

        logger.info(
            f"Computing availability for staff {staff_id} on {local_date} "
            f"(duration {service_duration_minutes} min, tz {self.config.timezone})"
        )
        await self._ensure_bookable_staff(staff_id)
        slots = await self._slots_for_day(
            staff_id, local_date, service_duration_minutes, now
        )
        logger.info(f"Found {len(slots)} available slots on {local_date}")
        return slots

    async def has_availability(
        self, staff_id: str, local_date: date, service_duration_minutes: int
    ) -> bool:
        slots = await self.get_available_slots(
            staff_id, local_date, service_duration_minutes
        )
        return bool(slots)

    async def get_available_days(
        self,
        staff_id: str,
        start_date: date,
        end_date: date,
        service_duration_minutes: int,
    ) -> list[date]:
        """Dates in ``[start_date, end_date]`` with at least one bookable slot."""
        staff_id = self._validate_staff_id(staff_id)
        self._validate_duration(service_duration_minutes)
        if end_date < start_date:
            raise InvalidRequestError(
                "end_date must not be before start_date",
                {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
        span = (end_date - start_date).days + 1
        if span > self.config.max_range_days:
            raise InvalidRequestError(
                f"Date range spans {span} days, maximum is {self.config.max_range_days}",
                {"max_range_days": self.config.max_range_days},
            )

        now = self.clock.now()
        self._validate_date(end_date, now)
        await self._ensure_bookable_staff(staff_id)

        today, _ = to_local(now, self.tz)
        available_days = []
        current = max(start_date, today)
        while current <= end_date:
            slots = await self._slots_for_day(
                staff_id, current, service_duration_minutes, now
            )
            if slots:
                available_days.append(current)
            current += timedelta(days=1)

        logger.info(
            f"Found {len(available_days)} available days out of {span} "
            f"for staff {staff_id}"
        )
        return available_days

    async def _slots_for_day(
        self, staff_id: str, local_date: date, duration_minutes: int, now: datetime
    ) -> list[Slot]:
        occupancy = await self.occupancy.collect(staff_id, local_date, self.tz)
        windows = await self.schedule.resolve(staff_id, local_date, self.tz)
        if not windows:
            logger.info(f"No working windows for staff {staff_id} on {local_date}")
            return []
        return self.generator.generate(
            windows, [entry.interval for entry in occupancy], duration_minutes, now
        )

    async def _ensure_bookable_staff(self, staff_id: str):
        staff = await self.store.get_staff(staff_id)
        if staff is None or not staff.accepts_bookings:
            logger.warning(f"Staff not found or not bookable: {staff_id}")
            raise StaffNotFoundError(staff_id)

    @staticmethod
    def _validate_staff_id(staff_id: Optional[str]) -> str:
        try:
            return str(uuid.UUID(str(staff_id)))
        except (TypeError, ValueError) as e:
            raise InvalidRequestError(
                f"Malformed staff id: {staff_id!r}", {"staff_id": str(staff_id)}
            ) from e

    @staticmethod
    def _validate_duration(duration_minutes: int):
        if (
            isinstance(duration_minutes, bool)
            or not isinstance(duration_minutes, int)
            or duration_minutes <= 0
            or duration_minutes > MAX_SERVICE_DURATION_MINUTES
        ):
            raise InvalidRequestError(
                f"Service duration must be between 1 and "
                f"{MAX_SERVICE_DURATION_MINUTES} minutes, got {duration_minutes!r}",
                {"duration_minutes": duration_minutes},
            )

    def _validate_date(self, local_date: date, now: datetime):
        today, _ = to_local(now, self.tz)
        last_bookable = today + timedelta(days=self.config.max_advance_days)
        if local_date > last_bookable:
            raise InvalidRequestError(
                f"Date {local_date} is beyond the booking horizon ({last_bookable})",
                {
                    "date": local_date.isoformat(),
                    "max_advance_days": self.config.max_advance_days,
                },
            )
