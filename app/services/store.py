"""Read-only access to the rows the availability engine consumes."""

import uuid
from typing import Awaitable, Callable, Optional, Protocol, TypeVar

import structlog
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import SourceUnavailableError
from app.core.retry import NO_RETRY, RetryPolicy
from app.models.appointment import (
    ACTIVE_APPOINTMENT_STATUSES,
    Appointment,
    AppointmentStatus,
    GuestAppointment,
)
from app.models.blocked_time import BlockedTime
from app.models.service import Service
from app.models.staff import Staff
from app.models.staff_schedule import StaffSchedule
from app.schemas.scheduling import (
    AppointmentRecord,
    BlockedTimeRecord,
    OccupancySource,
    StaffRecord,
    WeeklyScheduleEntry,
)
from app.services.intervals import Interval
from app.services.timezone import from_storage

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class AvailabilityStore(Protocol):
    """Storage collaborator of the availability engine.

    Every method is a read. Implementations raise SourceUnavailableError,
    tagged with the source name, when a read cannot be completed.
    """

    async def get_staff(self, staff_id: str) -> Optional[StaffRecord]: ...

    async def get_weekly_schedule(self, staff_id: str) -> list[WeeklyScheduleEntry]: ...

    async def get_override_slots(
        self, staff_id: str, window: Interval
    ) -> list[BlockedTimeRecord]: ...

    async def get_appointments(
        self, staff_id: str, window: Interval
    ) -> list[AppointmentRecord]: ...

    async def get_guest_appointments(
        self, staff_id: str, window: Interval
    ) -> list[AppointmentRecord]: ...

    async def get_blocked_times(
        self, staff_id: str, window: Interval
    ) -> list[BlockedTimeRecord]: ...

    async def get_service_duration(self, service_id: str) -> Optional[int]: ...


class SQLAlchemyAvailabilityStore:
    """AvailabilityStore backed by the salon database.

    Each read opens its own session so that the occupancy sources can be
    fetched concurrently.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        retry_policy: RetryPolicy = NO_RETRY,
    ):
        self.session_factory = session_factory
        self.retry_policy = retry_policy

    async def _read(
        self, source: str, query: Callable[[AsyncSession], Awaitable[T]]
    ) -> T:
        async def attempt() -> T:
            async with self.session_factory() as session:
                return await query(session)

        try:
            return await self.retry_policy.run(attempt, name=f"read:{source}")
        except Exception as e:
            logger.error("Availability source unavailable", source=source, exc_info=e)
            raise SourceUnavailableError(source) from e

    async def get_staff(self, staff_id: str) -> Optional[StaffRecord]:
        async def query(session: AsyncSession):
            result = await session.execute(
                select(Staff).where(Staff.uuid == uuid.UUID(staff_id))
            )
            return result.scalar_one_or_none()

        staff = await self._read("staff", query)
        if staff is None:
            return None
        return StaffRecord(
            staff_id=str(staff.uuid),
            name=staff.full_name,
            accepts_bookings=staff.accepts_bookings,
        )

    async def get_weekly_schedule(self, staff_id: str) -> list[WeeklyScheduleEntry]:
        async def query(session: AsyncSession):
            result = await session.execute(
                select(StaffSchedule)
                .join(Staff, StaffSchedule.staff_id == Staff.id)
                .where(Staff.uuid == uuid.UUID(staff_id))
                .order_by(StaffSchedule.day_of_week, StaffSchedule.start_time)
            )
            return result.scalars().all()

        rows = await self._read("weekly_schedule", query)
        return [
            WeeklyScheduleEntry(
                staff_id=staff_id,
                weekday=row.day_of_week,
                start_time=row.start_time,
                end_time=row.end_time,
            )
            for row in rows
        ]

    async def get_override_slots(
        self, staff_id: str, window: Interval
    ) -> list[BlockedTimeRecord]:
        async def query(session: AsyncSession):
            result = await session.execute(
                select(BlockedTime)
                .join(Staff, BlockedTime.staff_id == Staff.id)
                .where(
                    and_(
                        Staff.uuid == uuid.UUID(staff_id),
                        BlockedTime.is_available_slot.is_(True),
                        BlockedTime.start_datetime >= window.start,
                        BlockedTime.start_datetime < window.end,
                    )
                )
                .order_by(BlockedTime.start_datetime)
            )
            return result.scalars().all()

        rows = await self._read("override_slots", query)
        return [self._blocked_time_record(row, staff_id) for row in rows]

    async def get_appointments(
        self, staff_id: str, window: Interval
    ) -> list[AppointmentRecord]:
        async def query(session: AsyncSession):
            result = await session.execute(
                select(
                    Appointment.uuid.label("uuid"),
                    Appointment.scheduled_datetime.label("scheduled_datetime"),
                    Appointment.status.label("status"),
                    Service.duration_minutes.label("duration_minutes"),
                )
                .join(Staff, Appointment.staff_id == Staff.id)
                .join(Service, Appointment.service_id == Service.id)
                .where(
                    and_(
                        Staff.uuid == uuid.UUID(staff_id),
                        Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
                        Appointment.scheduled_datetime >= window.start,
                        Appointment.scheduled_datetime < window.end,
                    )
                )
            )
            return result.all()

        rows = await self._read(OccupancySource.APPOINTMENTS.value, query)
        return [self._appointment_record(row, staff_id) for row in rows]

    async def get_guest_appointments(
        self, staff_id: str, window: Interval
    ) -> list[AppointmentRecord]:
        async def query(session: AsyncSession):
            result = await session.execute(
                select(
                    GuestAppointment.uuid.label("uuid"),
                    GuestAppointment.scheduled_datetime.label("scheduled_datetime"),
                    GuestAppointment.status.label("status"),
                    Service.duration_minutes.label("duration_minutes"),
                )
                .join(Staff, GuestAppointment.staff_id == Staff.id)
                .join(Service, GuestAppointment.service_id == Service.id)
                .where(
                    and_(
                        Staff.uuid == uuid.UUID(staff_id),
                        GuestAppointment.status != AppointmentStatus.CANCELLED.value,
                        GuestAppointment.scheduled_datetime >= window.start,
                        GuestAppointment.scheduled_datetime < window.end,
                    )
                )
            )
            return result.all()

        rows = await self._read(OccupancySource.GUEST_APPOINTMENTS.value, query)
        return [self._appointment_record(row, staff_id) for row in rows]

    async def get_blocked_times(
        self, staff_id: str, window: Interval
    ) -> list[BlockedTimeRecord]:
        async def query(session: AsyncSession):
            result = await session.execute(
                select(BlockedTime, Staff.uuid)
                .outerjoin(Staff, BlockedTime.staff_id == Staff.id)
                .where(
                    and_(
                        BlockedTime.is_available_slot.is_(False),
                        or_(
                            BlockedTime.staff_id.is_(None),
                            Staff.uuid == uuid.UUID(staff_id),
                        ),
                        BlockedTime.start_datetime < window.end,
                        BlockedTime.end_datetime > window.start,
                    )
                )
            )
            return result.all()

        rows = await self._read(OccupancySource.BLOCKED_TIMES.value, query)
        return [
            self._blocked_time_record(row, str(staff_uuid) if staff_uuid else None)
            for row, staff_uuid in rows
        ]

    async def get_service_duration(self, service_id: str) -> Optional[int]:
        async def query(session: AsyncSession):
            result = await session.execute(
                select(Service.duration_minutes).where(
                    and_(Service.uuid == uuid.UUID(service_id), Service.is_active)
                )
            )
            return result.scalar_one_or_none()

        return await self._read("services", query)

    @staticmethod
    def _blocked_time_record(row: BlockedTime, staff_id: Optional[str]) -> BlockedTimeRecord:
        return BlockedTimeRecord(
            id=str(row.uuid),
            staff_id=staff_id,
            start_datetime=from_storage(row.start_datetime),
            end_datetime=from_storage(row.end_datetime),
            reason=row.reason or "",
            is_available_slot=bool(row.is_available_slot),
        )

    @staticmethod
    def _appointment_record(row, staff_id: str) -> AppointmentRecord:
        return AppointmentRecord(
            id=str(row.uuid),
            staff_id=staff_id,
            start_datetime=from_storage(row.scheduled_datetime),
            duration_minutes=row.duration_minutes,
            status=row.status,
        )
