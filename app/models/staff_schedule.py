import enum
import uuid
from datetime import date

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Time,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class WeekDay(enum.Enum):
    """Day-of-week numbering used by the ``staff_schedules`` table (Sunday = 0)."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def from_date(cls, value: date) -> "WeekDay":
        # date.weekday() counts from Monday = 0
        return cls((value.weekday() + 1) % 7)


class StaffSchedule(Base):
    """Regular weekly working hours of a staff member."""

    __tablename__ = "staff_schedules"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(
        UUID(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4, index=True
    )
    staff_id = Column(Integer, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False)

    # Schedule details, wall-clock times in the salon timezone
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    staff = relationship("Staff", back_populates="schedules")

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="check_day_of_week"),
        CheckConstraint("end_time > start_time", name="check_schedule_order"),
        Index("ix_staff_schedules_staff_day", "staff_id", "day_of_week"),
    )

    @property
    def weekday(self) -> WeekDay:
        return WeekDay(self.day_of_week)

    def __repr__(self):
        return (
            f"<StaffSchedule(id={self.id}, staff_id={self.staff_id}, "
            f"{self.weekday.name}: {self.start_time}-{self.end_time})>"
        )
