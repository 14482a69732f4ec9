import enum
import uuid

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class AppointmentStatus(enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that keep a registered-client appointment on the staff calendar
ACTIVE_APPOINTMENT_STATUSES = (
    AppointmentStatus.PENDING.value,
    AppointmentStatus.CONFIRMED.value,
)


class Appointment(Base):
    """Appointment booked by a registered client."""

    __tablename__ = "appointments"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(
        UUID(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4, index=True
    )

    # Appointment participants
    user_id = Column(String(64), nullable=False)
    staff_id = Column(Integer, ForeignKey("staff.id", ondelete="SET NULL"), nullable=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)

    # Start instant, stored in UTC; the end follows from the service duration
    scheduled_datetime = Column("date", DateTime(timezone=True), nullable=False)

    status = Column(
        String(20), nullable=False, default=AppointmentStatus.PENDING.value
    )
    notes = Column(Text, nullable=True)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    staff = relationship("Staff")
    service = relationship("Service")

    __table_args__ = (
        Index("ix_appointments_staff_date", "staff_id", "date"),
        Index("ix_appointments_status", "status"),
    )

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, status='{self.status}', "
            f"datetime='{self.scheduled_datetime}', staff_id={self.staff_id})>"
        )


class GuestAppointment(Base):
    """Appointment booked without an account, identified by name and phone."""

    __tablename__ = "guest_appointments"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(
        UUID(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4, index=True
    )

    # Guest details
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone = Column(String(50), nullable=False)

    staff_id = Column(Integer, ForeignKey("staff.id", ondelete="SET NULL"), nullable=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)

    scheduled_datetime = Column("date", DateTime(timezone=True), nullable=False)

    status = Column(
        String(20), nullable=False, default=AppointmentStatus.PENDING.value
    )

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    staff = relationship("Staff")
    service = relationship("Service")

    __table_args__ = (
        Index("ix_guest_appointments_staff_date", "staff_id", "date"),
    )

    def __repr__(self):
        return (
            f"<GuestAppointment(id={self.id}, status='{self.status}', "
            f"datetime='{self.scheduled_datetime}', staff_id={self.staff_id})>"
        )
