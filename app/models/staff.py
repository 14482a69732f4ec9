import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class Staff(Base):
    """Salon professional whose calendar is offered for booking."""

    __tablename__ = "staff"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(
        UUID(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4, index=True
    )
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=True)
    phone = Column(String, nullable=True)

    # Profile information
    avatar_url = Column(String, nullable=True)
    bio = Column(Text, nullable=True)

    # Booking settings
    is_bookable = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Display settings
    position = Column(Integer, default=0, nullable=False)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    schedules = relationship(
        "StaffSchedule", back_populates="staff", cascade="all, delete-orphan"
    )
    blocked_times = relationship(
        "BlockedTime", back_populates="staff", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def accepts_bookings(self) -> bool:
        return bool(self.is_active and self.is_bookable)

    def __repr__(self):
        return (
            f"<Staff(id={self.id}, name='{self.full_name}', "
            f"bookable={self.is_bookable})>"
        )
