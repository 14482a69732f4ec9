import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class BlockedTime(Base):
    """Time range that is either blocked or explicitly opened for a staff member.

    Rows flagged with ``is_available_slot`` are date-specific bookable windows
    that replace the weekly schedule for that date. All other rows block time.
    A row without ``staff_id`` blocks the whole salon.
    """

    __tablename__ = "blocked_times"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(
        UUID(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4, index=True
    )
    staff_id = Column(Integer, ForeignKey("staff.id", ondelete="CASCADE"), nullable=True)

    # Stored as UTC instants
    start_datetime = Column("start_time", DateTime(timezone=True), nullable=False)
    end_datetime = Column("end_time", DateTime(timezone=True), nullable=False)

    reason = Column(Text, nullable=False, default="")
    is_available_slot = Column(Boolean, default=False, nullable=False)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    staff = relationship("Staff", back_populates="blocked_times")

    __table_args__ = (
        Index("ix_blocked_times_staff", "staff_id"),
        Index("ix_blocked_times_dates", "start_time", "end_time"),
    )

    def __repr__(self):
        kind = "available" if self.is_available_slot else "blocked"
        return (
            f"<BlockedTime(id={self.id}, staff_id={self.staff_id}, {kind}, "
            f"{self.start_datetime} - {self.end_datetime})>"
        )
