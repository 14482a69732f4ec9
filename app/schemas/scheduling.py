from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class OccupancySource(str, Enum):
    APPOINTMENTS = "appointments"
    GUEST_APPOINTMENTS = "guest_appointments"
    BLOCKED_TIMES = "blocked_times"


class OccupancyReason(str, Enum):
    APPOINTMENT = "appointment"
    GUEST_APPOINTMENT = "guest_appointment"
    BLOCKED_TIME = "blocked_time"


# Records handed over by the storage layer. Datetimes are UTC instants.


class StaffRecord(BaseModel):
    staff_id: str
    name: str
    accepts_bookings: bool = True


class WeeklyScheduleEntry(BaseModel):
    staff_id: str
    weekday: int = Field(ge=0, le=6)  # Sunday = 0
    start_time: time
    end_time: time


class BlockedTimeRecord(BaseModel):
    id: str
    staff_id: Optional[str] = None  # None blocks the whole salon
    start_datetime: datetime
    end_datetime: datetime
    reason: str = ""
    is_available_slot: bool = False


class AppointmentRecord(BaseModel):
    id: str
    staff_id: str
    start_datetime: datetime
    duration_minutes: int = Field(gt=0)
    status: str


# API payloads


class Slot(BaseModel):
    start_datetime: datetime
    end_datetime: datetime
    local_date: date
    local_time: str  # HH:MM in the salon timezone

    model_config = {"frozen": True}


class AvailabilityResponse(BaseModel):
    staff_id: str
    date: date
    timezone: str
    duration_minutes: int
    slot_granularity_minutes: int
    slots: List[Slot] = Field(default_factory=list)


class AvailableDaysResponse(BaseModel):
    staff_id: str
    start_date: date
    end_date: date
    timezone: str
    duration_minutes: int
    days: List[date] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    detail: str
    details: Dict[str, Any] = Field(default_factory=dict)
