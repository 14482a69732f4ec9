import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps.availability import (
    get_availability_config,
    get_availability_engine,
    get_availability_store,
)
from app.core.config import AvailabilityConfig
from app.core.exceptions import InvalidRequestError
from app.schemas.scheduling import AvailabilityResponse, AvailableDaysResponse
from app.services.availability import AvailabilityEngine
from app.services.store import AvailabilityStore
from app.services.timezone import parse_local_date

router = APIRouter()


async def resolve_duration(
    store: AvailabilityStore,
    duration_minutes: Optional[int],
    service_id: Optional[str],
) -> int:
    """Service duration from an explicit value or from the service catalogue."""
    if (duration_minutes is None) == (service_id is None):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Provide exactly one of duration_minutes or service_id",
        )
    if duration_minutes is not None:
        return duration_minutes

    try:
        service_uuid = str(uuid.UUID(service_id))
    except ValueError as e:
        raise InvalidRequestError(
            f"Malformed service id: {service_id!r}", {"service_id": service_id}
        ) from e

    duration = await store.get_service_duration(service_uuid)
    if duration is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Service not found"
        )
    return duration


@router.get("/staff/{staff_id}/availability", response_model=AvailabilityResponse)
async def get_staff_availability(
    staff_id: str,
    date: str = Query(..., description="Local calendar date, YYYY-MM-DD"),
    duration_minutes: Optional[int] = Query(
        None, description="Service duration in minutes"
    ),
    service_id: Optional[str] = Query(
        None, description="Service UUID, used to look up the duration"
    ),
    engine: AvailabilityEngine = Depends(get_availability_engine),
    store: AvailabilityStore = Depends(get_availability_store),
    config: AvailabilityConfig = Depends(get_availability_config),
) -> AvailabilityResponse:
    """
    Get the bookable slots of a staff member for one day in the salon timezone.

    Slots consider:
    - Weekly working hours, or the date's override slots when any exist
    - Confirmed and pending appointments, guest appointments
    - Blocked times, including salon-wide blocks
    - The current time (past slots are never offered)

    An empty ``slots`` list means the staff member has nothing bookable that
    day. Failure to read availability data returns 503 instead.
    """
    local_date = parse_local_date(date)
    duration = await resolve_duration(store, duration_minutes, service_id)
    slots = await engine.get_available_slots(staff_id, local_date, duration)

    return AvailabilityResponse(
        staff_id=staff_id,
        date=local_date,
        timezone=config.timezone,
        duration_minutes=duration,
        slot_granularity_minutes=config.slot_granularity_minutes,
        slots=slots,
    )


@router.get("/staff/{staff_id}/available-days", response_model=AvailableDaysResponse)
async def get_available_days(
    staff_id: str,
    start_date: str = Query(..., description="First local date, YYYY-MM-DD"),
    end_date: str = Query(..., description="Last local date (inclusive)"),
    duration_minutes: Optional[int] = Query(None),
    service_id: Optional[str] = Query(None),
    engine: AvailabilityEngine = Depends(get_availability_engine),
    store: AvailabilityStore = Depends(get_availability_store),
    config: AvailabilityConfig = Depends(get_availability_config),
) -> AvailableDaysResponse:
    """Get the dates in a range on which the staff member has bookable slots."""
    first = parse_local_date(start_date)
    last = parse_local_date(end_date)
    duration = await resolve_duration(store, duration_minutes, service_id)
    days = await engine.get_available_days(staff_id, first, last, duration)

    return AvailableDaysResponse(
        staff_id=staff_id,
        start_date=first,
        end_date=last,
        timezone=config.timezone,
        duration_minutes=duration,
        days=days,
    )
