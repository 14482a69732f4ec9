"""Test the availability engine end to end over an in-memory store."""

from datetime import date, time, timedelta

import pytest

from app.core.config import AvailabilityConfig, DailyWindow
from app.core.exceptions import (
    InvalidRequestError,
    SourceUnavailableError,
    StaffNotFoundError,
)
from app.services.availability import AvailabilityEngine
from app.services.intervals import Interval
from app.services.timezone import FixedClock
from tests.fixtures.availability_fixtures import (
    MONDAY,
    OTHER_STAFF_ID,
    SALON_TZ,
    STAFF_ID,
    TUESDAY,
    InMemoryAvailabilityStore,
    local_instant,
)

FULL_MONDAY = [f"{h:02d}:{m:02d}" for h in range(9, 18) for m in (0, 30)]


def labels(slots):
    return [slot.local_time for slot in slots]


@pytest.mark.unit
class TestAvailableSlots:
    @pytest.mark.asyncio
    async def test_full_working_day(self, engine):
        slots = await engine.get_available_slots(STAFF_ID, MONDAY, 30)

        assert len(slots) == 18
        assert labels(slots) == FULL_MONDAY
        assert slots[0].start_datetime == local_instant(MONDAY, 9)

    @pytest.mark.asyncio
    async def test_confirmed_appointment_removes_its_slots(self, engine, store):
        store.add_appointment(local_instant(MONDAY, 10), 60)

        slots = await engine.get_available_slots(STAFF_ID, MONDAY, 30)

        assert labels(slots) == [
            label for label in FULL_MONDAY if label not in ("10:00", "10:30")
        ]

    @pytest.mark.asyncio
    async def test_slots_before_now_excluded(self, store, availability_config):
        clock = FixedClock(local_instant(MONDAY, 14, 5))
        engine = AvailabilityEngine(store, availability_config, clock=clock)

        slots = await engine.get_available_slots(STAFF_ID, MONDAY, 30)

        assert labels(slots) == ["14:30", "15:00", "15:30", "16:00", "16:30", "17:00", "17:30"]
        assert all(slot.start_datetime > clock.now() for slot in slots)

    @pytest.mark.asyncio
    async def test_override_supersedes_weekly_schedule(self, engine, store):
        store.add_override(local_instant(MONDAY, 14), local_instant(MONDAY, 16))

        slots = await engine.get_available_slots(STAFF_ID, MONDAY, 30)

        assert labels(slots) == ["14:00", "14:30", "15:00", "15:30"]

    @pytest.mark.asyncio
    async def test_override_past_midnight_offers_only_requested_day(self, engine, store):
        store.add_override(local_instant(MONDAY, 22), local_instant(TUESDAY, 1))
        store.add_appointment(local_instant(TUESDAY, 0), 60)

        slots = await engine.get_available_slots(STAFF_ID, MONDAY, 30)

        assert labels(slots) == ["22:00", "22:30", "23:00", "23:30"]
        assert all(slot.local_date == MONDAY for slot in slots)
        assert slots[-1].end_datetime <= local_instant(TUESDAY, 0)

    @pytest.mark.asyncio
    async def test_day_without_schedule_is_empty_not_error(self, engine):
        assert await engine.get_available_slots(STAFF_ID, TUESDAY, 30) == []

    @pytest.mark.asyncio
    async def test_past_date_is_empty(self, engine):
        assert await engine.get_available_slots(STAFF_ID, MONDAY - timedelta(days=7), 30) == []

    @pytest.mark.asyncio
    async def test_guest_appointment_and_salon_block(self, engine, store):
        store.add_appointment(local_instant(MONDAY, 9), 90, status="pending", guest=True)
        store.add_blocked(local_instant(MONDAY, 12), local_instant(MONDAY, 13), staff_id=None)

        slots = await engine.get_available_slots(STAFF_ID, MONDAY, 30)

        assert labels(slots)[:2] == ["10:30", "11:00"]
        assert "12:00" not in labels(slots)
        assert "12:30" not in labels(slots)
        assert "13:00" in labels(slots)

    @pytest.mark.asyncio
    async def test_cancelled_appointment_frees_time(self, engine, store):
        store.add_appointment(local_instant(MONDAY, 10), 60, status="cancelled")

        assert labels(await engine.get_available_slots(STAFF_ID, MONDAY, 30)) == FULL_MONDAY

    @pytest.mark.asyncio
    async def test_default_window_for_unscheduled_staff(self, early_clock):
        store = InMemoryAvailabilityStore()
        store.add_staff(OTHER_STAFF_ID)
        config = AvailabilityConfig(
            timezone=SALON_TZ,
            default_daily_window=DailyWindow(start_time=time(10, 0), end_time=time(12, 0)),
        )
        engine = AvailabilityEngine(store, config, clock=early_clock)

        slots = await engine.get_available_slots(OTHER_STAFF_ID, TUESDAY, 60)

        assert labels(slots) == ["10:00", "10:30", "11:00"]

    @pytest.mark.asyncio
    async def test_staff_id_is_normalized(self, engine):
        slots = await engine.get_available_slots(STAFF_ID.upper(), MONDAY, 30)
        assert len(slots) == 18


@pytest.mark.unit
class TestSlotProperties:
    @pytest.fixture
    def busy_store(self, store):
        store.add_weekly(1, time(19, 0), time(21, 0))
        store.add_appointment(local_instant(MONDAY, 9, 15), 40)
        store.add_appointment(local_instant(MONDAY, 13), 75, guest=True)
        store.add_blocked(local_instant(MONDAY, 16, 10), local_instant(MONDAY, 16, 50))
        return store

    @pytest.mark.asyncio
    @pytest.mark.parametrize("duration", [15, 30, 45, 90])
    async def test_slots_inside_windows_and_outside_occupancy(
        self, busy_store, availability_config, early_clock, duration
    ):
        engine = AvailabilityEngine(busy_store, availability_config, clock=early_clock)
        windows = [
            Interval(local_instant(MONDAY, 9), local_instant(MONDAY, 18)),
            Interval(local_instant(MONDAY, 19), local_instant(MONDAY, 21)),
        ]
        occupancy = [
            r.interval
            for r in await engine.occupancy.collect(STAFF_ID, MONDAY, SALON_TZ)
        ]

        slots = await engine.get_available_slots(STAFF_ID, MONDAY, duration)

        assert slots
        for slot in slots:
            interval = Interval(slot.start_datetime, slot.end_datetime)
            assert interval.duration == timedelta(minutes=duration)
            assert any(window.contains(interval) for window in windows)
            assert not any(interval.overlaps(busy) for busy in occupancy)
        starts = [slot.start_datetime for slot in slots]
        assert starts == sorted(set(starts))

    @pytest.mark.asyncio
    async def test_slots_of_granularity_length_never_overlap(self, busy_store, engine):
        slots = await engine.get_available_slots(STAFF_ID, MONDAY, 30)

        for earlier, later in zip(slots, slots[1:]):
            assert earlier.end_datetime <= later.start_datetime

    @pytest.mark.asyncio
    async def test_idempotent(self, busy_store, engine):
        first = await engine.get_available_slots(STAFF_ID, MONDAY, 45)
        second = await engine.get_available_slots(STAFF_ID, MONDAY, 45)

        assert first == second


@pytest.mark.unit
class TestInvalidRequests:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("duration", [0, -30, 1441, True, 30.5, "30"])
    async def test_bad_duration(self, engine, duration):
        with pytest.raises(InvalidRequestError):
            await engine.get_available_slots(STAFF_ID, MONDAY, duration)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("staff_id", ["not-a-uuid", "", None])
    async def test_malformed_staff_id(self, engine, staff_id):
        with pytest.raises(InvalidRequestError) as exc_info:
            await engine.get_available_slots(staff_id, MONDAY, 30)

        assert not isinstance(exc_info.value, StaffNotFoundError)

    @pytest.mark.asyncio
    async def test_validation_happens_before_any_read(self, engine, store):
        with pytest.raises(InvalidRequestError):
            await engine.get_available_slots(STAFF_ID, MONDAY, 0)

        assert store.calls == []

    @pytest.mark.asyncio
    async def test_unknown_staff(self, engine):
        with pytest.raises(StaffNotFoundError):
            await engine.get_available_slots(OTHER_STAFF_ID, MONDAY, 30)

    @pytest.mark.asyncio
    async def test_staff_not_accepting_bookings(self, engine, store):
        store.add_staff(OTHER_STAFF_ID, accepts_bookings=False)
        store.add_weekly(1, time(9, 0), time(18, 0), staff_id=OTHER_STAFF_ID)

        with pytest.raises(StaffNotFoundError):
            await engine.get_available_slots(OTHER_STAFF_ID, MONDAY, 30)

    @pytest.mark.asyncio
    async def test_date_beyond_horizon(self, engine):
        with pytest.raises(InvalidRequestError):
            await engine.get_available_slots(STAFF_ID, date(2025, 7, 1), 30)

    @pytest.mark.asyncio
    async def test_unreadable_source_is_an_error_not_empty(self, engine, store):
        store.fail_sources.add("blocked_times")

        with pytest.raises(SourceUnavailableError) as exc_info:
            await engine.get_available_slots(STAFF_ID, MONDAY, 30)

        assert exc_info.value.source == "blocked_times"

    @pytest.mark.asyncio
    async def test_unreadable_schedule(self, engine, store):
        store.fail_sources.add("weekly_schedule")

        with pytest.raises(SourceUnavailableError):
            await engine.get_available_slots(STAFF_ID, MONDAY, 30)


@pytest.mark.unit
class TestAvailableDays:
    @pytest.mark.asyncio
    async def test_working_days_in_range(self, engine):
        days = await engine.get_available_days(
            STAFF_ID, date(2025, 3, 20), date(2025, 4, 6), 30
        )

        # Days before today are never offered
        assert days == [date(2025, 3, 24), date(2025, 3, 31)]

    @pytest.mark.asyncio
    async def test_fully_booked_day_left_out(self, engine, store):
        store.add_blocked(local_instant(MONDAY, 9), local_instant(MONDAY, 18))

        days = await engine.get_available_days(STAFF_ID, MONDAY, MONDAY + timedelta(days=7), 30)

        assert days == [MONDAY + timedelta(days=7)]

    @pytest.mark.asyncio
    async def test_inverted_range(self, engine):
        with pytest.raises(InvalidRequestError):
            await engine.get_available_days(STAFF_ID, TUESDAY, MONDAY, 30)

    @pytest.mark.asyncio
    async def test_range_too_long(self, engine):
        with pytest.raises(InvalidRequestError):
            await engine.get_available_days(
                STAFF_ID, MONDAY, MONDAY + timedelta(days=62), 30
            )

    @pytest.mark.asyncio
    async def test_unknown_staff(self, engine):
        with pytest.raises(StaffNotFoundError):
            await engine.get_available_days(OTHER_STAFF_ID, MONDAY, TUESDAY, 30)


@pytest.mark.unit
class TestHasAvailability:
    @pytest.mark.asyncio
    async def test_working_day(self, engine):
        assert await engine.has_availability(STAFF_ID, MONDAY, 30) is True

    @pytest.mark.asyncio
    async def test_day_off(self, engine):
        assert await engine.has_availability(STAFF_ID, TUESDAY, 30) is False

    @pytest.mark.asyncio
    async def test_service_longer_than_shift(self, engine):
        assert await engine.has_availability(STAFF_ID, MONDAY, 600) is False
