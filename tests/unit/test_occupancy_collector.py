from datetime import timedelta

import pytest

from app.core.exceptions import SourceUnavailableError
from app.schemas.scheduling import OccupancyReason
from app.services.intervals import Interval
from app.services.occupancy import OccupancyCollector
from tests.fixtures.availability_fixtures import (
    MONDAY,
    OTHER_STAFF_ID,
    SALON_TZ,
    STAFF_ID,
    TUESDAY,
    local_instant,
)


@pytest.mark.unit
class TestOccupancyCollector:
    @pytest.mark.asyncio
    async def test_empty_day(self, store):
        assert await OccupancyCollector(store).collect(STAFF_ID, MONDAY, SALON_TZ) == []

    @pytest.mark.asyncio
    async def test_appointment_ends_after_service_duration(self, store):
        row = store.add_appointment(local_instant(MONDAY, 10), 45)

        ranges = await OccupancyCollector(store).collect(STAFF_ID, MONDAY, SALON_TZ)

        assert len(ranges) == 1
        assert ranges[0].reason == OccupancyReason.APPOINTMENT
        assert ranges[0].source_id == row.id
        assert ranges[0].interval == Interval(
            local_instant(MONDAY, 10), local_instant(MONDAY, 10, 45)
        )

    @pytest.mark.asyncio
    async def test_all_sources_combined(self, store):
        store.add_appointment(local_instant(MONDAY, 10), 60)
        store.add_appointment(local_instant(MONDAY, 12), 30, status="pending", guest=True)
        store.add_blocked(local_instant(MONDAY, 15), local_instant(MONDAY, 16))

        ranges = await OccupancyCollector(store).collect(STAFF_ID, MONDAY, SALON_TZ)

        assert sorted(r.reason.value for r in ranges) == [
            "appointment",
            "blocked_time",
            "guest_appointment",
        ]

    @pytest.mark.asyncio
    async def test_cancelled_appointments_excluded(self, store):
        store.add_appointment(local_instant(MONDAY, 10), 60, status="cancelled")
        store.add_appointment(local_instant(MONDAY, 11), 60, status="cancelled", guest=True)

        assert await OccupancyCollector(store).collect(STAFF_ID, MONDAY, SALON_TZ) == []

    @pytest.mark.asyncio
    async def test_salon_wide_block_applies_to_everyone(self, store):
        store.add_blocked(
            local_instant(MONDAY, 12), local_instant(MONDAY, 13), staff_id=None
        )

        ranges = await OccupancyCollector(store).collect(STAFF_ID, MONDAY, SALON_TZ)

        assert [r.reason for r in ranges] == [OccupancyReason.BLOCKED_TIME]

    @pytest.mark.asyncio
    async def test_other_staff_and_other_days_ignored(self, store):
        store.add_appointment(local_instant(MONDAY, 10), 60, staff_id=OTHER_STAFF_ID)
        store.add_blocked(
            local_instant(MONDAY, 12), local_instant(MONDAY, 13), staff_id=OTHER_STAFF_ID
        )
        store.add_appointment(local_instant(TUESDAY, 10), 60)

        assert await OccupancyCollector(store).collect(STAFF_ID, MONDAY, SALON_TZ) == []

    @pytest.mark.asyncio
    async def test_block_spanning_midnight_counts_on_both_days(self, store):
        store.add_blocked(
            local_instant(MONDAY, 22), local_instant(MONDAY, 22) + timedelta(hours=14)
        )
        collector = OccupancyCollector(store)

        assert len(await collector.collect(STAFF_ID, MONDAY, SALON_TZ)) == 1
        assert len(await collector.collect(STAFF_ID, TUESDAY, SALON_TZ)) == 1

    @pytest.mark.asyncio
    async def test_override_slots_are_not_occupancy(self, store):
        store.add_override(local_instant(MONDAY, 14), local_instant(MONDAY, 16))

        assert await OccupancyCollector(store).collect(STAFF_ID, MONDAY, SALON_TZ) == []

    @pytest.mark.asyncio
    async def test_empty_block_rows_skipped(self, store):
        instant = local_instant(MONDAY, 14)
        store.add_blocked(instant, instant + timedelta(minutes=1))
        store.blocked_times[-1] = store.blocked_times[-1].model_copy(
            update={"end_datetime": instant}
        )

        assert await OccupancyCollector(store).collect(STAFF_ID, MONDAY, SALON_TZ) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "source", ["appointments", "guest_appointments", "blocked_times"]
    )
    async def test_failing_source_aborts(self, store, source):
        store.add_appointment(local_instant(MONDAY, 10), 60)
        store.fail_sources.add(source)

        with pytest.raises(SourceUnavailableError) as exc_info:
            await OccupancyCollector(store).collect(STAFF_ID, MONDAY, SALON_TZ)

        assert exc_info.value.source == source

    @pytest.mark.asyncio
    async def test_unexpected_error_names_source(self, store):
        async def broken(staff_id, window):
            raise RuntimeError("connection reset")

        store.get_guest_appointments = broken

        with pytest.raises(SourceUnavailableError) as exc_info:
            await OccupancyCollector(store).collect(STAFF_ID, MONDAY, SALON_TZ)

        assert exc_info.value.source == "guest_appointments"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
