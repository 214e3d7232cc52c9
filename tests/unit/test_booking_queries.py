"""
Unit tests for the read side: get, list, admin search, stats and timeline.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.application.dtos.booking_dto import BookingSearchCriteria
from app.application.interfaces.provider_gateway import Indeterminate
from app.domain.entities.reservation import ReservationStatus
from app.domain.errors import ForbiddenError, ReservationNotFoundError, ValidationError
from app.domain.value_objects.booking_patch import ContactPatch
from tests.builders import ADMIN, CUSTOMER, NOW, OTHER_CUSTOMER, build_booking, build_offer


class TestGetBooking:
    @pytest.mark.asyncio
    async def test_owner_and_admin_can_read(self, env):
        created = (await env.create()).reservation
        get_booking = env.use_cases["get_booking"]

        assert (await get_booking.execute(CUSTOMER, created.id)).id == created.id
        assert (await get_booking.execute(ADMIN, created.id)).id == created.id

    @pytest.mark.asyncio
    async def test_other_customer_is_forbidden(self, env):
        created = (await env.create()).reservation

        with pytest.raises(ForbiddenError):
            await env.use_cases["get_booking"].execute(OTHER_CUSTOMER, created.id)

    @pytest.mark.asyncio
    async def test_get_never_calls_the_provider(self, env):
        created = (await env.create()).reservation

        await env.use_cases["get_booking"].execute(CUSTOMER, created.id)

        assert env.gateway.fetch_calls == []

    @pytest.mark.asyncio
    async def test_unknown_id(self, env):
        with pytest.raises(ReservationNotFoundError):
            await env.use_cases["get_booking"].execute(CUSTOMER, "missing")


class TestListBookings:
    @pytest.mark.asyncio
    async def test_lists_only_own_bookings_newest_first(self, env):
        first = (await env.create()).reservation
        env.clock.advance(minutes=1)
        second = (await env.create()).reservation
        await env.create(scope=OTHER_CUSTOMER)

        page = await env.use_cases["list_bookings"].execute(CUSTOMER)

        assert [r.id for r in page.items] == [second.id, first.id]
        assert page.total == 2

    @pytest.mark.asyncio
    async def test_status_filter_and_paging(self, env):
        for minute in range(3):
            env.clock.set_time(NOW + timedelta(minutes=minute))
            await env.create()
        env.gateway.script_confirm(Indeterminate())
        await env.create()

        confirmed = await env.use_cases["list_bookings"].execute(
            CUSTOMER, status=ReservationStatus.CONFIRMED, limit=2, offset=1
        )

        assert confirmed.total == 3
        assert len(confirmed.items) == 2
        assert all(r.status == ReservationStatus.CONFIRMED for r in confirmed.items)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit,offset", [(0, 0), (101, 0), (10, -1)])
    async def test_invalid_paging(self, env, limit, offset):
        with pytest.raises(ValidationError):
            await env.use_cases["list_bookings"].execute(CUSTOMER, limit=limit, offset=offset)


class TestSearchBookings:
    @pytest.mark.asyncio
    async def test_admin_search_by_normalized_fields(self, env):
        created = (await env.create()).reservation
        other = build_booking(offers=[build_offer(flight_number="900")])
        await env.create(scope=OTHER_CUSTOMER, payload=other)
        search = env.use_cases["search_bookings"]

        by_code = await search.execute(
            ADMIN, BookingSearchCriteria(reservation_code=f" {created.reservation_code.lower()} ")
        )
        by_flight = await search.execute(ADMIN, BookingSearchCriteria(flight_number="aa 900"))
        by_email = await search.execute(ADMIN, BookingSearchCriteria(email="John.Smith@Example.com"))

        assert [r.id for r in by_code] == [created.id]
        assert [r.owner_id for r in by_flight] == [OTHER_CUSTOMER.user_id]
        assert len(by_email) == 2

    @pytest.mark.asyncio
    async def test_customer_search_is_limited_to_own_bookings(self, env):
        mine = (await env.create()).reservation
        await env.create(scope=OTHER_CUSTOMER)

        found = await env.use_cases["search_bookings"].execute(
            CUSTOMER, BookingSearchCriteria(owner_id=OTHER_CUSTOMER.user_id)
        )

        assert [r.id for r in found] == [mine.id]


class TestBookingStats:
    @pytest.mark.asyncio
    async def test_counts_and_revenue(self, env):
        await env.create()
        await env.create(payload=build_booking(passenger_count=2))
        env.gateway.script_confirm(Indeterminate())
        await env.create()

        stats = await env.use_cases["booking_stats"].execute(ADMIN)

        assert stats.total == 3
        assert stats.by_status == {"confirmed": 2, "pending": 1}
        assert stats.passengers == 4
        assert stats.revenue_by_currency == {"USD": Decimal("470.00")}

    @pytest.mark.asyncio
    async def test_stats_require_admin(self, env):
        with pytest.raises(ForbiddenError):
            await env.use_cases["booking_stats"].execute(CUSTOMER)

    @pytest.mark.asyncio
    async def test_inverted_range_is_rejected(self, env):
        with pytest.raises(ValidationError):
            await env.use_cases["booking_stats"].execute(
                ADMIN, created_from=NOW, created_to=NOW - timedelta(days=1)
            )


class TestTimeline:
    @pytest.mark.asyncio
    async def test_merges_history_changes_and_sync(self, env):
        created = (await env.create()).reservation
        env.clock.advance(minutes=10)
        await env.use_cases["update_booking"].execute(
            scope=CUSTOMER,
            reservation_id=created.id,
            patches=[ContactPatch(changes={"phone": "+15550000000"})],
        )

        events = await env.use_cases["booking_timeline"].execute(CUSTOMER, created.id)

        assert [(e.kind, e.status) for e in events] == [
            ("status", "pending"),
            ("status", "confirmed"),
            ("sync", None),
            ("change", None),
        ]
        assert events[-1].description == "contact.phone updated"
        assert [e.at for e in events] == sorted(e.at for e in events)
