"""
Unit tests for ResyncBookingUseCase and ResyncPendingBookingsUseCase.
"""

import pytest

from app.application.interfaces.provider_gateway import Indeterminate, OrderSnapshot, Rejected
from app.domain.entities.reservation import ReservationStatus
from app.domain.errors import ReservationNotFoundError
from tests.builders import CUSTOMER


async def _resync(env, reservation_id):
    return await env.use_cases["resync_booking"].execute(reservation_id)


async def _cancel(env, reservation_id):
    return await env.use_cases["cancel_booking"].execute(
        scope=CUSTOMER, reservation_id=reservation_id, reason="changed plans"
    )


@pytest.mark.asyncio
async def test_indeterminate_booking_is_confirmed_on_resync(env):
    env.gateway.script_confirm(Indeterminate(detail="timeout"))
    created = (await env.create()).reservation
    env.clock.advance(minutes=5)

    resynced = await _resync(env, created.id)

    assert resynced.status == ReservationStatus.CONFIRMED
    assert resynced.remote_order_id == f"ORD-{created.reservation_code}"
    assert resynced.last_synced_at == env.clock.now()
    # same idempotency key on both calls
    assert [order.reservation_code for order in env.gateway.confirm_calls] == [created.reservation_code] * 2


@pytest.mark.asyncio
async def test_resync_of_rejected_confirmation_keeps_pending(env):
    env.gateway.script_confirm(Indeterminate(), Rejected(reason_code="FARE_EXPIRED"))
    created = (await env.create()).reservation

    resynced = await _resync(env, created.id)

    assert resynced.status == ReservationStatus.PENDING
    assert resynced.confirmation_pending is False
    assert resynced.last_provider_error == "FARE_EXPIRED"


@pytest.mark.asyncio
async def test_remote_cancellation_is_applied_locally(env):
    created = (await env.create()).reservation
    env.gateway.cancel_remotely(created.remote_order_id)

    resynced = await _resync(env, created.id)

    assert resynced.status == ReservationStatus.CANCELLED
    assert resynced.cancellation_reason == "Cancelled by provider"
    assert resynced.status_history[-1].reason == "Cancelled by provider"


@pytest.mark.asyncio
async def test_confirmed_booking_in_sync_only_refreshes_sync_time(env):
    created = (await env.create()).reservation
    env.clock.advance(hours=1)

    resynced = await _resync(env, created.id)

    assert resynced.status == ReservationStatus.CONFIRMED
    assert resynced.last_synced_at == env.clock.now()
    assert len(resynced.status_history) == 2


@pytest.mark.asyncio
async def test_fetch_failure_leaves_booking_unchanged(env):
    created = (await env.create()).reservation
    env.gateway.script_fetch(Indeterminate(detail="timeout"))

    resynced = await _resync(env, created.id)

    assert resynced.lock_version == created.lock_version
    assert resynced.status == ReservationStatus.CONFIRMED


@pytest.mark.asyncio
async def test_outstanding_remote_cancel_is_retried(env):
    created = (await env.create()).reservation
    env.gateway.script_cancel(Indeterminate())
    await _cancel(env, created.id)
    assert (await env.stored(created.id)).remote_cancel_pending is True

    resynced = await _resync(env, created.id)

    assert resynced.status == ReservationStatus.CANCELLED
    assert resynced.remote_cancel_pending is False
    assert env.gateway.cancel_calls == [created.remote_order_id] * 2


@pytest.mark.asyncio
async def test_resync_never_reopens_terminal_booking(env):
    created = (await env.create()).reservation
    await _cancel(env, created.id)
    env.gateway.script_fetch(
        OrderSnapshot(remote_order_id=created.remote_order_id, status="CONFIRMED")
    )

    resynced = await _resync(env, created.id)

    assert resynced.status == ReservationStatus.CANCELLED
    assert env.gateway.fetch_calls == []


@pytest.mark.asyncio
async def test_resync_unknown_reservation(env):
    with pytest.raises(ReservationNotFoundError):
        await _resync(env, "missing")


@pytest.mark.asyncio
async def test_batch_resync_processes_every_candidate(env):
    env.gateway.script_confirm(Indeterminate(), Indeterminate())
    first = (await env.create()).reservation
    second = (await env.create()).reservation
    confirmed = (await env.create()).reservation
    env.gateway.script_confirm(Indeterminate())

    result = await env.use_cases["resync_pending"].execute()

    # an indeterminate retry still records the attempt, so both count as processed
    assert sorted(result.processed) == sorted([first.reservation_code, second.reservation_code])
    assert confirmed.reservation_code not in result.processed + result.skipped
    assert result.failed == []
    statuses = {(await env.stored(r.id)).status for r in (first, second)}
    assert statuses == {ReservationStatus.CONFIRMED, ReservationStatus.PENDING}
