import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from app.api.dependencies import get_caller_scope, get_use_cases
from app.api.schemas.bookings import (
    BookingPageResponse,
    BookingResponse,
    BookingSearchResponse,
    BookingStatsResponse,
    BookingSummary,
    CancelBookingRequest,
    CreateBookingRequest,
    CreateBookingResponse,
    TimelineResponse,
    UpdateBookingRequest,
    to_utc,
)
from app.application.dtos.booking_dto import BookingSearchCriteria, CallerScope, ConfirmationState
from app.domain.entities.reservation import ReservationStatus
from app.domain.errors import ForbiddenError, ProviderRejectedError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings")

Scope = Annotated[CallerScope, Depends(get_caller_scope)]
UseCases = Annotated[dict, Depends(get_use_cases)]


@router.post(
    "",
    response_model=CreateBookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        202: {"model": CreateBookingResponse, "description": "Held; provider confirmation unknown"},
        409: {"description": "Provider rejected the booking"},
    },
)
async def create_booking(
    payload: CreateBookingRequest,
    scope: Scope,
    use_cases: UseCases,
):
    """
    Book the selected offers.

    201 when the provider confirmed, 202 when the outcome is unknown and the
    reservation is left pending for resync, 409 when the provider refused it.
    """
    result = await use_cases["create_booking"].execute(scope=scope, payload=payload.to_dto())

    if result.confirmation == ConfirmationState.REJECTED:
        raise ProviderRejectedError(
            result.reservation.reservation_code,
            result.provider_reason_code or "UNKNOWN",
        )

    body = CreateBookingResponse.from_result(result)
    if result.confirmation == ConfirmationState.UNKNOWN:
        return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=body.model_dump(mode="json"))
    return body


@router.get("", response_model=BookingPageResponse)
async def list_my_bookings(
    scope: Scope,
    use_cases: UseCases,
    status_filter: ReservationStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> BookingPageResponse:
    page = await use_cases["list_bookings"].execute(
        scope=scope, status=status_filter, limit=limit, offset=offset
    )
    return BookingPageResponse.from_page(page)


@router.get("/search", response_model=BookingSearchResponse)
async def search_bookings(
    scope: Scope,
    use_cases: UseCases,
    reservation_code: str | None = None,
    booking_reference: str | None = None,
    email: str | None = None,
    last_name: str | None = None,
    flight_number: str | None = None,
    status_filter: ReservationStatus | None = Query(default=None, alias="status"),
    owner_id: str | None = None,
    created_from: datetime | None = None,
    created_to: datetime | None = None,
    limit: int = Query(default=100, ge=1, le=100),
) -> BookingSearchResponse:
    criteria = BookingSearchCriteria(
        reservation_code=reservation_code,
        booking_reference=booking_reference,
        email=email,
        last_name=last_name,
        flight_number=flight_number,
        status=status_filter,
        owner_id=owner_id,
        created_from=to_utc(created_from) if created_from else None,
        created_to=to_utc(created_to) if created_to else None,
    )
    items = await use_cases["search_bookings"].execute(scope=scope, criteria=criteria, limit=limit)
    return BookingSearchResponse(items=[BookingSummary.from_domain(r) for r in items], count=len(items))


@router.get("/stats", response_model=BookingStatsResponse)
async def booking_stats(
    scope: Scope,
    use_cases: UseCases,
    created_from: datetime | None = None,
    created_to: datetime | None = None,
) -> BookingStatsResponse:
    stats = await use_cases["booking_stats"].execute(
        scope=scope,
        created_from=to_utc(created_from) if created_from else None,
        created_to=to_utc(created_to) if created_to else None,
    )
    return BookingStatsResponse.from_stats(stats)


@router.get("/{reservation_id}", response_model=BookingResponse)
async def get_booking(reservation_id: str, scope: Scope, use_cases: UseCases) -> BookingResponse:
    reservation = await use_cases["get_booking"].execute(scope=scope, reservation_id=reservation_id)
    return BookingResponse.from_domain(reservation)


@router.get("/{reservation_id}/timeline", response_model=TimelineResponse)
async def booking_timeline(reservation_id: str, scope: Scope, use_cases: UseCases) -> TimelineResponse:
    events = await use_cases["booking_timeline"].execute(scope=scope, reservation_id=reservation_id)
    return TimelineResponse.from_events(reservation_id, events)


@router.patch("/{reservation_id}", response_model=BookingResponse)
async def update_booking(
    reservation_id: str,
    payload: UpdateBookingRequest,
    scope: Scope,
    use_cases: UseCases,
) -> BookingResponse:
    reservation = await use_cases["update_booking"].execute(
        scope=scope,
        reservation_id=reservation_id,
        patches=payload.to_patches(),
    )
    return BookingResponse.from_domain(reservation)


@router.post("/{reservation_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    reservation_id: str,
    payload: CancelBookingRequest,
    scope: Scope,
    use_cases: UseCases,
) -> BookingResponse:
    reservation = await use_cases["cancel_booking"].execute(
        scope=scope,
        reservation_id=reservation_id,
        reason=payload.reason,
        refund=payload.refund,
    )
    return BookingResponse.from_domain(reservation)


@router.post("/{reservation_id}/resync", response_model=BookingResponse)
async def resync_booking(reservation_id: str, scope: Scope, use_cases: UseCases) -> BookingResponse:
    """Reconcile one reservation with the provider (admin only)."""
    if not scope.is_admin:
        raise ForbiddenError("Resync requires the admin role")
    reservation = await use_cases["resync_booking"].execute(reservation_id=reservation_id)
    logger.info(
        "Manual resync",
        extra={"reservation_code": reservation.reservation_code, "requested_by": scope.user_id},
    )
    return BookingResponse.from_domain(reservation)
