from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_client_key, get_use_cases
from app.api.schemas.bookings import PublicBookingResponse

router = APIRouter(prefix="/public")


@router.get("/bookings/{reservation_code}", response_model=PublicBookingResponse)
async def lookup_booking(
    reservation_code: str,
    use_cases: Annotated[dict, Depends(get_use_cases)],
    client_key: Annotated[str, Depends(get_client_key)],
    last_name: str | None = Query(default=None),
    email: str | None = Query(default=None),
) -> PublicBookingResponse:
    """
    Unauthenticated lookup by reservation code.

    Requires the last name of a passenger or the contact email. Unknown codes
    and wrong verifiers get the same 404, and lookups are throttled per client.
    """
    view = await use_cases["lookup_booking"].execute(
        reservation_code=reservation_code,
        client_key=client_key,
        last_name=last_name,
        email=email,
    )
    return PublicBookingResponse.from_view(view)
