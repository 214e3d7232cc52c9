import logging

from app.application.dtos.booking_dto import PublicReservationView
from app.application.interfaces.reservation_repo import ReservationRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.services.rate_limiter import RateLimiter
from app.domain.errors import ReservationNotFoundError, VerificationRequiredError
from app.domain.value_objects.reservation_code import normalize_code


class LookupBookingByCodeUseCase:
    """
    Unauthenticated lookup by reservation code.

    The caller must prove knowledge of a passenger last name or the contact
    email. A wrong verifier is indistinguishable from an unknown code, and
    attempts are rate limited per client.
    """

    def __init__(
        self,
        repo: ReservationRepo,
        tx: TransactionManager,
        rate_limiter: RateLimiter,
    ) -> None:
        self._repo = repo
        self._tx = tx
        self._rate_limiter = rate_limiter
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        reservation_code: str,
        client_key: str,
        last_name: str | None = None,
        email: str | None = None,
    ) -> PublicReservationView:
        last_name = (last_name or "").strip() or None
        email = (email or "").strip() or None
        if not last_name and not email:
            raise VerificationRequiredError()

        async with self._tx.start():
            await self._rate_limiter.hit(f"lookup:{client_key}")

        code = normalize_code(reservation_code)
        async with self._tx.start():
            reservation = await self._repo.get_by_code(code)

        if reservation is None or not reservation.is_verified_by(last_name=last_name, email=email):
            self._logger.info(
                "Public lookup failed",
                extra={"reservation_code": code, "client_key": client_key},
            )
            raise ReservationNotFoundError(code)

        return PublicReservationView.from_reservation(reservation)
