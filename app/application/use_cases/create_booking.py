import logging
from datetime import timedelta

from app.application.dtos.booking_dto import (
    CallerScope,
    ConfirmationState,
    CreateBookingDTO,
    CreateBookingResult,
)
from app.application.interfaces.clock import Clock
from app.application.interfaces.identifier_generator import IdentifierGenerator
from app.application.interfaces.provider_gateway import ProviderGateway
from app.application.interfaces.reservation_repo import ReservationRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.services.notification_dispatcher import NotificationDispatcher
from app.application.services.pricing_aggregator import PricingAggregator
from app.application.use_cases._shared import describe, order_for, record_confirmation
from app.domain.entities.reservation import Reservation
from app.domain.errors import (
    DuplicateIdentifierError,
    IdentifierGenerationExhaustedError,
    ValidationError,
)
from app.domain.value_objects.pricing import Pricing


class CreateBookingUseCase:
    """
    Books the selected offers for the caller.

    The pending reservation is committed before the provider is called, so the
    remote call never runs inside a transaction and a crash mid-call leaves a
    record that resync can finish.
    """

    def __init__(
        self,
        repo: ReservationRepo,
        tx: TransactionManager,
        gateway: ProviderGateway,
        id_generator: IdentifierGenerator,
        clock: Clock,
        pricing: PricingAggregator,
        notifications: NotificationDispatcher,
        hold_duration: timedelta = timedelta(hours=24),
        max_code_attempts: int = 5,
    ) -> None:
        self._repo = repo
        self._tx = tx
        self._gateway = gateway
        self._ids = id_generator
        self._clock = clock
        self._pricing = pricing
        self._notifications = notifications
        self._hold_duration = hold_duration
        self._max_code_attempts = max_code_attempts
        self._logger = logging.getLogger(__name__)

    async def execute(self, scope: CallerScope, payload: CreateBookingDTO) -> CreateBookingResult:
        if not payload.offers:
            raise ValidationError("At least one offer is required", field="offers")

        pricing = self._pricing.aggregate(
            [offer.price for offer in payload.offers],
            payload.passengers,
        )

        reservation = await self._persist_pending(scope, payload, pricing)
        self._logger.info(
            "Reservation held, requesting provider confirmation",
            extra={
                "reservation_code": reservation.reservation_code,
                "owner_id": scope.user_id,
                "total": str(pricing.total),
                "currency": pricing.currency_code,
            },
        )

        outcome = await self._gateway.confirm(order_for(reservation))
        self._logger.info(
            "Provider confirmation outcome",
            extra={"reservation_code": reservation.reservation_code, "outcome": describe(outcome)},
        )

        result = await record_confirmation(
            self._repo, self._tx, self._gateway, self._clock, reservation, outcome
        )
        if result.confirmation != ConfirmationState.REJECTED:
            self._notifications.booking_created(result.reservation)
        return result

    async def _persist_pending(
        self, scope: CallerScope, payload: CreateBookingDTO, pricing: Pricing
    ) -> Reservation:
        for attempt in range(1, self._max_code_attempts + 1):
            reservation = Reservation.open_hold(
                id=self._ids.new_id(),
                reservation_code=self._ids.new_reservation_code(),
                booking_reference=self._ids.new_booking_reference(),
                owner_id=scope.user_id,
                itineraries=[offer.itinerary for offer in payload.offers],
                passengers=payload.passengers,
                contact=payload.contact,
                pricing=pricing,
                provider_offers=[offer.raw for offer in payload.offers],
                now=self._clock.now(),
                hold_duration=self._hold_duration,
            )
            try:
                async with self._tx.start():
                    return await self._repo.add(reservation)
            except DuplicateIdentifierError as exc:
                self._logger.warning(
                    "Booking identifier collision, regenerating",
                    extra={
                        "attempt": attempt,
                        "reservation_code": exc.reservation_code,
                        "booking_reference": exc.booking_reference,
                    },
                )

        raise IdentifierGenerationExhaustedError(self._max_code_attempts)
