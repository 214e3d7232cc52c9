from datetime import timedelta
from functools import lru_cache

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import AsyncSessionLocal
from app.application.dtos.booking_dto import CallerScope
from app.application.interfaces.clock import Clock, SystemClock
from app.application.interfaces.counter_store import CounterStore
from app.application.interfaces.identifier_generator import (
    IdentifierGenerator,
    SecureIdentifierGenerator,
)
from app.application.interfaces.provider_gateway import ProviderGateway
from app.application.interfaces.reservation_repo import ReservationRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.services.notification_dispatcher import NotificationDispatcher
from app.application.services.pricing_aggregator import PricingAggregator
from app.application.services.rate_limiter import RateLimiter
from app.application.use_cases.booking_stats import BookingStatsUseCase
from app.application.use_cases.booking_timeline import BookingTimelineUseCase
from app.application.use_cases.cancel_booking import CancelBookingUseCase
from app.application.use_cases.create_booking import CreateBookingUseCase
from app.application.use_cases.get_booking import GetBookingUseCase
from app.application.use_cases.lifecycle_sweeps import CompleteFlownBookingsUseCase, ExpireHoldsUseCase
from app.application.use_cases.list_bookings import ListMyBookingsUseCase, SearchBookingsUseCase
from app.application.use_cases.lookup_booking import LookupBookingByCodeUseCase
from app.application.use_cases.resync_booking import ResyncBookingUseCase, ResyncPendingBookingsUseCase
from app.application.use_cases.update_booking import UpdateBookingUseCase
from app.config import Settings, get_settings
from app.domain.errors import AuthenticationRequiredError
from app.infrastructure.db.repositories.counter_store_sql import CounterStoreSQL
from app.infrastructure.db.repositories.reservation_repo_sql import ReservationRepoSQL
from app.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager
from app.infrastructure.gateways.provider_gateway_http import HttpProviderGateway
from app.infrastructure.in_memory import (
    InMemoryCounterStore,
    InMemoryReservationRepo,
    NoopTransactionManager,
    StubProviderGateway,
)
from app.infrastructure.notifications import LoggingNotifier, WebhookNotifier


async def get_session(settings: Settings = Depends(get_settings)) -> AsyncSession | None:
    if settings.use_in_memory:
        yield None
        return
    async with AsyncSessionLocal() as session:
        yield session


@lru_cache(maxsize=1)
def _in_memory_bundle():
    return {
        "reservation_repo": InMemoryReservationRepo(),
        "counter_store": InMemoryCounterStore(),
        "tx_manager": NoopTransactionManager(),
        "provider_gateway": StubProviderGateway(),
    }


@lru_cache(maxsize=1)
def _http_provider_gateway() -> HttpProviderGateway:
    # one instance per process so the OAuth token is shared
    settings = get_settings()
    return HttpProviderGateway(
        base_url=settings.provider_base_url,
        client_id=settings.provider_client_id,
        client_secret=settings.provider_client_secret,
        timeout_seconds=settings.provider_timeout_seconds,
        retry_times=settings.provider_retry_times,
        retry_backoff_ms=settings.provider_retry_backoff_ms,
    )


@lru_cache(maxsize=1)
def get_notification_dispatcher() -> NotificationDispatcher:
    settings = get_settings()
    if settings.notification_webhook_url:
        return NotificationDispatcher(WebhookNotifier(settings.notification_webhook_url))
    return NotificationDispatcher(LoggingNotifier())


def _provider_gateway(settings: Settings) -> ProviderGateway:
    if settings.provider_base_url:
        return _http_provider_gateway()
    return _in_memory_bundle()["provider_gateway"]


def build_use_cases(
    settings: Settings,
    reservation_repo: ReservationRepo,
    tx_manager: TransactionManager,
    counter_store: CounterStore,
    provider_gateway: ProviderGateway,
    clock: Clock,
    id_generator: IdentifierGenerator,
    notifications: NotificationDispatcher,
) -> dict:
    rate_limiter = RateLimiter(
        store=counter_store,
        clock=clock,
        max_attempts=settings.lookup_rate_limit_max,
        window_seconds=settings.lookup_rate_limit_window_seconds,
    )
    resync = ResyncBookingUseCase(
        repo=reservation_repo,
        tx=tx_manager,
        gateway=provider_gateway,
        clock=clock,
    )
    return {
        "create_booking": CreateBookingUseCase(
            repo=reservation_repo,
            tx=tx_manager,
            gateway=provider_gateway,
            id_generator=id_generator,
            clock=clock,
            pricing=PricingAggregator(),
            notifications=notifications,
            hold_duration=timedelta(minutes=settings.hold_duration_minutes),
            max_code_attempts=settings.code_generation_max_attempts,
        ),
        "get_booking": GetBookingUseCase(repo=reservation_repo, tx=tx_manager),
        "list_bookings": ListMyBookingsUseCase(repo=reservation_repo, tx=tx_manager),
        "search_bookings": SearchBookingsUseCase(repo=reservation_repo, tx=tx_manager),
        "booking_stats": BookingStatsUseCase(repo=reservation_repo, tx=tx_manager),
        "booking_timeline": BookingTimelineUseCase(repo=reservation_repo, tx=tx_manager),
        "update_booking": UpdateBookingUseCase(
            repo=reservation_repo,
            tx=tx_manager,
            clock=clock,
            update_cutoff=timedelta(minutes=settings.update_cutoff_minutes),
        ),
        "cancel_booking": CancelBookingUseCase(
            repo=reservation_repo,
            tx=tx_manager,
            gateway=provider_gateway,
            clock=clock,
            notifications=notifications,
        ),
        "resync_booking": resync,
        "resync_pending": ResyncPendingBookingsUseCase(
            repo=reservation_repo,
            tx=tx_manager,
            resync=resync,
        ),
        "lookup_booking": LookupBookingByCodeUseCase(
            repo=reservation_repo,
            tx=tx_manager,
            rate_limiter=rate_limiter,
        ),
        "expire_holds": ExpireHoldsUseCase(repo=reservation_repo, tx=tx_manager, clock=clock),
        "complete_flown": CompleteFlownBookingsUseCase(repo=reservation_repo, tx=tx_manager, clock=clock),
    }


def get_use_cases(
    settings: Settings = Depends(get_settings),
    session: AsyncSession | None = Depends(get_session),
):
    if settings.use_in_memory:
        bundle = _in_memory_bundle()
        return build_use_cases(
            settings,
            reservation_repo=bundle["reservation_repo"],
            tx_manager=bundle["tx_manager"],
            counter_store=bundle["counter_store"],
            provider_gateway=_provider_gateway(settings),
            clock=SystemClock(),
            id_generator=SecureIdentifierGenerator(),
            notifications=get_notification_dispatcher(),
        )

    if not session:
        raise RuntimeError("DB session not available")

    return build_use_cases(
        settings,
        reservation_repo=ReservationRepoSQL(session),
        tx_manager=SQLAlchemyTransactionManager(session),
        counter_store=CounterStoreSQL(session),
        provider_gateway=_provider_gateway(settings),
        clock=SystemClock(),
        id_generator=SecureIdentifierGenerator(),
        notifications=get_notification_dispatcher(),
    )


def get_caller_scope(
    user_id: str | None = Header(default=None, convert_underscores=False, alias="X-User-Id"),
    role: str | None = Header(default=None, convert_underscores=False, alias="X-User-Role"),
) -> CallerScope:
    """Identity is established upstream; the gateway forwards it as headers."""
    if not user_id or not user_id.strip():
        raise AuthenticationRequiredError()
    return CallerScope(user_id=user_id.strip(), role=(role or "customer").strip().lower())


def get_client_key(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"
