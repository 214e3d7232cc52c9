import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_caller_scope, get_use_cases
from app.api.schemas.bookings import SweepResponse
from app.application.dtos.booking_dto import CallerScope
from app.domain.errors import ForbiddenError
from app.infrastructure.db.retry import retry_on_deadlock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workers")


def require_admin(scope: Annotated[CallerScope, Depends(get_caller_scope)]) -> CallerScope:
    if not scope.is_admin:
        raise ForbiddenError("Worker endpoints require the admin role")
    return scope


async def _run_sweep(use_case, name: str, scope: CallerScope) -> SweepResponse:
    result = await retry_on_deadlock(use_case.execute, max_attempts=3, base_delay=0.1)
    logger.info(
        "Sweep finished",
        extra={
            "sweep": name,
            "requested_by": scope.user_id,
            "processed": len(result.processed),
            "skipped": len(result.skipped),
            "failed": len(result.failed),
        },
    )
    return SweepResponse.from_result(result)


@router.post("/expire-holds", response_model=SweepResponse, status_code=status.HTTP_200_OK)
async def expire_holds(
    scope: Annotated[CallerScope, Depends(require_admin)],
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> SweepResponse:
    """Expire pending holds past their deadline. Never calls the provider."""
    return await _run_sweep(use_cases["expire_holds"], "expire_holds", scope)


@router.post("/complete-flown", response_model=SweepResponse, status_code=status.HTTP_200_OK)
async def complete_flown(
    scope: Annotated[CallerScope, Depends(require_admin)],
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> SweepResponse:
    return await _run_sweep(use_cases["complete_flown"], "complete_flown", scope)


@router.post("/resync-pending", response_model=SweepResponse, status_code=status.HTTP_200_OK)
async def resync_pending(
    scope: Annotated[CallerScope, Depends(require_admin)],
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> SweepResponse:
    """Retry unknown confirmations and unacknowledged remote cancellations."""
    return await _run_sweep(use_cases["resync_pending"], "resync_pending", scope)
