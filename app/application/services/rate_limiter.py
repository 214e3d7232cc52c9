"""Fixed-window rate limiting for unauthenticated lookups."""

import logging
import math

from app.application.interfaces.clock import Clock
from app.application.interfaces.counter_store import CounterStore
from app.domain.errors import RateLimitExceededError

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(self, store: CounterStore, clock: Clock, max_attempts: int, window_seconds: int):
        self._store = store
        self._clock = clock
        self._max_attempts = max_attempts
        self._window_seconds = window_seconds

    async def hit(self, key: str) -> int:
        """
        Count one attempt for ``key`` and return the attempts left in the window.

        Raises:
            RateLimitExceededError: the window's allowance is used up.
        """
        now = self._clock.now()
        state = await self._store.increment(key, self._window_seconds, now)
        if state.count > self._max_attempts:
            retry_after = max(1, math.ceil((state.expires_at - now).total_seconds()))
            logger.warning(
                "Rate limit exceeded",
                extra={"rate_limit_key": key, "count": state.count, "retry_after": retry_after},
            )
            raise RateLimitExceededError(retry_after_seconds=retry_after)
        return self._max_attempts - state.count
