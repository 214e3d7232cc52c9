"""
Database retry utilities for handling transient failures.

Sweeps touch many rows in short transactions and may collide with request
traffic; lock conflicts reported by the driver are retried with backoff.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Driver messages that mean "try again"
MYSQL_DEADLOCK_ERROR = "1213"
MYSQL_LOCK_WAIT_TIMEOUT = "1205"
POSTGRES_DEADLOCK = "deadlock detected"
SQLITE_LOCKED = "database is locked"


def is_deadlock_error(error: Exception) -> bool:
    """
    Check if an exception is a lock conflict that should be retried.

    Args:
        error: The exception to check

    Returns:
        True if the error is a deadlock or lock timeout
    """
    if isinstance(error, (OperationalError, DBAPIError)):
        error_str = str(error)
        return any(
            marker in error_str
            for marker in (MYSQL_DEADLOCK_ERROR, MYSQL_LOCK_WAIT_TIMEOUT, POSTGRES_DEADLOCK, SQLITE_LOCKED)
        )
    return False


async def retry_on_deadlock(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 0.1,
) -> T:
    """
    Retry a coroutine factory if it fails due to a database lock conflict.

    Uses exponential backoff: base_delay * (2 ** attempt)

    Args:
        func: Zero-argument callable returning the awaitable to run
        max_attempts: Maximum number of attempts (default: 3)
        base_delay: Base delay in seconds for exponential backoff (default: 0.1)

    Raises:
        The original exception if max attempts exceeded or non-deadlock error
    """
    for attempt in range(max_attempts):
        try:
            return await func()
        except (OperationalError, DBAPIError) as e:
            if not is_deadlock_error(e):
                raise

            if attempt >= max_attempts - 1:
                logger.error(
                    "Database deadlock persists after max retries",
                    extra={"attempts": max_attempts, "error": str(e)},
                )
                raise

            delay = base_delay * (2 ** attempt)
            logger.warning(
                "Database deadlock detected, retrying",
                extra={
                    "attempt": attempt + 1,
                    "max_attempts": max_attempts,
                    "retry_delay": delay,
                    "error": str(e),
                },
            )
            await asyncio.sleep(delay)

    raise RuntimeError("retry_on_deadlock called with max_attempts < 1")
