from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CounterState:
    count: int
    expires_at: datetime


class CounterStore(ABC):
    """Keyed counters that reset once their window expires."""

    @abstractmethod
    async def increment(self, key: str, window_seconds: int, now: datetime) -> CounterState:
        """
        Count one hit for ``key``.

        A missing or expired counter restarts at 1 with a fresh window ending
        ``window_seconds`` after ``now``.
        """
        raise NotImplementedError
