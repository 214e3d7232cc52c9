import asyncio
from datetime import datetime, timedelta

from app.application.interfaces.counter_store import CounterState, CounterStore


class InMemoryCounterStore(CounterStore):
    def __init__(self) -> None:
        self.counters: dict[str, CounterState] = {}
        self._lock = asyncio.Lock()

    async def increment(self, key: str, window_seconds: int, now: datetime) -> CounterState:
        async with self._lock:
            current = self.counters.get(key)
            if current is None or current.expires_at <= now:
                current = CounterState(count=1, expires_at=now + timedelta(seconds=window_seconds))
            else:
                current = CounterState(count=current.count + 1, expires_at=current.expires_at)
            self.counters[key] = current
            return current
