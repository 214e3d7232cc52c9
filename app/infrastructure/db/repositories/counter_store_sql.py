from datetime import datetime, timedelta

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.counter_store import CounterState, CounterStore
from app.infrastructure.db.mappers import as_utc
from app.infrastructure.db.tables import rate_limit_counters


class CounterStoreSQL(CounterStore):
    """Rate-limit counters shared by every API instance through the database."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def increment(self, key: str, window_seconds: int, now: datetime) -> CounterState:
        bumped = await self._session.execute(
            update(rate_limit_counters)
            .where(rate_limit_counters.c.key == key, rate_limit_counters.c.expires_at > now)
            .values(count=rate_limit_counters.c.count + 1)
        )
        if bumped.rowcount == 0:
            expires_at = now + timedelta(seconds=window_seconds)
            await self._session.execute(delete(rate_limit_counters).where(rate_limit_counters.c.key == key))
            try:
                await self._session.execute(
                    insert(rate_limit_counters).values(key=key, count=1, expires_at=expires_at)
                )
            except IntegrityError:
                # another request opened the window first
                await self._session.execute(
                    update(rate_limit_counters)
                    .where(rate_limit_counters.c.key == key)
                    .values(count=rate_limit_counters.c.count + 1)
                )

        row = (
            await self._session.execute(
                select(rate_limit_counters.c.count, rate_limit_counters.c.expires_at).where(
                    rate_limit_counters.c.key == key
                )
            )
        ).one()
        return CounterState(count=row.count, expires_at=as_utc(row.expires_at))
