from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol


class TransactionManager(Protocol):
    """
    Unit-of-work boundary for store access.

    Remote provider calls must never run inside ``start()``.
    """

    @asynccontextmanager
    async def start(self) -> AsyncIterator[None]:
        yield
