from contextlib import asynccontextmanager

from app.application.interfaces.transaction_manager import TransactionManager


class NoopTransactionManager(TransactionManager):
    """In-memory stores apply each write atomically; there is nothing to commit."""

    @asynccontextmanager
    async def start(self):
        yield
