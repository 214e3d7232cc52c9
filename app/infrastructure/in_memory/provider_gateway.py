from collections import deque
from typing import Any

from app.application.interfaces.provider_gateway import (
    Confirmed,
    FetchOutcome,
    OrderSnapshot,
    ProviderGateway,
    ProviderOrder,
    ProviderOutcome,
    Rejected,
)


class StubProviderGateway(ProviderGateway):
    """
    Local provider used in in-memory mode and tests.

    By default every confirmation succeeds, idempotently on the reservation code.
    Tests queue outcomes with ``script_confirm`` / ``script_cancel`` /
    ``script_fetch``; a queued item may also be an async callable receiving the
    call's argument, to run code while the "remote call" is in flight.
    """

    def __init__(self) -> None:
        self.orders: dict[str, dict[str, Any]] = {}
        self._order_by_code: dict[str, str] = {}
        self._confirm_script: deque = deque()
        self._cancel_script: deque = deque()
        self._fetch_script: deque = deque()
        self.confirm_calls: list[ProviderOrder] = []
        self.cancel_calls: list[str] = []
        self.fetch_calls: list[str] = []

    def script_confirm(self, *outcomes: Any) -> None:
        self._confirm_script.extend(outcomes)

    def script_cancel(self, *outcomes: Any) -> None:
        self._cancel_script.extend(outcomes)

    def script_fetch(self, *outcomes: Any) -> None:
        self._fetch_script.extend(outcomes)

    def cancel_remotely(self, remote_order_id: str) -> None:
        """Simulate the provider cancelling an order on its own."""
        self.orders[remote_order_id]["status"] = "CANCELLED"

    async def confirm(self, order: ProviderOrder) -> ProviderOutcome:
        self.confirm_calls.append(order)
        if self._confirm_script:
            outcome = await _resolve(self._confirm_script.popleft(), order)
            if isinstance(outcome, Confirmed):
                self._store(order.reservation_code, outcome.remote_order_id)
            return outcome

        existing = self._order_by_code.get(order.reservation_code)
        if existing:
            return Confirmed(remote_order_id=existing)
        remote_order_id = f"ORD-{order.reservation_code}"
        self._store(order.reservation_code, remote_order_id)
        return Confirmed(remote_order_id=remote_order_id)

    async def cancel(self, remote_order_id: str) -> ProviderOutcome:
        self.cancel_calls.append(remote_order_id)
        if self._cancel_script:
            outcome = await _resolve(self._cancel_script.popleft(), remote_order_id)
            if isinstance(outcome, Confirmed) and remote_order_id in self.orders:
                self.orders[remote_order_id]["status"] = "CANCELLED"
            return outcome

        if remote_order_id not in self.orders:
            return Rejected(reason_code="ORDER_NOT_FOUND")
        self.orders[remote_order_id]["status"] = "CANCELLED"
        return Confirmed(remote_order_id=remote_order_id)

    async def fetch(self, remote_order_id: str) -> FetchOutcome:
        self.fetch_calls.append(remote_order_id)
        if self._fetch_script:
            return await _resolve(self._fetch_script.popleft(), remote_order_id)

        order = self.orders.get(remote_order_id)
        if order is None:
            return Rejected(reason_code="ORDER_NOT_FOUND")
        return OrderSnapshot(remote_order_id=remote_order_id, status=order["status"], payload=dict(order))

    def _store(self, reservation_code: str, remote_order_id: str) -> None:
        self._order_by_code[reservation_code] = remote_order_id
        self.orders.setdefault(
            remote_order_id,
            {"reservation_code": reservation_code, "status": "CONFIRMED"},
        )


async def _resolve(item: Any, argument: Any) -> Any:
    if callable(item):
        return await item(argument)
    return item
