import asyncio
import json
import logging
import time
from typing import Any

import httpx
from pybreaker import CircuitBreaker

from app.application.interfaces.provider_gateway import (
    Confirmed,
    FetchOutcome,
    Indeterminate,
    OrderSnapshot,
    ProviderGateway,
    ProviderOrder,
    ProviderOutcome,
    Rejected,
)
from app.domain.entities.passenger import Passenger
from app.infrastructure.circuit_breaker import (
    CircuitBreakerError,
    ensure_available,
    provider_breaker,
    record_result,
)

logger = logging.getLogger(__name__)

ORDERS_PATH = "/v1/booking/flight-orders"
TOKEN_PATH = "/v1/security/oauth2/token"
RETRYABLE_STATUS = frozenset({408, 429})
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class _TokenUnavailable(Exception):
    """Token endpoint failed in a way worth retrying."""


class HttpProviderGateway(ProviderGateway):
    def __init__(
        self,
        base_url: str,
        client_id: str | None = None,
        client_secret: str | None = None,
        timeout_seconds: float = 10.0,
        retry_times: int = 2,
        retry_backoff_ms: int = 200,
        breaker: CircuitBreaker = provider_breaker,
    ) -> None:
        """
        HTTP flight-order gateway with bounded retries and a circuit breaker.

        Args:
            base_url: Base URL of the provider API
            client_id: OAuth2 client id; when unset requests are sent unauthenticated
            client_secret: OAuth2 client secret
            timeout_seconds: Per-request timeout in seconds
            retry_times: Extra attempts after a transient failure
            retry_backoff_ms: Base backoff, doubled on every retry
        """
        self._base_url = base_url.rstrip("/")
        self._client_id = client_id
        self._client_secret = client_secret
        self._timeout = timeout_seconds
        self._retry_times = retry_times
        self._retry_backoff_ms = retry_backoff_ms
        self._breaker = breaker
        self._token: str | None = None
        self._token_expires_at = 0.0

    async def confirm(self, order: ProviderOrder) -> ProviderOutcome:
        """
        Create the remote flight order.

        The reservation code is sent as Idempotency-Key so retries, here or from
        resync, never create a second order.
        """
        response = await self._send(
            "POST",
            ORDERS_PATH,
            payload=self._order_payload(order),
            headers={"Idempotency-Key": order.reservation_code},
            reservation_code=order.reservation_code,
        )
        if isinstance(response, (Rejected, Indeterminate)):
            return response

        if response.is_success:
            body = _json(response)
            remote_order_id = (body.get("data") or {}).get("id") if isinstance(body, dict) else None
            if not remote_order_id:
                logger.error(
                    "Provider accepted order without an id",
                    extra={"reservation_code": order.reservation_code, "http_status": response.status_code},
                )
                return Indeterminate(detail="MISSING_ORDER_ID")
            return Confirmed(remote_order_id=str(remote_order_id))

        return self._rejection(response, order.reservation_code)

    async def cancel(self, remote_order_id: str) -> ProviderOutcome:
        response = await self._send("DELETE", f"{ORDERS_PATH}/{remote_order_id}")
        if isinstance(response, (Rejected, Indeterminate)):
            return response
        # already gone remotely counts as cancelled
        if response.is_success or response.status_code == 404:
            return Confirmed(remote_order_id=remote_order_id)
        return self._rejection(response, None)

    async def fetch(self, remote_order_id: str) -> FetchOutcome:
        response = await self._send("GET", f"{ORDERS_PATH}/{remote_order_id}")
        if isinstance(response, (Rejected, Indeterminate)):
            return response
        if response.status_code == 404:
            return Rejected(reason_code="ORDER_NOT_FOUND")
        if not response.is_success:
            return self._rejection(response, None)

        body = _json(response)
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            return Indeterminate(detail="MALFORMED_ORDER")
        return OrderSnapshot(
            remote_order_id=str(data.get("id") or remote_order_id),
            status=str(data.get("status") or "CONFIRMED"),
            payload=data,
        )

    # === Transport ===

    async def _send(
        self,
        method: str,
        path: str,
        *,
        payload: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        reservation_code: str | None = None,
    ) -> "httpx.Response | Rejected | Indeterminate":
        """
        Send with retries on timeouts, transport errors, 5xx, 408 and 429.

        Returns the response for anything definitive, Rejected when credentials
        are refused, and Indeterminate once retries are exhausted or the circuit
        is open.
        """
        try:
            ensure_available(self._breaker)
        except CircuitBreakerError:
            logger.error(
                "Provider circuit breaker is open - request not sent",
                extra={"reservation_code": reservation_code, "path": path},
            )
            return Indeterminate(detail="CIRCUIT_OPEN")

        url = f"{self._base_url}{path}"
        last_error = "UNKNOWN"
        for attempt in range(self._retry_times + 1):
            if attempt:
                await asyncio.sleep(self._retry_backoff_ms / 1000 * (2 ** (attempt - 1)))
            try:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    auth = await self._authorization(client)
                    if isinstance(auth, Rejected):
                        record_result(True, self._breaker)
                        return auth
                    response = await client.request(
                        method, url, json=payload, headers={**(headers or {}), **auth}
                    )
            except httpx.TimeoutException:
                last_error = "TIMEOUT"
                logger.warning(
                    "Provider request timeout",
                    extra={"reservation_code": reservation_code, "attempt": attempt + 1, "timeout": self._timeout},
                )
                continue
            except (httpx.HTTPError, _TokenUnavailable) as exc:
                last_error = "TRANSPORT_ERROR"
                logger.warning(
                    "Provider transport error",
                    extra={"reservation_code": reservation_code, "attempt": attempt + 1, "error": str(exc)},
                )
                continue

            if response.status_code == 401 and self._client_id:
                self._token = None
                last_error = "UNAUTHORIZED"
                continue
            if response.status_code >= 500 or response.status_code in RETRYABLE_STATUS:
                last_error = f"HTTP_{response.status_code}"
                logger.warning(
                    "Provider transient error",
                    extra={
                        "reservation_code": reservation_code,
                        "attempt": attempt + 1,
                        "http_status": response.status_code,
                    },
                )
                continue

            record_result(True, self._breaker)
            return response

        record_result(False, self._breaker)
        logger.error(
            "Provider call indeterminate after retries",
            extra={"reservation_code": reservation_code, "path": path, "error": last_error},
        )
        return Indeterminate(detail=last_error)

    async def _authorization(self, client: httpx.AsyncClient) -> "dict[str, str] | Rejected":
        if not self._client_id:
            return {}
        if self._token and time.monotonic() < self._token_expires_at:
            return {"Authorization": f"Bearer {self._token}"}

        response = await client.post(
            f"{self._base_url}{TOKEN_PATH}",
            data={
                "grant_type": "client_credentials",
                "client_id": self._client_id,
                "client_secret": self._client_secret or "",
            },
        )
        if response.status_code >= 500 or response.status_code in RETRYABLE_STATUS:
            raise _TokenUnavailable(f"token endpoint returned {response.status_code}")
        body = _json(response)
        if not response.is_success or not isinstance(body, dict) or not body.get("access_token"):
            logger.error("Provider refused credentials", extra={"http_status": response.status_code})
            return Rejected(reason_code="PROVIDER_AUTH_FAILED")

        self._token = body["access_token"]
        expires_in = int(body.get("expires_in", 1799))
        self._token_expires_at = time.monotonic() + max(0, expires_in - TOKEN_EXPIRY_MARGIN_SECONDS)
        return {"Authorization": f"Bearer {self._token}"}

    # === Payloads ===

    @staticmethod
    def _rejection(response: httpx.Response, reservation_code: str | None) -> Rejected:
        body = _json(response)
        reason_code = f"HTTP_{response.status_code}"
        message = None
        if isinstance(body, dict) and body.get("errors"):
            error = body["errors"][0]
            reason_code = str(error.get("code") or error.get("title") or reason_code)
            message = error.get("detail") or error.get("title")
        logger.warning(
            "Provider rejected request",
            extra={
                "reservation_code": reservation_code,
                "http_status": response.status_code,
                "reason_code": reason_code,
            },
        )
        return Rejected(reason_code=reason_code, message=message)

    @staticmethod
    def _order_payload(order: ProviderOrder) -> dict[str, Any]:
        contact = order.contact
        return {
            "data": {
                "type": "flight-order",
                "flightOffers": order.offers,
                "travelers": [_traveler(p, contact.email, contact.phone) for p in order.passengers],
                "remarks": {
                    "general": [{"subType": "GENERAL_MISCELLANEOUS", "text": f"REF {order.reservation_code}"}]
                },
                "contacts": [
                    {
                        "purpose": "STANDARD",
                        "emailAddress": contact.email,
                        "phones": [{"deviceType": "MOBILE", "number": contact.phone}],
                        "address": {
                            "lines": [contact.address.street],
                            "cityName": contact.address.city,
                            "postalCode": contact.address.postal_code,
                            "countryCode": contact.address.country,
                        }
                        if contact.address
                        else None,
                    }
                ],
            }
        }


def _traveler(passenger: Passenger, fallback_email: str, fallback_phone: str) -> dict[str, Any]:
    traveler: dict[str, Any] = {
        "id": passenger.traveler_id,
        "dateOfBirth": passenger.date_of_birth.isoformat(),
        "name": {"firstName": passenger.first_name.upper(), "lastName": passenger.last_name.upper()},
        "contact": {
            "emailAddress": passenger.email or fallback_email,
            "phones": [{"deviceType": "MOBILE", "number": passenger.phone or fallback_phone}],
        },
    }
    if passenger.gender:
        traveler["gender"] = passenger.gender.value
    if passenger.document:
        document = passenger.document
        traveler["documents"] = [
            {
                "documentType": document.document_type,
                "number": document.number,
                "expiryDate": document.expiry_date.isoformat() if document.expiry_date else None,
                "issuanceCountry": document.issuing_country,
                "nationality": document.nationality or passenger.nationality,
                "holder": True,
            }
        ]
    return traveler


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, ValueError):
        return None
