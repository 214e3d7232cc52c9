import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pybreaker

from app.application.interfaces.provider_gateway import (
    Confirmed,
    Indeterminate,
    OrderSnapshot,
    ProviderOrder,
    Rejected,
)
from app.infrastructure.gateways.provider_gateway_http import HttpProviderGateway
from tests.builders import build_contact, build_passenger


def _response(status_code, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    if body is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    return response


def _client(mock_client_cls):
    mock_client = AsyncMock()
    mock_client.__aenter__.return_value = mock_client
    mock_client_cls.return_value = mock_client
    return mock_client


class TestHttpProviderGateway(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.breaker = pybreaker.CircuitBreaker(fail_max=2, reset_timeout=60, name="test_provider")
        self.gateway = HttpProviderGateway(
            base_url="http://provider.test/",
            retry_times=2,
            retry_backoff_ms=0,
            breaker=self.breaker,
        )
        self.order = ProviderOrder(
            reservation_code="ABC234",
            offers=[{"id": "OFF-1", "type": "flight-offer"}],
            passengers=[build_passenger("1")],
            contact=build_contact(),
        )

    @patch("httpx.AsyncClient")
    async def test_confirm_success(self, mock_client_cls):
        mock_client = _client(mock_client_cls)
        mock_client.request.return_value = _response(201, {"data": {"id": "eJzTI1MzMg"}})

        result = await self.gateway.confirm(self.order)

        self.assertEqual(result, Confirmed(remote_order_id="eJzTI1MzMg"))
        call = mock_client.request.call_args
        self.assertEqual(call.args, ("POST", "http://provider.test/v1/booking/flight-orders"))
        self.assertEqual(call.kwargs["headers"]["Idempotency-Key"], "ABC234")
        data = call.kwargs["json"]["data"]
        self.assertEqual(data["flightOffers"], [{"id": "OFF-1", "type": "flight-offer"}])
        self.assertEqual(data["travelers"][0]["name"], {"firstName": "JOHN", "lastName": "SMITH"})
        self.assertEqual(data["contacts"][0]["emailAddress"], "john.smith@example.com")
        mock_client.post.assert_not_called()

    @patch("httpx.AsyncClient")
    async def test_confirm_fetches_and_reuses_oauth_token(self, mock_client_cls):
        gateway = HttpProviderGateway(
            base_url="http://provider.test",
            client_id="client",
            client_secret="secret",
            retry_backoff_ms=0,
            breaker=self.breaker,
        )
        mock_client = _client(mock_client_cls)
        mock_client.post.return_value = _response(200, {"access_token": "fake-token", "expires_in": 1799})
        mock_client.request.return_value = _response(201, {"data": {"id": "ORD-1"}})

        await gateway.confirm(self.order)
        await gateway.confirm(self.order)

        self.assertEqual(mock_client.post.call_count, 1)
        token_call = mock_client.post.call_args
        self.assertEqual(token_call.args[0], "http://provider.test/v1/security/oauth2/token")
        self.assertEqual(token_call.kwargs["data"]["grant_type"], "client_credentials")
        headers = mock_client.request.call_args.kwargs["headers"]
        self.assertEqual(headers["Authorization"], "Bearer fake-token")

    @patch("httpx.AsyncClient")
    async def test_refused_credentials_are_a_rejection(self, mock_client_cls):
        gateway = HttpProviderGateway(
            base_url="http://provider.test",
            client_id="client",
            client_secret="wrong",
            retry_backoff_ms=0,
            breaker=self.breaker,
        )
        mock_client = _client(mock_client_cls)
        mock_client.post.return_value = _response(401, {"error": "invalid_client"})

        result = await gateway.confirm(self.order)

        self.assertEqual(result, Rejected(reason_code="PROVIDER_AUTH_FAILED"))
        mock_client.request.assert_not_called()

    @patch("httpx.AsyncClient")
    async def test_confirm_rejection_carries_provider_error(self, mock_client_cls):
        mock_client = _client(mock_client_cls)
        mock_client.request.return_value = _response(
            400,
            {"errors": [{"code": 34651, "title": "SEGMENT SELL FAILURE", "detail": "Could not sell segment 1"}]},
        )

        result = await self.gateway.confirm(self.order)

        self.assertIsInstance(result, Rejected)
        self.assertEqual(result.reason_code, "34651")
        self.assertEqual(result.message, "Could not sell segment 1")
        self.assertEqual(mock_client.request.call_count, 1)

    @patch("httpx.AsyncClient")
    async def test_server_errors_are_retried_then_indeterminate(self, mock_client_cls):
        mock_client = _client(mock_client_cls)
        mock_client.request.return_value = _response(503)

        result = await self.gateway.confirm(self.order)

        self.assertEqual(result, Indeterminate(detail="HTTP_503"))
        self.assertEqual(mock_client.request.call_count, 3)

    @patch("httpx.AsyncClient")
    async def test_timeout_then_success(self, mock_client_cls):
        mock_client = _client(mock_client_cls)
        mock_client.request.side_effect = [
            httpx.ReadTimeout("timed out"),
            _response(201, {"data": {"id": "ORD-1"}}),
        ]

        result = await self.gateway.confirm(self.order)

        self.assertEqual(result, Confirmed(remote_order_id="ORD-1"))
        self.assertEqual(mock_client.request.call_count, 2)

    @patch("httpx.AsyncClient")
    async def test_success_without_order_id_is_indeterminate(self, mock_client_cls):
        mock_client = _client(mock_client_cls)
        mock_client.request.return_value = _response(201, {"data": {}})

        result = await self.gateway.confirm(self.order)

        self.assertEqual(result, Indeterminate(detail="MISSING_ORDER_ID"))

    @patch("httpx.AsyncClient")
    async def test_circuit_opens_after_repeated_indeterminate_calls(self, mock_client_cls):
        mock_client = _client(mock_client_cls)
        mock_client.request.side_effect = httpx.ConnectError("connection refused")

        for _ in range(self.breaker.fail_max):
            result = await self.gateway.confirm(self.order)
            self.assertEqual(result, Indeterminate(detail="TRANSPORT_ERROR"))

        self.assertEqual(self.breaker.current_state, pybreaker.STATE_OPEN)
        calls_before = mock_client.request.call_count

        result = await self.gateway.confirm(self.order)

        self.assertEqual(result, Indeterminate(detail="CIRCUIT_OPEN"))
        self.assertEqual(mock_client.request.call_count, calls_before)

    @patch("httpx.AsyncClient")
    async def test_rejection_does_not_count_against_the_circuit(self, mock_client_cls):
        mock_client = _client(mock_client_cls)
        mock_client.request.return_value = _response(422, {"errors": [{"title": "INVALID FORMAT"}]})

        for _ in range(self.breaker.fail_max + 1):
            await self.gateway.confirm(self.order)

        self.assertEqual(self.breaker.current_state, pybreaker.STATE_CLOSED)

    @patch("httpx.AsyncClient")
    async def test_cancel_of_missing_order_counts_as_cancelled(self, mock_client_cls):
        mock_client = _client(mock_client_cls)
        mock_client.request.return_value = _response(404)

        result = await self.gateway.cancel("ORD-1")

        self.assertEqual(result, Confirmed(remote_order_id="ORD-1"))
        self.assertEqual(
            mock_client.request.call_args.args,
            ("DELETE", "http://provider.test/v1/booking/flight-orders/ORD-1"),
        )

    @patch("httpx.AsyncClient")
    async def test_fetch_returns_snapshot(self, mock_client_cls):
        mock_client = _client(mock_client_cls)
        mock_client.request.return_value = _response(200, {"data": {"id": "ORD-1", "status": "CANCELLED"}})

        result = await self.gateway.fetch("ORD-1")

        self.assertIsInstance(result, OrderSnapshot)
        self.assertTrue(result.is_cancelled)

    @patch("httpx.AsyncClient")
    async def test_fetch_unknown_order(self, mock_client_cls):
        mock_client = _client(mock_client_cls)
        mock_client.request.return_value = _response(404)

        result = await self.gateway.fetch("ORD-404")

        self.assertEqual(result, Rejected(reason_code="ORDER_NOT_FOUND"))
