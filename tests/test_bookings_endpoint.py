from datetime import timedelta
from decimal import Decimal

from app.application.interfaces.provider_gateway import Indeterminate, Rejected
from tests.builders import ADMIN_HEADERS, CUSTOMER_HEADERS, DEPARTURE, OTHER_HEADERS, booking_payload


def _create(client, payload=None, headers=CUSTOMER_HEADERS):
    return client.post("/api/v1/bookings", json=payload or booking_payload(), headers=headers)


def test_create_booking_confirmed(client, env):
    res = _create(client)

    assert res.status_code == 201
    body = res.json()
    assert body["confirmation"] == "CONFIRMED"
    assert body["status"] == "confirmed"
    assert body["owner_id"] == "user-1"
    assert body["remote_order_id"] == f"ORD-{body['reservation_code']}"
    assert body["display_code"].replace(" ", "") == body["reservation_code"]
    assert Decimal(str(body["pricing"]["total"])) == Decimal("235.00")
    assert body["pricing"]["currency_code"] == "USD"
    assert [p["last_name"] for p in body["passengers"]] == ["Smith"]
    assert [h["status"] for h in body["status_history"]] == ["pending", "confirmed"]


def test_create_booking_unknown_outcome_is_accepted(client, env):
    env.gateway.script_confirm(Indeterminate("timeout"))

    res = _create(client)

    assert res.status_code == 202
    body = res.json()
    assert body["confirmation"] == "UNKNOWN"
    assert body["status"] == "pending"
    assert body["confirmation_pending"] is True
    assert body["remote_order_id"] is None


def test_create_booking_rejected_by_provider(client, env):
    env.gateway.script_confirm(Rejected("34651", "Segment sell failure"))

    res = _create(client)

    assert res.status_code == 409
    body = res.json()
    assert body["code"] == "PROVIDER_REJECTED"
    assert body["reason_code"] == "34651"
    stored = env.repo.reservations
    assert [r.reservation_code for r in stored.values()] == [body["reservation_code"]]


def test_create_booking_requires_identity(client):
    res = client.post("/api/v1/bookings", json=booking_payload())

    assert res.status_code == 401
    assert res.json()["code"] == "AUTH_REQUIRED"


def test_create_booking_rejects_malformed_body(client, env):
    payload = booking_payload()
    payload["passengers"] = []

    res = _create(client, payload)

    assert res.status_code == 422
    assert env.gateway.confirm_calls == []


def test_create_booking_passenger_count_mismatch(client, env):
    payload = booking_payload()
    payload["offers"][0]["travelers"].append({"traveler_id": "2", "traveler_type": "ADULT"})

    res = _create(client, payload)

    assert res.status_code == 422
    assert res.json()["code"] == "PASSENGER_COUNT_MISMATCH"
    assert env.repo.reservations == {}


def test_list_only_returns_own_bookings(client):
    mine = _create(client).json()
    _create(client, headers=OTHER_HEADERS)

    res = client.get("/api/v1/bookings", headers=CUSTOMER_HEADERS)

    assert res.status_code == 200
    page = res.json()
    assert page["total"] == 1
    assert page["has_more"] is False
    assert [item["id"] for item in page["items"]] == [mine["id"]]
    assert page["items"][0]["flights"] == ["AA100"]
    assert page["items"][0]["passenger_count"] == 1


def test_list_filters_by_status(client, env):
    _create(client)
    env.gateway.script_confirm(Indeterminate())
    pending = _create(client).json()

    res = client.get("/api/v1/bookings", params={"status": "pending"}, headers=CUSTOMER_HEADERS)

    assert [item["id"] for item in res.json()["items"]] == [pending["id"]]


def test_get_booking_access_control(client):
    created = _create(client).json()
    url = f"/api/v1/bookings/{created['id']}"

    assert client.get(url, headers=CUSTOMER_HEADERS).status_code == 200
    assert client.get(url, headers=ADMIN_HEADERS).status_code == 200

    forbidden = client.get(url, headers=OTHER_HEADERS)
    assert forbidden.status_code == 403
    assert forbidden.json()["code"] == "FORBIDDEN"

    missing = client.get("/api/v1/bookings/does-not-exist", headers=CUSTOMER_HEADERS)
    assert missing.status_code == 404
    assert missing.json()["code"] == "RESERVATION_NOT_FOUND"


def test_update_booking(client):
    created = _create(client).json()

    res = client.patch(
        f"/api/v1/bookings/{created['id']}",
        json={
            "passengers": [{"passenger_id": "1", "first_name": "Jonathan", "meal_preference": "VGML"}],
            "contact": {"phone": "+15559876543"},
        },
        headers=CUSTOMER_HEADERS,
    )

    assert res.status_code == 200
    body = res.json()
    assert body["passengers"][0]["first_name"] == "Jonathan"
    assert body["contact"]["phone"] == "+15559876543"

    timeline = client.get(f"/api/v1/bookings/{created['id']}/timeline", headers=CUSTOMER_HEADERS).json()
    kinds = [event["kind"] for event in timeline["events"]]
    assert kinds.count("change") == 3


def test_update_rejects_identity_fields(client):
    created = _create(client).json()

    res = client.patch(
        f"/api/v1/bookings/{created['id']}",
        json={"passengers": [{"passenger_id": "1", "date_of_birth": "1990-01-01"}]},
        headers=CUSTOMER_HEADERS,
    )

    assert res.status_code == 422


def test_update_cannot_clear_required_fields(client):
    created = _create(client).json()
    url = f"/api/v1/bookings/{created['id']}"

    cleared_name = client.patch(
        url, json={"passengers": [{"passenger_id": "1", "last_name": None}]}, headers=CUSTOMER_HEADERS
    )
    cleared_email = client.patch(url, json={"contact": {"email": None}}, headers=CUSTOMER_HEADERS)

    assert cleared_name.status_code == 422
    assert cleared_email.status_code == 422

    stored = client.get(url, headers=CUSTOMER_HEADERS)
    assert stored.status_code == 200
    assert stored.json()["passengers"][0]["last_name"] == "Smith"
    assert stored.json()["contact"]["email"] == "john.smith@example.com"
    timeline = client.get(f"{url}/timeline", headers=CUSTOMER_HEADERS).json()
    assert "change" not in [event["kind"] for event in timeline["events"]]
    lookup = client.get(
        f"/api/v1/public/bookings/{created['reservation_code']}", params={"last_name": "Smith"}
    )
    assert lookup.status_code == 200


def test_update_pending_booking_is_not_editable(client, env):
    env.gateway.script_confirm(Indeterminate())
    created = _create(client).json()

    res = client.patch(
        f"/api/v1/bookings/{created['id']}",
        json={"contact": {"phone": "+15559876543"}},
        headers=CUSTOMER_HEADERS,
    )

    assert res.status_code == 409
    assert res.json()["code"] == "NOT_EDITABLE"


def test_update_closes_before_departure(client, env):
    created = _create(client).json()
    env.clock.set_time(DEPARTURE - timedelta(minutes=30))

    res = client.patch(
        f"/api/v1/bookings/{created['id']}",
        json={"contact": {"phone": "+15559876543"}},
        headers=CUSTOMER_HEADERS,
    )

    assert res.status_code == 409
    assert res.json()["code"] == "UPDATE_WINDOW_CLOSED"


def test_cancel_booking(client, env):
    created = _create(client).json()
    url = f"/api/v1/bookings/{created['id']}/cancel"

    res = client.post(url, json={"reason": "change of plans"}, headers=CUSTOMER_HEADERS)

    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "cancelled"
    assert body["cancellation_reason"] == "change of plans"
    assert env.gateway.cancel_calls == [created["remote_order_id"]]

    again = client.post(url, json={"reason": "again"}, headers=CUSTOMER_HEADERS)
    assert again.status_code == 409
    assert again.json()["code"] == "ALREADY_TERMINAL"


def test_cancel_requires_reason(client):
    created = _create(client).json()

    res = client.post(
        f"/api/v1/bookings/{created['id']}/cancel",
        json={"reason": "  "},
        headers=CUSTOMER_HEADERS,
    )

    assert res.status_code == 422
    body = res.json()
    assert body["code"] == "MISSING_REASON"
    assert body["field"] == "reason"


def test_cancel_with_refund(client):
    created = _create(client).json()

    res = client.post(
        f"/api/v1/bookings/{created['id']}/cancel",
        json={"reason": "schedule change", "refund": True},
        headers=CUSTOMER_HEADERS,
    )

    assert res.status_code == 200
    assert res.json()["status"] == "refunded"


def test_resync_is_admin_only(client, env):
    env.gateway.script_confirm(Indeterminate())
    created = _create(client).json()
    url = f"/api/v1/bookings/{created['id']}/resync"

    assert client.post(url, headers=CUSTOMER_HEADERS).status_code == 403

    res = client.post(url, headers=ADMIN_HEADERS)

    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "confirmed"
    assert body["reservation_code"] == created["reservation_code"]
    assert body["confirmation_pending"] is False


def test_search_and_stats(client):
    created = _create(client).json()
    _create(client, payload=booking_payload(passenger_count=2), headers=OTHER_HEADERS)

    own = client.get("/api/v1/bookings/search", headers=OTHER_HEADERS).json()
    assert own["count"] == 1
    assert own["items"][0]["id"] != created["id"]
    assert client.get("/api/v1/bookings/stats", headers=CUSTOMER_HEADERS).status_code == 403

    search = client.get(
        "/api/v1/bookings/search",
        params={"reservation_code": created["display_code"].lower()},
        headers=ADMIN_HEADERS,
    ).json()
    assert search["count"] == 1
    assert search["items"][0]["id"] == created["id"]

    stats = client.get("/api/v1/bookings/stats", headers=ADMIN_HEADERS).json()
    assert stats["total"] == 2
    assert stats["by_status"] == {"confirmed": 2}
    assert stats["passengers"] == 3
    assert Decimal(str(stats["revenue_by_currency"]["USD"])) == Decimal("470.00")
