from datetime import timedelta

import pytest

from app.application.interfaces.provider_gateway import Indeterminate
from tests.builders import ADMIN_HEADERS, CUSTOMER_HEADERS, DEPARTURE, booking_payload

SWEEPS = ["expire-holds", "complete-flown", "resync-pending"]


def _book(client) -> dict:
    return client.post("/api/v1/bookings", json=booking_payload(), headers=CUSTOMER_HEADERS).json()


@pytest.mark.parametrize("sweep", SWEEPS)
def test_sweeps_require_admin(client, sweep):
    assert client.post(f"/api/v1/workers/{sweep}").status_code == 401
    assert client.post(f"/api/v1/workers/{sweep}", headers=CUSTOMER_HEADERS).status_code == 403


@pytest.mark.parametrize("sweep", SWEEPS)
def test_sweeps_with_nothing_to_do(client, sweep):
    res = client.post(f"/api/v1/workers/{sweep}", headers=ADMIN_HEADERS)

    assert res.status_code == 200
    assert res.json() == {"processed": [], "skipped": [], "failed": []}


def test_expire_holds(client, env):
    env.gateway.script_confirm(Indeterminate())
    held = _book(client)
    env.clock.set_time(env.clock.now() + timedelta(minutes=env.settings.hold_duration_minutes))

    res = client.post("/api/v1/workers/expire-holds", headers=ADMIN_HEADERS)

    assert res.status_code == 200
    assert res.json()["processed"] == [held["reservation_code"]]
    status = client.get(f"/api/v1/bookings/{held['id']}", headers=CUSTOMER_HEADERS).json()["status"]
    assert status == "expired"


def test_complete_flown(client, env):
    confirmed = _book(client)
    env.clock.set_time(DEPARTURE + timedelta(days=1))

    res = client.post("/api/v1/workers/complete-flown", headers=ADMIN_HEADERS)

    assert res.json()["processed"] == [confirmed["reservation_code"]]
    again = client.post("/api/v1/workers/complete-flown", headers=ADMIN_HEADERS)
    assert again.json()["processed"] == []


def test_resync_pending(client, env):
    env.gateway.script_confirm(Indeterminate())
    pending = _book(client)
    _book(client)

    res = client.post("/api/v1/workers/resync-pending", headers=ADMIN_HEADERS)

    assert res.json()["processed"] == [pending["reservation_code"]]
    booking = client.get(f"/api/v1/bookings/{pending['id']}", headers=ADMIN_HEADERS).json()
    assert booking["status"] == "confirmed"
