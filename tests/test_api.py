from __future__ import annotations

import pytest

from app import get_store
from app.residence.actions import AddReservation, CheckInReservation, UpdateConfiguration
from app.residence.bootstrap import load_all
from app.residence.domain import GENERAL_INCOME_ID, RoomType
from app.residence.serializers import action_from_dict


@pytest.fixture
def loaded(app):
    load_all(get_store(app))
    return app


def _dispatch(client, action_type, payload=None):
    return client.post("/api/actions", json={"type": action_type, "payload": payload})


def test_state_endpoint_serializes_snapshot(loaded, client):
    response = client.get("/api/state")
    assert response.status_code == 200
    data = response.get_json()

    assert data["is_demo_mode"] is True
    assert data["petty_cash"] == 50000
    assert data["configuration"]["room_rates"]["individual"] == 245
    room = data["rooms"][0]
    assert room["available_beds"] == room["capacity"] - room["current_occupancy"]
    assert any(r["id"] == GENERAL_INCOME_ID for r in data["residents"])


def test_add_room_through_api(app, client):
    response = _dispatch(client, "ADD_ROOM", {"id": "r1", "number": "101", "type": "triple", "monthly_rate": 165})
    assert response.status_code == 200
    (room,) = response.get_json()["rooms"]

    assert room["capacity"] == 3
    assert room["status"] == "available"
    assert room["available_beds"] == 3


def test_resident_payload_with_nested_contact(app, client):
    _dispatch(client, "ADD_ROOM", {"id": "r1", "number": "101", "type": "double"})
    response = _dispatch(
        client,
        "ADD_RESIDENT",
        {
            "id": "a",
            "first_name": "Ana",
            "room_id": "r1",
            "emergency_contact": {"name": "Marta", "phone": "123", "relationship": "Madre"},
        },
    )
    data = response.get_json()

    assert data["rooms"][0]["current_occupancy"] == 1
    resident = next(r for r in data["residents"] if r["id"] == "a")
    assert resident["emergency_contact"]["name"] == "Marta"


def test_partial_payment_through_api(app, client):
    payment = {"id": "p1", "resident_id": "a", "amount": 100000, "type": "monthly_rent"}
    _dispatch(client, "ADD_PAYMENT", payment)
    response = _dispatch(client, "UPDATE_PAYMENT", {**payment, "amount": 60000, "status": "completed"})
    payments = response.get_json()["payments"]

    assert [(p["amount"], p["status"], p["is_partial_payment"]) for p in payments] == [
        (60000, "completed", False),
        (40000, "pending", True),
    ]


def test_petty_cash_top_up_through_api(app, client):
    response = _dispatch(client, "TOP_UP_PETTY_CASH", 2500)
    assert response.get_json()["petty_cash"] == 52500


@pytest.mark.parametrize(
    "body",
    [
        None,
        {"type": "NOT_AN_ACTION"},
        {"type": "ADD_ROOM", "payload": {"id": "r1"}},
        {"type": "ADD_ROOM", "payload": {"id": "r1", "number": "1", "type": "suite"}},
        {"type": "ADD_PAYMENT", "payload": {"id": "p", "resident_id": "a", "amount": "mucho", "type": "other"}},
        {"type": "SET_LOADING", "payload": "yes"},
        {"type": "LOAD_DATA", "payload": {}},
    ],
)
def test_malformed_actions_are_rejected(app, client, body):
    before = get_store(app).state
    response = client.post("/api/actions", json=body)

    assert response.status_code == 400
    assert response.get_json()["error"]
    assert get_store(app).state is before


def test_status_endpoint_in_demo_mode(app, client):
    data = client.get("/api/status").get_json()
    assert data["status"]["mode"] == "demo"
    assert data["status"]["connected"] is False
    assert data["stats"]["mode"] == "demo"


def test_reload_endpoint_reruns_bootstrap(app, client):
    response = client.post("/api/reload")
    data = response.get_json()
    assert data["is_loading"] is False
    assert data["is_demo_mode"] is True
    assert data["rooms"]


def test_reservation_payload_accepts_placeholder_resident():
    action = action_from_dict(
        {
            "type": "ADD_RESERVATION",
            "payload": {
                "reservation": {
                    "id": "resv-1",
                    "resident_id": "temp-1",
                    "room_id": "r1",
                    "start_date": "2025-04-01",
                    "matricula_amount": 50000,
                    "discount": {"type": "fixed", "value": 5000},
                },
                "resident": {"id": "temp-1", "first_name": "Lucia"},
            },
        }
    )
    assert isinstance(action, AddReservation)
    assert action.resident.first_name == "Lucia"
    assert action.reservation.discount.value == 5000


def test_check_in_payload_accepts_plain_id():
    action = action_from_dict({"type": "CHECK_IN_RESERVATION", "payload": "resv-1"})
    assert action == CheckInReservation("resv-1")


def test_configuration_payload_derives_ars_rates_when_missing():
    action = action_from_dict(
        {
            "type": "UPDATE_CONFIGURATION",
            "payload": {"id": "c", "exchange_rate": 1000, "room_rates": {"double": 200}},
        }
    )
    assert isinstance(action, UpdateConfiguration)
    assert action.configuration.room_rates_ars == {RoomType.DOUBLE: 200000}


def test_generate_monthly_payments_cli(loaded):
    store = get_store(loaded)
    result = loaded.test_cli_runner().invoke(args=["generate-monthly-payments"])

    assert result.exit_code == 0, result.output
    assert "Generated" in result.output
    again = loaded.test_cli_runner().invoke(args=["generate-monthly-payments"])
    assert "Generated 0 monthly payments." in again.output
    assert store.state.is_demo_mode is True


def test_store_status_cli(app):
    result = app.test_cli_runner().invoke(args=["store-status"])
    assert result.exit_code == 0
    assert "mode=demo" in result.output


def test_seed_store_cli_is_a_noop_offline(app):
    result = app.test_cli_runner().invoke(args=["seed-store"])
    assert result.exit_code == 0
    assert "demo mode" in result.output
