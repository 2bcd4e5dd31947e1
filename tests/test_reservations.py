from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from conftest import NOW

from app.residence import rows
from app.residence.actions import (
    AddReservation,
    CheckInReservation,
    DeleteReservation,
    UpdateReservation,
)
from app.residence.domain import (
    Discount,
    DiscountType,
    PaymentStatus,
    PaymentType,
    Reservation,
    ReservationId,
    ReservationStatus,
    Resident,
    ResidentId,
    ResidentStatus,
    RoomId,
)
from app.residence.engine import reduce
from app.residence.gateway import OpKind


def _reservation(**overrides) -> Reservation:
    values = dict(
        id=ReservationId("resv-1"),
        resident_id=ResidentId("temp-1"),
        room_id=RoomId("r2"),
        start_date="2025-04-01",
        end_date="2025-12-01",
        matricula_amount=Decimal("50000"),
    )
    values.update(overrides)
    return Reservation(**values)


def _reserve(state):
    placeholder = Resident(id=ResidentId("ignored"), first_name="Lucia", last_name="Rojas", nationality="peru")
    return reduce(state, AddReservation(_reservation(), resident=placeholder), NOW)


def test_reservation_creates_exactly_one_pending_matricula(residence):
    transition = reduce(residence, AddReservation(_reservation()), NOW)

    new_payments = [p for p in transition.state.payments if p not in residence.payments]
    assert len(new_payments) == 1
    (matricula,) = new_payments
    assert matricula.type == PaymentType.MATRICULA
    assert matricula.status == PaymentStatus.PENDING
    assert matricula.amount == Decimal("50000")
    assert matricula.resident_id == "temp-1"
    assert matricula.id.startswith("matricula-")
    assert matricula.id.endswith("-temp-1")
    assert [op.table for op in transition.outbox] == [rows.RESERVATIONS, rows.PAYMENTS]


def test_reservation_placeholder_resident_is_pending_and_not_counted(residence):
    transition = _reserve(residence)

    placeholder = transition.state.resident("temp-1")
    assert placeholder.status == ResidentStatus.PENDING
    assert placeholder.room_id == "r2"
    assert placeholder.check_in_date == "2025-04-01"
    assert placeholder.first_name == "Lucia"
    assert transition.state.room("r2").current_occupancy == 0
    assert [op.table for op in transition.outbox] == [rows.RESERVATIONS, rows.RESIDENTS, rows.PAYMENTS]


def test_reservation_keeps_discount_in_row(residence):
    reservation = _reservation(discount=Discount(DiscountType.PERCENTAGE, Decimal("10")))
    transition = reduce(residence, AddReservation(reservation), NOW)

    row = transition.outbox[0].row
    assert row["discount_type"] == "percentage"
    assert row["discount_value"] == Decimal("10")


def test_duplicate_reservation_is_rejected(residence):
    state = _reserve(residence).state
    transition = reduce(state, AddReservation(_reservation()), NOW)
    assert transition.state is state
    assert transition.outbox == ()


def test_cancelling_pending_reservation_removes_placeholder_and_its_pending_payments(residence):
    state = _reserve(residence).state
    transition = reduce(state, DeleteReservation("resv-1"), NOW)
    new = transition.state

    assert new.reservation("resv-1") is None
    assert new.resident("temp-1") is None
    assert not [p for p in new.payments if p.resident_id == "temp-1"]
    ops = [(op.kind, op.table, dict(op.filters)) for op in transition.outbox]
    assert (OpKind.DELETE, rows.RESERVATIONS, {"id": "resv-1"}) in ops
    assert (OpKind.DELETE, rows.RESIDENTS, {"id": "temp-1"}) in ops
    assert (OpKind.DELETE, rows.PAYMENTS, {"resident_id": "temp-1", "status": "pending"}) in ops


def test_cancelling_reservation_without_resident_purges_its_matricula(residence):
    state = reduce(residence, AddReservation(_reservation(resident_id=ResidentId("ghost"))), NOW).state
    assert [p.resident_id for p in state.payments if p.is_pending] == ["ghost"]

    transition = reduce(state, DeleteReservation("resv-1"), NOW)

    assert transition.state.reservations == ()
    assert transition.state.payments == residence.payments
    ops = [(op.kind, op.table, dict(op.filters)) for op in transition.outbox]
    assert ops == [
        (OpKind.DELETE, rows.RESERVATIONS, {"id": "resv-1"}),
        (OpKind.DELETE, rows.PAYMENTS, {"resident_id": "ghost", "status": "pending"}),
    ]


def test_check_in_activates_resident_bills_rent_and_closes_reservation(residence):
    state = _reserve(residence).state
    transition = reduce(state, CheckInReservation("resv-1", at="2025-04-02T09:00:00+00:00"), NOW)
    new = transition.state

    resident = new.resident("temp-1")
    assert resident.status == ResidentStatus.ACTIVE
    assert resident.check_in_date == "2025-04-02T09:00:00+00:00"
    assert new.room("r2").current_occupancy == 1
    assert new.reservation("resv-1") is None

    rent = [p for p in new.payments if p.resident_id == "temp-1" and p.type == PaymentType.MONTHLY_RENT]
    assert len(rent) == 1
    assert rent[0].status == PaymentStatus.PENDING
    assert rent[0].amount == new.configuration.room_rates_ars[new.room("r2").type]
    # The matricula stays owed after check-in.
    assert [p for p in new.payments if p.type == PaymentType.MATRICULA and p.is_pending]


def test_cancel_after_check_in_is_unreachable(residence):
    state = _reserve(residence).state
    checked_in = reduce(state, CheckInReservation("resv-1"), NOW).state

    transition = reduce(checked_in, DeleteReservation("resv-1"), NOW)
    assert transition.state is checked_in
    assert transition.outbox == ()
    assert checked_in.resident("temp-1").status == ResidentStatus.ACTIVE


def test_deleting_reservation_of_active_resident_keeps_resident(residence):
    state = replace(
        residence,
        reservations=(_reservation(resident_id=ResidentId("a"), room_id=RoomId("r1")),),
    )
    transition = reduce(state, DeleteReservation("resv-1"), NOW)

    assert transition.state.reservations == ()
    assert transition.state.resident("a") == residence.resident("a")
    assert [op.table for op in transition.outbox] == [rows.RESERVATIONS]


def test_update_reservation(residence):
    state = _reserve(residence).state
    cancelled = replace(
        state.reservation("resv-1"),
        status=ReservationStatus.CANCELLED,
        cancellation_reason="Cambio de planes",
    )
    transition = reduce(state, UpdateReservation(cancelled), NOW)

    assert transition.state.reservation("resv-1").status == ReservationStatus.CANCELLED
    (op,) = transition.outbox
    assert op.kind == OpKind.UPDATE
    assert op.row["cancellation_reason"] == "Cambio de planes"
    assert op.row["status"] == "cancelled"
