from __future__ import annotations

from decimal import Decimal

from app.residence import rows
from app.residence.domain import (
    BehaviorNote,
    EmergencyContact,
    NoteSeverity,
    NoteType,
    Payment,
    PaymentId,
    PaymentStatus,
    PaymentType,
    Resident,
    ResidentId,
    ResidentStatus,
    RoomType,
    default_configuration,
)


def test_resident_row_flattens_emergency_contact():
    resident = Resident(
        id=ResidentId("a"),
        first_name="Ana",
        last_name="Silva",
        emergency_contact=EmergencyContact(name="Marta", phone="+54 11 4000-0000", relationship="Madre"),
        room_id="r1",
    ).with_note(
        BehaviorNote(
            id="n1",
            date="2025-02-01",
            type=NoteType.WRITTEN,
            description="Llegada tarde",
            severity=NoteSeverity.MEDIUM,
            created_by="Admin",
        )
    )
    row = rows.resident_to_row(resident)

    assert row["emergency_contact_name"] == "Marta"
    assert row["emergency_contact_phone"] == "+54 11 4000-0000"
    assert row["emergency_contact_relationship"] == "Madre"
    assert "emergency_contact" not in row
    assert row["behavior_notes"][0]["type"] == "written"
    assert rows.resident_from_row(row) == resident


def test_resident_from_sparse_row_uses_defaults():
    resident = rows.resident_from_row({"id": "x", "first_name": "Xime", "room_id": None, "behavior_notes": None})

    assert resident.room_id == ""
    assert resident.status == ResidentStatus.ACTIVE
    assert resident.emergency_contact == EmergencyContact()
    assert resident.behavior_notes == ()


def test_patch_rows_never_rewrite_the_identifier():
    resident = Resident(id=ResidentId("a"), first_name="Ana")
    patch = rows.resident_patch(resident, "2025-03-01")
    assert "id" not in patch
    assert patch["updated_at"] == "2025-03-01"


def test_payment_row_reads_numeric_strings():
    payment = rows.payment_from_row(
        {
            "id": "p1",
            "resident_id": "a",
            "amount": "123456.50",
            "type": "matricula",
            "status": "completed",
            "is_partial_payment": 1,
        }
    )
    assert payment == Payment(
        id=PaymentId("p1"),
        resident_id=ResidentId("a"),
        amount=Decimal("123456.50"),
        type=PaymentType.MATRICULA,
        status=PaymentStatus.COMPLETED,
        is_partial_payment=True,
    )


def test_configuration_row_carries_petty_cash_and_json_rates():
    config = default_configuration("2025-03-01")
    row = rows.configuration_to_row(config, Decimal("42000"))

    assert row["room_rates_usd"]["individual"] == 245
    assert row["room_rates_ars"]["double"] == 247000
    assert row["petty_cash"] == Decimal("42000")

    restored, petty_cash = rows.configuration_from_row(row)
    assert petty_cash == Decimal("42000")
    assert restored.room_rates[RoomType.INDIVIDUAL] == Decimal("245")
    assert restored.room_rates_ars == config.room_rates_ars
    assert restored.expense_categories == config.expense_categories


def test_configuration_row_ignores_unknown_room_types():
    config, petty_cash = rows.configuration_from_row(
        {"id": "c", "exchange_rate": "1300", "room_rates_usd": {"suite": 999, "double": 190}}
    )
    assert config.room_rates == {RoomType.DOUBLE: Decimal("190")}
    assert petty_cash == Decimal("50000")
