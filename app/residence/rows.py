from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from app.core.utils import to_jsonable
from app.residence.domain import (
    DEFAULT_PETTY_CASH,
    BehaviorNote,
    Configuration,
    Currency,
    Discount,
    DiscountType,
    Document,
    EmergencyContact,
    Expense,
    ExpenseId,
    Gender,
    MaintenanceTask,
    MonthlyRateHistory,
    NoteSeverity,
    NoteType,
    Payment,
    PaymentId,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    Reservation,
    ReservationId,
    ReservationStatus,
    Resident,
    ResidentId,
    ResidentStatus,
    Room,
    RoomId,
    RoomRates,
    RoomStatus,
    RoomType,
    TaskId,
    TaskPriority,
    TaskStatus,
)

Row = dict[str, Any]

RESIDENTS = "residents"
ROOMS = "rooms"
RESERVATIONS = "reservations"
PAYMENTS = "payments"
EXPENSES = "expenses"
MAINTENANCE_TASKS = "maintenance_tasks"
CONFIGURATIONS = "configurations"
MONTHLY_RATE_HISTORY = "monthly_rate_history"


def _decimal(value: Any, default: Decimal | None = Decimal("0")) -> Decimal | None:
    if value is None or value == "":
        return default
    return Decimal(str(value))


def _rates_to_json(rates: RoomRates) -> dict[str, int | float]:
    return to_jsonable(rates)


def _rates_from_json(raw: Mapping[str, Any] | None) -> RoomRates:
    rates: RoomRates = {}
    for key, value in (raw or {}).items():
        try:
            room_type = RoomType(key)
        except ValueError:
            continue
        rates[room_type] = _decimal(value)
    return rates


# Rooms


def room_to_row(room: Room) -> Row:
    return {
        "id": room.id,
        "number": room.number,
        "type": room.type.value,
        "capacity": room.capacity,
        "current_occupancy": room.current_occupancy,
        "status": room.status.value,
        "monthly_rate_usd": room.monthly_rate,
        "gender": room.gender.value if room.gender else None,
    }


def room_patch(room: Room, now: str) -> Row:
    row = room_to_row(room)
    row.pop("id")
    row["updated_at"] = now
    return row


def room_from_row(row: Mapping[str, Any]) -> Room:
    return Room(
        id=RoomId(row["id"]),
        number=str(row["number"]),
        type=RoomType(row["type"]),
        capacity=int(row["capacity"]),
        monthly_rate=_decimal(row.get("monthly_rate_usd")),
        gender=Gender(row.get("gender") or Gender.MALE.value),
        current_occupancy=int(row.get("current_occupancy") or 0),
        status=RoomStatus(row.get("status") or RoomStatus.AVAILABLE.value),
    )


# Residents


def _note_from_json(raw: Mapping[str, Any]) -> BehaviorNote:
    return BehaviorNote(
        id=str(raw["id"]),
        date=str(raw.get("date", "")),
        type=NoteType(raw.get("type", NoteType.VERBAL.value)),
        description=str(raw.get("description", "")),
        severity=NoteSeverity(raw.get("severity", NoteSeverity.LOW.value)),
        created_by=str(raw.get("created_by", raw.get("createdBy", ""))),
    )


def _document_from_json(raw: Mapping[str, Any]) -> Document:
    return Document(
        id=str(raw["id"]),
        name=str(raw.get("name", "")),
        type=str(raw.get("type", "")),
        url=str(raw.get("url", "")),
        upload_date=str(raw.get("upload_date", raw.get("uploadDate", ""))),
    )


def resident_to_row(resident: Resident) -> Row:
    return {
        "id": resident.id,
        "first_name": resident.first_name,
        "last_name": resident.last_name,
        "nationality": resident.nationality,
        "email": resident.email,
        "phone": resident.phone,
        "emergency_contact_name": resident.emergency_contact.name,
        "emergency_contact_phone": resident.emergency_contact.phone,
        "emergency_contact_relationship": resident.emergency_contact.relationship,
        "room_id": resident.room_id,
        "check_in_date": resident.check_in_date,
        "check_out_date": resident.check_out_date,
        "status": resident.status.value,
        "behavior_notes": to_jsonable(resident.behavior_notes),
        "documents": to_jsonable(resident.documents),
    }


def resident_patch(resident: Resident, now: str) -> Row:
    row = resident_to_row(resident)
    row.pop("id")
    row["updated_at"] = now
    return row


def resident_from_row(row: Mapping[str, Any]) -> Resident:
    return Resident(
        id=ResidentId(row["id"]),
        first_name=row.get("first_name") or "",
        last_name=row.get("last_name") or "",
        nationality=row.get("nationality") or "",
        email=row.get("email") or "",
        phone=row.get("phone") or "",
        emergency_contact=EmergencyContact(
            name=row.get("emergency_contact_name") or "",
            phone=row.get("emergency_contact_phone") or "",
            relationship=row.get("emergency_contact_relationship") or "",
        ),
        room_id=row.get("room_id") or "",
        check_in_date=row.get("check_in_date") or "",
        check_out_date=row.get("check_out_date"),
        status=ResidentStatus(row.get("status") or ResidentStatus.ACTIVE.value),
        behavior_notes=tuple(_note_from_json(note) for note in row.get("behavior_notes") or []),
        documents=tuple(_document_from_json(doc) for doc in row.get("documents") or []),
    )


# Reservations


def reservation_to_row(reservation: Reservation) -> Row:
    return {
        "id": reservation.id,
        "resident_id": reservation.resident_id,
        "room_id": reservation.room_id,
        "start_date": reservation.start_date,
        "end_date": reservation.end_date,
        "status": reservation.status.value,
        "matricula_amount": reservation.matricula_amount,
        "discount_type": reservation.discount.type.value if reservation.discount else None,
        "discount_value": reservation.discount.value if reservation.discount else None,
        "cancellation_reason": reservation.cancellation_reason,
    }


def reservation_patch(reservation: Reservation, now: str) -> Row:
    row = reservation_to_row(reservation)
    row.pop("id")
    row["updated_at"] = now
    return row


def reservation_from_row(row: Mapping[str, Any]) -> Reservation:
    discount = None
    if row.get("discount_type"):
        discount = Discount(
            type=DiscountType(row["discount_type"]),
            value=_decimal(row.get("discount_value")),
        )
    return Reservation(
        id=ReservationId(row["id"]),
        resident_id=ResidentId(row["resident_id"]),
        room_id=RoomId(row["room_id"]),
        start_date=row.get("start_date") or "",
        end_date=row.get("end_date") or "",
        status=ReservationStatus(row.get("status") or ReservationStatus.PENDING.value),
        matricula_amount=_decimal(row.get("matricula_amount")),
        discount=discount,
        cancellation_reason=row.get("cancellation_reason"),
    )


# Payments


def payment_to_row(payment: Payment) -> Row:
    return {
        "id": payment.id,
        "resident_id": payment.resident_id,
        "amount": payment.amount,
        "currency": payment.currency.value,
        "method": payment.method.value,
        "date": payment.date,
        "type": payment.type.value,
        "status": payment.status.value,
        "receipt_number": payment.receipt_number,
        "is_partial_payment": payment.is_partial_payment,
    }


def payment_patch(payment: Payment, now: str) -> Row:
    return {
        "amount": payment.amount,
        "method": payment.method.value,
        "status": payment.status.value,
        "receipt_number": payment.receipt_number,
        "date": payment.date,
        "is_partial_payment": payment.is_partial_payment,
        "updated_at": now,
    }


def payment_from_row(row: Mapping[str, Any]) -> Payment:
    return Payment(
        id=PaymentId(row["id"]),
        resident_id=ResidentId(row["resident_id"]),
        amount=_decimal(row.get("amount")),
        type=PaymentType(row["type"]),
        currency=Currency(row.get("currency") or Currency.ARS.value),
        method=PaymentMethod(row.get("method") or PaymentMethod.CASH.value),
        date=row.get("date") or "",
        status=PaymentStatus(row.get("status") or PaymentStatus.PENDING.value),
        receipt_number=row.get("receipt_number"),
        is_partial_payment=bool(row.get("is_partial_payment")),
    )


# Expenses


def expense_to_row(expense: Expense) -> Row:
    return {
        "id": expense.id,
        "category": expense.category,
        "description": expense.description,
        "amount": expense.amount,
        "currency": expense.currency.value,
        "method": expense.method.value,
        "date": expense.date,
        "receipt": expense.receipt,
    }


def expense_patch(expense: Expense, now: str) -> Row:
    row = expense_to_row(expense)
    row.pop("id")
    row["updated_at"] = now
    return row


def expense_from_row(row: Mapping[str, Any]) -> Expense:
    return Expense(
        id=ExpenseId(row["id"]),
        category=row.get("category") or "",
        description=row.get("description") or "",
        amount=_decimal(row.get("amount")),
        currency=Currency(row.get("currency") or Currency.ARS.value),
        date=row.get("date") or "",
        method=PaymentMethod(row.get("method") or PaymentMethod.CASH.value),
        receipt=row.get("receipt"),
    )


# Maintenance tasks


def task_to_row(task: MaintenanceTask) -> Row:
    return {
        "id": task.id,
        "area": task.area,
        "description": task.description,
        "priority": task.priority.value,
        "status": task.status.value,
        "assigned_date": task.assigned_date,
        "completed_date": task.completed_date,
        "photos": list(task.photos),
        "notes": task.notes,
    }


def task_patch(task: MaintenanceTask, now: str) -> Row:
    row = task_to_row(task)
    row.pop("id")
    row["updated_at"] = now
    return row


def task_from_row(row: Mapping[str, Any]) -> MaintenanceTask:
    return MaintenanceTask(
        id=TaskId(row["id"]),
        area=row.get("area") or "",
        description=row.get("description") or "",
        priority=TaskPriority(row.get("priority") or TaskPriority.MEDIUM.value),
        status=TaskStatus(row.get("status") or TaskStatus.PENDING.value),
        assigned_date=row.get("assigned_date") or "",
        completed_date=row.get("completed_date"),
        photos=tuple(row.get("photos") or ()),
        notes=row.get("notes"),
    )


# Configuration and monthly history


def configuration_to_row(configuration: Configuration, petty_cash: Decimal) -> Row:
    return {
        "id": configuration.id,
        "exchange_rate": configuration.exchange_rate,
        "last_updated": configuration.last_updated,
        "room_rates_usd": _rates_to_json(configuration.room_rates),
        "room_rates_ars": _rates_to_json(configuration.room_rates_ars),
        "payment_methods": list(configuration.payment_methods),
        "expense_categories": list(configuration.expense_categories),
        "maintenance_areas": list(configuration.maintenance_areas),
        "petty_cash": petty_cash,
    }


def configuration_from_row(
    row: Mapping[str, Any], history: tuple[MonthlyRateHistory, ...] = ()
) -> tuple[Configuration, Decimal]:
    configuration = Configuration(
        id=str(row["id"]),
        exchange_rate=_decimal(row.get("exchange_rate")),
        last_updated=row.get("last_updated") or "",
        room_rates=_rates_from_json(row.get("room_rates_usd")),
        room_rates_ars=_rates_from_json(row.get("room_rates_ars")),
        payment_methods=tuple(row.get("payment_methods") or ()),
        expense_categories=tuple(row.get("expense_categories") or ()),
        maintenance_areas=tuple(row.get("maintenance_areas") or ()),
        monthly_history=history,
    )
    return configuration, _decimal(row.get("petty_cash"), DEFAULT_PETTY_CASH)


def history_to_row(entry: MonthlyRateHistory) -> Row:
    return {
        "id": entry.id,
        "month": entry.month,
        "exchange_rate": entry.exchange_rate,
        "room_rates_usd": _rates_to_json(entry.room_rates_usd),
        "room_rates_ars": _rates_to_json(entry.room_rates_ars),
        "created_date": entry.created_date,
        "created_by": entry.created_by,
    }


def history_from_row(row: Mapping[str, Any]) -> MonthlyRateHistory:
    return MonthlyRateHistory(
        id=str(row["id"]),
        month=str(row["month"]),
        exchange_rate=_decimal(row.get("exchange_rate")),
        room_rates_usd=_rates_from_json(row.get("room_rates_usd")),
        room_rates_ars=_rates_from_json(row.get("room_rates_ars")),
        created_date=row.get("created_date") or "",
        created_by=row.get("created_by") or "",
    )
