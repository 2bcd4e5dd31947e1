from __future__ import annotations

from collections.abc import Callable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from app.core.utils import to_jsonable
from app.residence.actions import (
    ACTION_TYPES,
    Action,
    AddExpense,
    AddMaintenanceTask,
    AddPayment,
    AddReservation,
    AddResident,
    AddRoom,
    CheckInReservation,
    DeleteExpense,
    DeleteMaintenanceTask,
    DeletePayment,
    DeleteReservation,
    DeleteResident,
    DeleteRoom,
    GenerateMonthlyPayments,
    LoadData,
    SaveMonthlyRates,
    SelectResidentForDetails,
    SetConnectionStatus,
    SetDemoMode,
    SetLoading,
    SetUser,
    TopUpPettyCash,
    UpdateConfiguration,
    UpdateExpense,
    UpdateMaintenanceTask,
    UpdatePayment,
    UpdatePettyCash,
    UpdateReservation,
    UpdateResident,
    UpdateRoom,
)
from app.residence.domain import (
    ROOM_CAPACITY,
    AppState,
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
    User,
    UserRole,
    ars_rates,
)


def state_to_dict(state: AppState) -> dict[str, Any]:
    data = to_jsonable(state)
    for room, payload in zip(state.rooms, data["rooms"]):
        payload["available_beds"] = room.available_beds
    return data


# Field readers


def _mapping(payload: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValueError(f"{what}: se esperaba un objeto")
    return payload


def _required(payload: Mapping[str, Any], key: str) -> Any:
    value = payload.get(key)
    if value is None or value == "":
        raise ValueError(f"Falta el campo obligatorio: {key}")
    return value


def _text(payload: Mapping[str, Any], key: str, default: str = "") -> str:
    value = payload.get(key)
    return default if value is None else str(value)


def _amount(payload: Mapping[str, Any], key: str, default: Decimal | None = None) -> Decimal:
    value = payload.get(key)
    if value is None or value == "":
        if default is None:
            raise ValueError(f"Falta el campo obligatorio: {key}")
        return default
    if isinstance(value, bool):
        raise ValueError(f"Monto invalido en {key}: {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Monto invalido en {key}: {value!r}") from exc


def _choice(enum_type: type, payload: Mapping[str, Any], key: str, default: Any = None) -> Any:
    value = payload.get(key)
    if value is None:
        if default is None:
            raise ValueError(f"Falta el campo obligatorio: {key}")
        return default
    try:
        return enum_type(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValueError(f"Valor invalido para {key}: {value!r} (opciones: {allowed})") from exc


def _rates(raw: Any) -> RoomRates:
    rates: RoomRates = {}
    for key, value in _mapping(raw or {}, "tarifas").items():
        rates[_choice(RoomType, {"type": key}, "type")] = _amount({"rate": value}, "rate")
    return rates


def _optional_id(payload: Any, key: str) -> str | None:
    if payload is None or isinstance(payload, str):
        return payload
    value = _mapping(payload, key).get(key)
    return None if value is None else str(value)


def _entity_id(payload: Any, key: str) -> str:
    value = _optional_id(payload, key)
    if not value:
        raise ValueError(f"Falta el campo obligatorio: {key}")
    return value


def _flag(payload: Any) -> bool:
    if isinstance(payload, Mapping):
        payload = payload.get("value")
    if not isinstance(payload, bool):
        raise ValueError("Se esperaba un valor booleano")
    return payload


# Entities


def room_from_dict(payload: Any) -> Room:
    data = _mapping(payload, "habitacion")
    room_type = _choice(RoomType, data, "type")
    return Room(
        id=RoomId(str(_required(data, "id"))),
        number=str(_required(data, "number")),
        type=room_type,
        capacity=int(data.get("capacity") or ROOM_CAPACITY[room_type]),
        monthly_rate=_amount(data, "monthly_rate", Decimal("0")),
        gender=_choice(Gender, data, "gender", Gender.MALE),
        current_occupancy=int(data.get("current_occupancy") or 0),
        status=_choice(RoomStatus, data, "status", RoomStatus.AVAILABLE),
    )


def resident_from_dict(payload: Any) -> Resident:
    data = _mapping(payload, "residente")
    contact = _mapping(data.get("emergency_contact") or {}, "contacto de emergencia")
    return Resident(
        id=ResidentId(str(_required(data, "id"))),
        first_name=str(_required(data, "first_name")),
        last_name=_text(data, "last_name"),
        nationality=_text(data, "nationality"),
        email=_text(data, "email"),
        phone=_text(data, "phone"),
        emergency_contact=EmergencyContact(
            name=_text(contact, "name"),
            phone=_text(contact, "phone"),
            relationship=_text(contact, "relationship"),
        ),
        room_id=_text(data, "room_id"),
        check_in_date=_text(data, "check_in_date"),
        check_out_date=data.get("check_out_date"),
        status=_choice(ResidentStatus, data, "status", ResidentStatus.ACTIVE),
        behavior_notes=tuple(
            BehaviorNote(
                id=str(_required(note, "id")),
                date=_text(note, "date"),
                type=_choice(NoteType, note, "type", NoteType.VERBAL),
                description=_text(note, "description"),
                severity=_choice(NoteSeverity, note, "severity", NoteSeverity.LOW),
                created_by=_text(note, "created_by"),
            )
            for note in (_mapping(raw, "nota") for raw in data.get("behavior_notes") or ())
        ),
        documents=tuple(
            Document(
                id=str(_required(doc, "id")),
                name=_text(doc, "name"),
                type=_text(doc, "type"),
                url=_text(doc, "url"),
                upload_date=_text(doc, "upload_date"),
            )
            for doc in (_mapping(raw, "documento") for raw in data.get("documents") or ())
        ),
    )


def reservation_from_dict(payload: Any) -> Reservation:
    data = _mapping(payload, "reserva")
    discount = None
    if data.get("discount"):
        raw = _mapping(data["discount"], "descuento")
        discount = Discount(type=_choice(DiscountType, raw, "type"), value=_amount(raw, "value"))
    return Reservation(
        id=ReservationId(str(_required(data, "id"))),
        resident_id=ResidentId(str(_required(data, "resident_id"))),
        room_id=RoomId(str(_required(data, "room_id"))),
        start_date=str(_required(data, "start_date")),
        end_date=_text(data, "end_date"),
        status=_choice(ReservationStatus, data, "status", ReservationStatus.PENDING),
        matricula_amount=_amount(data, "matricula_amount", Decimal("0")),
        discount=discount,
        cancellation_reason=data.get("cancellation_reason"),
    )


def payment_from_dict(payload: Any) -> Payment:
    data = _mapping(payload, "pago")
    return Payment(
        id=PaymentId(str(_required(data, "id"))),
        resident_id=ResidentId(str(_required(data, "resident_id"))),
        amount=_amount(data, "amount"),
        type=_choice(PaymentType, data, "type"),
        currency=_choice(Currency, data, "currency", Currency.ARS),
        method=_choice(PaymentMethod, data, "method", PaymentMethod.CASH),
        date=_text(data, "date"),
        status=_choice(PaymentStatus, data, "status", PaymentStatus.PENDING),
        receipt_number=data.get("receipt_number"),
        is_partial_payment=bool(data.get("is_partial_payment", False)),
    )


def expense_from_dict(payload: Any) -> Expense:
    data = _mapping(payload, "gasto")
    return Expense(
        id=ExpenseId(str(_required(data, "id"))),
        category=str(_required(data, "category")),
        description=_text(data, "description"),
        amount=_amount(data, "amount"),
        currency=_choice(Currency, data, "currency", Currency.ARS),
        date=_text(data, "date"),
        method=_choice(PaymentMethod, data, "method", PaymentMethod.CASH),
        receipt=data.get("receipt"),
    )


def task_from_dict(payload: Any) -> MaintenanceTask:
    data = _mapping(payload, "tarea")
    return MaintenanceTask(
        id=TaskId(str(_required(data, "id"))),
        area=str(_required(data, "area")),
        description=_text(data, "description"),
        priority=_choice(TaskPriority, data, "priority", TaskPriority.MEDIUM),
        status=_choice(TaskStatus, data, "status", TaskStatus.PENDING),
        assigned_date=_text(data, "assigned_date"),
        completed_date=data.get("completed_date"),
        photos=tuple(str(photo) for photo in data.get("photos") or ()),
        notes=data.get("notes"),
    )


def configuration_from_dict(payload: Any) -> Configuration:
    data = _mapping(payload, "configuracion")
    exchange_rate = _amount(data, "exchange_rate")
    if exchange_rate <= 0:
        raise ValueError("La tasa de cambio debe ser positiva")
    room_rates = _rates(data.get("room_rates"))
    room_rates_ars = _rates(data["room_rates_ars"]) if data.get("room_rates_ars") else ars_rates(room_rates, exchange_rate)
    history = tuple(
        MonthlyRateHistory(
            id=str(_required(entry, "id")),
            month=str(_required(entry, "month")),
            exchange_rate=_amount(entry, "exchange_rate"),
            room_rates_usd=_rates(entry.get("room_rates_usd")),
            room_rates_ars=_rates(entry.get("room_rates_ars")),
            created_date=_text(entry, "created_date"),
            created_by=_text(entry, "created_by"),
        )
        for entry in (_mapping(raw, "historial") for raw in data.get("monthly_history") or ())
    )
    return Configuration(
        id=str(_required(data, "id")),
        exchange_rate=exchange_rate,
        last_updated=_text(data, "last_updated"),
        room_rates=room_rates,
        room_rates_ars=room_rates_ars,
        payment_methods=tuple(data.get("payment_methods") or ("cash", "transfer")),
        expense_categories=tuple(data.get("expense_categories") or ()),
        maintenance_areas=tuple(data.get("maintenance_areas") or ()),
        monthly_history=history,
    )


def user_from_dict(payload: Any) -> User | None:
    if payload is None:
        return None
    data = _mapping(payload, "usuario")
    return User(
        id=str(_required(data, "id")),
        name=_text(data, "name"),
        email=_text(data, "email"),
        role=_choice(UserRole, data, "role", UserRole.ADMIN),
    )


# Actions


def _add_reservation(payload: Any) -> AddReservation:
    data = _mapping(payload, "reserva")
    if "reservation" not in data:
        return AddReservation(reservation_from_dict(data))
    resident = data.get("resident")
    return AddReservation(
        reservation_from_dict(data["reservation"]),
        resident=resident_from_dict(resident) if resident else None,
    )


def _check_in(payload: Any) -> CheckInReservation:
    at = payload.get("at") if isinstance(payload, Mapping) else None
    return CheckInReservation(_entity_id(payload, "reservation_id"), at=at)


def _top_up(payload: Any) -> TopUpPettyCash:
    data = payload if isinstance(payload, Mapping) else {"amount": payload}
    return TopUpPettyCash(
        amount=_amount(data, "amount"),
        expense_id=data.get("expense_id"),
        at=data.get("at"),
    )


def _petty_cash(payload: Any) -> UpdatePettyCash:
    data = payload if isinstance(payload, Mapping) else {"amount": payload}
    return UpdatePettyCash(_amount(data, "amount"))


def _save_monthly_rates(payload: Any) -> SaveMonthlyRates:
    data = _mapping(payload, "tarifas mensuales")
    return SaveMonthlyRates(month=str(_required(data, "month")), user_id=_text(data, "user_id"))


def _generate(payload: Any) -> GenerateMonthlyPayments:
    at = payload.get("at") if isinstance(payload, Mapping) else None
    return GenerateMonthlyPayments(at=at)


def _load_data(payload: Any) -> LoadData:
    raise ValueError("LOAD_DATA solo puede emitirse durante la carga inicial")


_BUILDERS: dict[type[Action], Callable[[Any], Action]] = {
    AddRoom: lambda p: AddRoom(room_from_dict(p)),
    UpdateRoom: lambda p: UpdateRoom(room_from_dict(p)),
    DeleteRoom: lambda p: DeleteRoom(_entity_id(p, "room_id")),
    AddResident: lambda p: AddResident(resident_from_dict(p)),
    UpdateResident: lambda p: UpdateResident(resident_from_dict(p)),
    DeleteResident: lambda p: DeleteResident(_entity_id(p, "resident_id")),
    AddReservation: _add_reservation,
    UpdateReservation: lambda p: UpdateReservation(reservation_from_dict(p)),
    DeleteReservation: lambda p: DeleteReservation(_entity_id(p, "reservation_id")),
    CheckInReservation: _check_in,
    AddPayment: lambda p: AddPayment(payment_from_dict(p)),
    UpdatePayment: lambda p: UpdatePayment(payment_from_dict(p)),
    DeletePayment: lambda p: DeletePayment(_entity_id(p, "payment_id")),
    AddExpense: lambda p: AddExpense(expense_from_dict(p)),
    UpdateExpense: lambda p: UpdateExpense(expense_from_dict(p)),
    DeleteExpense: lambda p: DeleteExpense(_entity_id(p, "expense_id")),
    TopUpPettyCash: _top_up,
    AddMaintenanceTask: lambda p: AddMaintenanceTask(task_from_dict(p)),
    UpdateMaintenanceTask: lambda p: UpdateMaintenanceTask(task_from_dict(p)),
    DeleteMaintenanceTask: lambda p: DeleteMaintenanceTask(_entity_id(p, "task_id")),
    UpdateConfiguration: lambda p: UpdateConfiguration(configuration_from_dict(p)),
    UpdatePettyCash: _petty_cash,
    SaveMonthlyRates: _save_monthly_rates,
    GenerateMonthlyPayments: _generate,
    LoadData: _load_data,
    SetLoading: lambda p: SetLoading(_flag(p)),
    SetConnectionStatus: lambda p: SetConnectionStatus(_flag(p)),
    SetDemoMode: lambda p: SetDemoMode(_flag(p)),
    SetUser: lambda p: SetUser(user_from_dict(p)),
    SelectResidentForDetails: lambda p: SelectResidentForDetails(_optional_id(p, "resident_id")),
}


def action_from_dict(body: Any) -> Action:
    data = _mapping(body, "accion")
    name = data.get("type")
    action_type = ACTION_TYPES.get(name) if isinstance(name, str) else None
    if action_type is None:
        raise ValueError(f"Tipo de accion desconocido: {name!r}")
    try:
        return _BUILDERS[action_type](data.get("payload"))
    except (TypeError, KeyError) as exc:
        raise ValueError(f"Payload invalido para {name}: {exc}") from exc
