from __future__ import annotations

import logging
import re
import threading
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import TypeVar

from app.residence import rows
from app.residence.actions import (
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
from app.residence.derivation import changed_rooms, derive_rooms
from app.residence.domain import (
    GENERAL_INCOME_ID,
    MONTHLY_HISTORY_LIMIT,
    PETTY_CASH_CATEGORY,
    AppState,
    Currency,
    Expense,
    ExpenseId,
    MaintenanceTask,
    MonthlyRateHistory,
    Payment,
    PaymentId,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    Resident,
    ResidentStatus,
    Room,
    TaskStatus,
    initial_state,
    utcnow_iso,
)
from app.residence.gateway import (
    EffectRunner,
    PersistenceOp,
    delete_op,
    insert_op,
    update_op,
    upsert_op,
)

logger = logging.getLogger(__name__)

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

# Only pending payments may change status.
PAYMENT_STATUS_TRANSITIONS: dict[PaymentStatus, set[PaymentStatus]] = {
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.CANCELLED},
    PaymentStatus.COMPLETED: set(),
    PaymentStatus.CANCELLED: set(),
}


@dataclass(frozen=True)
class Transition:
    state: AppState
    outbox: tuple[PersistenceOp, ...] = ()


A = TypeVar("A", bound=Action)
Handler = Callable[[AppState, A, str], Transition]

_HANDLERS: dict[type[Action], Handler] = {}


def _handles(action_type: type[A]) -> Callable[[Handler], Handler]:
    def decorator(fn: Handler) -> Handler:
        _HANDLERS[action_type] = fn
        return fn

    return decorator


def reduce(state: AppState, action: Action, now: str | None = None) -> Transition:
    """Compute the next state and the persistence operations it implies.

    Pure with respect to ``state``: the input snapshot is never mutated.
    Unknown actions and rejected actions leave the state unchanged.
    """
    handler = _HANDLERS.get(type(action))
    if handler is None:
        return Transition(state)
    return handler(state, action, now or utcnow_iso())


def _reject(state: AppState, action: Action, reason: str, *args: object) -> Transition:
    logger.warning("Accion %s ignorada: " + reason, action.name, *args)
    return Transition(state)


def _token() -> str:
    return uuid.uuid4().hex[:12]


def _replace_by_id(items: Iterable[object], updated: object) -> tuple:
    return tuple(updated if item.id == updated.id else item for item in items)


def _persisted_resident(resident_id: str) -> bool:
    return resident_id != GENERAL_INCOME_ID


def _room_sync_ops(before: Iterable[Room], after: Iterable[Room], now: str) -> list[PersistenceOp]:
    return [
        update_op(
            rows.ROOMS,
            room.id,
            {"current_occupancy": room.current_occupancy, "status": room.status.value, "updated_at": now},
            "sincronizando ocupacion de habitacion",
        )
        for room in changed_rooms(before, after)
    ]


def _purge_pending_payments(payments: Iterable[Payment], resident_ids: set[str]) -> tuple[Payment, ...]:
    return tuple(p for p in payments if not (p.resident_id in resident_ids and p.is_pending))


def _purge_pending_ops(resident_ids: Iterable[str], label: str) -> list[PersistenceOp]:
    return [
        delete_op(rows.PAYMENTS, label, resident_id=resident_id, status=PaymentStatus.PENDING.value)
        for resident_id in resident_ids
        if _persisted_resident(resident_id)
    ]


def _petty_cash_op(state: AppState, balance: Decimal, now: str) -> PersistenceOp:
    return update_op(
        rows.CONFIGURATIONS,
        state.configuration.id,
        {"petty_cash": balance, "updated_at": now},
        "actualizando caja chica",
    )


def _monthly_rent(state: AppState, resident: Resident, room: Room, now: str) -> Payment:
    return Payment(
        id=PaymentId(f"monthly-{_token()}-{resident.id}"),
        resident_id=resident.id,
        amount=state.configuration.ars_rate_for(room.type),
        type=PaymentType.MONTHLY_RENT,
        currency=Currency.ARS,
        method=PaymentMethod.CASH,
        date=now,
        status=PaymentStatus.PENDING,
    )


# Rooms


@_handles(AddRoom)
def _add_room(state: AppState, action: AddRoom, now: str) -> Transition:
    if state.room(action.room.id) is not None:
        return _reject(state, action, "la habitacion %s ya existe", action.room.id)
    new_rooms = derive_rooms(state.rooms + (action.room,), state.residents)
    room = new_rooms[-1]
    return Transition(
        replace(state, rooms=new_rooms),
        (insert_op(rows.ROOMS, rows.room_to_row(room), "agregando habitacion"),),
    )


@_handles(UpdateRoom)
def _update_room(state: AppState, action: UpdateRoom, now: str) -> Transition:
    if state.room(action.room.id) is None:
        return _reject(state, action, "habitacion %s inexistente", action.room.id)
    new_rooms = derive_rooms(_replace_by_id(state.rooms, action.room), state.residents)
    room = next(r for r in new_rooms if r.id == action.room.id)
    return Transition(
        replace(state, rooms=new_rooms),
        (update_op(rows.ROOMS, room.id, rows.room_patch(room, now), "actualizando habitacion"),),
    )


@_handles(DeleteRoom)
def _delete_room(state: AppState, action: DeleteRoom, now: str) -> Transition:
    room_id = action.room_id
    if state.room(room_id) is None:
        return _reject(state, action, "habitacion %s inexistente", room_id)

    affected = [r for r in state.residents if r.room_id == room_id]
    affected_ids = {r.id for r in affected}
    new_residents = tuple(
        replace(r, room_id="", status=ResidentStatus.INACTIVE) if r.id in affected_ids else r
        for r in state.residents
    )
    remaining_rooms = tuple(r for r in state.rooms if r.id != room_id)
    new_rooms = derive_rooms(remaining_rooms, new_residents)

    outbox: list[PersistenceOp] = [delete_op(rows.ROOMS, "eliminando habitacion", id=room_id)]
    for resident in new_residents:
        if resident.id in affected_ids and _persisted_resident(resident.id):
            outbox.append(
                update_op(
                    rows.RESIDENTS,
                    resident.id,
                    {"room_id": "", "status": ResidentStatus.INACTIVE.value, "updated_at": now},
                    "liberando residente de habitacion eliminada",
                )
            )
    outbox.extend(_purge_pending_ops(sorted(affected_ids), "eliminando pagos pendientes de residentes reubicados"))
    outbox.append(delete_op(rows.RESERVATIONS, "eliminando reservas de habitacion", room_id=room_id))
    outbox.extend(_room_sync_ops(remaining_rooms, new_rooms, now))

    return Transition(
        replace(
            state,
            rooms=new_rooms,
            residents=new_residents,
            reservations=tuple(r for r in state.reservations if r.room_id != room_id),
            payments=_purge_pending_payments(state.payments, affected_ids),
        ),
        tuple(outbox),
    )


# Residents


@_handles(AddResident)
def _add_resident(state: AppState, action: AddResident, now: str) -> Transition:
    resident = action.resident
    if state.resident(resident.id) is not None:
        return _reject(state, action, "el residente %s ya existe", resident.id)
    new_residents = state.residents + (resident,)
    new_rooms = derive_rooms(state.rooms, new_residents)
    outbox: list[PersistenceOp] = []
    if _persisted_resident(resident.id):
        outbox.append(insert_op(rows.RESIDENTS, rows.resident_to_row(resident), "agregando residente"))
    outbox.extend(_room_sync_ops(state.rooms, new_rooms, now))
    return Transition(replace(state, residents=new_residents, rooms=new_rooms), tuple(outbox))


@_handles(UpdateResident)
def _update_resident(state: AppState, action: UpdateResident, now: str) -> Transition:
    resident = action.resident
    previous = state.resident(resident.id)
    if previous is None:
        return _reject(state, action, "residente %s inexistente", resident.id)

    new_residents = _replace_by_id(state.residents, resident)
    new_rooms = derive_rooms(state.rooms, new_residents)
    new_payments = state.payments
    outbox: list[PersistenceOp] = []
    if _persisted_resident(resident.id):
        outbox.append(
            update_op(rows.RESIDENTS, resident.id, rows.resident_patch(resident, now), "actualizando residente")
        )
    if previous.status == ResidentStatus.ACTIVE and resident.status == ResidentStatus.INACTIVE:
        new_payments = _purge_pending_payments(state.payments, {resident.id})
        outbox.extend(_purge_pending_ops([resident.id], "eliminando pagos pendientes de residente inactivo"))
    outbox.extend(_room_sync_ops(state.rooms, new_rooms, now))
    return Transition(
        replace(state, residents=new_residents, rooms=new_rooms, payments=new_payments),
        tuple(outbox),
    )


@_handles(DeleteResident)
def _delete_resident(state: AppState, action: DeleteResident, now: str) -> Transition:
    resident_id = action.resident_id
    if not _persisted_resident(resident_id):
        return _reject(state, action, "el residente %s no puede eliminarse", resident_id)
    if state.resident(resident_id) is None:
        return _reject(state, action, "residente %s inexistente", resident_id)

    new_residents = tuple(r for r in state.residents if r.id != resident_id)
    new_rooms = derive_rooms(state.rooms, new_residents)
    outbox: list[PersistenceOp] = [
        delete_op(rows.RESIDENTS, "eliminando residente", id=resident_id),
        delete_op(rows.PAYMENTS, "eliminando pagos de residente", resident_id=resident_id),
        delete_op(rows.RESERVATIONS, "eliminando reservas de residente", resident_id=resident_id),
    ]
    outbox.extend(_room_sync_ops(state.rooms, new_rooms, now))
    return Transition(
        replace(
            state,
            residents=new_residents,
            rooms=new_rooms,
            payments=tuple(p for p in state.payments if p.resident_id != resident_id),
            reservations=tuple(r for r in state.reservations if r.resident_id != resident_id),
        ),
        tuple(outbox),
    )


# Reservations


@_handles(AddReservation)
def _add_reservation(state: AppState, action: AddReservation, now: str) -> Transition:
    reservation = action.reservation
    if state.reservation(reservation.id) is not None:
        return _reject(state, action, "la reserva %s ya existe", reservation.id)

    new_residents = state.residents
    outbox: list[PersistenceOp] = [
        insert_op(rows.RESERVATIONS, rows.reservation_to_row(reservation), "agregando reserva")
    ]
    if action.resident is not None and state.resident(reservation.resident_id) is None:
        placeholder = replace(
            action.resident,
            id=reservation.resident_id,
            room_id=reservation.room_id,
            check_in_date=action.resident.check_in_date or reservation.start_date,
            status=ResidentStatus.PENDING,
        )
        new_residents = new_residents + (placeholder,)
        if _persisted_resident(placeholder.id):
            outbox.append(
                insert_op(rows.RESIDENTS, rows.resident_to_row(placeholder), "agregando residente de reserva")
            )

    matricula = Payment(
        id=PaymentId(f"matricula-{_token()}-{reservation.resident_id}"),
        resident_id=reservation.resident_id,
        amount=reservation.matricula_amount,
        type=PaymentType.MATRICULA,
        currency=Currency.ARS,
        method=PaymentMethod.CASH,
        date=now,
        status=PaymentStatus.PENDING,
    )
    outbox.append(insert_op(rows.PAYMENTS, rows.payment_to_row(matricula), "agregando pago de matricula"))

    return Transition(
        replace(
            state,
            reservations=state.reservations + (reservation,),
            residents=new_residents,
            rooms=derive_rooms(state.rooms, new_residents),
            payments=state.payments + (matricula,),
        ),
        tuple(outbox),
    )


@_handles(UpdateReservation)
def _update_reservation(state: AppState, action: UpdateReservation, now: str) -> Transition:
    reservation = action.reservation
    if state.reservation(reservation.id) is None:
        return _reject(state, action, "reserva %s inexistente", reservation.id)
    return Transition(
        replace(state, reservations=_replace_by_id(state.reservations, reservation)),
        (
            update_op(
                rows.RESERVATIONS,
                reservation.id,
                rows.reservation_patch(reservation, now),
                "actualizando reserva",
            ),
        ),
    )


@_handles(DeleteReservation)
def _delete_reservation(state: AppState, action: DeleteReservation, now: str) -> Transition:
    reservation = state.reservation(action.reservation_id)
    if reservation is None:
        return _reject(state, action, "reserva %s inexistente", action.reservation_id)

    new_state = replace(state, reservations=tuple(r for r in state.reservations if r.id != reservation.id))
    outbox: list[PersistenceOp] = [delete_op(rows.RESERVATIONS, "eliminando reserva", id=reservation.id)]

    resident = state.resident(reservation.resident_id)
    if resident is not None and resident.status == ResidentStatus.PENDING and _persisted_resident(resident.id):
        new_residents = tuple(r for r in state.residents if r.id != resident.id)
        new_rooms = derive_rooms(state.rooms, new_residents)
        new_state = replace(
            new_state,
            residents=new_residents,
            rooms=new_rooms,
            payments=_purge_pending_payments(state.payments, {resident.id}),
        )
        outbox.append(delete_op(rows.RESIDENTS, "eliminando residente de reserva cancelada", id=resident.id))
        outbox.extend(_purge_pending_ops([resident.id], "eliminando pagos pendientes de reserva cancelada"))
        outbox.extend(_room_sync_ops(state.rooms, new_rooms, now))
    elif resident is None:
        # The matricula was booked against an id with no resident behind it.
        new_state = replace(
            new_state, payments=_purge_pending_payments(state.payments, {reservation.resident_id})
        )
        outbox.extend(
            _purge_pending_ops([reservation.resident_id], "eliminando pagos pendientes de reserva cancelada")
        )
    elif resident.status == ResidentStatus.ACTIVE:
        logger.warning(
            "La reserva %s apunta al residente activo %s; se elimina solo la reserva",
            reservation.id,
            resident.id,
        )
    return Transition(new_state, tuple(outbox))


@_handles(CheckInReservation)
def _check_in(state: AppState, action: CheckInReservation, now: str) -> Transition:
    reservation = state.reservation(action.reservation_id)
    if reservation is None:
        return _reject(state, action, "reserva %s inexistente", action.reservation_id)
    resident = state.resident(reservation.resident_id)
    if resident is None:
        return _reject(state, action, "la reserva %s no tiene residente", reservation.id)

    checked_in = replace(resident, status=ResidentStatus.ACTIVE, check_in_date=action.at or now)
    new_residents = _replace_by_id(state.residents, checked_in)
    new_rooms = derive_rooms(state.rooms, new_residents)
    new_payments = state.payments
    outbox: list[PersistenceOp] = []
    if _persisted_resident(checked_in.id):
        outbox.append(
            update_op(rows.RESIDENTS, checked_in.id, rows.resident_patch(checked_in, now), "registrando ingreso")
        )

    room = state.room(reservation.room_id)
    if room is not None:
        rent = _monthly_rent(state, checked_in, room, now)
        new_payments = new_payments + (rent,)
        outbox.append(insert_op(rows.PAYMENTS, rows.payment_to_row(rent), "agregando primer alquiler"))

    outbox.append(delete_op(rows.RESERVATIONS, "cerrando reserva ingresada", id=reservation.id))
    outbox.extend(_room_sync_ops(state.rooms, new_rooms, now))
    return Transition(
        replace(
            state,
            residents=new_residents,
            rooms=new_rooms,
            payments=new_payments,
            reservations=tuple(r for r in state.reservations if r.id != reservation.id),
        ),
        tuple(outbox),
    )


# Payments


@_handles(AddPayment)
def _add_payment(state: AppState, action: AddPayment, now: str) -> Transition:
    if state.payment(action.payment.id) is not None:
        return _reject(state, action, "el pago %s ya existe", action.payment.id)
    return Transition(
        replace(state, payments=state.payments + (action.payment,)),
        (insert_op(rows.PAYMENTS, rows.payment_to_row(action.payment), "agregando pago"),),
    )


@_handles(UpdatePayment)
def _update_payment(state: AppState, action: UpdatePayment, now: str) -> Transition:
    payment = action.payment
    original = state.payment(payment.id)
    if original is None:
        return _reject(state, action, "pago %s inexistente", payment.id)
    if payment.status != original.status and payment.status not in PAYMENT_STATUS_TRANSITIONS[original.status]:
        return _reject(
            state,
            action,
            "transicion de pago %s no permitida (%s -> %s)",
            payment.id,
            original.status.value,
            payment.status.value,
        )

    new_payments = _replace_by_id(state.payments, payment)
    outbox: list[PersistenceOp] = [
        update_op(rows.PAYMENTS, payment.id, rows.payment_patch(payment, now), "actualizando pago")
    ]
    if original.is_pending and payment.status == PaymentStatus.COMPLETED and payment.amount < original.amount:
        remainder = Payment(
            id=PaymentId(f"partial-{_token()}-{payment.resident_id}"),
            resident_id=payment.resident_id,
            amount=original.amount - payment.amount,
            type=payment.type,
            currency=payment.currency,
            method=payment.method,
            date=now,
            status=PaymentStatus.PENDING,
            is_partial_payment=True,
        )
        new_payments = new_payments + (remainder,)
        outbox.append(insert_op(rows.PAYMENTS, rows.payment_to_row(remainder), "agregando saldo de pago parcial"))
    return Transition(replace(state, payments=new_payments), tuple(outbox))


@_handles(DeletePayment)
def _delete_payment(state: AppState, action: DeletePayment, now: str) -> Transition:
    if state.payment(action.payment_id) is None:
        return _reject(state, action, "pago %s inexistente", action.payment_id)
    return Transition(
        replace(state, payments=tuple(p for p in state.payments if p.id != action.payment_id)),
        (delete_op(rows.PAYMENTS, "eliminando pago", id=action.payment_id),),
    )


# Expenses and petty cash


@_handles(AddExpense)
def _add_expense(state: AppState, action: AddExpense, now: str) -> Transition:
    expense = action.expense
    if state.expense(expense.id) is not None:
        return _reject(state, action, "el gasto %s ya existe", expense.id)
    outbox: list[PersistenceOp] = [insert_op(rows.EXPENSES, rows.expense_to_row(expense), "agregando gasto")]
    balance = state.petty_cash
    if expense.method == PaymentMethod.PETTY_CASH:
        balance = state.petty_cash + expense.petty_cash_effect
        outbox.append(_petty_cash_op(state, balance, now))
    return Transition(replace(state, expenses=state.expenses + (expense,), petty_cash=balance), tuple(outbox))


@_handles(UpdateExpense)
def _update_expense(state: AppState, action: UpdateExpense, now: str) -> Transition:
    expense = action.expense
    previous = state.expense(expense.id)
    if previous is None:
        return _reject(state, action, "gasto %s inexistente", expense.id)
    outbox: list[PersistenceOp] = [
        update_op(rows.EXPENSES, expense.id, rows.expense_patch(expense, now), "actualizando gasto")
    ]
    # Reverse the previous posting and apply the new one, not a second full debit.
    delta = expense.petty_cash_effect - previous.petty_cash_effect
    balance = state.petty_cash + delta
    if delta:
        outbox.append(_petty_cash_op(state, balance, now))
    return Transition(
        replace(state, expenses=_replace_by_id(state.expenses, expense), petty_cash=balance),
        tuple(outbox),
    )


@_handles(DeleteExpense)
def _delete_expense(state: AppState, action: DeleteExpense, now: str) -> Transition:
    expense = state.expense(action.expense_id)
    if expense is None:
        return _reject(state, action, "gasto %s inexistente", action.expense_id)
    outbox: list[PersistenceOp] = [delete_op(rows.EXPENSES, "eliminando gasto", id=expense.id)]
    balance = state.petty_cash - expense.petty_cash_effect
    if expense.petty_cash_effect:
        outbox.append(_petty_cash_op(state, balance, now))
    return Transition(
        replace(state, expenses=tuple(e for e in state.expenses if e.id != expense.id), petty_cash=balance),
        tuple(outbox),
    )


@_handles(TopUpPettyCash)
def _top_up_petty_cash(state: AppState, action: TopUpPettyCash, now: str) -> Transition:
    amount = Decimal(action.amount)
    if amount <= 0:
        return _reject(state, action, "monto de recarga invalido %s", amount)
    inflow = Expense(
        id=ExpenseId(action.expense_id or f"petty-{_token()}"),
        category=PETTY_CASH_CATEGORY,
        description="Agregado de saldo a caja chica",
        amount=-amount,
        currency=Currency.ARS,
        date=action.at or now,
        method=PaymentMethod.PETTY_CASH,
    )
    return _add_expense(state, AddExpense(inflow), now)


@_handles(UpdatePettyCash)
def _update_petty_cash(state: AppState, action: UpdatePettyCash, now: str) -> Transition:
    balance = Decimal(action.amount)
    return Transition(replace(state, petty_cash=balance), (_petty_cash_op(state, balance, now),))


# Maintenance


def _stamp_completion(task: MaintenanceTask, now: str) -> MaintenanceTask:
    if task.status == TaskStatus.COMPLETED:
        return task if task.completed_date else replace(task, completed_date=now)
    return replace(task, completed_date=None) if task.completed_date else task


@_handles(AddMaintenanceTask)
def _add_task(state: AppState, action: AddMaintenanceTask, now: str) -> Transition:
    if state.maintenance_task(action.task.id) is not None:
        return _reject(state, action, "la tarea %s ya existe", action.task.id)
    task = _stamp_completion(action.task, now)
    if not task.assigned_date:
        task = replace(task, assigned_date=now)
    return Transition(
        replace(state, maintenance_tasks=state.maintenance_tasks + (task,)),
        (insert_op(rows.MAINTENANCE_TASKS, rows.task_to_row(task), "agregando tarea de mantenimiento"),),
    )


@_handles(UpdateMaintenanceTask)
def _update_task(state: AppState, action: UpdateMaintenanceTask, now: str) -> Transition:
    previous = state.maintenance_task(action.task.id)
    if previous is None:
        return _reject(state, action, "tarea %s inexistente", action.task.id)
    task = _stamp_completion(action.task, now)
    return Transition(
        replace(state, maintenance_tasks=_replace_by_id(state.maintenance_tasks, task)),
        (
            update_op(
                rows.MAINTENANCE_TASKS,
                task.id,
                rows.task_patch(task, now),
                "actualizando tarea de mantenimiento",
            ),
        ),
    )


@_handles(DeleteMaintenanceTask)
def _delete_task(state: AppState, action: DeleteMaintenanceTask, now: str) -> Transition:
    if state.maintenance_task(action.task_id) is None:
        return _reject(state, action, "tarea %s inexistente", action.task_id)
    return Transition(
        replace(state, maintenance_tasks=tuple(t for t in state.maintenance_tasks if t.id != action.task_id)),
        (delete_op(rows.MAINTENANCE_TASKS, "eliminando tarea de mantenimiento", id=action.task_id),),
    )


# Configuration


@_handles(UpdateConfiguration)
def _update_configuration(state: AppState, action: UpdateConfiguration, now: str) -> Transition:
    configuration = action.configuration
    row = rows.configuration_to_row(configuration, state.petty_cash)
    row["updated_at"] = now
    return Transition(
        replace(state, configuration=configuration),
        (upsert_op(rows.CONFIGURATIONS, row, "actualizando configuracion"),),
    )


@_handles(SaveMonthlyRates)
def _save_monthly_rates(state: AppState, action: SaveMonthlyRates, now: str) -> Transition:
    if not MONTH_PATTERN.match(action.month or ""):
        return _reject(state, action, "mes invalido %r", action.month)

    configuration = state.configuration
    entry = MonthlyRateHistory(
        id=f"history-{_token()}",
        month=action.month,
        exchange_rate=configuration.exchange_rate,
        room_rates_usd=dict(configuration.room_rates),
        room_rates_ars=dict(configuration.room_rates_ars),
        created_date=now,
        created_by=action.user_id,
    )
    history = list(configuration.monthly_history)
    for index, existing in enumerate(history):
        if existing.month == action.month:
            history[index] = replace(entry, id=existing.id)
            break
    else:
        history.append(entry)
    history.sort(key=lambda h: h.month, reverse=True)

    updated = replace(
        configuration,
        monthly_history=tuple(history[:MONTHLY_HISTORY_LIMIT]),
        last_updated=now,
    )
    return Transition(
        replace(state, configuration=updated),
        (
            upsert_op(
                rows.MONTHLY_RATE_HISTORY,
                rows.history_to_row(entry),
                "guardando historial de tarifas",
                on_conflict="month",
            ),
            update_op(
                rows.CONFIGURATIONS,
                updated.id,
                {"last_updated": updated.last_updated, "updated_at": now},
                "actualizando configuracion",
            ),
        ),
    )


@_handles(GenerateMonthlyPayments)
def _generate_monthly_payments(state: AppState, action: GenerateMonthlyPayments, now: str) -> Transition:
    at = action.at or now
    already_billed = {
        p.resident_id for p in state.payments if p.type == PaymentType.MONTHLY_RENT and p.is_pending
    }
    created: list[Payment] = []
    for resident in state.residents:
        if resident.status != ResidentStatus.ACTIVE or resident.id in already_billed:
            continue
        room = state.room(resident.room_id)
        if room is None:
            continue
        created.append(_monthly_rent(state, resident, room, at))
    return Transition(
        replace(state, payments=state.payments + tuple(created)),
        tuple(insert_op(rows.PAYMENTS, rows.payment_to_row(p), "agregando alquiler mensual") for p in created),
    )


# Loading and session flags


@_handles(LoadData)
def _load_data(state: AppState, action: LoadData, now: str) -> Transition:
    changes = {
        name: getattr(action, name)
        for name in (
            "rooms",
            "residents",
            "reservations",
            "payments",
            "expenses",
            "maintenance_tasks",
            "configuration",
            "petty_cash",
            "is_loading",
            "is_connected",
            "is_demo_mode",
        )
        if getattr(action, name) is not None
    }
    loaded = replace(state, **changes)
    if action.rooms is not None or action.residents is not None:
        loaded = replace(loaded, rooms=derive_rooms(loaded.rooms, loaded.residents))
    return Transition(loaded)


@_handles(SetLoading)
def _set_loading(state: AppState, action: SetLoading, now: str) -> Transition:
    return Transition(replace(state, is_loading=action.value))


@_handles(SetConnectionStatus)
def _set_connection_status(state: AppState, action: SetConnectionStatus, now: str) -> Transition:
    return Transition(replace(state, is_connected=action.value))


@_handles(SetDemoMode)
def _set_demo_mode(state: AppState, action: SetDemoMode, now: str) -> Transition:
    return Transition(replace(state, is_demo_mode=action.value))


@_handles(SetUser)
def _set_user(state: AppState, action: SetUser, now: str) -> Transition:
    return Transition(replace(state, user=action.user))


@_handles(SelectResidentForDetails)
def _select_resident(state: AppState, action: SelectResidentForDetails, now: str) -> Transition:
    return Transition(replace(state, selected_resident_id=action.resident_id))


class ResidenceStore:
    """Owns the current snapshot and hands each transition's outbox to the effect runner."""

    def __init__(self, effects: EffectRunner, state: AppState | None = None) -> None:
        self.effects = effects
        self._state = state or initial_state()
        self._lock = threading.Lock()

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, action: Action) -> AppState:
        with self._lock:
            transition = reduce(self._state, action)
            self._state = transition.state
            self.effects.submit(transition.outbox)
        return transition.state
