from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar

from app.residence.domain import (
    Configuration,
    Expense,
    MaintenanceTask,
    Payment,
    Reservation,
    Resident,
    Room,
    User,
)


@dataclass(frozen=True)
class Action:
    name: ClassVar[str] = ""


@dataclass(frozen=True)
class AddRoom(Action):
    name: ClassVar[str] = "ADD_ROOM"
    room: Room


@dataclass(frozen=True)
class UpdateRoom(Action):
    name: ClassVar[str] = "UPDATE_ROOM"
    room: Room


@dataclass(frozen=True)
class DeleteRoom(Action):
    name: ClassVar[str] = "DELETE_ROOM"
    room_id: str


@dataclass(frozen=True)
class AddResident(Action):
    name: ClassVar[str] = "ADD_RESIDENT"
    resident: Resident


@dataclass(frozen=True)
class UpdateResident(Action):
    name: ClassVar[str] = "UPDATE_RESIDENT"
    resident: Resident


@dataclass(frozen=True)
class DeleteResident(Action):
    name: ClassVar[str] = "DELETE_RESIDENT"
    resident_id: str


@dataclass(frozen=True)
class AddReservation(Action):
    name: ClassVar[str] = "ADD_RESERVATION"
    reservation: Reservation
    resident: Resident | None = None


@dataclass(frozen=True)
class UpdateReservation(Action):
    name: ClassVar[str] = "UPDATE_RESERVATION"
    reservation: Reservation


@dataclass(frozen=True)
class DeleteReservation(Action):
    name: ClassVar[str] = "DELETE_RESERVATION"
    reservation_id: str


@dataclass(frozen=True)
class CheckInReservation(Action):
    name: ClassVar[str] = "CHECK_IN_RESERVATION"
    reservation_id: str
    at: str | None = None


@dataclass(frozen=True)
class AddPayment(Action):
    name: ClassVar[str] = "ADD_PAYMENT"
    payment: Payment


@dataclass(frozen=True)
class UpdatePayment(Action):
    name: ClassVar[str] = "UPDATE_PAYMENT"
    payment: Payment


@dataclass(frozen=True)
class DeletePayment(Action):
    name: ClassVar[str] = "DELETE_PAYMENT"
    payment_id: str


@dataclass(frozen=True)
class AddExpense(Action):
    name: ClassVar[str] = "ADD_EXPENSE"
    expense: Expense


@dataclass(frozen=True)
class UpdateExpense(Action):
    name: ClassVar[str] = "UPDATE_EXPENSE"
    expense: Expense


@dataclass(frozen=True)
class DeleteExpense(Action):
    name: ClassVar[str] = "DELETE_EXPENSE"
    expense_id: str


@dataclass(frozen=True)
class TopUpPettyCash(Action):
    name: ClassVar[str] = "TOP_UP_PETTY_CASH"
    amount: Decimal
    expense_id: str | None = None
    at: str | None = None


@dataclass(frozen=True)
class AddMaintenanceTask(Action):
    name: ClassVar[str] = "ADD_MAINTENANCE_TASK"
    task: MaintenanceTask


@dataclass(frozen=True)
class UpdateMaintenanceTask(Action):
    name: ClassVar[str] = "UPDATE_MAINTENANCE_TASK"
    task: MaintenanceTask


@dataclass(frozen=True)
class DeleteMaintenanceTask(Action):
    name: ClassVar[str] = "DELETE_MAINTENANCE_TASK"
    task_id: str


@dataclass(frozen=True)
class UpdateConfiguration(Action):
    name: ClassVar[str] = "UPDATE_CONFIGURATION"
    configuration: Configuration


@dataclass(frozen=True)
class UpdatePettyCash(Action):
    name: ClassVar[str] = "UPDATE_PETTY_CASH"
    amount: Decimal


@dataclass(frozen=True)
class SaveMonthlyRates(Action):
    name: ClassVar[str] = "SAVE_MONTHLY_RATES"
    month: str
    user_id: str


@dataclass(frozen=True)
class GenerateMonthlyPayments(Action):
    name: ClassVar[str] = "GENERATE_MONTHLY_PAYMENTS"
    at: str | None = None


@dataclass(frozen=True)
class LoadData(Action):
    """Wholesale replacement of the listed collections; ``None`` means "not included"."""

    name: ClassVar[str] = "LOAD_DATA"
    rooms: tuple[Room, ...] | None = None
    residents: tuple[Resident, ...] | None = None
    reservations: tuple[Reservation, ...] | None = None
    payments: tuple[Payment, ...] | None = None
    expenses: tuple[Expense, ...] | None = None
    maintenance_tasks: tuple[MaintenanceTask, ...] | None = None
    configuration: Configuration | None = None
    petty_cash: Decimal | None = None
    is_loading: bool | None = None
    is_connected: bool | None = None
    is_demo_mode: bool | None = None


@dataclass(frozen=True)
class SetLoading(Action):
    name: ClassVar[str] = "SET_LOADING"
    value: bool


@dataclass(frozen=True)
class SetConnectionStatus(Action):
    name: ClassVar[str] = "SET_CONNECTION_STATUS"
    value: bool


@dataclass(frozen=True)
class SetDemoMode(Action):
    name: ClassVar[str] = "SET_DEMO_MODE"
    value: bool


@dataclass(frozen=True)
class SetUser(Action):
    name: ClassVar[str] = "SET_USER"
    user: User | None


@dataclass(frozen=True)
class SelectResidentForDetails(Action):
    name: ClassVar[str] = "SET_SELECTED_RESIDENT_FOR_DETAILS"
    resident_id: str | None


ACTION_TYPES: dict[str, type[Action]] = {
    cls.name: cls
    for cls in (
        AddRoom,
        UpdateRoom,
        DeleteRoom,
        AddResident,
        UpdateResident,
        DeleteResident,
        AddReservation,
        UpdateReservation,
        DeleteReservation,
        CheckInReservation,
        AddPayment,
        UpdatePayment,
        DeletePayment,
        AddExpense,
        UpdateExpense,
        DeleteExpense,
        TopUpPettyCash,
        AddMaintenanceTask,
        UpdateMaintenanceTask,
        DeleteMaintenanceTask,
        UpdateConfiguration,
        UpdatePettyCash,
        SaveMonthlyRates,
        GenerateMonthlyPayments,
        LoadData,
        SetLoading,
        SetConnectionStatus,
        SetDemoMode,
        SetUser,
        SelectResidentForDetails,
    )
}
