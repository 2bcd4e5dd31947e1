from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import NewType

RoomId = NewType("RoomId", str)
ResidentId = NewType("ResidentId", str)
ReservationId = NewType("ReservationId", str)
PaymentId = NewType("PaymentId", str)
ExpenseId = NewType("ExpenseId", str)
TaskId = NewType("TaskId", str)

# Non-resident cash flow is booked against this resident; it is never
# persisted remotely and never deleted.
GENERAL_INCOME_ID = ResidentId("general-income")

MONTHLY_HISTORY_LIMIT = 24
DEFAULT_PETTY_CASH = Decimal("50000")
PETTY_CASH_CATEGORY = "Caja Chica"


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def round_ars(value: Decimal | int | float) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


class RoomType(str, Enum):
    INDIVIDUAL = "individual"
    DOUBLE = "double"
    TRIPLE = "triple"
    QUADRUPLE = "quadruple"
    QUINTUPLE = "quintuple"


ROOM_CAPACITY: dict[RoomType, int] = {
    RoomType.INDIVIDUAL: 1,
    RoomType.DOUBLE: 2,
    RoomType.TRIPLE: 3,
    RoomType.QUADRUPLE: 4,
    RoomType.QUINTUPLE: 5,
}


class RoomStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class ResidentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Currency(str, Enum):
    USD = "USD"
    ARS = "ARS"


class PaymentMethod(str, Enum):
    CASH = "cash"
    TRANSFER = "transfer"
    CARD = "card"
    CREDIT_CARD = "credit_card"
    PETTY_CASH = "petty_cash"


class PaymentType(str, Enum):
    MONTHLY_RENT = "monthly_rent"
    MATRICULA = "matricula"
    DEPOSIT = "deposit"
    UTILITIES = "utilities"
    OTHER = "other"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class NoteType(str, Enum):
    VERBAL = "verbal"
    WRITTEN = "written"


class NoteSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UserRole(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"


RoomRates = dict[RoomType, Decimal]


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
    role: UserRole = UserRole.ADMIN


@dataclass(frozen=True)
class Room:
    id: RoomId
    number: str
    type: RoomType
    capacity: int
    monthly_rate: Decimal = Decimal("0")
    gender: Gender = Gender.MALE
    current_occupancy: int = 0
    status: RoomStatus = RoomStatus.AVAILABLE

    @property
    def available_beds(self) -> int:
        return max(self.capacity - self.current_occupancy, 0)

    @property
    def is_full(self) -> bool:
        return self.current_occupancy >= self.capacity


def new_room(
    room_id: str,
    number: str,
    room_type: RoomType,
    monthly_rate: Decimal | int = 0,
    gender: Gender = Gender.MALE,
) -> Room:
    return Room(
        id=RoomId(room_id),
        number=number,
        type=room_type,
        capacity=ROOM_CAPACITY[room_type],
        monthly_rate=Decimal(monthly_rate),
        gender=gender,
    )


@dataclass(frozen=True)
class EmergencyContact:
    name: str = ""
    phone: str = ""
    relationship: str = ""


@dataclass(frozen=True)
class BehaviorNote:
    id: str
    date: str
    type: NoteType
    description: str
    severity: NoteSeverity
    created_by: str


@dataclass(frozen=True)
class Document:
    id: str
    name: str
    type: str
    url: str
    upload_date: str


@dataclass(frozen=True)
class Resident:
    id: ResidentId
    first_name: str
    last_name: str = ""
    nationality: str = ""
    email: str = ""
    phone: str = ""
    emergency_contact: EmergencyContact = field(default_factory=EmergencyContact)
    room_id: str = ""
    check_in_date: str = ""
    check_out_date: str | None = None
    status: ResidentStatus = ResidentStatus.ACTIVE
    behavior_notes: tuple[BehaviorNote, ...] = ()
    documents: tuple[Document, ...] = ()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_general_income(self) -> bool:
        return self.id == GENERAL_INCOME_ID

    def with_note(self, note: BehaviorNote) -> Resident:
        return replace(self, behavior_notes=self.behavior_notes + (note,))

    def with_document(self, document: Document) -> Resident:
        return replace(self, documents=self.documents + (document,))


def general_income_resident() -> Resident:
    return Resident(id=GENERAL_INCOME_ID, first_name="Ingresos", last_name="Generales")


def with_general_income(residents: tuple[Resident, ...]) -> tuple[Resident, ...]:
    if any(r.is_general_income for r in residents):
        return residents
    return residents + (general_income_resident(),)


@dataclass(frozen=True)
class Discount:
    type: DiscountType
    value: Decimal


@dataclass(frozen=True)
class Reservation:
    id: ReservationId
    resident_id: ResidentId
    room_id: RoomId
    start_date: str
    end_date: str = ""
    status: ReservationStatus = ReservationStatus.PENDING
    matricula_amount: Decimal = Decimal("0")
    discount: Discount | None = None
    cancellation_reason: str | None = None


@dataclass(frozen=True)
class Payment:
    id: PaymentId
    resident_id: ResidentId
    amount: Decimal
    type: PaymentType
    currency: Currency = Currency.ARS
    method: PaymentMethod = PaymentMethod.CASH
    date: str = ""
    status: PaymentStatus = PaymentStatus.PENDING
    receipt_number: str | None = None
    is_partial_payment: bool = False

    @property
    def is_pending(self) -> bool:
        return self.status == PaymentStatus.PENDING


@dataclass(frozen=True)
class Expense:
    id: ExpenseId
    category: str
    description: str
    amount: Decimal
    currency: Currency = Currency.ARS
    date: str = ""
    method: PaymentMethod = PaymentMethod.CASH
    receipt: str | None = None

    @property
    def petty_cash_effect(self) -> Decimal:
        # Positive amounts are outflows; negative amounts are top-ups.
        if self.method != PaymentMethod.PETTY_CASH:
            return Decimal("0")
        return -self.amount


@dataclass(frozen=True)
class MaintenanceTask:
    id: TaskId
    area: str
    description: str
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    assigned_date: str = ""
    completed_date: str | None = None
    photos: tuple[str, ...] = ()
    notes: str | None = None


@dataclass(frozen=True)
class MonthlyRateHistory:
    id: str
    month: str
    exchange_rate: Decimal
    room_rates_usd: RoomRates
    room_rates_ars: RoomRates
    created_date: str
    created_by: str


@dataclass(frozen=True)
class Configuration:
    id: str
    exchange_rate: Decimal
    last_updated: str
    room_rates: RoomRates
    room_rates_ars: RoomRates
    payment_methods: tuple[str, ...] = ("cash", "transfer")
    expense_categories: tuple[str, ...] = ()
    maintenance_areas: tuple[str, ...] = ()
    monthly_history: tuple[MonthlyRateHistory, ...] = ()

    def ars_rate_for(self, room_type: RoomType) -> Decimal:
        return self.room_rates_ars.get(room_type, Decimal("0"))


DEFAULT_CONFIGURATION_ID = "default-config-id"
DEFAULT_EXCHANGE_RATE = Decimal("1300")
DEFAULT_ROOM_RATES_USD: RoomRates = {
    RoomType.INDIVIDUAL: Decimal("245"),
    RoomType.DOUBLE: Decimal("190"),
    RoomType.TRIPLE: Decimal("165"),
    RoomType.QUADRUPLE: Decimal("150"),
    RoomType.QUINTUPLE: Decimal("135"),
}
DEFAULT_EXPENSE_CATEGORIES: tuple[str, ...] = (
    "Alquiler",
    "Aysa",
    "Luz",
    "ABL",
    "Wifi",
    "Seguro",
    "Compras Limpieza",
    "Meli",
    "Eduardo",
    "Honorarios Cont",
    "Mantenimiento Edu",
    "IIBB",
    "Mantenimiento",
    "Monotributo",
    "Publicidad",
    "Serv. Emergencias",
    "Fumig. y Limp. Tanques",
    "Inversión/Mejora",
)
DEFAULT_MAINTENANCE_AREAS: tuple[str, ...] = (
    "Habitación",
    "Sala de Estar",
    "Escalera principal",
    "Escalera Terraza",
    "Pasillo",
    "Oficina",
    "Hall",
    "Cocina 1",
    "Cocina 2",
    "Cocina 3",
    "Baño 1",
    "Baño 2",
    "Baño 3",
    "Baño 4",
    "Baño 5",
    "Heladera 1",
    "Heladera 2",
    "Heladera 3",
    "Heladera 4",
)


def ars_rates(room_rates: RoomRates, exchange_rate: Decimal) -> RoomRates:
    return {room_type: round_ars(rate * exchange_rate) for room_type, rate in room_rates.items()}


def default_configuration(now: str | None = None) -> Configuration:
    return Configuration(
        id=DEFAULT_CONFIGURATION_ID,
        exchange_rate=DEFAULT_EXCHANGE_RATE,
        last_updated=now or utcnow_iso(),
        room_rates=dict(DEFAULT_ROOM_RATES_USD),
        room_rates_ars=ars_rates(DEFAULT_ROOM_RATES_USD, DEFAULT_EXCHANGE_RATE),
        expense_categories=DEFAULT_EXPENSE_CATEGORIES,
        maintenance_areas=DEFAULT_MAINTENANCE_AREAS,
    )


def with_exchange_rate(configuration: Configuration, rate: Decimal, now: str | None = None) -> Configuration:
    rate = Decimal(rate)
    if rate <= 0:
        raise ValueError("La tasa de cambio debe ser positiva")
    return replace(
        configuration,
        exchange_rate=rate,
        room_rates_ars=ars_rates(configuration.room_rates, rate),
        last_updated=now or utcnow_iso(),
    )


@dataclass(frozen=True)
class AppState:
    configuration: Configuration
    user: User | None = None
    rooms: tuple[Room, ...] = ()
    residents: tuple[Resident, ...] = ()
    reservations: tuple[Reservation, ...] = ()
    payments: tuple[Payment, ...] = ()
    expenses: tuple[Expense, ...] = ()
    maintenance_tasks: tuple[MaintenanceTask, ...] = ()
    petty_cash: Decimal = DEFAULT_PETTY_CASH
    selected_resident_id: str | None = None
    is_loading: bool = True
    is_connected: bool = False
    is_demo_mode: bool = True

    def room(self, room_id: str) -> Room | None:
        return next((room for room in self.rooms if room.id == room_id), None)

    def resident(self, resident_id: str) -> Resident | None:
        return next((resident for resident in self.residents if resident.id == resident_id), None)

    def reservation(self, reservation_id: str) -> Reservation | None:
        return next((r for r in self.reservations if r.id == reservation_id), None)

    def payment(self, payment_id: str) -> Payment | None:
        return next((p for p in self.payments if p.id == payment_id), None)

    def expense(self, expense_id: str) -> Expense | None:
        return next((e for e in self.expenses if e.id == expense_id), None)

    def maintenance_task(self, task_id: str) -> MaintenanceTask | None:
        return next((t for t in self.maintenance_tasks if t.id == task_id), None)


DEFAULT_USER = User(id="1", name="Admin", email="admin@residencia.com", role=UserRole.ADMIN)


def initial_state() -> AppState:
    return AppState(configuration=default_configuration(), user=DEFAULT_USER)
