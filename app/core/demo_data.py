from __future__ import annotations

import math
from dataclasses import dataclass, replace
from decimal import Decimal

from app.residence.derivation import derive_rooms
from app.residence.domain import (
    DEFAULT_PETTY_CASH,
    GENERAL_INCOME_ID,
    BehaviorNote,
    Configuration,
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
    Resident,
    ResidentId,
    ResidentStatus,
    Room,
    RoomId,
    RoomType,
    TaskId,
    TaskPriority,
    TaskStatus,
    default_configuration,
    new_room,
    with_general_income,
)

DEMO_FIRST_NAMES: tuple[str, ...] = (
    "Sofia",
    "Mateo",
    "Valentina",
    "Santiago",
    "Camila",
    "Benjamin",
    "Lucia",
    "Joaquin",
    "Martina",
    "Tomas",
    "Isabella",
    "Nicolas",
    "Florencia",
    "Agustin",
    "Paula",
    "Diego",
    "Renata",
    "Facundo",
    "Julieta",
    "Gonzalo",
)

DEMO_LAST_NAMES: tuple[str, ...] = (
    "Fernandez",
    "Gonzalez",
    "Rodriguez",
    "Lopez",
    "Martinez",
    "Perez",
    "Gomez",
    "Silva",
    "Rojas",
    "Castro",
    "Vargas",
    "Morales",
    "Herrera",
    "Medina",
    "Acosta",
)

DEMO_NATIONALITIES: tuple[str, ...] = (
    "argentina",
    "bolivia",
    "brasil",
    "chile",
    "colombia",
    "ecuador",
    "paraguay",
    "peru",
    "uruguay",
    "venezuela",
)

DEMO_DAY = "2025-03-01T12:00:00+00:00"


def demo_resident_names(total: int) -> list[tuple[str, str]]:
    """Distinct (first, last) pairs for the sample roster, stable across runs.

    Name pairs repeat only after every first and last name has cycled, so
    ``total`` is capped at the least common multiple of both list lengths.
    """
    limit = math.lcm(len(DEMO_FIRST_NAMES), len(DEMO_LAST_NAMES))
    if not 0 <= total <= limit:
        raise ValueError(f"total must be between 0 and {limit}")
    return [
        (DEMO_FIRST_NAMES[idx % len(DEMO_FIRST_NAMES)], DEMO_LAST_NAMES[(idx * 7) % len(DEMO_LAST_NAMES)])
        for idx in range(total)
    ]


@dataclass(frozen=True)
class SampleData:
    rooms: tuple[Room, ...]
    residents: tuple[Resident, ...]
    reservations: tuple[Reservation, ...]
    payments: tuple[Payment, ...]
    expenses: tuple[Expense, ...]
    maintenance_tasks: tuple[MaintenanceTask, ...]
    configuration: Configuration
    petty_cash: Decimal


def _demo_rooms() -> tuple[Room, ...]:
    layout = (
        ("101", RoomType.INDIVIDUAL, Gender.MALE),
        ("102", RoomType.DOUBLE, Gender.MALE),
        ("103", RoomType.TRIPLE, Gender.MALE),
        ("104", RoomType.QUADRUPLE, Gender.MALE),
        ("201", RoomType.INDIVIDUAL, Gender.FEMALE),
        ("202", RoomType.DOUBLE, Gender.FEMALE),
        ("203", RoomType.TRIPLE, Gender.FEMALE),
        ("204", RoomType.QUINTUPLE, Gender.FEMALE),
    )
    rates = default_configuration(DEMO_DAY).room_rates
    return tuple(
        new_room(f"room-{number}", number, room_type, rates[room_type], gender)
        for number, room_type, gender in layout
    )


def _demo_residents(rooms: tuple[Room, ...]) -> tuple[Resident, ...]:
    # Bed plan: room id -> number of active residents.
    plan = {
        "room-101": 1,
        "room-102": 2,
        "room-103": 1,
        "room-104": 3,
        "room-201": 1,
        "room-202": 1,
        "room-203": 2,
        "room-204": 2,
    }
    names = demo_resident_names(sum(plan.values()) + 2)
    residents: list[Resident] = []
    idx = 0
    for room in rooms:
        for _ in range(plan.get(room.id, 0)):
            first_name, last_name = names[idx]
            residents.append(
                Resident(
                    id=ResidentId(f"res-{idx + 1:03d}"),
                    first_name=first_name,
                    last_name=last_name,
                    nationality=DEMO_NATIONALITIES[idx % len(DEMO_NATIONALITIES)],
                    email=f"{first_name.lower()}.{last_name.lower()}@correo.com",
                    phone=f"+54 11 5{idx:03d}-{1000 + idx * 37}",
                    emergency_contact=EmergencyContact(
                        name=f"Familia {last_name}",
                        phone=f"+54 11 4{idx:03d}-{2000 + idx * 41}",
                        relationship="Padre/Madre",
                    ),
                    room_id=room.id,
                    check_in_date=f"2025-0{1 + idx % 3}-1{idx % 9}",
                    status=ResidentStatus.ACTIVE,
                )
            )
            idx += 1

    residents[0] = residents[0].with_note(
        BehaviorNote(
            id="note-001",
            date="2025-02-20",
            type=NoteType.VERBAL,
            description="Ruidos fuera de horario",
            severity=NoteSeverity.LOW,
            created_by="Admin",
        )
    )

    first_name, last_name = names[idx]
    residents.append(
        Resident(
            id=ResidentId("res-former"),
            first_name=first_name,
            last_name=last_name,
            nationality="uruguay",
            room_id="",
            check_in_date="2024-03-01",
            check_out_date="2024-12-15",
            status=ResidentStatus.INACTIVE,
        )
    )
    first_name, last_name = names[idx + 1]
    residents.append(
        Resident(
            id=ResidentId("temp-demo-001"),
            first_name=first_name,
            last_name=last_name,
            nationality="peru",
            room_id="room-204",
            check_in_date="2025-04-01",
            status=ResidentStatus.PENDING,
        )
    )
    return with_general_income(tuple(residents))


def _demo_payments(residents: tuple[Resident, ...], configuration: Configuration, rooms: tuple[Room, ...]) -> tuple[Payment, ...]:
    room_types = {room.id: room.type for room in rooms}
    payments: list[Payment] = []
    for idx, resident in enumerate(r for r in residents if r.status == ResidentStatus.ACTIVE and r.room_id):
        amount = configuration.ars_rate_for(room_types[resident.room_id])
        payments.append(
            Payment(
                id=PaymentId(f"pay-feb-{resident.id}"),
                resident_id=resident.id,
                amount=amount,
                type=PaymentType.MONTHLY_RENT,
                method=PaymentMethod.TRANSFER if idx % 2 else PaymentMethod.CASH,
                date="2025-02-05T10:00:00+00:00",
                status=PaymentStatus.COMPLETED,
                receipt_number=f"REC-2025020{idx % 9}",
            )
        )
        if idx % 3 == 0:
            payments.append(
                Payment(
                    id=PaymentId(f"pay-mar-{resident.id}"),
                    resident_id=resident.id,
                    amount=amount,
                    type=PaymentType.MONTHLY_RENT,
                    date=DEMO_DAY,
                    status=PaymentStatus.PENDING,
                )
            )
    payments.append(
        Payment(
            id=PaymentId("matricula-demo-temp-demo-001"),
            resident_id=ResidentId("temp-demo-001"),
            amount=configuration.ars_rate_for(RoomType.QUINTUPLE),
            type=PaymentType.MATRICULA,
            date=DEMO_DAY,
            status=PaymentStatus.PENDING,
        )
    )
    payments.append(
        Payment(
            id=PaymentId("pay-general-001"),
            resident_id=GENERAL_INCOME_ID,
            amount=Decimal("35000"),
            type=PaymentType.OTHER,
            date="2025-02-15T16:00:00+00:00",
            status=PaymentStatus.COMPLETED,
            receipt_number="REC-20250215",
        )
    )
    return tuple(payments)


def _demo_expenses() -> tuple[Expense, ...]:
    return (
        Expense(
            id=ExpenseId("exp-001"),
            category="Alquiler",
            description="Alquiler del edificio - febrero",
            amount=Decimal("1800000"),
            date="2025-02-01T09:00:00+00:00",
            method=PaymentMethod.TRANSFER,
        ),
        Expense(
            id=ExpenseId("exp-002"),
            category="Luz",
            description="Factura de electricidad",
            amount=Decimal("145000"),
            date="2025-02-10T09:00:00+00:00",
            method=PaymentMethod.TRANSFER,
        ),
        Expense(
            id=ExpenseId("exp-003"),
            category="Compras Limpieza",
            description="Lavandina y detergente",
            amount=Decimal("12500"),
            date="2025-02-12T11:30:00+00:00",
            method=PaymentMethod.PETTY_CASH,
        ),
        Expense(
            id=ExpenseId("exp-004"),
            category="Mantenimiento",
            description="Cambio de cerradura habitacion 103",
            amount=Decimal("28000"),
            date="2025-02-18T15:00:00+00:00",
            method=PaymentMethod.CASH,
        ),
    )


def _demo_tasks() -> tuple[MaintenanceTask, ...]:
    return (
        MaintenanceTask(
            id=TaskId("task-001"),
            area="Baño 2",
            description="Pierde agua la canilla de la ducha",
            priority=TaskPriority.HIGH,
            status=TaskStatus.PENDING,
            assigned_date="2025-02-25T10:00:00+00:00",
        ),
        MaintenanceTask(
            id=TaskId("task-002"),
            area="Cocina 1",
            description="Revisar hornallas",
            priority=TaskPriority.MEDIUM,
            status=TaskStatus.IN_PROGRESS,
            assigned_date="2025-02-20T10:00:00+00:00",
            notes="Esperando al gasista",
        ),
        MaintenanceTask(
            id=TaskId("task-003"),
            area="Heladera 2",
            description="Limpieza general",
            priority=TaskPriority.LOW,
            status=TaskStatus.COMPLETED,
            assigned_date="2025-02-10T10:00:00+00:00",
            completed_date="2025-02-11T18:00:00+00:00",
        ),
    )


def sample_data() -> SampleData:
    configuration = default_configuration(DEMO_DAY)
    configuration = replace(
        configuration,
        monthly_history=(
            MonthlyRateHistory(
                id="history-demo-2025-02",
                month="2025-02",
                exchange_rate=configuration.exchange_rate,
                room_rates_usd=dict(configuration.room_rates),
                room_rates_ars=dict(configuration.room_rates_ars),
                created_date="2025-02-01T09:00:00+00:00",
                created_by="1",
            ),
        ),
    )
    residents = _demo_residents(_demo_rooms())
    rooms = derive_rooms(_demo_rooms(), residents)
    reservations = (
        Reservation(
            id=ReservationId("resv-demo-001"),
            resident_id=ResidentId("temp-demo-001"),
            room_id=RoomId("room-204"),
            start_date="2025-04-01",
            end_date="2025-12-15",
            matricula_amount=configuration.ars_rate_for(RoomType.QUINTUPLE),
        ),
    )
    return SampleData(
        rooms=rooms,
        residents=residents,
        reservations=reservations,
        payments=_demo_payments(residents, configuration, rooms),
        expenses=_demo_expenses(),
        maintenance_tasks=_demo_tasks(),
        configuration=configuration,
        petty_cash=DEFAULT_PETTY_CASH,
    )
