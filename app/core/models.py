from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import Table
from sqlalchemy.orm import Mapped, mapped_column

from app.core.extensions import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RoomRow(db.Model):
    __tablename__ = "rooms"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True)
    number: Mapped[str] = mapped_column(db.String(20), nullable=False)
    type: Mapped[str] = mapped_column(db.String(20), nullable=False)
    capacity: Mapped[int] = mapped_column(nullable=False)
    current_occupancy: Mapped[int] = mapped_column(nullable=False, default=0)
    status: Mapped[str] = mapped_column(db.String(20), nullable=False, default="available")
    monthly_rate_usd: Mapped[Decimal] = mapped_column(db.Numeric(12, 2), nullable=False, default=0)
    gender: Mapped[str | None] = mapped_column(db.String(10), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[str | None] = mapped_column(db.String(40), nullable=True)


class ResidentRow(db.Model):
    __tablename__ = "residents"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True)
    first_name: Mapped[str] = mapped_column(db.String(80), nullable=False)
    last_name: Mapped[str] = mapped_column(db.String(120), nullable=False, default="")
    nationality: Mapped[str] = mapped_column(db.String(40), nullable=False, default="")
    email: Mapped[str] = mapped_column(db.String(255), nullable=False, default="")
    phone: Mapped[str] = mapped_column(db.String(40), nullable=False, default="")
    emergency_contact_name: Mapped[str] = mapped_column(db.String(120), nullable=False, default="")
    emergency_contact_phone: Mapped[str] = mapped_column(db.String(40), nullable=False, default="")
    emergency_contact_relationship: Mapped[str] = mapped_column(db.String(60), nullable=False, default="")
    room_id: Mapped[str] = mapped_column(db.String(64), nullable=False, default="", index=True)
    check_in_date: Mapped[str] = mapped_column(db.String(40), nullable=False, default="")
    check_out_date: Mapped[str | None] = mapped_column(db.String(40), nullable=True)
    status: Mapped[str] = mapped_column(db.String(20), nullable=False, default="active")
    behavior_notes: Mapped[list[dict[str, Any]]] = mapped_column(db.JSON, nullable=False, default=list)
    documents: Mapped[list[dict[str, Any]]] = mapped_column(db.JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[str | None] = mapped_column(db.String(40), nullable=True)


class ReservationRow(db.Model):
    __tablename__ = "reservations"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True)
    resident_id: Mapped[str] = mapped_column(db.String(64), nullable=False, index=True)
    room_id: Mapped[str] = mapped_column(db.String(64), nullable=False, index=True)
    start_date: Mapped[str] = mapped_column(db.String(40), nullable=False)
    end_date: Mapped[str] = mapped_column(db.String(40), nullable=False, default="")
    status: Mapped[str] = mapped_column(db.String(20), nullable=False, default="pending")
    matricula_amount: Mapped[Decimal] = mapped_column(db.Numeric(14, 2), nullable=False, default=0)
    discount_type: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    discount_value: Mapped[Decimal | None] = mapped_column(db.Numeric(14, 2), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[str | None] = mapped_column(db.String(40), nullable=True)


class PaymentRow(db.Model):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(db.String(96), primary_key=True)
    resident_id: Mapped[str] = mapped_column(db.String(64), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(db.Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(db.String(3), nullable=False, default="ARS")
    method: Mapped[str] = mapped_column(db.String(20), nullable=False, default="cash")
    date: Mapped[str] = mapped_column(db.String(40), nullable=False)
    type: Mapped[str] = mapped_column(db.String(20), nullable=False)
    status: Mapped[str] = mapped_column(db.String(20), nullable=False, default="pending")
    receipt_number: Mapped[str | None] = mapped_column(db.String(40), nullable=True)
    is_partial_payment: Mapped[bool] = mapped_column(nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[str | None] = mapped_column(db.String(40), nullable=True)


class ExpenseRow(db.Model):
    __tablename__ = "expenses"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True)
    category: Mapped[str] = mapped_column(db.String(80), nullable=False)
    description: Mapped[str] = mapped_column(db.String(255), nullable=False, default="")
    amount: Mapped[Decimal] = mapped_column(db.Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(db.String(3), nullable=False, default="ARS")
    method: Mapped[str] = mapped_column(db.String(20), nullable=False, default="cash")
    date: Mapped[str] = mapped_column(db.String(40), nullable=False)
    receipt: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[str | None] = mapped_column(db.String(40), nullable=True)


class MaintenanceTaskRow(db.Model):
    __tablename__ = "maintenance_tasks"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True)
    area: Mapped[str] = mapped_column(db.String(80), nullable=False)
    description: Mapped[str] = mapped_column(db.String(255), nullable=False)
    priority: Mapped[str] = mapped_column(db.String(20), nullable=False, default="medium")
    status: Mapped[str] = mapped_column(db.String(20), nullable=False, default="pending")
    assigned_date: Mapped[str] = mapped_column(db.String(40), nullable=False)
    completed_date: Mapped[str | None] = mapped_column(db.String(40), nullable=True)
    photos: Mapped[list[str]] = mapped_column(db.JSON, nullable=False, default=list)
    notes: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[str | None] = mapped_column(db.String(40), nullable=True)


class ConfigurationRow(db.Model):
    __tablename__ = "configurations"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True)
    exchange_rate: Mapped[Decimal] = mapped_column(db.Numeric(14, 4), nullable=False)
    last_updated: Mapped[str] = mapped_column(db.String(40), nullable=False)
    room_rates_usd: Mapped[dict[str, float]] = mapped_column(db.JSON, nullable=False, default=dict)
    room_rates_ars: Mapped[dict[str, float]] = mapped_column(db.JSON, nullable=False, default=dict)
    payment_methods: Mapped[list[str]] = mapped_column(db.JSON, nullable=False, default=list)
    expense_categories: Mapped[list[str]] = mapped_column(db.JSON, nullable=False, default=list)
    maintenance_areas: Mapped[list[str]] = mapped_column(db.JSON, nullable=False, default=list)
    petty_cash: Mapped[Decimal] = mapped_column(db.Numeric(14, 2), nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[str | None] = mapped_column(db.String(40), nullable=True)


class MonthlyRateHistoryRow(db.Model):
    __tablename__ = "monthly_rate_history"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True)
    month: Mapped[str] = mapped_column(db.String(7), unique=True, nullable=False)
    exchange_rate: Mapped[Decimal] = mapped_column(db.Numeric(14, 4), nullable=False)
    room_rates_usd: Mapped[dict[str, float]] = mapped_column(db.JSON, nullable=False, default=dict)
    room_rates_ars: Mapped[dict[str, float]] = mapped_column(db.JSON, nullable=False, default=dict)
    created_date: Mapped[str] = mapped_column(db.String(40), nullable=False)
    created_by: Mapped[str] = mapped_column(db.String(64), nullable=False, default="")


STORE_TABLES: dict[str, Table] = {
    model.__tablename__: model.__table__
    for model in (
        ResidentRow,
        RoomRow,
        ReservationRow,
        PaymentRow,
        ExpenseRow,
        MaintenanceTaskRow,
        ConfigurationRow,
        MonthlyRateHistoryRow,
    )
}
