from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from flask import Flask
from sqlalchemy import Table, delete, func, insert, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import service_role_is_configured, store_is_configured
from app.core.extensions import db
from app.core.models import STORE_TABLES
from app.residence.rows import Row

logger = logging.getLogger(__name__)


class OpKind(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    UPSERT = "upsert"


@dataclass(frozen=True)
class PersistenceOp:
    kind: OpKind
    table: str
    row: Row | None = None
    filters: Mapping[str, Any] = field(default_factory=dict)
    on_conflict: str = "id"
    label: str = ""


def insert_op(table: str, row: Row, label: str) -> PersistenceOp:
    return PersistenceOp(OpKind.INSERT, table, row=row, label=label)


def update_op(table: str, row_id: str, patch: Row, label: str) -> PersistenceOp:
    return PersistenceOp(OpKind.UPDATE, table, row=patch, filters={"id": row_id}, label=label)


def delete_op(table: str, label: str, **filters: Any) -> PersistenceOp:
    return PersistenceOp(OpKind.DELETE, table, filters=filters, label=label)


def upsert_op(table: str, row: Row, label: str, on_conflict: str = "id") -> PersistenceOp:
    return PersistenceOp(OpKind.UPSERT, table, row=row, on_conflict=on_conflict, label=label)


@dataclass(frozen=True)
class GatewayResult:
    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PersistenceGateway:
    is_live = False
    mode = "demo"

    def insert(self, table: str, rows: Iterable[Row]) -> GatewayResult:
        raise NotImplementedError

    def update(self, table: str, patch: Row, **filters: Any) -> GatewayResult:
        raise NotImplementedError

    def delete(self, table: str, **filters: Any) -> GatewayResult:
        raise NotImplementedError

    def upsert(self, table: str, rows: Iterable[Row], on_conflict: str = "id") -> GatewayResult:
        raise NotImplementedError

    def select(self, table: str, limit: int | None = None) -> GatewayResult:
        raise NotImplementedError

    def count(self, table: str) -> GatewayResult:
        raise NotImplementedError

    def execute(self, op: PersistenceOp) -> GatewayResult:
        if op.kind == OpKind.INSERT:
            return self.insert(op.table, [op.row or {}])
        if op.kind == OpKind.UPDATE:
            return self.update(op.table, op.row or {}, **op.filters)
        if op.kind == OpKind.DELETE:
            return self.delete(op.table, **op.filters)
        if op.kind == OpKind.UPSERT:
            return self.upsert(op.table, [op.row or {}], on_conflict=op.on_conflict)
        return GatewayResult(error=f"Operacion desconocida: {op.kind}")


class NullGateway(PersistenceGateway):
    """Accepts every call and performs no I/O."""

    def insert(self, table: str, rows: Iterable[Row]) -> GatewayResult:
        return GatewayResult()

    def update(self, table: str, patch: Row, **filters: Any) -> GatewayResult:
        return GatewayResult()

    def delete(self, table: str, **filters: Any) -> GatewayResult:
        return GatewayResult()

    def upsert(self, table: str, rows: Iterable[Row], on_conflict: str = "id") -> GatewayResult:
        return GatewayResult()

    def select(self, table: str, limit: int | None = None) -> GatewayResult:
        return GatewayResult(data=[])

    def count(self, table: str) -> GatewayResult:
        return GatewayResult(data=0)


class LiveGateway(PersistenceGateway):
    is_live = True
    mode = "production"

    def __init__(self, app: Flask, bind_key: str | None = None) -> None:
        self._app = app
        self._bind_key = bind_key

    @property
    def bind_key(self) -> str | None:
        return self._bind_key

    def _engine(self) -> Engine:
        return db.engines[self._bind_key]

    def _table(self, name: str) -> Table:
        table = STORE_TABLES.get(name)
        if table is None:
            raise SQLAlchemyError(f"Tabla desconocida: {name}")
        return table

    def _run(self, name: str, work) -> GatewayResult:
        with self._app.app_context():
            try:
                table = self._table(name)
                with self._engine().begin() as conn:
                    return GatewayResult(data=work(conn, table))
            except SQLAlchemyError as exc:
                return GatewayResult(error=str(exc))

    def insert(self, table: str, rows: Iterable[Row]) -> GatewayResult:
        payload = [dict(row) for row in rows]

        def work(conn: Connection, tbl: Table) -> int:
            conn.execute(insert(tbl), payload)
            return len(payload)

        return self._run(table, work)

    def update(self, table: str, patch: Row, **filters: Any) -> GatewayResult:
        def work(conn: Connection, tbl: Table) -> int:
            stmt = update(tbl).values(**patch)
            for column, value in filters.items():
                stmt = stmt.where(tbl.c[column] == value)
            return conn.execute(stmt).rowcount

        return self._run(table, work)

    def delete(self, table: str, **filters: Any) -> GatewayResult:
        def work(conn: Connection, tbl: Table) -> int:
            stmt = delete(tbl)
            for column, value in filters.items():
                stmt = stmt.where(tbl.c[column] == value)
            return conn.execute(stmt).rowcount

        return self._run(table, work)

    def upsert(self, table: str, rows: Iterable[Row], on_conflict: str = "id") -> GatewayResult:
        payload = [dict(row) for row in rows]

        def work(conn: Connection, tbl: Table) -> int:
            key = tbl.c[on_conflict]
            for row in payload:
                existing = conn.execute(select(key).where(key == row[on_conflict])).first()
                if existing is None:
                    conn.execute(insert(tbl).values(**row))
                    continue
                # The stored row keeps its own identifier on conflict.
                values = {k: v for k, v in row.items() if k not in {"id", on_conflict}}
                if values:
                    conn.execute(update(tbl).where(key == row[on_conflict]).values(**values))
            return len(payload)

        return self._run(table, work)

    def select(self, table: str, limit: int | None = None) -> GatewayResult:
        def work(conn: Connection, tbl: Table) -> list[Row]:
            stmt = select(tbl)
            if limit is not None:
                stmt = stmt.limit(limit)
            return [dict(row) for row in conn.execute(stmt).mappings()]

        return self._run(table, work)

    def count(self, table: str) -> GatewayResult:
        def work(conn: Connection, tbl: Table) -> int:
            return int(conn.execute(select(func.count()).select_from(tbl)).scalar_one())

        return self._run(table, work)


def build_gateway(app: Flask) -> PersistenceGateway:
    if store_is_configured(app.config):
        return LiveGateway(app)
    return NullGateway()


def admin_gateway(app: Flask) -> LiveGateway:
    bind_key = "admin" if service_role_is_configured(app.config) else None
    return LiveGateway(app, bind_key=bind_key)


class EffectRunner:
    """Runs outbox operations against the gateway without blocking dispatch.

    A single worker executes operations in submission order. Failures are
    logged and never retried.
    """

    def __init__(self, gateway: PersistenceGateway, executor: ThreadPoolExecutor | None = None) -> None:
        self._gateway = gateway
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="residence-effects"
        )
        self._lock = threading.Lock()

    @property
    def gateway(self) -> PersistenceGateway:
        return self._gateway

    def use(self, gateway: PersistenceGateway) -> None:
        with self._lock:
            self._gateway = gateway

    def submit(self, outbox: Iterable[PersistenceOp]) -> None:
        with self._lock:
            gateway = self._gateway
            for op in outbox:
                self._executor.submit(self._run, gateway, op)

    def flush(self, timeout: float | None = None) -> None:
        self._executor.submit(lambda: None).result(timeout=timeout)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    @staticmethod
    def _run(gateway: PersistenceGateway, op: PersistenceOp) -> None:
        try:
            result = gateway.execute(op)
        except Exception:
            logger.exception("Fallo inesperado %s (%s en %s)", op.label, op.kind.value, op.table)
            return
        if not result.ok:
            logger.error("Error %s (%s en %s): %s", op.label, op.kind.value, op.table, result.error)


def store_status(gateway: PersistenceGateway) -> dict[str, Any]:
    if not gateway.is_live:
        return {
            "connected": False,
            "mode": "demo",
            "details": "Funcionando en modo demo con datos de ejemplo",
        }
    result = gateway.select("configurations", limit=1)
    if result.ok:
        return {"connected": True, "mode": "production", "details": "Conectado correctamente a la base de datos"}
    error = result.error or ""
    if "no such table" in error or "does not exist" in error:
        details = "Las credenciales son correctas pero las tablas de la base de datos no existen."
        error = "Tablas no encontradas"
    else:
        details = "Error al conectar con la base de datos. Verifica tus credenciales."
    return {"connected": False, "mode": "production", "error": error, "details": details}


def store_stats(gateway: PersistenceGateway) -> dict[str, Any]:
    if not gateway.is_live:
        return {"residents": 0, "rooms": 0, "payments": 0, "mode": "demo"}
    counts = {table: gateway.count(table) for table in ("residents", "rooms", "payments")}
    if any(not result.ok for result in counts.values()):
        return {"residents": 0, "rooms": 0, "payments": 0, "mode": "error"}
    return {**{table: result.data for table, result in counts.items()}, "mode": "production"}
