from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from app.core.demo_data import SampleData, sample_data
from app.residence import rows
from app.residence.actions import LoadData, SetLoading
from app.residence.domain import (
    DEFAULT_PETTY_CASH,
    MONTHLY_HISTORY_LIMIT,
    AppState,
    default_configuration,
    with_general_income,
)
from app.residence.engine import ResidenceStore
from app.residence.gateway import GatewayResult, NullGateway, PersistenceGateway

logger = logging.getLogger(__name__)

LOAD_TABLES: tuple[str, ...] = (
    rows.RESIDENTS,
    rows.ROOMS,
    rows.RESERVATIONS,
    rows.PAYMENTS,
    rows.EXPENSES,
    rows.MAINTENANCE_TASKS,
    rows.CONFIGURATIONS,
    rows.MONTHLY_RATE_HISTORY,
)


class LoadError(Exception):
    pass


def sample_load(sample: SampleData) -> LoadData:
    return LoadData(
        rooms=sample.rooms,
        residents=sample.residents,
        reservations=sample.reservations,
        payments=sample.payments,
        expenses=sample.expenses,
        maintenance_tasks=sample.maintenance_tasks,
        configuration=sample.configuration,
        petty_cash=sample.petty_cash,
        is_loading=False,
        is_connected=False,
        is_demo_mode=True,
    )


def _safe_select(gateway: PersistenceGateway, table: str) -> GatewayResult:
    try:
        return gateway.select(table)
    except Exception as exc:
        logger.exception("Fallo la lectura de %s", table)
        return GatewayResult(error=str(exc))


def read_tables(gateway: PersistenceGateway) -> dict[str, list[dict[str, Any]]]:
    """Read every table in parallel; any failed read fails the whole load."""
    with ThreadPoolExecutor(max_workers=len(LOAD_TABLES), thread_name_prefix="residence-load") as pool:
        futures = {table: pool.submit(_safe_select, gateway, table) for table in LOAD_TABLES}
        results = {table: future.result() for table, future in futures.items()}

    failed = {table: result.error for table, result in results.items() if not result.ok}
    if failed:
        raise LoadError("; ".join(f"{table}: {error}" for table, error in sorted(failed.items())))
    return {table: list(result.data or []) for table, result in results.items()}


def live_load(tables: dict[str, list[dict[str, Any]]]) -> LoadData:
    history = tuple(
        sorted(
            (rows.history_from_row(row) for row in tables[rows.MONTHLY_RATE_HISTORY]),
            key=lambda entry: entry.month,
            reverse=True,
        )[:MONTHLY_HISTORY_LIMIT]
    )
    config_rows = tables[rows.CONFIGURATIONS]
    if config_rows:
        configuration, petty_cash = rows.configuration_from_row(config_rows[0], history)
    else:
        configuration = default_configuration()
        petty_cash = DEFAULT_PETTY_CASH

    return LoadData(
        rooms=tuple(rows.room_from_row(row) for row in tables[rows.ROOMS]),
        residents=with_general_income(tuple(rows.resident_from_row(row) for row in tables[rows.RESIDENTS])),
        reservations=tuple(rows.reservation_from_row(row) for row in tables[rows.RESERVATIONS]),
        payments=tuple(rows.payment_from_row(row) for row in tables[rows.PAYMENTS]),
        expenses=tuple(rows.expense_from_row(row) for row in tables[rows.EXPENSES]),
        maintenance_tasks=tuple(rows.task_from_row(row) for row in tables[rows.MAINTENANCE_TASKS]),
        configuration=configuration,
        petty_cash=petty_cash,
        is_loading=False,
        is_connected=True,
        is_demo_mode=False,
    )


def _fall_back(store: ResidenceStore, sample: SampleData | None) -> AppState:
    store.effects.use(NullGateway())
    return store.dispatch(sample_load(sample or sample_data()))


def load_all(store: ResidenceStore, gateway: PersistenceGateway | None = None, sample: SampleData | None = None) -> AppState:
    """Populate the store from the remote tables, or from sample data when that is not possible."""
    gateway = gateway or store.effects.gateway
    store.dispatch(SetLoading(True))

    if not gateway.is_live:
        logger.info("Persistencia no configurada; cargando datos de ejemplo")
        return _fall_back(store, sample)

    try:
        tables = read_tables(gateway)
        action = live_load(tables)
    except (LoadError, KeyError, ValueError, ArithmeticError) as exc:
        logger.warning("Error cargando datos, usando datos de ejemplo: %s", exc)
        return _fall_back(store, sample)

    store.effects.use(gateway)
    state = store.dispatch(action)
    logger.info(
        "Datos cargados: %d residentes, %d habitaciones, %d pagos",
        len(state.residents),
        len(state.rooms),
        len(state.payments),
    )
    return state
