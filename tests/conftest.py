from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app, get_store
from app.core.config import DEMO_ANON_KEY, DEMO_SERVICE_ROLE_KEY, DEMO_STORE_URL, Config
from app.core.extensions import db
from app.residence.derivation import derive_rooms
from app.residence.domain import (
    AppState,
    Gender,
    Resident,
    ResidentId,
    ResidentStatus,
    RoomType,
    default_configuration,
    new_room,
    with_general_income,
)
from app.residence.engine import ResidenceStore
from app.residence.gateway import EffectRunner, GatewayResult, PersistenceGateway

NOW = "2025-03-10T12:00:00+00:00"


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    STORE_URL = DEMO_STORE_URL
    STORE_ANON_KEY = DEMO_ANON_KEY
    STORE_SERVICE_ROLE_KEY = DEMO_SERVICE_ROLE_KEY
    RESIDENCE_AUTOLOAD = False


def live_config(tmp_path: Path) -> type[TestConfig]:
    class LiveTestConfig(TestConfig):
        STORE_URL = f"sqlite:///{tmp_path / 'store.db'}"
        STORE_ANON_KEY = "test-anon-key"

    return LiveTestConfig


class RecordingGateway(PersistenceGateway):
    """Live-looking gateway that records calls instead of performing I/O."""

    is_live = True
    mode = "production"

    def __init__(self, tables: dict[str, list[dict]] | None = None, failing: set[str] | None = None) -> None:
        self.calls: list[tuple] = []
        self.tables = tables or {}
        self.failing = failing or set()

    def _result(self, table: str, data=None) -> GatewayResult:
        if table in self.failing:
            return GatewayResult(error=f"relation {table} does not exist")
        return GatewayResult(data=data)

    def insert(self, table, rows):
        rows = list(rows)
        self.calls.append(("insert", table, rows))
        return self._result(table, len(rows))

    def update(self, table, patch, **filters):
        self.calls.append(("update", table, patch, filters))
        return self._result(table, 1)

    def delete(self, table, **filters):
        self.calls.append(("delete", table, filters))
        return self._result(table, 1)

    def upsert(self, table, rows, on_conflict="id"):
        rows = list(rows)
        self.calls.append(("upsert", table, rows, on_conflict))
        return self._result(table, len(rows))

    def select(self, table, limit=None):
        return self._result(table, list(self.tables.get(table, [])))

    def count(self, table):
        return self._result(table, len(self.tables.get(table, [])))


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
    get_store(app).effects.shutdown()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def live_app(tmp_path):
    app = create_app(live_config(tmp_path))
    with app.app_context():
        db.create_all()
    yield app
    get_store(app).effects.shutdown()
    with app.app_context():
        db.drop_all()


@pytest.fixture
def residence() -> AppState:
    """Two rooms, three residents: two active in the double, one inactive."""
    rooms = (
        new_room("r1", "101", RoomType.DOUBLE, 190, Gender.MALE),
        new_room("r2", "102", RoomType.INDIVIDUAL, 245, Gender.FEMALE),
    )
    residents = (
        Resident(id=ResidentId("a"), first_name="Ana", room_id="r1", status=ResidentStatus.ACTIVE),
        Resident(id=ResidentId("b"), first_name="Bruno", room_id="r1", status=ResidentStatus.ACTIVE),
        Resident(id=ResidentId("c"), first_name="Carla", room_id="r2", status=ResidentStatus.INACTIVE),
    )
    residents = with_general_income(residents)
    return AppState(
        configuration=default_configuration(NOW),
        rooms=derive_rooms(rooms, residents),
        residents=residents,
        petty_cash=Decimal("50000"),
        is_loading=False,
    )


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def store(residence, gateway):
    store = ResidenceStore(EffectRunner(gateway), state=residence)
    yield store
    store.effects.shutdown()
