from __future__ import annotations

import click
from flask import Flask

from app.core.config import Config, store_binds, store_database_uri, store_is_configured
from app.core.demo_data import sample_data
from app.core.extensions import db
from app.core.logging import configure_logging
from app.residence import rows
from app.residence.actions import GenerateMonthlyPayments
from app.residence.bootstrap import load_all
from app.residence.engine import ResidenceStore
from app.residence.gateway import (
    EffectRunner,
    admin_gateway,
    build_gateway,
    store_stats,
    store_status,
)
from app.residence.routes import residence_bp

STORE_EXTENSION = "residence"


def create_app(config_object: type[Config] | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.config["SQLALCHEMY_DATABASE_URI"] = store_database_uri(app.config)
    app.config["SQLALCHEMY_BINDS"] = store_binds(app.config)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))
    db.init_app(app)

    store = ResidenceStore(EffectRunner(build_gateway(app)))
    app.extensions[STORE_EXTENSION] = store

    app.register_blueprint(residence_bp)

    register_cli(app)
    if app.config.get("RESIDENCE_AUTOLOAD", True):
        load_all(store)
    return app


def get_store(app: Flask) -> ResidenceStore:
    return app.extensions[STORE_EXTENSION]


def register_cli(app: Flask) -> None:
    @app.cli.command("seed-store")
    @click.option("--reset", is_flag=True, help="Drop the store tables before seeding.")
    def seed_store(reset: bool) -> None:
        """Create the store tables and load the bundled sample data."""
        if not store_is_configured(app.config):
            click.echo("Store not configured: running in demo mode, nothing to seed.")
            return
        gateway = admin_gateway(app)
        engine = db.engines[gateway.bind_key]
        if reset:
            db.metadata.drop_all(bind=engine)
        db.metadata.create_all(bind=engine)

        sample = sample_data()
        batches = {
            rows.ROOMS: [rows.room_to_row(room) for room in sample.rooms],
            rows.RESIDENTS: [rows.resident_to_row(r) for r in sample.residents if not r.is_general_income],
            rows.RESERVATIONS: [rows.reservation_to_row(r) for r in sample.reservations],
            rows.PAYMENTS: [rows.payment_to_row(p) for p in sample.payments],
            rows.EXPENSES: [rows.expense_to_row(e) for e in sample.expenses],
            rows.MAINTENANCE_TASKS: [rows.task_to_row(t) for t in sample.maintenance_tasks],
            rows.CONFIGURATIONS: [rows.configuration_to_row(sample.configuration, sample.petty_cash)],
            rows.MONTHLY_RATE_HISTORY: [rows.history_to_row(h) for h in sample.configuration.monthly_history],
        }
        for table, batch in batches.items():
            result = gateway.upsert(table, batch)
            if not result.ok:
                raise click.ClickException(f"{table}: {result.error}")
            click.echo(f"{table}: {len(batch)} rows")

    @app.cli.command("generate-monthly-payments")
    @click.option("--at", type=str, default=None, help="ISO timestamp for the generated payments.")
    def generate_monthly_payments(at: str | None) -> None:
        """Create one pending monthly rent per active resident lacking one."""
        store = get_store(app)
        before = len(store.state.payments)
        state = store.dispatch(GenerateMonthlyPayments(at=at))
        store.effects.flush()
        click.echo(f"Generated {len(state.payments) - before} monthly payments.")

    @app.cli.command("store-status")
    def store_status_command() -> None:
        """Report the store connection mode and row counts."""
        gateway = get_store(app).effects.gateway
        status = store_status(gateway)
        click.echo(f"mode={status['mode']} connected={status['connected']} {status['details']}")
        if status.get("error"):
            click.echo(f"error={status['error']}")
        stats = store_stats(gateway)
        click.echo(f"residents={stats['residents']} rooms={stats['rooms']} payments={stats['payments']}")
