from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from app.config import settings
from app.database import Base

ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "alembic"


@pytest.fixture
def migration_db(tmp_path, monkeypatch):
    """Empty file database that env.py resolves through settings."""
    path = tmp_path / "migrations.db"
    monkeypatch.setattr(settings, "database_url_override", f"sqlite+aiosqlite:///{path}")

    config = Config()
    config.set_main_option("script_location", str(ALEMBIC_DIR))

    engine = create_engine(f"sqlite:///{path}")
    yield config, engine
    engine.dispose()


def test_upgrade_creates_every_model_table(migration_db):
    config, engine = migration_db

    command.upgrade(config, "head")

    inspector = inspect(engine)
    assert set(inspector.get_table_names()) == set(Base.metadata.tables) | {"alembic_version"}
    for name, table in Base.metadata.tables.items():
        columns = {column["name"] for column in inspector.get_columns(name)}
        assert columns == set(table.columns.keys()), name


def test_upgrade_matches_model_constraints(migration_db):
    config, engine = migration_db

    command.upgrade(config, "head")

    inspector = inspect(engine)
    checks = {c["name"] for c in inspector.get_check_constraints("transactions")}
    assert "ck_transactions_single_target" in checks

    unique_columns = {
        tuple(c["column_names"]) for c in inspector.get_unique_constraints("vendor_payments")
    }
    unique_indexes = {
        tuple(i["column_names"]) for i in inspector.get_indexes("vendor_payments") if i["unique"]
    }
    assert ("order_id",) in unique_columns | unique_indexes
    assert ("reservation_id",) in unique_columns | unique_indexes

    indexed = {tuple(i["column_names"]) for i in inspector.get_indexes("reservations")}
    assert {("NUM_RES",), ("date",), ("status",)} <= indexed


def test_downgrade_drops_everything(migration_db):
    config, engine = migration_db
    command.upgrade(config, "head")

    command.downgrade(config, "base")

    assert inspect(engine).get_table_names() == ["alembic_version"]
