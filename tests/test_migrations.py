"""Alembic migrations run on the app's async database URL."""
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

ROOT = Path(__file__).resolve().parent.parent


def test_upgrade_head_creates_tables(tmp_path, monkeypatch):
    db_file = tmp_path / "migrated.db"
    monkeypatch.setenv("EMOTRAIN_DATABASE_URL", f"sqlite+aiosqlite:///{db_file}")

    # no ini file: leaves the test run's logging alone
    config = Config()
    config.set_main_option("script_location", str(ROOT / "alembic"))
    command.upgrade(config, "head")

    engine = create_engine(f"sqlite:///{db_file}")
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        assert {"scenarios", "patients", "scenario_progress", "alembic_version"} <= tables
        uniques = inspector.get_unique_constraints("scenario_progress")
        assert [u["column_names"] for u in uniques] == [["patient_id", "scenario_id"]]
    finally:
        engine.dispose()
