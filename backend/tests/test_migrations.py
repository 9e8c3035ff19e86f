"""Tests for the alembic migration history."""

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from app.core.config import settings
from app.core.database import Base

ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "app" / "alembic"


def test_upgrade_head_creates_model_schema(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "APP_DATABASE_DSN", f"sqlite:///{tmp_path / 'migrated.db'}")
    cfg = Config()
    cfg.set_main_option("script_location", str(ALEMBIC_DIR))

    command.upgrade(cfg, "head")

    engine = create_engine(settings.APP_DATABASE_DSN)
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names()) - {"alembic_version"}
        assert tables == set(Base.metadata.tables)
        for name, table in Base.metadata.tables.items():
            columns = {c["name"] for c in inspector.get_columns(name)}
            assert columns == set(table.columns.keys()), name
    finally:
        engine.dispose()


def test_downgrade_base_drops_everything(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "APP_DATABASE_DSN", f"sqlite:///{tmp_path / 'migrated.db'}")
    cfg = Config()
    cfg.set_main_option("script_location", str(ALEMBIC_DIR))

    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    engine = create_engine(settings.APP_DATABASE_DSN)
    try:
        assert set(inspect(engine).get_table_names()) == {"alembic_version"}
    finally:
        engine.dispose()
