"""Tests that the Alembic migration matches the ORM schema."""

import importlib.util

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect, text

from rain_feed.constants import MODULE_ROOT
from rain_feed.orm_models import Base

MIGRATION_PATH = MODULE_ROOT / "migrations" / "versions" / "001_initial_schema.py"


def load_migration():
    spec = importlib.util.spec_from_file_location("initial_schema", MIGRATION_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def run(engine, step):
    with engine.begin() as conn:
        context = MigrationContext.configure(conn)
        with Operations.context(context):
            step()


class TestInitialSchema:
    """Tests for 001_initial_schema."""

    def test_upgrade_matches_orm(self):
        migration = load_migration()
        migrated = create_engine("sqlite:///:memory:")
        reference = create_engine("sqlite:///:memory:")
        run(migrated, migration.upgrade)
        Base.metadata.create_all(reference)

        migrated_insp = inspect(migrated)
        reference_insp = inspect(reference)
        assert set(migrated_insp.get_table_names()) == set(reference_insp.get_table_names())

        for table in reference_insp.get_table_names():
            migrated_cols = {c["name"] for c in migrated_insp.get_columns(table)}
            reference_cols = {c["name"] for c in reference_insp.get_columns(table)}
            assert migrated_cols == reference_cols, table

            migrated_uniques = {tuple(u["column_names"]) for u in migrated_insp.get_unique_constraints(table)}
            reference_uniques = {tuple(u["column_names"]) for u in reference_insp.get_unique_constraints(table)}
            assert migrated_uniques == reference_uniques, table

            migrated_indexes = {i["name"] for i in migrated_insp.get_indexes(table)}
            reference_indexes = {i["name"] for i in reference_insp.get_indexes(table)}
            assert migrated_indexes == reference_indexes, table

    def test_ids_are_never_reused(self):
        migration = load_migration()
        engine = create_engine("sqlite:///:memory:")
        run(engine, migration.upgrade)

        with engine.connect() as conn:
            for table in ("articles", "chunks", "feed_items"):
                ddl = conn.execute(
                    text("SELECT sql FROM sqlite_master WHERE type = 'table' AND name = :name"),
                    {"name": table},
                ).scalar_one()
                assert "AUTOINCREMENT" in ddl, table

    def test_downgrade_drops_everything(self):
        migration = load_migration()
        engine = create_engine("sqlite:///:memory:")
        run(engine, migration.upgrade)
        run(engine, migration.downgrade)

        assert inspect(engine).get_table_names() == []
