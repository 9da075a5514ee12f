"""
Test suite for database initialization and migrations.

Verifies that init_db creates the schema both through create_all and
through the Alembic migrations, and that the two agree.
"""

import pytest
from sqlalchemy import create_engine, inspect

from bestelsysteem.db import init_db
from bestelsysteem.domain import SystemRecord
from bestelsysteem.storage import SQLAlchemyStorage

EXPECTED_TABLES = {"system_settings", "product", "bar", "table", "bar_table_relation", "order"}


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'schema.db'}")
    yield engine
    engine.dispose()


def _columns(engine, table):
    return {col["name"] for col in inspect(engine).get_columns(table)}


class TestInitDBFallback:
    """init_db with use_alembic=False."""

    def test_creates_all_tables(self, engine):
        init_db(engine, use_alembic=False)

        assert EXPECTED_TABLES <= set(inspect(engine).get_table_names())
        assert {"id", "system_id", "table_id", "bar_id", "status", "drinks", "foods", "total_price", "created_at"} <= \
            _columns(engine, "order")

    def test_is_idempotent(self, engine):
        init_db(engine, use_alembic=False)
        init_db(engine, use_alembic=False)

        assert EXPECTED_TABLES <= set(inspect(engine).get_table_names())


class TestInitDBAlembic:
    """init_db with use_alembic=True runs the migrations to head."""

    def test_upgrade_creates_schema(self, engine):
        init_db(engine, use_alembic=True)

        tables = set(inspect(engine).get_table_names())
        assert EXPECTED_TABLES <= tables
        assert "alembic_version" in tables

    def test_migrated_schema_matches_models(self, engine, tmp_path):
        init_db(engine, use_alembic=True)
        reference = create_engine(f"sqlite:///{tmp_path / 'reference.db'}")
        try:
            init_db(reference, use_alembic=False)
            for table in EXPECTED_TABLES:
                assert _columns(engine, table) == _columns(reference, table), table
        finally:
            reference.dispose()

    def test_storage_works_on_migrated_database(self, tmp_path):
        storage = SQLAlchemyStorage(f"sqlite:///{tmp_path / 'migrated.db'}", use_alembic=True)
        try:
            with storage.transaction() as uow:
                system = uow.add_system(SystemRecord(None, "Feest", "u", "a", live=True))

            with storage.transaction() as uow:
                assert uow.get_live_system().id == system.id
        finally:
            storage.close()
