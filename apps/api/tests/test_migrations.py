"""Tests for the Alembic migration chain."""

import pytest
from sqlalchemy import create_engine, inspect

import kindworld.db.models  # noqa: F401
from alembic import command
from kindworld.core import migrations
from kindworld.db.base import Base

HEAD = "0001_verification_baseline"


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+pysqlite:///{tmp_path / 'kindworld.db'}"


def _inspect(database_url):
    engine = create_engine(database_url)
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        columns = {t: {c["name"] for c in inspector.get_columns(t)} for t in tables}
        indexes = {t: {i["name"]: i for i in inspector.get_indexes(t)} for t in tables}
    finally:
        engine.dispose()
    return tables, columns, indexes


def test_status_of_unmigrated_database(database_url):
    status = migrations.get_migration_status(database_url)

    assert status.current_heads == ()
    assert status.head_revisions == (HEAD,)
    assert status.is_up_to_date is False


def test_upgrade_creates_schema_matching_models(database_url):
    status = migrations.upgrade_to_head(database_url)

    assert status.is_up_to_date is True
    assert status.current_heads == (HEAD,)

    tables, columns, indexes = _inspect(database_url)
    assert tables - {migrations.ALEMBIC_VERSION_TABLE} == set(Base.metadata.tables)
    for name, table in Base.metadata.tables.items():
        assert columns[name] == {c.name for c in table.columns}, name
        assert set(indexes[name]) == {i.name for i in table.indexes}, name


def test_upgrade_carries_one_pending_request_index(database_url):
    migrations.upgrade_to_head(database_url)

    _tables, _columns, indexes = _inspect(database_url)
    active = indexes["verification_requests"]["uq_verification_requests_active_org"]
    assert bool(active["unique"]) is True
    assert active["column_names"] == ["organization_id"]


def test_upgrade_is_idempotent(database_url):
    migrations.upgrade_to_head(database_url)

    status = migrations.upgrade_to_head(database_url)

    assert status.current_heads == (HEAD,)


def test_downgrade_to_base_drops_all_tables(database_url):
    migrations.upgrade_to_head(database_url)

    command.downgrade(migrations.get_alembic_config(database_url), "base")

    tables, _columns, _indexes = _inspect(database_url)
    assert tables - {migrations.ALEMBIC_VERSION_TABLE} == set()
    assert migrations.get_migration_status(database_url).current_heads == ()
