"""Alembic helpers used by the CLI to bring the schema to head."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import NullPool

from kindworld.core.config import settings

ALEMBIC_VERSION_TABLE = "alembic_version"


@dataclass(frozen=True)
class MigrationStatus:
    current_heads: tuple[str, ...]
    head_revisions: tuple[str, ...]
    is_up_to_date: bool


def get_alembic_config(database_url: str | None = None) -> Config:
    api_root = Path(__file__).resolve().parents[2]
    alembic_ini = api_root / "alembic.ini"
    if not alembic_ini.is_file():
        raise FileNotFoundError(f"Alembic config not found at {alembic_ini}")
    config = Config(str(alembic_ini))
    config.set_main_option("sqlalchemy.url", database_url or settings.DATABASE_URL)
    config.attributes["configure_logger"] = False
    return config


def _tuple_or_empty(values: Iterable[str] | None) -> tuple[str, ...]:
    if not values:
        return ()
    return tuple(values)


def get_migration_status(database_url: str | None = None) -> MigrationStatus:
    config = get_alembic_config(database_url)
    script = ScriptDirectory.from_config(config)
    head_revisions = _tuple_or_empty(script.get_heads())

    engine = create_engine(config.get_main_option("sqlalchemy.url"), poolclass=NullPool)
    try:
        with engine.connect() as connection:
            if ALEMBIC_VERSION_TABLE in inspect(connection).get_table_names():
                context = MigrationContext.configure(connection)
                current_heads = _tuple_or_empty(context.get_current_heads())
            else:
                current_heads = ()
    finally:
        engine.dispose()

    return MigrationStatus(
        current_heads=current_heads,
        head_revisions=head_revisions,
        is_up_to_date=set(current_heads) == set(head_revisions),
    )


def upgrade_to_head(database_url: str | None = None) -> MigrationStatus:
    """Apply pending revisions; a database already at head is left untouched."""
    config = get_alembic_config(database_url)
    command.upgrade(config, "head")
    return get_migration_status(database_url)
