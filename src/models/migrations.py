from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.util.exc import CommandError

ALEMBIC_INI = Path(__file__).resolve().parents[2] / "alembic.ini"


def alembic_config(database_url: str | None = None) -> Config:
    config = Config(str(ALEMBIC_INI))
    config.set_main_option("script_location", str(ALEMBIC_INI.parent / "alembic"))
    if database_url:
        # env.py falls back to settings.database_url when this is unset
        config.attributes["database_url"] = database_url
    return config


def upgrade_db(revision: str = "head", database_url: str | None = None) -> None:
    try:
        command.upgrade(alembic_config(database_url), revision)
    except CommandError as exc:
        raise RuntimeError(f"Database migration to {revision} failed: {exc}") from exc
