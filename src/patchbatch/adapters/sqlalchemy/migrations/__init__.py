"""Alembic migrations for the diff store."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from patchbatch.config import get_database_uri

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent
PYPROJECT_PATH: Final[Path] = MIGRATIONS_PATH.parents[4] / "pyproject.toml"

# handled here, not by alembic options
_RESERVED_OPTIONS: Final = frozenset({"script_location", "prepend_sys_path", "sqlalchemy.url"})


def alembic_options(pyproject: Path = PYPROJECT_PATH) -> dict[str, str]:
    """Return the ``[tool.alembic]`` table of a source checkout, if there is one."""

    if not pyproject.is_file():
        return {}
    with pyproject.open("rb") as handle:
        section = tomllib.load(handle).get("tool", {}).get("alembic", {})
    return {str(key): str(value) for key, value in section.items()}


def alembic_config(*, database_uri: str | None = None) -> Config:
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    for key, value in alembic_options().items():
        if key not in _RESERVED_OPTIONS:
            config.set_main_option(key, value)
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Migrate the schema to the latest revision, inside ``engine``'s transaction if given."""

    if engine is None:
        command.upgrade(alembic_config(database_uri=database_uri or get_database_uri()), "head")
        return

    config = alembic_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
