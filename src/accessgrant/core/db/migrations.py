"""Migration runner used at deploy time and by the ``accessgrant-migrate`` entry point."""

import sys

from alembic.config import Config

from alembic import command


def run_migrations_sync(revision: str = "head", config_path: str = "alembic.ini") -> None:
    """Upgrade the database to ``revision``.

    Alembic's env.py starts its own event loop, so call this outside a
    running loop.
    """
    alembic_cfg = Config(config_path)
    command.upgrade(alembic_cfg, revision)


def main() -> None:
    run_migrations_sync(sys.argv[1] if len(sys.argv) > 1 else "head")
