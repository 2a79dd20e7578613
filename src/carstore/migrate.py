"""
Schema migrations.

Applies the ``*.sql`` files of a migrations directory in filename order.
Each applied file is recorded in ``schema_migrations`` by its stem
(e.g. ``001_create_cars``) so it is never applied twice. Having nothing new
to apply is not an error.
"""

import logging
from pathlib import Path
from typing import List

import psycopg

from carstore.db import Database
from carstore.errors import StoreFailure

CREATE_VERSIONS_TABLE = """
    CREATE TABLE IF NOT EXISTS schema_migrations (
        version TEXT PRIMARY KEY,
        applied_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
"""


def pending_migrations(migrations_dir: Path, applied: set[str]) -> List[Path]:
    """Return migration files not yet applied, in the order they must run."""
    migrations_dir = Path(migrations_dir)
    if not migrations_dir.is_dir():
        raise FileNotFoundError(f"Migrations directory not found: {migrations_dir}")
    return [path for path in sorted(migrations_dir.glob("*.sql")) if path.stem not in applied]


def apply_migrations(database: Database, migrations_dir: Path, logger: logging.Logger = None) -> List[str]:
    """
    Apply pending migrations, each in its own transaction.

    Returns:
        Versions applied by this call, empty if the schema was current
    """
    logger = logger or logging.getLogger(__name__)
    applied_now = []

    try:
        with database.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(CREATE_VERSIONS_TABLE)
                cur.execute("SELECT version FROM schema_migrations")
                applied = {row[0] for row in cur.fetchall()}

        for path in pending_migrations(migrations_dir, applied):
            logger.info("applying migration %s", path.name)
            with database.get_connection() as conn:
                with conn.transaction():
                    with conn.cursor() as cur:
                        cur.execute(path.read_text())
                        cur.execute(
                            "INSERT INTO schema_migrations (version) VALUES (%s)",
                            (path.stem,),
                        )
            applied_now.append(path.stem)
    except psycopg.Error as e:
        logger.error("migration failed: %s", e)
        raise StoreFailure(f"migration failed: {e}", operation="migrate") from e

    if not applied_now:
        logger.info("schema is up to date")
    return applied_now
