"""
Database migration utilities.
"""
import os

from sqlalchemy import text

from . import engine
from ..models import Base
from ..logging_config import logger

MIGRATIONS_DIR = os.path.join(os.path.dirname(__file__), "scripts")


def run_sql_migrations(bind=None):
    """
    Run all SQL migration files in the scripts directory.

    Migration files should:
    - Be named with a sortable prefix (e.g., 001_extensions.sql)
    - End with .sql extension
    - Be idempotent (safe to run multiple times)

    Returns:
        The list of executed file names.
    """
    bind = bind or engine

    if not os.path.exists(MIGRATIONS_DIR):
        logger.warning("Migrations directory not found", path=MIGRATIONS_DIR)
        return []

    migration_files = sorted(f for f in os.listdir(MIGRATIONS_DIR) if f.endswith(".sql"))
    if not migration_files:
        logger.info("No migration files found")
        return []

    with bind.begin() as conn:
        for filename in migration_files:
            with open(os.path.join(MIGRATIONS_DIR, filename), "r", encoding="utf-8") as f:
                sql = f.read()
            conn.execute(text(sql))
            logger.info("Completed migration", migration=filename)

    return migration_files


def init_db(bind=None):
    """
    Prepare the schema.

    PostgreSQL gets the SQL scripts first (pgvector extension) so the
    VECTOR columns and the HNSW index can be created. Other dialects only
    need the ORM tables.
    """
    bind = bind or engine
    if bind.dialect.name == "postgresql":
        run_sql_migrations(bind)
    Base.metadata.create_all(bind)
    logger.info("Database schema ready", dialect=bind.dialect.name)
