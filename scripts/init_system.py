"""
System initialization for the booking backend.

This script:
- Checks the database connection
- Creates missing tables from the ORM metadata
- Verifies every table exists and reports row counts

Designed to be idempotent and safe to run multiple times: existing tables
and rows are never touched.
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import inspect, text  # noqa: E402
from sqlalchemy.exc import SQLAlchemyError  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine  # noqa: E402

from database.models import Base  # noqa: E402
from shared.logging_config import configure_logging  # noqa: E402

logger = logging.getLogger(__name__)

TABLES = sorted(Base.metadata.tables)


async def check_database_connection(engine: AsyncEngine) -> bool:
    """
    Check if database connection is working.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        logger.info("Checking database connection...")
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database connection failed: {e}")
        return False

    logger.info("Database connection successful")
    return True


async def create_tables(engine: AsyncEngine) -> None:
    """Create tables that do not exist yet (CREATE TABLE IF NOT EXISTS semantics)."""
    logger.info("Creating missing tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)


async def check_tables_exist(engine: AsyncEngine) -> dict[str, bool]:
    """
    Check which tables exist in the database.

    Returns:
        dict: Mapping of table names to existence status
    """
    async with engine.connect() as conn:
        existing = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))

    table_status = {table: table in existing for table in TABLES}
    for table, exists in table_status.items():
        logger.info(f"  Table '{table}': {'exists' if exists else 'missing'}")
    return table_status


async def count_rows(engine: AsyncEngine) -> dict[str, int]:
    """Row count per table, informational only."""
    row_counts = {}
    async with engine.connect() as conn:
        for table in TABLES:
            result = await conn.execute(text(f"SELECT COUNT(*) FROM {table}"))
            row_counts[table] = result.scalar()
            logger.info(f"  Table '{table}': {row_counts[table]} rows")
    return row_counts


async def run_system_initialization(engine: AsyncEngine) -> bool:
    """
    Run the complete initialization.

    Returns:
        bool: True if every table is present afterwards, False otherwise
    """
    logger.info("=" * 60)
    logger.info("BOOKING BACKEND - SYSTEM INITIALIZATION")
    logger.info("=" * 60)

    if not await check_database_connection(engine):
        logger.error("SYSTEM INITIALIZATION FAILED")
        return False

    try:
        await create_tables(engine)
        table_status = await check_tables_exist(engine)
        await count_rows(engine)
    except SQLAlchemyError:
        logger.error("SYSTEM INITIALIZATION FAILED", exc_info=True)
        return False

    missing = [t for t, exists in table_status.items() if not exists]
    if missing:
        logger.error(f"Missing tables: {', '.join(missing)}")
        return False

    logger.info("SYSTEM INITIALIZATION PASSED")
    logger.info("=" * 60)
    return True


async def main():
    """Main entry point for system initialization."""
    from database.connection import engine

    configure_logging()
    try:
        success = await run_system_initialization(engine)
    finally:
        await engine.dispose()
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    asyncio.run(main())
