"""Create the billing tables for local runs."""

from sqlalchemy.ext.asyncio import AsyncEngine

from credibill import models  # noqa: F401  registers every table on Base.metadata
from credibill.core.logging import logger
from credibill.models._base import Base


async def init_db(engine: AsyncEngine) -> None:
    """Create any missing tables.

    Production deployments run the alembic migrations instead; this is used when
    CREATE_TABLES_ON_STARTUP is set.

    Args:
    ----
        engine (AsyncEngine): The engine to create the tables with.

    """
    logger.info("Creating missing database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database ready with {len(Base.metadata.tables)} tables")
