"""Script to initialize the database."""

import asyncio

import structlog

from app.database import create_schema, engine
from app.middleware.logging import configure_logging

logger = structlog.get_logger(__name__)


async def init_db() -> None:
    """Create the required extensions and all tables."""
    tables = await create_schema()
    await engine.dispose()
    logger.info("database_initialized", tables=tables)


if __name__ == "__main__":
    configure_logging()
    asyncio.run(init_db())
