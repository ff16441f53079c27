"""Async SQLAlchemy engine for the complaint log."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from config.settings import get_settings

LOGGER = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


settings = get_settings()
engine = create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)
AsyncSessionFactory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def init_db() -> None:
    """Create the complaints table for the complaint-logging deployment.

    Nothing is created when complaint logging is off, or when the schema is
    managed by Alembic (`AUTO_CREATE_DB_SCHEMA=false`).
    """

    if not (settings.enable_complaint_logging and settings.auto_create_db_schema):
        return

    import db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    LOGGER.info("Complaint schema ready at %s", engine.url.render_as_string(hide_password=True))


async def dispose_db() -> None:
    await engine.dispose()
