"""Database engine, session factory and transaction helpers"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm.exc import StaleDataError
import structlog

from pos_core.config import settings
from pos_core.exceptions import ConflictError

logger = structlog.get_logger()

engine = create_async_engine(
    settings.database_url,
    echo=settings.api_debug,
    pool_pre_ping=True,
)

SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding a database session"""
    async with SessionLocal() as session:
        yield session


@asynccontextmanager
async def unit_of_work(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit on success, roll back on any failure.

    Lost optimistic-lock races and unique constraint violations surface as
    ``ConflictError``; everything else propagates unchanged.
    """
    try:
        yield db
        await db.commit()
    except StaleDataError as e:
        await db.rollback()
        logger.warning("Concurrent modification detected", error=str(e))
        raise ConflictError("Record was modified concurrently, retry the request") from e
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Integrity constraint violated", error=str(e.orig))
        raise ConflictError("Conflicting record already exists") from e
    except BaseException:
        await db.rollback()
        raise
