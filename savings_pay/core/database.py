# savings_pay/core/database.py
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from .config import settings
import logging
from typing import Any, AsyncGenerator, Dict

logger = logging.getLogger(__name__)

def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {
        "echo": settings.DEBUG,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": 30,
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }
    # PgBouncer in transaction mode cannot keep prepared statements
    if settings.is_supabase:
        options["connect_args"] = {
            "statement_cache_size": 0,
            "prepared_statement_cache_size": 0,
            "timeout": 10,
        }
        logger.info("Supabase pooler detected, prepared statements disabled")
    return options

engine = create_async_engine(settings.DATABASE_URL, **_engine_options())

# Settled payments are serialized after commit, so attributes must not expire
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def create_db_and_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """One session per request; anything left uncommitted is rolled back."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            logger.warning("Request failed, rolling back open transaction")
            await session.rollback()
            raise
