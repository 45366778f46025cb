# app/database.py

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy.orm import declarative_base

from app.core.config import get_settings

Base = declarative_base()


def normalise_database_url(database_url: str) -> str:
    """Convert postgresql:// to postgresql+asyncpg:// for async support"""
    if database_url.startswith('postgres://'):
        database_url = database_url.replace('postgres://', 'postgresql+asyncpg://', 1)
    elif database_url.startswith('postgresql://'):
        database_url = database_url.replace('postgresql://', 'postgresql+asyncpg://', 1)
    return database_url


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    settings = get_settings()
    database_url = normalise_database_url(database_url)
    if not database_url:
        raise ValueError("DATABASE_URL is not set in environment variables")

    engine_kwargs = {}
    if not database_url.startswith("sqlite"):
        engine_kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=True,
        )

    return create_async_engine(database_url, echo=echo, future=True, **engine_kwargs)


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


settings = get_settings()
engine = build_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)
async_session = build_sessionmaker(engine)

