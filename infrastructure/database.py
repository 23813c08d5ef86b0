"""
Database engine and session management
"""
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.engine import make_url
from typing import AsyncGenerator

from core.config import settings
from infrastructure.models import Base


def _build_async_url(database_url: str) -> str:
    """Make sure the database URL names an async driver"""
    url = make_url(database_url)
    drivername = url.drivername

    if "+" in drivername:
        return database_url

    driver_map = {
        "postgresql": "postgresql+asyncpg",
        "postgres": "postgresql+asyncpg",
        "mysql": "mysql+aiomysql",
        "sqlite": "sqlite+aiosqlite",
    }

    if drivername not in driver_map:
        raise ValueError(f"unsupported database driver: {drivername}; use an async driver in DATABASE__URL")

    async_driver = driver_map[drivername]
    return url.set(drivername=async_driver).render_as_string(hide_password=False)


def _engine_options(database_url: str) -> dict:
    # sqlite uses a static/singleton pool that rejects pool_size
    if make_url(database_url).get_backend_name() == "sqlite":
        return {}
    return {"pool_size": settings.database.pool_size, "pool_pre_ping": True}


_database_url = _build_async_url(settings.database.url)

engine = create_async_engine(
    _database_url,
    echo=settings.database.echo,
    **_engine_options(_database_url),
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session; the caller owns the transaction"""
    async with AsyncSessionLocal() as session:
        yield session


async def create_tables():
    """Create every table known to the ORM metadata"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables():
    """
    Drop every table

    Test environments only: all data is lost!
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
