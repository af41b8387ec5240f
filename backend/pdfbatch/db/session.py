"""
Async SQLAlchemy session factory.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from pdfbatch.core.config import settings
from pdfbatch.db.models import Base


def make_engine(url: str | None = None, **kwargs) -> AsyncEngine:
    """Fresh async engine (Celery tasks build one per asyncio.run())."""
    return create_async_engine(url or settings.DATABASE_URL, echo=False, **kwargs)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=(settings.APP_ENV == "development"),
    pool_size=20,
    max_overflow=10,
    pool_pre_ping=True,
)

async_session = make_session_factory(engine)


async def init_models(target: AsyncEngine | None = None) -> None:
    """Create missing tables."""
    async with (target or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

