from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import Settings, get_settings


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.database_url,
        echo=settings.echo_sql,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


engine = build_engine(get_settings())

# Commits lock facility and per-day count rows, so sessions stay short-lived and explicit.
async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
