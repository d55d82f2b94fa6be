# database.py
# Async SQLAlchemy engine, session factory and declarative base.

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from config import settings

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL


def get_db_url():
    """Get the database URL for use in migration scripts."""
    return settings.DATABASE_URL


def _engine_options(url: str) -> dict:
    # asyncpg takes its own connect args; sqlite needs none
    if url.startswith("postgresql+asyncpg"):
        return {
            "poolclass": NullPool,
            "connect_args": {
                "timeout": 30,
                "server_settings": {"application_name": "compliance_onramp"},
            },
        }
    return {}


engine = create_async_engine(SQLALCHEMY_DATABASE_URL, echo=False, **_engine_options(SQLALCHEMY_DATABASE_URL))

SessionLocal = async_sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False
)

Base = declarative_base()


async def create_db_and_tables(bind=None):
    """Creates all tables defined in models.py."""
    import models  # noqa: F401  registers the tables on Base.metadata

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
