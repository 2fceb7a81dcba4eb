# Engine, session factory and schema creation
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import get_settings
from .core.logging import get_logger
from .core.models import BaseModel

logger = get_logger("database")

settings = get_settings()


def build_engine(database_url: str, echo: bool = False, **engine_options) -> AsyncEngine:
    """Async engine; SQLite gets foreign keys switched on so cascades and FKs hold."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        engine_options.setdefault("pool_pre_ping", True)
        return create_async_engine(url, echo=echo, **engine_options)

    sqlite_engine = create_async_engine(url, echo=echo, **engine_options)

    @event.listens_for(sqlite_engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):  # noqa: ANN001
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()

    return sqlite_engine


engine = build_engine(settings.database_url, echo=settings.database_echo)

# Session factory
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db_session():
    """One session per request, closed when the request ends."""
    async with AsyncSessionLocal() as session:
        yield session


async def create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.create_all)
    logger.info(f"Schema ready on {engine.url.get_backend_name()}")


async def dispose_engine() -> None:
    await engine.dispose()
