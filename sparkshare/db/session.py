import sparkshare.db.base  # noqa: F401

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from sparkshare.core.config import settings
from sparkshare.db.base_class import Base


engine_kwargs: dict[str, object] = {
    "echo": settings.env == "local",
}
if settings.is_sqlite():
    # sqlite waits this long on a locked database before giving up
    engine_kwargs["connect_args"] = {"timeout": settings.db_timeout_seconds}
else:
    engine_kwargs["pool_pre_ping"] = True
    engine_kwargs["pool_timeout"] = settings.db_timeout_seconds
    engine_kwargs["connect_args"] = {"command_timeout": settings.db_timeout_seconds}
if settings.env == "test":
    engine_kwargs["poolclass"] = NullPool
    engine_kwargs.pop("pool_timeout", None)

engine = create_async_engine(
    settings.database_url,
    **engine_kwargs,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    class_=AsyncSession,
)


async def get_db_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session
