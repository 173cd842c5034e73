from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings

# Convert sync DATABASE_URL to async
# We use make_url to parse the connection string and safely replace the driver
sync_url = make_url(settings.DATABASE_URL)
if sync_url.drivername == "postgresql":
    async_database_url = sync_url.set(drivername="postgresql+asyncpg")
else:
    async_database_url = sync_url

engine = create_async_engine(
    async_database_url,
    echo=False,
    future=True,
)
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass

