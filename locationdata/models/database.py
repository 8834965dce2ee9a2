"""
Database configuration and session management for the key-value store
"""
import re
import ssl
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

# Base class for models
Base = declarative_base()


def normalize_database_url(database_url: str) -> tuple[str, dict]:
    """Return an async driver URL and the connect args it needs"""
    connect_args = {}

    # Convert postgresql:// to postgresql+asyncpg:// for async support
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif database_url.startswith("sqlite://"):
        database_url = database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)

    # Handle SSL for cloud databases (Neon, Vercel, etc.)
    if "neon.tech" in database_url or "vercel" in database_url.lower():
        # Remove sslmode from URL if present (asyncpg doesn't support it)
        if "sslmode=" in database_url:
            database_url = re.sub(r'[?&]sslmode=[^&]*', '', database_url)
            database_url = database_url.replace('?&', '?').rstrip('?')

        # Create SSL context for asyncpg
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = ssl_context

    return database_url, connect_args


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine for the configured backend"""
    database_url, connect_args = normalize_database_url(database_url)
    engine_args = {"echo": echo, "connect_args": connect_args}
    if not database_url.startswith("sqlite"):
        engine_args.update(pool_size=5, max_overflow=10, pool_pre_ping=True)
    return create_async_engine(database_url, **engine_args)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    """Async session factory"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False
    )


async def init_db(engine: AsyncEngine):
    """Initialize database tables"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
