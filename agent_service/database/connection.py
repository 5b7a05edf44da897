from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.engine.url import make_url
from agent_service.config import Settings

Base = declarative_base()

POSTGRES_DRIVERS = ("postgres", "postgresql", "postgresql+psycopg2", "postgresql+asyncpg")


def get_database_url(database_url: str) -> str:
    """Parse database URL and convert Postgres URLs to the asyncpg driver"""
    original_url = make_url(database_url)
    if original_url.drivername not in POSTGRES_DRIVERS:
        # Already an async driver URL (e.g. sqlite+aiosqlite), use as-is
        return database_url

    port = original_url.port or 5432

    # Build the connection string manually to preserve special characters in password
    url = (
        f"postgresql+asyncpg://{original_url.username}:{original_url.password}"
        f"@{original_url.host}:{port}/{original_url.database}"
    )

    # sslmode/channel_binding are libpq options asyncpg does not understand
    query_params = {}
    if original_url.query:
        for key, value in original_url.query.items():
            if key not in ['sslmode', 'channel_binding']:
                query_params[key] = value

    if query_params:
        query_string = '&'.join([f"{k}={v}" for k, v in query_params.items()])
        url += f"?{query_string}"

    return url


def get_connect_args(database_url: str) -> dict:
    """Get connection arguments for asyncpg, especially for SSL"""
    url = make_url(database_url)
    connect_args = {}

    if url.query and url.query.get('sslmode') == 'require':
        connect_args['ssl'] = 'require'

    return connect_args


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        get_database_url(settings.DATABASE_URL),
        echo=settings.DEBUG,
        pool_pre_ping=True,  # Verify connections before using them
        pool_recycle=3600,  # Recycle connections after 1 hour
        connect_args=get_connect_args(settings.DATABASE_URL)
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )
