"""
Test Configuration and Fixtures
Provides shared test setup for all test cases
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from agent_service.config import Environment, Settings
from agent_service.database.connection import Base
from agent_service.main import create_app
from agent_service.models import Agent, OtpCode, OtpLockout, AgentSession  # noqa: F401
from agent_service.services import AgentRegistry, AuthGateway, OtpAuthenticator, SessionIssuer
from tests.helpers import TEST_PHONE

# Test database URL (use in-memory SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def test_settings():
    return Settings(
        DATABASE_URL=TEST_DATABASE_URL,
        SECRET_KEY="test-secret-key",
        ENVIRONMENT=Environment.TEST,
        OTP_CLEANUP_INTERVAL_SECONDS=0,
    )


@pytest_asyncio.fixture(scope="function")
async def session_factory():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def registry(session_factory, test_settings):
    return AgentRegistry.from_settings(session_factory, test_settings)


@pytest.fixture
def otp(session_factory, test_settings):
    return OtpAuthenticator.from_settings(session_factory, test_settings)


@pytest.fixture
def sessions(session_factory, test_settings):
    return SessionIssuer.from_settings(session_factory, test_settings)


@pytest.fixture
def gateway(registry, otp, sessions):
    return AuthGateway(registry, otp, sessions)


@pytest_asyncio.fixture
async def agent(registry):
    """A registered agent on the default test phone"""
    return await registry.register(
        phone_number=TEST_PHONE,
        country_code="+212",
        first_name="Amina",
        last_name="Benali",
        email="amina.benali@example.com",
    )


@pytest_asyncio.fixture(scope="function")
async def client(test_settings, session_factory):
    """Create test HTTP client"""
    app = create_app(test_settings, session_factory)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

