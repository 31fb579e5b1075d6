import socket
import uuid
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from feedback.core.config import settings
from feedback.core.email import LoggingMailTransport, reset_mail_transport
from feedback.models import Base
from feedback.services.link_issuer import LinkIssuer
from feedback.services.notifier import Notifier
from feedback.services.verification_store import InMemoryVerificationStore

# Use separate test database
TEST_DATABASE_URL = settings.database_url.replace(
    settings.database_name, f"{settings.database_name}_test"
)

# Test user ID (consistent across tests for predictable auth)
TEST_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
TEST_USER_EMAIL = "student@example.com"
TEST_USER_NAME = "Ada Lovelace"
TEST_HOST = "example.com"
TEST_SYSTEM_NAME = "Immediate Feedback System"

# Test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow


def create_test_jwt(
    user_id: uuid.UUID = TEST_USER_ID,
    *,
    secret: str = TEST_AUTH_SECRET,
    expires_delta: timedelta | None = None,
    audience: str | None = None,
) -> str:
    """Create a signed JWT for test authentication.

    Args:
        user_id: User UUID to encode in the sub claim.
        secret: Signing secret (must match settings.auth_secret in tests).
        expires_delta: Time until expiration. Defaults to 1 hour.
        audience: aud claim. Defaults to settings.auth_audience.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "aud": audience or settings.auth_audience,
        "iss": settings.auth_issuer,
        "exp": now + (expires_delta or timedelta(hours=1)),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


class FakeIdentityDirectory:
    """In-memory IdentityDirectory keyed by email."""

    def __init__(self, users: dict[str, tuple[uuid.UUID, str]] | None = None):
        self.users = users or {}

    async def lookup_user_id_by_email(self, email: str) -> uuid.UUID:
        from feedback.core.errors import IdentityResolutionError

        try:
            return self.users[email][0]
        except KeyError as exc:
            raise IdentityResolutionError() from exc

    async def lookup_display_name(self, user_id: uuid.UUID) -> str:
        from feedback.core.errors import IdentityResolutionError

        for uid, name in self.users.values():
            if uid == user_id:
                return name
        raise IdentityResolutionError()


@pytest.fixture
def memory_store() -> InMemoryVerificationStore:
    """Fresh in-memory verification store."""
    return InMemoryVerificationStore()


@pytest.fixture
def outbox_transport() -> LoggingMailTransport:
    """Mail transport that records messages instead of sending them."""
    return LoggingMailTransport()


@pytest.fixture
def identity() -> FakeIdentityDirectory:
    """Identity directory knowing only the test user."""
    return FakeIdentityDirectory({TEST_USER_EMAIL: (TEST_USER_ID, TEST_USER_NAME)})


@pytest.fixture
def mock_db() -> AsyncMock:
    """AsyncSession stand-in for code that only passes the session along."""
    session = AsyncMock()
    session.add = MagicMock()
    return session


# =============================================================================
# Database Fixtures
# =============================================================================


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections.

    Returns:
        True if PostgreSQL is reachable on the configured host and port.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex((settings.database_host, settings.database_port))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available."""
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            f"PostgreSQL not available on {settings.database_host}:"
            f"{settings.database_port}. Start a database to run this test."
        )


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine with every table.

    Skips test if PostgreSQL is not available.
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest.fixture
def test_user() -> SimpleNamespace:
    """User row as returned by UserRepository."""
    return SimpleNamespace(id=TEST_USER_ID, email=TEST_USER_EMAIL)


@pytest.fixture
async def client(
    mock_db: AsyncMock,
    memory_store: InMemoryVerificationStore,
    outbox_transport: LoggingMailTransport,
    identity: FakeIdentityDirectory,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for authenticated API tests.

    Sets up:
    - get_db yielding the mock session
    - LinkIssuer over the in-memory store
    - Notifier over the fake identity directory and outbox transport
    - JWT auth with test secret

    Yields:
        Configured AsyncClient for making authenticated API requests.
    """
    from pydantic import SecretStr

    from feedback.api.deps import get_link_issuer, get_notifier
    from feedback.core.database import get_db
    from feedback.main import app

    async def override_get_db() -> AsyncGenerator[AsyncMock, None]:
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_link_issuer] = lambda: LinkIssuer(
        memory_store, host=TEST_HOST
    )
    app.dependency_overrides[get_notifier] = lambda: Notifier(
        identity,
        outbox_transport,
        host=TEST_HOST,
        system_name=TEST_SYSTEM_NAME,
    )

    original_auth_enabled = settings.auth_enabled
    original_auth_secret = settings.auth_secret
    settings.auth_enabled = True
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        cookies={settings.auth_cookie_name: create_test_jwt(TEST_USER_ID)},
    ) as ac:
        yield ac

    settings.auth_enabled = original_auth_enabled
    settings.auth_secret = original_auth_secret
    app.dependency_overrides.clear()


@pytest.fixture
async def unauthenticated_client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client with auth enabled but no session cookie."""
    from pydantic import SecretStr

    from feedback.main import app

    original_auth_enabled = settings.auth_enabled
    original_auth_secret = settings.auth_secret
    settings.auth_enabled = True
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    settings.auth_enabled = original_auth_enabled
    settings.auth_secret = original_auth_secret
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting during tests.

    Rate limiting is tested separately; disabled here to avoid flaky
    failures from limit triggers.
    """
    from feedback.core.rate_limiting import limiter

    original_enabled = limiter.enabled
    limiter.enabled = False

    yield

    limiter.enabled = original_enabled


@pytest.fixture(autouse=True)
def reset_mail_transport_singleton() -> Iterator[None]:
    """Drop the cached mail transport between tests."""
    reset_mail_transport()
    yield
    reset_mail_transport()
