import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable, Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.auth import hash_password
from app.core.config import settings
from app.core.email import MailDeliveryError
from app.models import Base, EmailVerification, User, UserRole

# Test auth configuration
# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow

# Valid registration input (satisfies every validation rule)
TEST_NAME = "Jane Doe"
TEST_EMAIL = "jane@example.com"
TEST_PASSWORD = "Secret1!x"  # nosec B105

# Cheap bcrypt cost for tests; production uses 12
TEST_BCRYPT_ROUNDS = 4


def create_test_jwt(
    user_id: uuid.UUID,
    *,
    secret: str = TEST_AUTH_SECRET,
    expires_delta: timedelta | None = None,
    iat: datetime | None = None,
) -> str:
    """Create a signed JWT for test authentication.

    Args:
        user_id: User UUID to encode in the sub claim.
        secret: Signing secret (must match settings.auth_secret in tests).
        expires_delta: Time until expiration. Defaults to 1 hour.
        iat: Issued-at time. Defaults to now.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "aud": settings.auth_audience,
        "iss": settings.auth_issuer,
        "exp": now + (expires_delta or timedelta(hours=1)),
        "iat": iat or now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


class FrozenClock:
    """Controllable clock; call it to read, advance() to move forward."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime.now(UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class RecordingMailer:
    """Mailer that keeps every message instead of sending it."""

    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []

    async def send_verification_email(
        self, *, to_email: str, name: str, verification_url: str
    ) -> None:
        self.sent.append(
            {"to_email": to_email, "name": name, "verification_url": verification_url}
        )

    @property
    def last_token(self) -> str:
        """Token embedded in the most recent verification link."""
        return self.sent[-1]["verification_url"].rsplit("token=", 1)[1]


class FailingMailer:
    """Mailer whose transport always rejects the message."""

    def __init__(self) -> None:
        self.attempts = 0

    async def send_verification_email(
        self,
        *,
        to_email: str,  # noqa: ARG002
        name: str,  # noqa: ARG002
        verification_url: str,  # noqa: ARG002
    ) -> None:
        self.attempts += 1
        raise MailDeliveryError("provider unavailable")


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a per-test SQLite database (file-backed so sessions share it)."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# Collaborator Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def failing_mailer() -> FailingMailer:
    return FailingMailer()


# =============================================================================
# Data Fixtures
# =============================================================================


@pytest.fixture
def make_user(
    db_session: AsyncSession,
) -> Callable[..., Awaitable[Any]]:
    """Factory creating committed users directly through the ORM.

    Returns:
        Async callable accepting name, email, password, role, verified_at.
    """

    async def _make_user(
        *,
        name: str = TEST_NAME,
        email: str = TEST_EMAIL,
        password: str = TEST_PASSWORD,
        role: str = UserRole.APPLICANT,
        verified_at: datetime | None = None,
    ) -> User:
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password, rounds=TEST_BCRYPT_ROUNDS),
            role=role,
            email_verified_at=verified_at,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_token(
    db_session: AsyncSession,
) -> Callable[..., Awaitable[Any]]:
    """Factory creating committed verification tokens.

    Returns:
        Async callable accepting user, token, expires_at, is_used.
    """

    async def _make_token(
        user: User,
        *,
        token: str | None = None,
        expires_at: datetime | None = None,
        is_used: bool = False,
    ) -> EmailVerification:
        record = EmailVerification(
            user_id=user.id,
            token=token or uuid.uuid4().hex * 2,
            expires_at=expires_at or datetime.now(UTC) + timedelta(hours=1),
            is_used=is_used,
        )
        db_session.add(record)
        await db_session.commit()
        await db_session.refresh(record)
        return record

    return _make_token


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client(
    session_factory,
    mailer: RecordingMailer,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test database and a recording mailer.

    Sets up:
    - Test database connection via dependency override
    - RecordingMailer via dependency override
    - httpx.AsyncClient with ASGI transport

    Yields:
        Configured AsyncClient for making API requests.
    """
    from app.core.database import get_db
    from app.core.email import get_mailer
    from app.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def auth_secret() -> Iterator[None]:
    """Sign and verify JWTs with the test secret."""
    original_auth_secret = settings.auth_secret
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)

    yield

    settings.auth_secret = original_auth_secret


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting during tests.

    Security: Rate limiting is tested separately; disable for other tests
    to avoid flaky failures from rate limit triggers.

    Yields:
        None (autouse fixture).
    """
    from app.core.rate_limiting import limiter

    # Store original state and disable
    original_enabled = limiter.enabled
    limiter.enabled = False

    yield

    # Restore original state
    limiter.enabled = original_enabled
