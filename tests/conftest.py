"""
PyTest configuration and fixtures for Cohort Onboarding API tests
"""
import os
import tempfile

# Must be set before app.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "cohort-onboarding-test-logs"))
os.environ.setdefault("SKIP_EMAIL_SENDING", "false")

import pytest
import pytest_asyncio
from typing import List, Optional
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.api.v1.endpoints import tokens as tokens_endpoints
from app.core.exceptions import NotifierUnavailable
from app.db.session import get_db
from app.models import Base, Cohort, Profile, User, UserRole
from app.services.auth_service import auth_service
from app.services.token_service import TokenService


# Test database setup - Using async SQLite with aiosqlite
SQLALCHEMY_TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)
TestingSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class FakeNotifier:
    """Records messages instead of sending them"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[dict] = []

    def send(self, to: str, subject: str, html_body: str, text_body: Optional[str] = None) -> str:
        if self.fail:
            raise NotifierUnavailable("Email provider unreachable")
        self.sent.append({
            "to": to,
            "subject": subject,
            "html_body": html_body,
            "text_body": text_body,
        })
        return f"delivery-{len(self.sent)}"


@pytest_asyncio.fixture(scope="function")
async def db_session():
    """
    Create a fresh database for each test.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestingSessionLocal() as session:
        yield session
        await session.commit()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session):
    """
    Override the database dependency for ASGI test clients.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def notifier():
    """Replace the email notifier used by the token endpoints"""
    fake = FakeNotifier()
    original = tokens_endpoints.dispatcher._notifier
    tokens_endpoints.dispatcher._notifier = fake
    yield fake
    tokens_endpoints.dispatcher._notifier = original


@pytest.fixture
def token_service():
    return TokenService()


@pytest_asyncio.fixture
async def cohort(db_session):
    """Create a test cohort"""
    cohort = Cohort(name="Batch 12", type="full-time")
    db_session.add(cohort)
    await db_session.commit()
    await db_session.refresh(cohort)
    return cohort


async def _create_account(db_session, email: str, password: str, role: UserRole) -> User:
    user = User(
        email=email,
        password_hash=auth_service.hash_password(password),
        is_active=True,
        failed_login_attempts=0
    )
    db_session.add(user)
    await db_session.flush()
    db_session.add(Profile(
        user_id=user.id,
        email=email,
        firstname=role.value.capitalize(),
        lastname="User",
        role=role,
    ))
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin_user(db_session):
    """Create an admin account"""
    return await _create_account(db_session, "admin@example.com", "Admin123!@#", UserRole.ADMIN)


@pytest_asyncio.fixture
async def trainee_user(db_session):
    """Create a trainee account"""
    return await _create_account(db_session, "trainee@example.com", "Trainee123", UserRole.TRAINEE)


@pytest_asyncio.fixture
async def admin_headers(admin_user):
    token = auth_service.create_access_token({"sub": str(admin_user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def trainee_headers(trainee_user):
    token = auth_service.create_access_token({"sub": str(trainee_user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def alice_token(db_session, cohort, token_service):
    """Valid token for alice@x.com in the test cohort"""
    return await token_service.issue_token(db_session, "alice@x.com", cohort.id)


@pytest_asyncio.fixture
async def file_sessions(tmp_path):
    """
    Session factory over a file database, so that concurrent sessions get
    their own connections.
    """
    file_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'onboarding.db'}")
    async with file_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)

    await file_engine.dispose()
