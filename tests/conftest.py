import pytest
from typing import AsyncGenerator, Dict, Optional, Tuple
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from elitetime.core.config import settings
from elitetime.core.database import get_async_session
from elitetime.main import create_app
from elitetime.models import Base
from elitetime.models.auth.user import User
from elitetime.models.shared.enums import UserRole, UserStatus
from elitetime.services.auth.permission_service import PermissionService
from elitetime.services.auth.session_service import SessionService
from elitetime.services.directory.ldap_client import DirectoryEntry, get_directory_client

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeDirectory:
    """In-memory stand-in for the Active Directory client"""

    def __init__(self):
        self.accounts: Dict[str, Tuple[str, DirectoryEntry]] = {}

    def add(self, entry: DirectoryEntry, password: str = "secret"):
        self.accounts[entry.username] = (password, entry)

    async def authenticate(self, username: str, password: str) -> Optional[DirectoryEntry]:
        account = self.accounts.get(username)
        if account is None or account[0] != password:
            return None
        return account[1]

    async def search_users(self):
        return [entry for _, entry in self.accounts.values()]


@pytest.fixture
async def engine():
    """Fresh in-memory database per test"""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def app(session_maker, directory):
    application = create_app()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        """Override database dependency for testing"""
        async with session_maker() as session:
            yield session

    application.dependency_overrides[get_async_session] = override_get_db
    application.dependency_overrides[get_directory_client] = lambda: directory
    return application


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create test client"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def create_user(
    session: AsyncSession,
    username: str,
    role: UserRole = UserRole.EMPLOYEE,
    department: Optional[str] = None,
    status: UserStatus = UserStatus.ACTIVE,
    firstname: Optional[str] = None,
    lastname: str = "Test",
) -> User:
    """Insert a user holding the defaults of its role"""
    user = User(
        username=username,
        email=f"{username}@elitetime.local",
        firstname=firstname or username.capitalize(),
        lastname=lastname,
        role=role,
        status=status,
        department=department,
    )
    session.add(user)
    await session.flush()
    await PermissionService(session).apply_role_defaults(user)
    await session.commit()
    await session.refresh(user)
    return user


async def login_as(client: AsyncClient, session: AsyncSession, user: User) -> str:
    """Open a session for ``user`` and attach its cookie to the client"""
    user_session = await SessionService(session).create_session(user)
    client.cookies.set(settings.SESSION_COOKIE_NAME, user_session.session_token)
    return user_session.session_token
