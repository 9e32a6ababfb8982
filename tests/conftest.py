"""Shared test fixtures."""

from __future__ import annotations

import os

os.environ["ENVIRONMENT"] = "TESTING"
os.environ["REDIS_URL"] = ""
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["SOCKET_SECRET"] = "test-socket-secret"
os.environ["LOG_FORMAT"] = "console"
os.environ["LOG_LEVEL"] = "WARNING"

from collections.abc import AsyncGenerator, Awaitable, Callable, Generator  # noqa: E402
from pathlib import Path  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from litpad.auth.password import hash_password  # noqa: E402
from litpad.auth.service import issue_tokens  # noqa: E402
from litpad.config import Settings, get_settings  # noqa: E402
from litpad.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from litpad.db.base import Base  # noqa: E402
from litpad.db.models import Role, Task, User  # noqa: E402
from litpad.db.seed import seed_catalog  # noqa: E402
from litpad.email.tasks import SEND_EMAIL, EmailKind, EmailTaskPayload  # noqa: E402
from litpad.main import create_app  # noqa: E402

TEST_PASSWORD = "Str0ngPassw0rd!"

UserFactory = Callable[..., Awaitable[User]]


def sqlite_url(directory: Path) -> str:
    return f"sqlite+aiosqlite:///{directory / 'litpad.db'}"


@pytest.fixture(autouse=True)
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Settings, None, None]:
    """Fresh settings per test, pointing at a throwaway SQLite file."""
    monkeypatch.setenv("DATABASE_URL", sqlite_url(tmp_path))
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[None, None]:
    """Initialized engine with every table created and the catalog seeded."""
    await init_db(settings.database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with get_session_factory()() as session:
        await seed_catalog(session)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for arranging data and asserting on it."""
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to a fresh app (lifespan work is done by ``database``)."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def user_factory(db_session: AsyncSession) -> UserFactory:
    """Create a signed-in user directly in the database."""

    async def _make(
        username: str,
        *,
        role: Role = Role.READER,
        verified: bool = True,
        coins: int = 0,
        is_staff: bool = False,
        first_name: str | None = None,
    ) -> User:
        user = User(
            email=f"{username}@example.com",
            username=username,
            password=hash_password(TEST_PASSWORD),
            first_name=first_name or username.capitalize(),
            role=role,
            is_email_verified=verified,
            coins=coins,
            is_staff=is_staff,
        )
        db_session.add(user)
        await db_session.flush()
        issue_tokens(user)
        await db_session.commit()
        return user

    return _make


def auth(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {user.access}"}


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    return auth


@pytest_asyncio.fixture
async def reload(db_session: AsyncSession) -> Callable[..., Awaitable[None]]:
    """End the test session's snapshot and re-read the given rows."""

    async def _reload(*objs: object) -> None:
        await db_session.commit()
        for obj in objs:
            await db_session.refresh(obj)

    return _reload


@pytest_asyncio.fixture
async def queued_emails(db_session: AsyncSession) -> Callable[..., Awaitable[list[EmailTaskPayload]]]:
    """Payloads of the ``send_email`` tasks currently in the queue, oldest first."""

    async def _emails(kind: EmailKind | None = None) -> list[EmailTaskPayload]:
        await db_session.commit()
        result = await db_session.execute(
            select(Task).where(Task.name == SEND_EMAIL).order_by(Task.created_at)
        )
        payloads = [EmailTaskPayload.model_validate_json(t.payload) for t in result.scalars().all()]
        return [p for p in payloads if kind is None or p.email_type == kind]

    return _emails
