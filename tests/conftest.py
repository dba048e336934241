"""
Shared fixtures: a fresh SQLite file database per test, the app wired to
it, local storage under tmp_path, and small factories for users/events.
"""

import os
import tempfile
from datetime import datetime, timedelta

os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "jataayu-test.log"))
os.environ.setdefault("STORAGE_BACKEND", "local")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from config import settings
from core.roles import AdminRole, BlockOfficerRole, OfficialMemberRole, PublicRole, Role
from core.security import security
from core.storage import storage
from db.models import Event
from db.session import Base, get_db, get_session_factory
from main import app
from modules.users import create_user


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    monkeypatch.setattr(settings, "PASSWORD_HASH_ITERATIONS", 1000)


@pytest.fixture(autouse=True)
def upload_root(tmp_path, monkeypatch):
    root = tmp_path / "uploads"
    monkeypatch.setattr(storage, "root", root)
    return root


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


_ASSIGNMENTS = {
    Role.ADMIN: lambda: AdminRole(role="admin"),
    Role.BLOCK_OFFICER: lambda: BlockOfficerRole(role="block_officer", district="Sangli"),
    Role.OFFICIAL_MEMBER: lambda: OfficialMemberRole(role="Official_member", official_role="Secretary"),
    Role.PUBLIC: lambda: PublicRole(role="public"),
}


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    async def _make(role: Role = Role.PUBLIC, name: str = None, password: str = "password123"):
        counter["n"] += 1
        name = name or f"{role.value}-{counter['n']}"
        email = f"{name.lower().replace(' ', '.')}@example.org"
        return await create_user(db, name, email, password, _ASSIGNMENTS[role]())

    return _make


@pytest.fixture
def make_event(db):
    async def _make(creator, title="Awareness Rally", district="Sangli", days_ahead=7, **extra):
        event = Event(
            title=title,
            description=extra.pop("description", "Community drive"),
            location=extra.pop("location", "Town Hall"),
            district=district,
            date=datetime.utcnow() + timedelta(days=days_ahead),
            images=extra.pop("images", []),
            reports=extra.pop("reports", []),
            created_by=creator.id,
            shared_with=extra.pop("shared_with", []),
        )
        db.add(event)
        await db.commit()
        return event

    return _make


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {security.create_access_token(user.id)}"}


@pytest.fixture
def headers():
    return auth_headers
