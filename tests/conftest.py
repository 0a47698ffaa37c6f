"""Pytest configuration and shared fixtures."""

from collections.abc import Awaitable, Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from src.core import db_client
from src.core.config import constants, settings
from src.domain.user import User
from src.services import family_service, user_service


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """Keep PBKDF2 cheap in tests."""
    monkeypatch.setattr(constants, "PASSWORD_HASH_ITERATIONS", 1_000)


@pytest.fixture
def db_path(tmp_path, monkeypatch) -> str:
    """Point the application at a fresh SQLite file."""
    path = str(tmp_path / "familyquest-test.db")
    monkeypatch.setattr(settings, "sqlite_db_path", path)
    return path


@pytest.fixture
async def db(db_path):
    """Initialized schema on a temporary database, closed after the test."""
    await db_client.init_db()
    yield db_path
    await db_client.close_connection()


@pytest.fixture
def make_user(db) -> Callable[..., Awaitable[User]]:
    """Factory registering a user with no family."""

    async def _make_user(name: str, password: str = "secret") -> User:
        return await user_service.register_user(name=name, password=password)

    return _make_user


@pytest.fixture
async def family(make_user) -> dict:
    """A family with an admin and two members."""
    admin = await make_user("Alice")
    family_record, admin = await family_service.create_family(actor=admin, name="The Testers")

    bob = await make_user("Bob")
    _, bob = await family_service.join_family(actor=bob, code=family_record.invite_code)

    carol = await make_user("Carol")
    _, carol = await family_service.join_family(actor=carol, code=family_record.invite_code)

    return {"family": family_record, "admin": admin, "bob": bob, "carol": carol}


@pytest.fixture
def refresh() -> Callable[[User], Awaitable[User]]:
    """Re-read a user from storage."""

    async def _refresh(user: User) -> User:
        return await user_service.get_user_by_id(user_id=user.id)

    return _refresh


@pytest.fixture
def client(db_path) -> Iterator[TestClient]:
    """FastAPI TestClient running the app lifespan against a temporary database."""
    from src.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client) -> Callable[[str], dict[str, str]]:
    """Register `name` through the API and return its bearer headers."""

    def _auth_headers(name: str, password: str = "secret") -> dict[str, str]:
        response = client.post("/api/auth/register", json={"name": name, "password": password})
        assert response.status_code == 201, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _auth_headers
