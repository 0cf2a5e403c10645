"""
Shared fixtures.

Every test gets its own in-memory store and app; nothing touches MongoDB
or the environment's .env file.
"""

import pytest
from fastapi.testclient import TestClient

from tasktracker.api.app import create_app
from tasktracker.auth.passwords import PasswordHasher
from tasktracker.auth.tokens import TokenService
from tasktracker.config import Settings
from tasktracker.core.models import Role, User
from tasktracker.services import TaskService, UserService
from tasktracker.storage import InMemoryDocumentStore


ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "Admin123"
DEFAULT_PASSWORD = "Secret123"


# =============================================================================
# Core components
# =============================================================================


@pytest.fixture
def settings():
    """Test settings: fast hashing, distinct secrets, bootstrap admin."""
    return Settings(
        _env_file=None,
        environment="test",
        debug=False,
        database_url="",
        jwt_access_secret="test-access-secret-0123456789abcdef",
        jwt_refresh_secret="test-refresh-secret-0123456789abcdef",
        password_hash_iterations=1000,
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        admin_name="Admin User",
        sentry_dsn="",
    )


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def tokens(settings):
    return TokenService(settings)


@pytest.fixture
def hasher(settings):
    return PasswordHasher(settings.password_hash_iterations)


@pytest.fixture
def users(store, hasher):
    return UserService(store, hasher)


@pytest.fixture
def tasks(store):
    return TaskService(store)


@pytest.fixture
def make_user(users):
    """Async factory for persisted users."""

    async def create(email: str, role: Role = Role.USER, name: str = "Test User") -> User:
        return await users.create_user(name, email, DEFAULT_PASSWORD, role=role)

    return create


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def app(settings, store):
    return create_app(settings, store)


@pytest.fixture
def client(app):
    """TestClient with lifespan (admin bootstrap) running."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def register(client):
    """Register through the API; returns (user, access_token)."""

    def do_register(email: str, password: str = DEFAULT_PASSWORD, name: str | None = None):
        payload = {"email": email, "password": password}
        if name:
            payload["name"] = name
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return data["user"], data["accessToken"]

    return do_register


@pytest.fixture
def admin_token(client):
    response = client.post(
        "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]["accessToken"]
