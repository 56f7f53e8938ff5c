import os
import uuid
from contextlib import asynccontextmanager

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

# IMPORTANT:
# Set env vars BEFORE importing sparkshare.core.config (settings load at import time)
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./sparkshare_test.db")
os.environ.setdefault("JWT_SECRET", "dev-test-secret")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:8081")
os.environ.setdefault("SPARK_MODULES", "")

from sparkshare.main import app as fastapi_app  # noqa: E402
from sparkshare.db.base_class import Base  # noqa: E402
from sparkshare.db.session import engine, AsyncSessionLocal  # noqa: E402
from sparkshare.core.security import CurrentUser, create_identity_token  # noqa: E402
from sparkshare.services.profiles import sync_profile  # noqa: E402
from sparkshare.services.share_registry import ShareableItemRegistry  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def schema(anyio_backend):
    """Fresh tables for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield


@pytest.fixture
async def session_factory(schema):
    return AsyncSessionLocal


@pytest.fixture
async def db_session(schema):
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
async def client(schema):
    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def client_factory():
    @asynccontextmanager
    async def _factory():
        transport = ASGITransport(app=fastapi_app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield c

    return _factory


@pytest.fixture
def share_registry():
    """Swap in an empty registry so registrations don't leak between tests."""
    previous = fastapi_app.state.share_registry
    registry = ShareableItemRegistry()
    fastapi_app.state.share_registry = registry
    yield registry
    fastapi_app.state.share_registry = previous


# --- Small helpers for acting as different users ---

def _unique(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:10]}"


@pytest.fixture
def unique_str():
    return _unique


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_factory():
    """Sign a user in through the API so their profile exists."""

    async def _create(
        client: AsyncClient,
        *,
        uid: str | None = None,
        email: str | None = None,
        display_name: str | None = None,
        photo_url: str | None = None,
    ):
        uid = uid or _unique("uid")
        email = email or f"{_unique('user')}@example.com"
        display_name = display_name or uid
        token = create_identity_token(uid, email, display_name, photo_url)

        r = await client.get("/me", headers=auth_headers(token))
        assert r.status_code == 200, r.text

        return {
            "uid": uid,
            "email": email.lower(),
            "display_name": display_name,
            "token": token,
            "headers": auth_headers(token),
        }

    return _create


@pytest.fixture
def profile_factory(session_factory):
    """Service-level counterpart of user_factory."""

    async def _create(uid: str, email: str, display_name: str | None = None) -> CurrentUser:
        user = CurrentUser(uid=uid, email=email.lower(), display_name=display_name or uid)
        async with session_factory() as session:
            await sync_profile(session, user)
        return user

    return _create


@pytest.fixture
def set_auth_cookie():
    def _set(client: AsyncClient, token: str | None):
        client.cookies.clear()
        if token:
            client.cookies.set("access_token", token)

    return _set


class BrokenSession:
    """Stands in for a session whose store is unreachable."""

    def __init__(self):
        self.rolled_back = False

    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("store unavailable"))

    async def rollback(self):
        self.rolled_back = True


@pytest.fixture
def broken_session():
    return BrokenSession()
