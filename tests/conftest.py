import os
import sys
from pathlib import Path

# Add the backend directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["REDIS_URL"] = ""
os.environ["SCHEDULER_ENABLED"] = "false"

import httpx
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from config import get_settings
from database import Base
import models  # noqa: F401  — registers tables on Base.metadata
from services.container import build_services

USERS = ("alice", "bob", "carol", "dave")
ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'friends.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def services(session_factory):
    svc = build_services(session_factory, get_settings())
    for username in USERS:
        await svc.directory.register(username)
    return svc


@pytest_asyncio.fixture
async def client(services):
    from main import app
    from api.deps import get_services

    app.dependency_overrides[get_services] = lambda: services
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
