import asyncio
import os
import tempfile
from pathlib import Path

# The app refuses to import without store settings; point it at a scratch SQLite file.
_SCRATCH = Path(tempfile.mkdtemp(prefix="wishboard-tests-"))
os.environ["STORE_URL"] = f"sqlite+aiosqlite:///{_SCRATCH / 'app.db'}"
os.environ["STORE_KEY"] = "test-key"
os.environ["CONFIRMATION_DELAY_SECONDS"] = "0"
os.environ["DEVICE_COOKIE_NAME"] = "wish_device_id"

import pytest
from sqlalchemy.pool import NullPool

from wishboard.database import build_engine, build_session_factory, create_tables
from wishboard.services.store import WishStore


def _sqlite_engine(path: Path):
    # NullPool: connections never outlive the event loop that opened them.
    return build_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)


@pytest.fixture
async def sessions(tmp_path):
    engine = _sqlite_engine(tmp_path / "wishes.db")
    await create_tables(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def store(sessions):
    return WishStore(sessions)


@pytest.fixture
async def broken_store(tmp_path):
    """A store whose tables were never created: every query fails."""
    engine = _sqlite_engine(tmp_path / "empty.db")
    yield WishStore(build_session_factory(engine))
    await engine.dispose()


@pytest.fixture
def app_store(tmp_path):
    engine = _sqlite_engine(tmp_path / "http.db")
    asyncio.run(create_tables(engine))
    return WishStore(build_session_factory(engine))


@pytest.fixture
def client(app_store):
    from fastapi.testclient import TestClient

    from wishboard.main import app
    from wishboard.routers.deps import get_store

    app.dependency_overrides[get_store] = lambda: app_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def broken_store_sync(tmp_path):
    engine = _sqlite_engine(tmp_path / "empty-http.db")
    return WishStore(build_session_factory(engine))


@pytest.fixture
async def async_client(app_store):
    """Async client over the ASGI app, so requests can overlap on one loop."""
    import httpx

    from wishboard.main import app
    from wishboard.routers.deps import get_store

    app.dependency_overrides[get_store] = lambda: app_store
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://testserver",
        cookies={"wish_device_id": "device-one"},
    ) as client:
        yield client
    app.dependency_overrides.clear()
