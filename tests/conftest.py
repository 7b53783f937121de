# tests/conftest.py
import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from bizdir.db.base import init_models
from bizdir.services.business_writer import create_business, create_category

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; take it over.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def session(sessionmaker):
    async with sessionmaker() as s:
        yield s


@pytest_asyncio.fixture
async def client(sessionmaker):
    from httpx import ASGITransport, AsyncClient

    from bizdir.db.session import get_session
    from bizdir.main import app

    async def _session_override():
        async with sessionmaker() as s:
            yield s

    app.dependency_overrides[get_session] = _session_override
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}


def user_headers(user_id):
    return {"X-User-Id": user_id, "X-User-Role": "user"}


CLAIM_MESSAGE = "I am the registered owner of this business and can verify it with documents."


@pytest_asyncio.fixture
async def restaurants(session):
    return await create_category(session, "Restaurants")


async def make_business(session, title, **fields):
    data = {"title": title}
    data.update(fields)
    return (await create_business(session, data)).business
