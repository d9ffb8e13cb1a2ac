from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

import oauth2_accounts.db as db
from oauth2_accounts.app import create_app
from oauth2_accounts.db.models import Base
from oauth2_accounts.oauth2.providers import clear_oauth_cache
from oauth2_accounts.rate_limit import reset_rate_limit_state


@pytest.fixture(autouse=True)
def _reset_process_state() -> Iterator[None]:
    reset_rate_limit_state()
    clear_oauth_cache()
    yield
    reset_rate_limit_state()
    clear_oauth_cache()


@pytest.fixture
async def test_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    db_path = tmp_path / "test.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", future=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    db.SessionMaker = async_sessionmaker(engine, expire_on_commit=False)

    yield engine

    await engine.dispose()


@pytest.fixture
async def client(test_engine: AsyncEngine) -> AsyncIterator[AsyncClient]:
    _ = test_engine
    app = create_app()
    transport = ASGITransport(app=app)

    async with AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
async def db_session(test_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    _ = test_engine
    async with db.SessionMaker() as session:
        yield session
