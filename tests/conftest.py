"""Pytest fixtures for the voting API tests.

Every test gets its own SQLite database file so the unique fingerprint
constraint and the number range check are enforced by a real engine.
"""

import os
import tempfile

# Must be set before podium.config is imported.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.gettempdir(), "podium-import.db"
)

from typing import AsyncGenerator  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import func, select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402

from podium.database import build_engine, build_sessionmaker, get_session  # noqa: E402
from podium.main import app  # noqa: E402
from podium.models import Base, Vote  # noqa: E402


@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh database with the votes table created from metadata."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'votes.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_sessionmaker(engine)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def api_client(session_factory) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client bound to the FastAPI app, one session per request."""

    async def _get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def count_votes(session_factory):
    """Returns a coroutine counting stored rows, optionally for one fingerprint."""

    async def _count(fingerprint: str | None = None) -> int:
        query = select(func.count(Vote.id))
        if fingerprint is not None:
            query = query.where(Vote.fingerprint == fingerprint)
        async with session_factory() as session:
            return (await session.execute(query)).scalar_one()

    return _count


@pytest.fixture
def cast_votes(api_client: httpx.AsyncClient):
    """Submits each number from a distinct fingerprint, in order."""

    async def _cast(numbers: list[int], prefix: str = "fp") -> None:
        for i, number in enumerate(numbers):
            response = await api_client.post(
                "/vote", json={"number": number, "fingerprint": f"{prefix}-{i}"}
            )
            assert response.status_code == 201, response.text

    return _cast
