"""
Pytest configuration and fixtures
"""
import os

# Keep tests offline and away from the developer's .env key.
os.environ["OPENAI_API_KEY"] = ""
os.environ.setdefault("ENV", "test")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.database import Base, get_db
from app.core.rate_limit import signin_rate_limiter
from app.domain.insights import models as _insight_models  # noqa: F401
from app.domain.users import models as _user_models  # noqa: F401
from app.domain.users.models import User


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Fresh sqlite database per test, schema created from the models."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def user(db) -> User:
    user = User(email="owner@example.com", password_hash="not-a-real-hash")
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    signin_rate_limiter.reset()
    yield
    signin_rate_limiter.reset()


@pytest_asyncio.fixture
async def client(session_factory):
    """API client bound to the test database."""
    from main import app

    async def _get_test_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_test_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
    app.dependency_overrides.clear()
