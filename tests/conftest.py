"""Global pytest fixtures for Linktory.

- Mock async database sessions and Redis clients
- Settings cache isolation
"""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio


# ===========================================
# DATABASE SESSION FIXTURES
# ===========================================


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncMock, None]:
    """Mock async database session. Queue query results on ``execute.side_effect``."""
    session = AsyncMock()
    session.add = MagicMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.flush = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()

    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)

    yield session


# ===========================================
# REDIS MOCK FIXTURES
# ===========================================


@pytest.fixture
def mock_redis_client() -> MagicMock:
    """Create a mock Redis client for unit tests."""
    redis = MagicMock()
    redis.get = AsyncMock(return_value=None)
    redis.getdel = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.setex = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.expire = AsyncMock(return_value=True)
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[0, 1, 1, True])
    redis.pipeline = MagicMock(return_value=pipe)
    redis.aclose = AsyncMock()
    return redis


# ===========================================
# SETTINGS
# ===========================================


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Isolate tests from the host environment and the settings cache."""
    from linktory.config import get_settings

    for key in ("LINKTORY_ADMIN_IDS", "LINKTORY_ADMIN_TOKEN", "LINKTORY_WEBHOOK_SECRET"):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
