import os
import tempfile
from pathlib import Path

# Point the app at a throwaway database before anything imports cramdeck.config
_tmp_dir = tempfile.mkdtemp(prefix="cramdeck-tests-")
os.environ.setdefault(
    "CRAMDECK_DATABASE_URL", f"sqlite+aiosqlite:///{Path(_tmp_dir) / 'test.db'}"
)

import pytest_asyncio  # noqa: E402

from cramdeck.database import async_session, engine  # noqa: E402
from cramdeck.models import Base  # noqa: E402


@pytest_asyncio.fixture
async def db():
    """A session on freshly created tables, dropped again afterwards."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    async with async_session() as session:
        yield session
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
