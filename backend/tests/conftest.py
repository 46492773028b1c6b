"""Shared test fixtures.

Provides a throwaway SQLite database per test, helpers for building
repositories and commits, and an async HTTP client backed by the FastAPI
app with every dependency pointed at the test database.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

# ---------------------------------------------------------------------------
# Environment overrides. These must be set BEFORE importing the app so that
# ``pydantic-settings`` picks up the test values instead of the local
# database file and the machine's time zone.
# ---------------------------------------------------------------------------
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("DEFAULT_TIMEZONE", "UTC")
os.environ.setdefault("GIT_AUTHOR_FILTER", "")
os.environ.setdefault("AUTO_IMPORT_ENABLED", "false")

from app.api.deps import (  # noqa: E402
    get_git_client,
    get_import_tracker,
    get_session,
    get_session_factory,
)
from app.database import configure_sqlite_engine, init_db  # noqa: E402
from app.external.git_client import GitClient  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Commit, Repository  # noqa: E402
from app.services.import_service import ImportTracker  # noqa: E402

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture()
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """A fresh SQLite file database with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.sqlite'}")
    configure_sqlite_engine(engine)
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Record helpers
# ---------------------------------------------------------------------------


def make_git_dir(base: Path, name: str) -> Path:
    """Create ``base/name/.git`` and return the working tree path."""
    path = base / name
    (path / ".git").mkdir(parents=True)
    return path


async def add_repository(
    session: AsyncSession,
    name: str,
    path: str | Path | None = None,
    is_active: bool = True,
    remote_url: str | None = None,
) -> Repository:
    repo = Repository(
        name=name,
        path=str(path) if path is not None else f"/nonexistent/{name}",
        is_active=is_active,
        remote_url=remote_url,
    )
    session.add(repo)
    await session.flush()
    return repo


def make_commit(
    repo_id: int,
    commit_hash: str,
    committed_at: datetime,
    author: str = "Alice",
    added: int = 1,
    deleted: int = 0,
    message: str = "Update",
) -> Commit:
    return Commit(
        commit_hash=commit_hash,
        author_name=author,
        author_email=f"{author.lower()}@example.com",
        committed_at=committed_at,
        message=message,
        repo_id=repo_id,
        lines_added=added,
        lines_deleted=deleted,
    )


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Git client double
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_git_client() -> AsyncMock:
    """``AsyncMock`` standing in for ``GitClient``; returns no commits by default."""
    client = AsyncMock(spec=GitClient)
    client.get_commits.return_value = []
    client.get_remote_url.return_value = None
    client.scan_for_repositories.return_value = []
    return client


# ---------------------------------------------------------------------------
# Async HTTP client with dependency overrides
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture()
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
    mock_git_client: AsyncMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Yield an ``httpx.AsyncClient`` wired to the FastAPI app.

    Sessions come from the per-test database; the git client is the
    ``mock_git_client`` fixture and the import tracker is fresh per test.
    """
    tracker = ImportTracker()

    async def _override_get_session():  # type: ignore[no-untyped-def]
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _override_get_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_git_client] = lambda: mock_git_client
    app.dependency_overrides[get_import_tracker] = lambda: tracker

    transport = ASGITransport(app=app)  # type: ignore[arg-type]
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()
