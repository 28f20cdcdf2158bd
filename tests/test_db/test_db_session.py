"""Tests for engine construction and session scopes."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from mirrorbot.db.models import User
from mirrorbot.db.session import build_engine, engine_options, is_memory_sqlite


class TestEngineOptions:
    """Tests for per-database engine options."""

    def test_memory_sqlite_shares_one_connection(self) -> None:
        options = engine_options("sqlite+aiosqlite://")

        assert options["poolclass"] is StaticPool
        assert is_memory_sqlite("sqlite+aiosqlite:///:memory:")

    def test_file_sqlite_creates_directory(self, tmp_path) -> None:
        db_file = tmp_path / "data" / "mirrorbot.db"

        options = engine_options(f"sqlite+aiosqlite:///{db_file}")

        assert db_file.parent.is_dir()
        assert "poolclass" not in options
        assert options["connect_args"]["timeout"] > 0

    def test_server_database_pings_connections(self) -> None:
        options = engine_options("postgresql+asyncpg://bot@db/mirrorbot")

        assert options == {"pool_pre_ping": True}


class TestBuildEngine:
    """Tests for engines built from a URL."""

    @pytest.mark.asyncio
    async def test_memory_database_visible_across_sessions(self) -> None:
        from mirrorbot.db import models  # noqa: F401

        engine = build_engine("sqlite+aiosqlite://")
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        async with factory() as session:
            session.add(User(user_id=5, username="five"))
            await session.commit()
        async with factory() as session:
            stored = await session.get(User, 5)

        assert stored is not None
        assert stored.username == "five"
        await engine.dispose()
