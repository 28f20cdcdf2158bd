"""Shared pytest fixtures for MirrorBot tests."""

from __future__ import annotations

import itertools
from collections.abc import AsyncGenerator, Callable, Generator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from mirrorbot.config import Settings
from mirrorbot.core.actions import ActionTag
from mirrorbot.core.blind_chat import BlindChatService
from mirrorbot.core.dispatcher import Dispatcher
from mirrorbot.core.matchmaker import BlindProfile, Matchmaker
from mirrorbot.core.messenger import Messenger
from mirrorbot.core.moderation import ModerationDesk
from mirrorbot.core.session import SessionStore
from mirrorbot.core.tasks import BackgroundTasks
from mirrorbot.db.models import Gender, PreferredGender
from mirrorbot.db.session import build_engine
from mirrorbot.services.transport.protocol import (
    CallbackAction,
    ChatUser,
    InboundMessage,
    VoiceAttachment,
)

ADMIN_CHAT_ID = -1001
CHANNEL_ID = -1002


def build_settings(**overrides) -> Settings:
    """Create a Settings object with safe test defaults."""
    base = {
        "telegram_bot_token": "123456:test-token",
        "telegram_bot_username": "MirrorTestBot",
        "admin_chat_id": ADMIN_CHAT_ID,
        "channel_id": CHANNEL_ID,
        "database_url": "sqlite+aiosqlite:///:memory:",
        "bot_enabled": False,
    }
    base.update(overrides)
    return Settings(**base)


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """Return a factory to build Settings with overrides."""
    return build_settings


@pytest.fixture
def settings(settings_factory: Callable[..., Settings]) -> Settings:
    """Default Settings fixture."""
    return settings_factory()


# =============================================================================
# Clock, profiles and events
# =============================================================================


class FakeClock:
    """Manually advanced clock for idle-time tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def make_profile(
    user_id: int,
    gender: Gender = Gender.male,
    age: int = 21,
    *,
    pref_gender: PreferredGender = PreferredGender.both,
    pref_age_min: int = 18,
    pref_age_max: int = 50,
) -> BlindProfile:
    return BlindProfile(
        user_id=user_id,
        gender=gender,
        age=age,
        years_on_campus=2,
        year_of_study="2nd Year",
        pref_gender=pref_gender,
        pref_age_min=pref_age_min,
        pref_age_max=pref_age_max,
    )


_message_ids = itertools.count(1)


def make_message(
    user_id: int,
    text: str = "",
    *,
    username: str | None = None,
    chat_id: int | None = None,
    chat_type: str = "private",
    action: ActionTag | None = None,
    command: str | None = None,
    command_args: str = "",
    voice: VoiceAttachment | None = None,
    photo_ref: str | None = None,
    caption: str | None = None,
) -> InboundMessage:
    """Build an InboundMessage the way parse_update would."""
    return InboundMessage(
        message_id=next(_message_ids),
        chat_id=chat_id if chat_id is not None else user_id,
        chat_type=chat_type,
        user=ChatUser(id=user_id, username=username or f"user{user_id}"),
        text=text,
        action=action,
        command=command,
        command_args=command_args,
        voice=voice,
        photo_ref=photo_ref,
        caption=caption,
    )


def make_callback(
    data: str,
    *,
    user_id: int = 1,
    chat_id: int = ADMIN_CHAT_ID,
    message_id: int = 500,
) -> CallbackAction:
    kind, *args = data.split(":")
    return CallbackAction(
        callback_id=f"cb-{next(_message_ids)}",
        user=ChatUser(id=user_id, username=f"user{user_id}"),
        chat_id=chat_id,
        message_id=message_id,
        data=data,
        kind=kind,
        args=tuple(args),
    )


def sent_texts(transport: AsyncMock, chat_id: int) -> list[str]:
    """All texts sent to one chat, in order."""
    return [c.args[1] for c in transport.send_text.call_args_list if c.args[0] == chat_id]


def last_text(transport: AsyncMock, chat_id: int) -> str:
    texts = sent_texts(transport, chat_id)
    assert texts, f"nothing sent to {chat_id}"
    return texts[-1]


def answers(transport: AsyncMock) -> list[str]:
    return [c.args[1] for c in transport.answer_callback.call_args_list]


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def async_engine():
    """Create an in-memory async SQLite engine for testing."""
    # Import models to register them with SQLModel metadata
    from mirrorbot.db import models  # noqa: F401

    engine = build_engine("sqlite+aiosqlite://")

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def async_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create an async database session for testing."""
    async_session_maker = sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture
def session_factory(async_engine):
    """Committing session factory bound to the test engine."""
    async_session_maker = sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    @asynccontextmanager
    async def factory() -> AsyncGenerator[AsyncSession, None]:
        async with async_session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return factory


# =============================================================================
# Bot component fixtures
# =============================================================================


@pytest.fixture
def transport() -> AsyncMock:
    """Transport double: every call succeeds and sends return message ids."""
    mock = AsyncMock()
    ids = itertools.count(9000)
    for method in ("send_text", "send_voice", "send_photo", "send_document", "send_sticker"):
        getattr(mock, method).side_effect = lambda *args, **kwargs: next(ids)
    mock.upload_voice.return_value = "anon-file"
    mock.download_file.return_value = b"OggS"
    return mock


@pytest.fixture
def messenger(transport: AsyncMock) -> Messenger:
    return Messenger(transport)


@pytest.fixture
def voice() -> AsyncMock:
    """Anonymizer double. Tests set anonymize's return value or side effect."""
    return AsyncMock()


@pytest.fixture
def sessions(clock: FakeClock) -> SessionStore:
    return SessionStore(clock=clock)


@pytest.fixture
def matchmaker(clock: FakeClock) -> Matchmaker:
    return Matchmaker(clock=clock)


@pytest.fixture
def tasks() -> BackgroundTasks:
    return BackgroundTasks()


@pytest.fixture
def blind_chat(matchmaker, sessions, messenger, voice, session_factory, tasks) -> BlindChatService:
    return BlindChatService(
        matchmaker=matchmaker,
        sessions=sessions,
        messenger=messenger,
        voice=voice,
        session_factory=session_factory,
        tasks=tasks,
        admin_chat_id=ADMIN_CHAT_ID,
    )


@pytest.fixture
def moderation(messenger, sessions, matchmaker, session_factory) -> ModerationDesk:
    return ModerationDesk(
        messenger=messenger,
        sessions=sessions,
        matchmaker=matchmaker,
        session_factory=session_factory,
        admin_chat_id=ADMIN_CHAT_ID,
        channel_id=CHANNEL_ID,
        bot_username="MirrorTestBot",
    )


@pytest.fixture
def dispatcher(
    sessions, matchmaker, messenger, voice, blind_chat, moderation, session_factory, tasks
) -> Dispatcher:
    return Dispatcher(
        sessions=sessions,
        matchmaker=matchmaker,
        messenger=messenger,
        voice=voice,
        blind_chat=blind_chat,
        moderation=moderation,
        session_factory=session_factory,
        tasks=tasks,
    )


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================


@pytest.fixture
def test_client(monkeypatch) -> Generator:
    """FastAPI TestClient with test environment, no bot and an in-memory database."""
    from fastapi.testclient import TestClient

    from mirrorbot.config import get_settings

    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123456:test-token")
    monkeypatch.setenv("ADMIN_CHAT_ID", str(ADMIN_CHAT_ID))
    monkeypatch.setenv("CHANNEL_ID", str(CHANNEL_ID))
    monkeypatch.setenv("WEBHOOK_SECRET", "hook-secret")
    monkeypatch.setenv("BOT_ENABLED", "false")
    get_settings.cache_clear()

    engine = build_engine("sqlite+aiosqlite://")
    test_session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with test_session_factory() as session:
            yield session

    async def mock_init_db():
        from mirrorbot.db import models  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def mock_close_db():
        await engine.dispose()

    import mirrorbot.main
    from mirrorbot.db.session import get_session

    monkeypatch.setattr(mirrorbot.main, "init_db", mock_init_db)
    monkeypatch.setattr(mirrorbot.main, "close_db", mock_close_db)

    app = mirrorbot.main.create_app()
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    get_settings.cache_clear()
