"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Минимальные переменные окружения для тестов
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./refchain-test.db")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("FRONTEND_URL", "https://site.com")

# Добавить корень проекта в PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine

from refchain.database import create_session_maker
from refchain.models import Base, User
from refchain.services.referral.config import ReferralProgramConfig
from refchain.services.referral_program import ReferralProgram


class RecordingHook:
    """Notification hook that records every call."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.verified: list[tuple[str, str, str]] = []
        self.invalid: list[tuple[str, str, str]] = []
        self.clicks: list[tuple[str, str]] = []

    def on_referral_verified(self, referrer_id, referred_id, code):
        if self.fail:
            raise RuntimeError("smtp down")
        self.verified.append((referrer_id, referred_id, code))

    async def on_invalid_referral(self, referrer_id, code, reason):
        if self.fail:
            raise RuntimeError("sms gateway down")
        self.invalid.append((referrer_id, code, reason))

    def on_link_clicked(self, referrer_id, code):
        self.clicks.append((referrer_id, code))


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite engine with BEGIN IMMEDIATE transactions."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'refchain.db'}",
        connect_args={"timeout": 10},
    )

    # Writers serialize at BEGIN; savepoints work under aiosqlite
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    """Session maker bound to the test engine."""
    return create_session_maker(engine)


@pytest.fixture
def hook():
    """Recording notification hook."""
    return RecordingHook()


@pytest.fixture
def failing_hook():
    """Notification hook whose delivery always fails."""
    return RecordingHook(fail=True)


@pytest.fixture
def program_config():
    """Default program configuration (12/8/4 %, gold 3/silver 2/bronze 1)."""
    return ReferralProgramConfig()


@pytest.fixture
def make_program(session_maker, program_config):
    """Build a ReferralProgram wired to the test database."""

    def _make_program(hook=None, config=None, **kwargs) -> ReferralProgram:
        kwargs.setdefault("store_timeout", 10.0)
        kwargs.setdefault("notification_timeout", 1.0)
        return ReferralProgram(
            session_maker,
            config=config or program_config,
            notification_hook=hook,
            **kwargs,
        )

    return _make_program


@pytest.fixture
def program(make_program, hook):
    """ReferralProgram with the recording hook."""
    return make_program(hook)


@pytest.fixture
def add_user(session_maker):
    """Insert users with a given tier."""

    async def _add_user(user_id: str, tier: str | None = None) -> None:
        async with session_maker() as session, session.begin():
            session.add(User(id=user_id, tier=tier))

    return _add_user


@pytest.fixture
def refer(program):
    """Create a verified referral ``referrer → referred``."""

    async def _refer(referrer_id: str, referred_id: str):
        link = await program.generate_or_return_active_link(referrer_id)
        return await program.verify_signup(link.code, referred_id)

    return _refer
