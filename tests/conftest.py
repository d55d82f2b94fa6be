"""
Shared fixtures: an in-memory SQLite database per test, a recording
notifier in place of Telegram, and an httpx client bound to the app with
its collaborators overridden.
"""

import os

# config.settings and database.engine are built at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ADMIN_ADDRESS", "0x" + "aBcD" * 10)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import deps
from auth_gate import StaticAddressGate
from config import Settings
from database import create_db_and_tables
from main import create_app
from request_service import RequestLifecycleService, TransitionPolicy

ADMIN_ADDRESS = "0x" + "aBcD" * 10
USER_ADDRESS = "0x" + "1234" * 10
OTHER_ADDRESS = "0x" + "5678" * 10


class RecordingNotifier:
    """Stands in for TelegramNotifier and keeps every message it was given"""

    def __init__(self, fail: bool = False):
        self.messages = []
        self.fail = fail

    async def notify(self, text: str) -> bool:
        self.messages.append(text)
        if self.fail:
            raise RuntimeError("telegram unreachable")
        return True


def make_settings(**overrides) -> Settings:
    values = dict(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        ADMIN_ADDRESS=ADMIN_ADDRESS,
        TELEGRAM_BOT_TOKEN=None,
        TELEGRAM_CHAT_ID=None,
        RPC_URL=None,
        COMPLIANCE_NFT_ADDRESS=None,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest_asyncio.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_db_and_tables(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def oracle():
    # None means "not configured"; compliance tests swap in a fake
    return None


@pytest.fixture
def service(db_session, notifier):
    return RequestLifecycleService(
        db=db_session,
        gate=StaticAddressGate(ADMIN_ADDRESS),
        notifier=notifier,
        transition_policy=TransitionPolicy.PERMISSIVE,
    )


@pytest_asyncio.fixture
async def client(session_factory, settings, notifier, oracle):
    app = create_app()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_settings] = lambda: settings
    app.dependency_overrides[deps.get_notifier] = lambda: notifier
    app.dependency_overrides[deps.get_compliance_oracle] = lambda: oracle

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
