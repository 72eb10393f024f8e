import os
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from tradegate.config import Settings
from tradegate.models.database import create_tables
from tradegate.models.trade import Trade
from tradegate.services.rule_breaks import format_rule_breaks, format_tags
from tradegate.services.settings_store import (
    APP_MODE,
    REQUIRE_DAILY_CLOSEOUT,
    REQUIRE_DAILY_PLAN,
    SettingsStore,
)
from tradegate.services.trades import make_trade_id
from tradegate.utils.day_keys import to_epoch_ms

# Fixed offset so day boundaries don't depend on the host timezone
TEST_TZ = timezone(timedelta(hours=2))
TEST_NOW = datetime(2025, 3, 12, 15, 0, tzinfo=TEST_TZ)


class Clock:
    """Mutable "now" shared between a test and the app under test."""

    def __init__(self, now: datetime):
        self.now = now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def settings():
    """Test settings with dummy values."""
    return Settings(
        api_secret_key="test_secret",
        database_url="sqlite+aiosqlite:///:memory:",
        log_level="DEBUG",
    )


@pytest.fixture
def tz():
    return TEST_TZ


@pytest.fixture
def now():
    return TEST_NOW


@pytest.fixture
def clock():
    return Clock(TEST_NOW)


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def add_trade(db_session):
    """Insert a trade row directly, bypassing the entry flow."""

    async def _add_trade(result_r: float, at: datetime, **fields) -> Trade:
        ms = to_epoch_ms(at)
        trade = Trade(
            id=fields.pop("id", None) or make_trade_id(ms),
            created_at=ms,
            result_r=result_r,
            risk_r=fields.pop("risk_r", None),
            strategy_id=fields.pop("strategy_id", ""),
            strategy_name=fields.pop("strategy_name", ""),
            session=fields.pop("session", ""),
            timeframe=fields.pop("timeframe", ""),
            bias=fields.pop("bias", ""),
            tags=format_tags(fields.pop("tags", [])),
            rule_breaks=format_rule_breaks(fields.pop("rule_breaks", [])),
            notes=fields.pop("notes", ""),
        )
        db_session.add(trade)
        await db_session.commit()
        return trade

    return _add_trade


@pytest.fixture
def set_real_mode(db_session):
    """Switch to real mode with plan/closeout requirements off unless given."""

    async def _set_real_mode(**values):
        raw = {APP_MODE: "real", REQUIRE_DAILY_PLAN: "0", REQUIRE_DAILY_CLOSEOUT: "0"}
        raw.update(values)
        await SettingsStore().set_settings(db_session, raw)

    return _set_real_mode


@pytest_asyncio.fixture
async def test_app(settings, clock):
    """Create a test FastAPI app with a pinned clock and timezone."""
    os.environ.update({
        "API_SECRET_KEY": settings.api_secret_key,
        "DATABASE_URL": settings.database_url,
    })

    from tradegate.dependencies import get_now, get_tz
    from tradegate.main import app

    # Override the lifespan by setting state directly
    app.state.settings = settings
    app.dependency_overrides[get_now] = lambda: clock.now
    app.dependency_overrides[get_tz] = lambda: TEST_TZ

    engine = create_async_engine(settings.database_url)
    await create_tables(engine)
    app.state.engine = engine
    app.state.async_session = async_sessionmaker(engine, expire_on_commit=False)

    yield app

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest_asyncio.fixture
async def client(test_app):
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
