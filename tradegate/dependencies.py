from datetime import datetime, tzinfo

from fastapi import Depends, Header, HTTPException, Request

from tradegate.config import Settings
from tradegate.services.analytics import TradeInsights
from tradegate.services.discipline_gate import DisciplineGate
from tradegate.services.journal import DailyJournalService
from tradegate.services.settings_store import SettingsStore
from tradegate.services.strategies import StrategyService
from tradegate.services.trade_entry import TradeEntry
from tradegate.services.trade_stats import TradeAggregator
from tradegate.services.trades import TradeService
from tradegate.utils.day_keys import now_utc, parse_day_key


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tz(settings: Settings = Depends(get_settings)) -> tzinfo | None:
    return settings.get_tzinfo()


def get_now() -> datetime:
    """Current instant; overridden in tests to pin the clock."""
    return now_utc()


def require_api_key(
    x_api_key: str = Header(...),
    settings: Settings = Depends(get_settings),
) -> None:
    if x_api_key != settings.api_secret_key:
        raise HTTPException(status_code=401, detail="Invalid API key")


async def get_db_session(request: Request):
    async with request.app.state.async_session() as session:
        yield session


def get_settings_store() -> SettingsStore:
    return SettingsStore()


def get_journal_service() -> DailyJournalService:
    return DailyJournalService()


def get_trade_service() -> TradeService:
    return TradeService()


def get_strategy_service() -> StrategyService:
    return StrategyService()


def get_trade_aggregator(tz: tzinfo | None = Depends(get_tz)) -> TradeAggregator:
    return TradeAggregator(tz)


def get_discipline_gate(
    tz: tzinfo | None = Depends(get_tz),
    settings_store: SettingsStore = Depends(get_settings_store),
    aggregator: TradeAggregator = Depends(get_trade_aggregator),
    journal: DailyJournalService = Depends(get_journal_service),
) -> DisciplineGate:
    return DisciplineGate(tz, settings_store=settings_store, aggregator=aggregator, journal=journal)


def get_trade_entry(
    db_session=Depends(get_db_session),
    gate: DisciplineGate = Depends(get_discipline_gate),
    trades: TradeService = Depends(get_trade_service),
    strategies: StrategyService = Depends(get_strategy_service),
) -> TradeEntry:
    return TradeEntry(db_session=db_session, gate=gate, trades=trades, strategies=strategies)


def get_trade_insights(
    trades: TradeService = Depends(get_trade_service),
    strategies: StrategyService = Depends(get_strategy_service),
) -> TradeInsights:
    return TradeInsights(trades=trades, strategies=strategies)


def valid_day_key(day_key: str) -> str:
    try:
        parse_day_key(day_key)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid day key {day_key!r}, expected YYYY-MM-DD")
    return day_key
