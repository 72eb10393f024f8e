from datetime import datetime, tzinfo

from fastapi import APIRouter, Depends, Query

from tradegate.dependencies import (
    get_db_session,
    get_now,
    get_trade_aggregator,
    get_trade_insights,
    get_tz,
    require_api_key,
    valid_day_key,
)
from tradegate.models.schemas import InsightsResponse, TradeStatsResponse
from tradegate.services.analytics import TradeInsights
from tradegate.services.trade_stats import TradeAggregator
from tradegate.utils.day_keys import recent_window_start_ms

router = APIRouter(prefix="/api/v1", tags=["analytics"], dependencies=[Depends(require_api_key)])


@router.get("/stats/day/{day_key}", response_model=TradeStatsResponse)
async def get_day_stats(
    day_key: str = Depends(valid_day_key),
    db_session=Depends(get_db_session),
    aggregator: TradeAggregator = Depends(get_trade_aggregator),
):
    stats = await aggregator.get_trade_stats_for_day(db_session, day_key)
    return TradeStatsResponse(day_key=day_key, **stats.as_dict())


@router.get("/insights", response_model=InsightsResponse)
async def get_insights(
    days: int = Query(14, ge=1, le=90),
    db_session=Depends(get_db_session),
    insights: TradeInsights = Depends(get_trade_insights),
    tz: tzinfo | None = Depends(get_tz),
    now: datetime = Depends(get_now),
):
    since_ms = recent_window_start_ms(now, tz, days)
    result = await insights.calculate(db_session, since_ms, days)
    return InsightsResponse(**result)
