import logging
from datetime import datetime, tzinfo

from fastapi import APIRouter, Depends, HTTPException, Query

from tradegate.api.gate import gate_to_response
from tradegate.dependencies import (
    get_db_session,
    get_now,
    get_trade_entry,
    get_trade_service,
    get_tz,
    require_api_key,
    valid_day_key,
)
from tradegate.models.schemas import (
    TradeCreateRequest,
    TradeCreateResponse,
    TradeResponse,
    TradeUpdateRequest,
)
from tradegate.models.trade import Trade
from tradegate.services.rule_breaks import rule_break_label
from tradegate.services.trade_entry import TradeEntry
from tradegate.services.trades import TradeService, trade_rule_breaks, trade_tags
from tradegate.utils.day_keys import day_key_from_date, from_epoch_ms, recent_window_start_ms

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/trades", tags=["trades"], dependencies=[Depends(require_api_key)])


@router.post("", response_model=TradeCreateResponse)
async def create_trade(
    request: TradeCreateRequest,
    entry: TradeEntry = Depends(get_trade_entry),
    tz: tzinfo | None = Depends(get_tz),
    now: datetime = Depends(get_now),
):
    try:
        trade, gate = await entry.log_trade(request, now)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    message = "Saved"
    if gate.override_active:
        message = "Saved (override used)"
    elif gate.soft_warnings:
        message = "Saved with warnings: " + ", ".join(c.value for c in gate.soft_warnings)
    return TradeCreateResponse(
        trade=trade_to_response(trade, tz),
        gate=gate_to_response(gate),
        message=message,
    )


@router.get("", response_model=list[TradeResponse])
async def list_trades(
    day_key: str | None = None,
    days: int = Query(14, ge=1, le=365),
    limit: int = Query(5000, ge=1, le=5000),
    db_session=Depends(get_db_session),
    trades: TradeService = Depends(get_trade_service),
    tz: tzinfo | None = Depends(get_tz),
    now: datetime = Depends(get_now),
):
    if day_key is not None:
        valid_day_key(day_key)
        rows = await trades.list_trades_for_day(db_session, day_key, tz)
    else:
        since_ms = recent_window_start_ms(now, tz, days)
        rows = await trades.list_trades_since(db_session, since_ms, limit)
    return [trade_to_response(t, tz) for t in rows]


@router.get("/days", response_model=list[str])
async def list_trade_days(
    days: int = Query(14, ge=1, le=365),
    db_session=Depends(get_db_session),
    trades: TradeService = Depends(get_trade_service),
    tz: tzinfo | None = Depends(get_tz),
    now: datetime = Depends(get_now),
):
    return await trades.recent_day_keys(db_session, recent_window_start_ms(now, tz, days), tz)


@router.get("/{trade_id}", response_model=TradeResponse)
async def get_trade(
    trade_id: str,
    db_session=Depends(get_db_session),
    trades: TradeService = Depends(get_trade_service),
    tz: tzinfo | None = Depends(get_tz),
):
    trade = await trades.get_trade(db_session, trade_id)
    if trade is None:
        raise HTTPException(status_code=404, detail="Trade not found")
    return trade_to_response(trade, tz)


@router.patch("/{trade_id}", response_model=TradeResponse)
async def update_trade(
    trade_id: str,
    request: TradeUpdateRequest,
    db_session=Depends(get_db_session),
    trades: TradeService = Depends(get_trade_service),
    tz: tzinfo | None = Depends(get_tz),
):
    trade = await trades.get_trade(db_session, trade_id)
    if trade is None:
        raise HTTPException(status_code=404, detail="Trade not found")

    if request.notes is not None:
        trade = await trades.update_notes(db_session, trade_id, request.notes)
    if request.tags is not None:
        trade = await trades.update_tags(db_session, trade_id, request.tags)
    return trade_to_response(trade, tz)


@router.delete("/{trade_id}")
async def delete_trade(
    trade_id: str,
    db_session=Depends(get_db_session),
    trades: TradeService = Depends(get_trade_service),
):
    if not await trades.delete_trade(db_session, trade_id):
        raise HTTPException(status_code=404, detail="Trade not found")
    return {"status": "deleted", "id": trade_id}


def trade_to_response(trade: Trade, tz: tzinfo | None) -> TradeResponse:
    """Convert a Trade ORM object to a response model."""
    rule_breaks = trade_rule_breaks(trade)
    return TradeResponse(
        id=trade.id,
        created_at=trade.created_at,
        day_key=day_key_from_date(from_epoch_ms(trade.created_at, tz).date()),
        result_r=trade.result_r,
        risk_r=trade.risk_r,
        session=trade.session or "",
        timeframe=trade.timeframe or "",
        bias=trade.bias or "",
        strategy_id=trade.strategy_id or None,
        strategy_name=trade.strategy_name or None,
        notes=trade.notes or "",
        tags=trade_tags(trade),
        rule_breaks=rule_breaks,
        rule_break_labels=[rule_break_label(c) for c in rule_breaks],
    )

