from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from tradegate.dependencies import get_db_session, get_now, get_strategy_service, require_api_key
from tradegate.models.schemas import StrategyResponse, StrategyStatsItem, StrategyUpsertRequest
from tradegate.services.strategies import StrategyService
from tradegate.utils.day_keys import to_epoch_ms

router = APIRouter(prefix="/api/v1/strategies", tags=["strategies"], dependencies=[Depends(require_api_key)])


@router.post("", response_model=StrategyResponse)
async def upsert_strategy(
    request: StrategyUpsertRequest,
    db_session=Depends(get_db_session),
    strategies: StrategyService = Depends(get_strategy_service),
    now: datetime = Depends(get_now),
):
    strategy = await strategies.upsert_strategy(db_session, request.model_dump(), to_epoch_ms(now))
    return _strategy_to_response(strategy)


@router.get("", response_model=list[StrategyResponse])
async def list_strategies(
    db_session=Depends(get_db_session),
    strategies: StrategyService = Depends(get_strategy_service),
):
    return [_strategy_to_response(s) for s in await strategies.list_strategies(db_session)]


@router.get("/stats", response_model=dict[str, StrategyStatsItem])
async def get_strategy_stats(
    db_session=Depends(get_db_session),
    strategies: StrategyService = Depends(get_strategy_service),
):
    stats = await strategies.get_strategy_stats(db_session)
    return {sid: StrategyStatsItem(**row) for sid, row in stats.items()}


@router.delete("/{strategy_id}")
async def delete_strategy(
    strategy_id: str,
    db_session=Depends(get_db_session),
    strategies: StrategyService = Depends(get_strategy_service),
):
    if not await strategies.delete_strategy(db_session, strategy_id):
        raise HTTPException(status_code=404, detail="Strategy not found")
    return {"status": "deleted", "id": strategy_id}


def _strategy_to_response(strategy) -> StrategyResponse:
    return StrategyResponse(
        id=strategy.id,
        created_at=strategy.created_at,
        updated_at=strategy.updated_at,
        name=strategy.name,
        market=strategy.market,
        style_tags=strategy.style_tags or "",
        timeframes=strategy.timeframes or "",
        description=strategy.description or "",
        checklist=strategy.checklist or "",
        image_url=strategy.image_url or "",
    )
