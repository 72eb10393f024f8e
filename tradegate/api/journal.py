"""Daily plan and closeout endpoints, keyed by YYYY-MM-DD."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from tradegate.dependencies import get_db_session, get_journal_service, get_now, require_api_key, valid_day_key
from tradegate.models.schemas import (
    DailyCloseoutRequest,
    DailyCloseoutResponse,
    DailyPlanRequest,
    DailyPlanResponse,
)
from tradegate.services.journal import DailyJournalService
from tradegate.utils.day_keys import to_epoch_ms

router = APIRouter(prefix="/api/v1", tags=["journal"], dependencies=[Depends(require_api_key)])


@router.put("/plans/{day_key}", response_model=DailyPlanResponse)
async def save_plan(
    request: DailyPlanRequest,
    day_key: str = Depends(valid_day_key),
    db_session=Depends(get_db_session),
    journal_service: DailyJournalService = Depends(get_journal_service),
    now: datetime = Depends(get_now),
):
    plan = await journal_service.upsert_plan(db_session, day_key, request.model_dump(), to_epoch_ms(now))
    return _plan_to_response(plan)


@router.get("/plans/{day_key}", response_model=DailyPlanResponse)
async def get_plan(
    day_key: str = Depends(valid_day_key),
    db_session=Depends(get_db_session),
    journal_service: DailyJournalService = Depends(get_journal_service),
):
    plan = await journal_service.get_plan(db_session, day_key)
    if plan is None:
        raise HTTPException(status_code=404, detail=f"No plan for {day_key}")
    return _plan_to_response(plan)


@router.put("/closeouts/{day_key}", response_model=DailyCloseoutResponse)
async def save_closeout(
    request: DailyCloseoutRequest,
    day_key: str = Depends(valid_day_key),
    db_session=Depends(get_db_session),
    journal_service: DailyJournalService = Depends(get_journal_service),
    now: datetime = Depends(get_now),
):
    closeout = await journal_service.upsert_closeout(
        db_session, day_key, request.model_dump(), to_epoch_ms(now)
    )
    return _closeout_to_response(closeout)


@router.get("/closeouts/{day_key}", response_model=DailyCloseoutResponse)
async def get_closeout(
    day_key: str = Depends(valid_day_key),
    db_session=Depends(get_db_session),
    journal_service: DailyJournalService = Depends(get_journal_service),
):
    closeout = await journal_service.get_closeout(db_session, day_key)
    if closeout is None:
        raise HTTPException(status_code=404, detail=f"No closeout for {day_key}")
    return _closeout_to_response(closeout)


def _plan_to_response(plan) -> DailyPlanResponse:
    return DailyPlanResponse(
        day_key=plan.day_key,
        created_at=plan.created_at,
        bias=plan.bias or "",
        news_caution=bool(plan.news_caution),
        key_levels=plan.key_levels or "",
        scenarios=plan.scenarios or "",
    )


def _closeout_to_response(closeout) -> DailyCloseoutResponse:
    return DailyCloseoutResponse(
        day_key=closeout.day_key,
        created_at=closeout.created_at,
        bias=closeout.bias or "",
        news_caution=bool(closeout.news_caution),
        mood=closeout.mood or 0,
        mistakes=closeout.mistakes or "",
        wins=closeout.wins or "",
        improvement=closeout.improvement or "",
        execution_grade=closeout.execution_grade or "",
    )
