"""Gate status and emergency override endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends

from tradegate.dependencies import get_db_session, get_discipline_gate, get_now, require_api_key
from tradegate.models.schemas import GateResponse, OverrideResponse
from tradegate.services.discipline_gate import DisciplineGate, GateResult
from tradegate.services.settings_store import MODE_REAL

router = APIRouter(prefix="/api/v1/gate", tags=["gate"], dependencies=[Depends(require_api_key)])


@router.get("", response_model=GateResponse)
async def get_gate(
    db_session=Depends(get_db_session),
    gate: DisciplineGate = Depends(get_discipline_gate),
    now: datetime = Depends(get_now),
):
    result = await gate.evaluate(db_session, now)
    return gate_to_response(result)


@router.post("/override", response_model=OverrideResponse)
async def activate_override(
    db_session=Depends(get_db_session),
    gate: DisciplineGate = Depends(get_discipline_gate),
    now: datetime = Depends(get_now),
):
    # Refused in demo mode or during cooldown; reported via activated=False
    activated = await gate.activate_override(db_session, now)
    result = await gate.evaluate(db_session, now)

    if activated:
        message = "Override active for 1 hour"
    elif result.mode != MODE_REAL:
        message = "Override is only available in real mode"
    else:
        message = "Override on cooldown"
    return OverrideResponse(activated=activated, message=message, gate=gate_to_response(result))


@router.delete("/override", response_model=GateResponse)
async def clear_override(
    db_session=Depends(get_db_session),
    gate: DisciplineGate = Depends(get_discipline_gate),
    now: datetime = Depends(get_now),
):
    await gate.clear_override(db_session)
    result = await gate.evaluate(db_session, now)
    return gate_to_response(result)


def gate_to_response(result: GateResult) -> GateResponse:
    return GateResponse(**result.as_dict())
