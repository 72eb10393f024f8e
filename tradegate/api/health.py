from fastapi import APIRouter

from tradegate.services.rule_breaks import RULE_BREAK_LABELS

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "service": "trade-gate",
        "rule_breaks": [
            {"code": code.value, "label": label}
            for code, label in RULE_BREAK_LABELS.items()
        ],
    }
