from fastapi import APIRouter

from tradegate.api.health import router as health_router
from tradegate.api.gate import router as gate_router
from tradegate.api.admin import router as admin_router
from tradegate.api.trades import router as trades_router
from tradegate.api.journal import router as journal_router
from tradegate.api.strategies import router as strategies_router
from tradegate.api.analytics import router as analytics_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(gate_router)
api_router.include_router(admin_router)
api_router.include_router(trades_router)
api_router.include_router(journal_router)
api_router.include_router(strategies_router)
api_router.include_router(analytics_router)
