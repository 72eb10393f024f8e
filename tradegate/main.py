import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tradegate.config import Settings
from tradegate.exceptions import InvalidRiskInputError, StorageError, TradeLockedError
from tradegate.models.database import create_engine, create_session_factory, create_tables
from tradegate.services.strategies import StrategyService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Database
    engine = create_engine(settings.database_url)
    await create_tables(engine)
    app.state.engine = engine
    app.state.async_session = create_session_factory(engine)
    app.state.settings = settings

    # Older trades may predate the strategy_name snapshot
    async with app.state.async_session() as session:
        await StrategyService().backfill_strategy_names(session)

    logger.info(
        "Trade gate started (db=%s, timezone=%s)",
        settings.database_url,
        settings.timezone or "local",
    )
    yield

    await engine.dispose()
    logger.info("Trade gate shut down")


app = FastAPI(title="Trade Gate", version="1.0.0", lifespan=lifespan)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    # Never answer "allowed" when the journal could not be read
    logger.error("Storage failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(TradeLockedError)
async def trade_locked_handler(request: Request, exc: TradeLockedError):
    return JSONResponse(
        status_code=423,
        content={"detail": "Locked by rules", "reasons": exc.reasons},
    )


@app.exception_handler(InvalidRiskInputError)
async def invalid_risk_input_handler(request: Request, exc: InvalidRiskInputError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


from tradegate.api.router import api_router  # noqa: E402

app.include_router(api_router)
