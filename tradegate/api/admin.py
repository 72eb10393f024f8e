"""Admin screen: edit mode and risk limits stored in the settings table."""

import logging

from fastapi import APIRouter, Depends

from tradegate.dependencies import get_db_session, get_settings_store, require_api_key
from tradegate.models.schemas import AdminSettingsResponse, AdminSettingsUpdate
from tradegate.services.settings_store import (
    APP_MODE,
    DEFAULT_RISK_PERCENT,
    MAX_CONSECUTIVE_LOSSES,
    MAX_DAILY_LOSS_R,
    MAX_TRADES_PER_DAY,
    REQUIRE_DAILY_CLOSEOUT,
    REQUIRE_DAILY_PLAN,
    GateConfig,
    SettingsStore,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/settings", tags=["settings"], dependencies=[Depends(require_api_key)])

_NUMERIC_KEYS = {
    "max_trades_per_day": MAX_TRADES_PER_DAY,
    "max_daily_loss_r": MAX_DAILY_LOSS_R,
    "max_consecutive_losses": MAX_CONSECUTIVE_LOSSES,
    "default_risk_percent": DEFAULT_RISK_PERCENT,
}
_BOOL_KEYS = {
    "require_daily_plan": REQUIRE_DAILY_PLAN,
    "require_daily_closeout": REQUIRE_DAILY_CLOSEOUT,
}


@router.get("", response_model=AdminSettingsResponse)
async def get_admin_settings(
    db_session=Depends(get_db_session),
    store: SettingsStore = Depends(get_settings_store),
):
    config = await store.load_gate_config(db_session)
    return _config_to_response(config)


@router.put("", response_model=AdminSettingsResponse)
async def update_admin_settings(
    request: AdminSettingsUpdate,
    db_session=Depends(get_db_session),
    store: SettingsStore = Depends(get_settings_store),
):
    # Override timestamps are not editable here; switching mode leaves them as they are
    values: dict[str, str] = {}
    if request.mode is not None:
        values[APP_MODE] = request.mode
    for field, key in _NUMERIC_KEYS.items():
        value = getattr(request, field)
        if value is not None:
            values[key] = format_setting_number(value)
    for field, key in _BOOL_KEYS.items():
        value = getattr(request, field)
        if value is not None:
            values[key] = "1" if value else "0"

    if values:
        await store.set_settings(db_session, values)
        logger.info("Admin settings updated: %s", values)

    config = await store.load_gate_config(db_session)
    return _config_to_response(config)


def format_setting_number(value: float) -> str:
    """Exact text form of a limit: "3" for integral values, repr otherwise."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _config_to_response(config: GateConfig) -> AdminSettingsResponse:
    return AdminSettingsResponse(
        mode=config.mode,
        max_trades_per_day=config.max_trades_per_day,
        max_daily_loss_r=config.max_daily_loss_r,
        max_consecutive_losses=config.max_consecutive_losses,
        default_risk_percent=config.default_risk_percent,
        require_daily_plan=config.require_daily_plan,
        require_daily_closeout=config.require_daily_closeout,
        override_until_ms=config.override_until_ms,
        override_cooldown_until_ms=config.override_cooldown_until_ms,
    )
