"""Key/value settings persistence and the typed gate configuration.

Values are stored as strings. Parsing happens once, in GateConfig.from_raw,
so the gate itself only sees real numbers and booleans.
"""

import logging
import math
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tradegate.exceptions import StorageError
from tradegate.models.setting import AppSetting

logger = logging.getLogger(__name__)

# Setting keys
APP_MODE = "appMode"
GATE_OVERRIDE_UNTIL = "gateOverrideUntil"
GATE_OVERRIDE_COOLDOWN_UNTIL = "gateOverrideCooldownUntil"
MAX_TRADES_PER_DAY = "maxTradesPerDay"
MAX_DAILY_LOSS_R = "maxDailyLossR"
MAX_CONSECUTIVE_LOSSES = "maxConsecutiveLosses"
REQUIRE_DAILY_PLAN = "requireDailyPlan"
REQUIRE_DAILY_CLOSEOUT = "requireDailyCloseout"
DEFAULT_RISK_PERCENT = "defaultRiskPercent"

MODE_DEMO = "demo"
MODE_REAL = "real"

GATE_KEYS = (
    APP_MODE,
    GATE_OVERRIDE_UNTIL,
    GATE_OVERRIDE_COOLDOWN_UNTIL,
    MAX_TRADES_PER_DAY,
    MAX_DAILY_LOSS_R,
    MAX_CONSECUTIVE_LOSSES,
    REQUIRE_DAILY_PLAN,
    REQUIRE_DAILY_CLOSEOUT,
    DEFAULT_RISK_PERCENT,
)


def parse_bool(raw: str | None, default: bool) -> bool:
    """Unset -> default; "1"/"true" (any case) -> True; anything else -> False."""
    if raw is None:
        return default
    return raw.strip() == "1" or raw.strip().lower() == "true"


def parse_number(raw: str | None, default: float, key: str = "") -> float:
    """Parse a numeric setting, falling back to default for unset/garbage.

    Blank and non-finite strings fall back too, so a bad value can never
    turn into 0 (which would silently disable a limit).
    """
    if raw is None:
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        value = math.nan
    if not math.isfinite(value):
        logger.warning("Malformed setting %s=%r, using default %s", key, raw, default)
        return default
    return value


@dataclass(frozen=True)
class GateConfig:
    mode: str = MODE_DEMO
    override_until_ms: int = 0
    override_cooldown_until_ms: int = 0
    max_trades_per_day: float = 3
    max_daily_loss_r: float = 2
    max_consecutive_losses: float = 2
    require_daily_plan: bool = True
    require_daily_closeout: bool = True
    default_risk_percent: float = 1

    @property
    def is_real(self) -> bool:
        return self.mode == MODE_REAL

    @classmethod
    def from_raw(cls, raw: dict[str, str | None]) -> "GateConfig":
        d = cls()
        return cls(
            mode=MODE_REAL if raw.get(APP_MODE) == MODE_REAL else MODE_DEMO,
            override_until_ms=int(parse_number(raw.get(GATE_OVERRIDE_UNTIL), 0, GATE_OVERRIDE_UNTIL)),
            override_cooldown_until_ms=int(
                parse_number(raw.get(GATE_OVERRIDE_COOLDOWN_UNTIL), 0, GATE_OVERRIDE_COOLDOWN_UNTIL)
            ),
            max_trades_per_day=parse_number(raw.get(MAX_TRADES_PER_DAY), d.max_trades_per_day, MAX_TRADES_PER_DAY),
            max_daily_loss_r=parse_number(raw.get(MAX_DAILY_LOSS_R), d.max_daily_loss_r, MAX_DAILY_LOSS_R),
            max_consecutive_losses=parse_number(
                raw.get(MAX_CONSECUTIVE_LOSSES), d.max_consecutive_losses, MAX_CONSECUTIVE_LOSSES
            ),
            require_daily_plan=parse_bool(raw.get(REQUIRE_DAILY_PLAN), d.require_daily_plan),
            require_daily_closeout=parse_bool(raw.get(REQUIRE_DAILY_CLOSEOUT), d.require_daily_closeout),
            default_risk_percent=parse_number(
                raw.get(DEFAULT_RISK_PERCENT), d.default_risk_percent, DEFAULT_RISK_PERCENT
            ),
        )

    def limits(self) -> dict:
        """Limits echoed back to dashboards."""
        return {
            "max_trades_per_day": self.max_trades_per_day,
            "max_daily_loss_r": self.max_daily_loss_r,
            "max_consecutive_losses": self.max_consecutive_losses,
            "require_daily_plan": self.require_daily_plan,
            "require_daily_closeout": self.require_daily_closeout,
        }


class SettingsStore:
    """String key/value access to the settings table."""

    async def get_setting(self, db_session: AsyncSession, key: str) -> str | None:
        try:
            result = await db_session.execute(
                select(AppSetting.value).where(AppSetting.key == key).limit(1)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read setting {key}") from e

    async def get_settings(self, db_session: AsyncSession, keys) -> dict[str, str | None]:
        keys = list(keys)
        try:
            result = await db_session.execute(
                select(AppSetting.key, AppSetting.value).where(AppSetting.key.in_(keys))
            )
            found = {row.key: row.value for row in result}
        except SQLAlchemyError as e:
            raise StorageError("Failed to read settings") from e
        return {key: found.get(key) for key in keys}

    async def set_settings(self, db_session: AsyncSession, values: dict[str, str]) -> None:
        """Upsert several keys in one commit (last write wins)."""
        try:
            for key, value in values.items():
                row = await db_session.get(AppSetting, key)
                if row is None:
                    db_session.add(AppSetting(key=key, value=value))
                else:
                    row.value = value
            await db_session.commit()
        except SQLAlchemyError as e:
            await db_session.rollback()
            raise StorageError("Failed to write settings") from e
        logger.debug("Saved settings: %s", ", ".join(values))

    async def set_setting(self, db_session: AsyncSession, key: str, value: str) -> None:
        await self.set_settings(db_session, {key: value})

    async def load_gate_config(self, db_session: AsyncSession) -> GateConfig:
        """Fresh read of every gate setting. Never cached."""
        raw = await self.get_settings(db_session, GATE_KEYS)
        return GateConfig.from_raw(raw)
