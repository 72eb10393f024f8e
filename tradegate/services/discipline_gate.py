import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta, tzinfo

from sqlalchemy.ext.asyncio import AsyncSession

from tradegate.services.journal import DailyJournalService
from tradegate.services.rule_breaks import RuleBreakCode
from tradegate.services.settings_store import (
    GATE_OVERRIDE_COOLDOWN_UNTIL,
    GATE_OVERRIDE_UNTIL,
    MODE_REAL,
    GateConfig,
    SettingsStore,
)
from tradegate.services.trade_stats import TradeAggregator, TradeStats
from tradegate.utils.day_keys import now_utc, to_epoch_ms, today_key, yesterday_key

logger = logging.getLogger(__name__)

OVERRIDE_DURATION = timedelta(hours=1)
OVERRIDE_COOLDOWN = timedelta(hours=24)


@dataclass
class GateResult:
    can_trade: bool
    mode: str
    day_key: str
    reasons: list[str] = field(default_factory=list)
    block_codes: list[RuleBreakCode] = field(default_factory=list)
    override_active: bool = False
    override_until_ms: int = 0
    override_cooldown_until_ms: int = 0
    cooldown_active: bool = False
    soft_warnings: list[RuleBreakCode] = field(default_factory=list)
    requirements: dict = field(default_factory=dict)
    stats: dict = field(default_factory=dict)
    settings: dict = field(default_factory=dict)

    @property
    def locked(self) -> bool:
        return self.mode == MODE_REAL and not self.can_trade

    def as_dict(self) -> dict:
        data = asdict(self)
        data["block_codes"] = [c.value for c in self.block_codes]
        data["soft_warnings"] = [c.value for c in self.soft_warnings]
        return data


class DisciplineGate:
    """Decides whether trading is allowed right now.

    Demo mode never blocks. Real mode applies three hard limits (trades per
    day, daily loss in R, consecutive losses), any of which an active
    override bypasses, plus soft plan/closeout warnings that never block.

    Every call re-reads settings and recomputes today's stats; nothing is
    cached, so callers just evaluate again after a write.
    """

    def __init__(
        self,
        tz: tzinfo | None,
        settings_store: SettingsStore | None = None,
        aggregator: TradeAggregator | None = None,
        journal: DailyJournalService | None = None,
    ):
        self.tz = tz
        self.settings_store = settings_store or SettingsStore()
        self.aggregator = aggregator or TradeAggregator(tz)
        self.journal = journal or DailyJournalService()

    async def evaluate(
        self, db_session: AsyncSession, now: datetime | None = None
    ) -> GateResult:
        now = now or now_utc()
        now_ms = to_epoch_ms(now)
        config = await self.settings_store.load_gate_config(db_session)

        day_key = today_key(now, self.tz)
        stats = await self.aggregator.get_trade_stats_for_day(db_session, day_key)
        cooldown_active = config.is_real and now_ms < config.override_cooldown_until_ms

        if not config.is_real:
            return GateResult(
                can_trade=True,
                mode=config.mode,
                day_key=day_key,
                override_cooldown_until_ms=config.override_cooldown_until_ms,
                requirements={"plan_done": True, "closeout_done": True},
                stats=_gate_stats(stats),
                settings=config.limits(),
            )

        override_active = now_ms < config.override_until_ms

        plan_done = True
        if config.require_daily_plan:
            plan_done = await self.journal.has_daily_plan(db_session, day_key)
        closeout_done = True
        if config.require_daily_closeout:
            # Yesterday's session must be closed out before trading today
            closeout_done = await self.journal.has_daily_closeout(
                db_session, yesterday_key(now, self.tz)
            )

        soft_warnings = []
        if not plan_done:
            soft_warnings.append(RuleBreakCode.PLAN_MISSING)
        if not closeout_done:
            soft_warnings.append(RuleBreakCode.CLOSEOUT_MISSING)

        reasons, block_codes = check_hard_limits(config, stats)
        can_trade = override_active or not reasons

        if reasons:
            logger.info(
                "Gate %s for %s: %s",
                "overridden" if override_active else "locked",
                day_key,
                " ".join(reasons),
            )

        return GateResult(
            can_trade=can_trade,
            mode=config.mode,
            day_key=day_key,
            reasons=reasons,
            block_codes=block_codes,
            override_active=override_active,
            override_until_ms=config.override_until_ms,
            override_cooldown_until_ms=config.override_cooldown_until_ms,
            cooldown_active=cooldown_active,
            soft_warnings=soft_warnings,
            requirements={"plan_done": plan_done, "closeout_done": closeout_done},
            stats=_gate_stats(stats),
            settings=config.limits(),
        )

    async def activate_override(
        self, db_session: AsyncSession, now: datetime | None = None
    ) -> bool:
        """Open a 1h override window and start the 24h activation cooldown.

        Refused (returns False, writes nothing) in demo mode or while the
        cooldown from the previous activation is still running.
        """
        now = now or now_utc()
        now_ms = to_epoch_ms(now)
        config = await self.settings_store.load_gate_config(db_session)

        if not config.is_real:
            logger.info("Override not activated: demo mode")
            return False
        if now_ms < config.override_cooldown_until_ms:
            logger.info(
                "Override not activated: cooldown until %d (%.1fh left)",
                config.override_cooldown_until_ms,
                (config.override_cooldown_until_ms - now_ms) / 3_600_000,
            )
            return False

        override_until = to_epoch_ms(now + OVERRIDE_DURATION)
        cooldown_until = to_epoch_ms(now + OVERRIDE_COOLDOWN)
        await self.settings_store.set_settings(
            db_session,
            {
                GATE_OVERRIDE_UNTIL: str(override_until),
                GATE_OVERRIDE_COOLDOWN_UNTIL: str(cooldown_until),
            },
        )
        logger.warning("Gate override ACTIVE until %d, next activation after %d", override_until, cooldown_until)
        return True

    async def clear_override(self, db_session: AsyncSession) -> None:
        """End the override window early. The cooldown keeps running."""
        await self.settings_store.set_setting(db_session, GATE_OVERRIDE_UNTIL, "0")
        logger.info("Gate override cleared")


def check_hard_limits(config: GateConfig, stats: TradeStats) -> tuple[list[str], list[RuleBreakCode]]:
    """Evaluate each hard limit independently. A limit <= 0 is disabled."""
    reasons: list[str] = []
    codes: list[RuleBreakCode] = []

    if config.max_trades_per_day > 0 and stats.trade_count >= config.max_trades_per_day:
        reasons.append(f"Max trades hit ({stats.trade_count}/{_fmt(config.max_trades_per_day)}).")
        codes.append(RuleBreakCode.MAX_TRADES_HIT)

    if config.max_daily_loss_r > 0 and stats.sum_r <= -config.max_daily_loss_r:
        reasons.append(
            f"Daily loss limit hit ({stats.sum_r:.2f}R ≤ -{_fmt(config.max_daily_loss_r)}R)."
        )
        codes.append(RuleBreakCode.MAX_DAILY_LOSS_HIT)

    if (
        config.max_consecutive_losses > 0
        and stats.consecutive_losses >= config.max_consecutive_losses
    ):
        reasons.append(
            f"Consecutive losses limit hit "
            f"({stats.consecutive_losses}/{_fmt(config.max_consecutive_losses)})."
        )
        codes.append(RuleBreakCode.CONSEC_LOSSES_HIT)

    return reasons, codes


def _gate_stats(stats: TradeStats) -> dict:
    return {
        "trade_count": stats.trade_count,
        "sum_r": stats.sum_r,
        "consecutive_losses": stats.consecutive_losses,
    }


def _fmt(limit: float) -> str:
    # 3.0 -> "3", 1.5 -> "1.5"
    return f"{limit:g}"
