from __future__ import annotations

import logging
import math
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from tradegate.exceptions import InvalidRiskInputError, TradeLockedError
from tradegate.models.schemas import TradeCreateRequest
from tradegate.models.trade import Trade
from tradegate.services.discipline_gate import DisciplineGate, GateResult
from tradegate.services.rule_breaks import RuleBreakCode, parse_rule_breaks
from tradegate.services.settings_store import MODE_REAL
from tradegate.services.strategies import StrategyService
from tradegate.services.trades import TradeService
from tradegate.utils.day_keys import now_utc, to_epoch_ms

logger = logging.getLogger(__name__)


def parse_r_multiple(raw: str | float | int | None) -> float:
    """Accepts 1, "+1", "-1.5" and "-1,5". Anything non-finite is rejected."""
    if isinstance(raw, bool) or raw is None:
        raise InvalidRiskInputError(raw)
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        try:
            value = float(str(raw).strip().replace(",", "."))
        except ValueError:
            raise InvalidRiskInputError(raw) from None
    if not math.isfinite(value):
        raise InvalidRiskInputError(raw)
    return value


class TradeEntry:
    """Orchestrates: gate check -> parse R -> strategy snapshot -> stamp rule-breaks -> insert."""

    def __init__(
        self,
        db_session: AsyncSession,
        gate: DisciplineGate,
        trades: TradeService | None = None,
        strategies: StrategyService | None = None,
    ):
        self.db = db_session
        self.gate = gate
        self.trades = trades or TradeService()
        self.strategies = strategies or StrategyService()

    async def log_trade(
        self, request: TradeCreateRequest, now: datetime | None = None
    ) -> tuple[Trade, GateResult]:
        now = now or now_utc()

        # 1. Hard lock (real mode only; an active override already counts as can_trade)
        gate = await self.gate.evaluate(self.db, now)
        if gate.locked:
            logger.info("Trade refused, gate locked: %s", " ".join(gate.reasons))
            raise TradeLockedError(gate.reasons)

        # 2. Result in R must be a real number before anything is written
        result_r = parse_r_multiple(request.result_r)

        # 3. Strategy name snapshot
        strategy_id = (request.strategy_id or "").strip()
        strategy_name = ""
        if strategy_id:
            strategy = await self.strategies.get_strategy(self.db, strategy_id)
            if strategy is None:
                raise LookupError(f"Strategy {strategy_id} not found")
            strategy_name = strategy.name

        # 4. Rule-breaks: caller's own codes + what the gate says was skipped
        rule_breaks = [c for raw in request.rule_breaks for c in parse_rule_breaks(raw)]
        risk_r = request.risk_r
        if risk_r is not None and (not math.isfinite(risk_r) or risk_r <= 0):
            risk_r = None
            rule_breaks.append(RuleBreakCode.INVALID_RISK_INPUT)
        rule_breaks.extend(stamp_rule_breaks(gate))

        trade = await self.trades.insert_trade(
            self.db,
            {
                "result_r": result_r,
                "risk_r": risk_r,
                "session": request.session,
                "timeframe": request.timeframe,
                "bias": request.bias,
                "strategy_id": strategy_id,
                "strategy_name": strategy_name,
                "notes": request.notes,
                "tags": request.tags,
                "rule_breaks": rule_breaks,
            },
            to_epoch_ms(now),
        )
        return trade, gate


def stamp_rule_breaks(gate: GateResult) -> list[RuleBreakCode]:
    """Codes a trade placed under this gate state should carry.

    Demo mode logs nothing. In real mode the trader proceeding past a soft
    warning is recorded, and trading through an override records
    OVERRIDE_USED plus every hard limit it bypassed.
    """
    if gate.mode != MODE_REAL:
        return []
    codes = list(gate.soft_warnings)
    if gate.override_active:
        codes.append(RuleBreakCode.OVERRIDE_USED)
        codes.extend(gate.block_codes)
    return codes
