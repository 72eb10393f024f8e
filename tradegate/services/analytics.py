import logging
from collections import Counter, defaultdict

from sqlalchemy.ext.asyncio import AsyncSession

from tradegate.models.trade import Trade
from tradegate.services.rule_breaks import RuleBreakCode, parse_rule_breaks, parse_tags
from tradegate.services.strategies import StrategyService
from tradegate.services.trades import TradeService

logger = logging.getLogger(__name__)

MIN_TRADES_FOR_COACHING = 5
LEAK_MIN_TRADES = 3
TOP_N = 6
EMPTY_LABEL = "—"


class TradeInsights:
    """Discipline and performance patterns over a recent window of trades."""

    def __init__(self, trades: TradeService | None = None, strategies: StrategyService | None = None):
        self.trades = trades or TradeService()
        self.strategies = strategies or StrategyService()

    async def calculate(self, db_session: AsyncSession, since_ms: int, window_days: int) -> dict:
        trades = await self.trades.list_trades_since(db_session, since_ms)
        strategy_names = {s.id: s.name for s in await self.strategies.list_strategies(db_session)}

        if not trades:
            return self._empty_result(window_days)

        total = len(trades)
        wins = sum(1 for t in trades if t.result_r > 0)
        total_r = sum(t.result_r for t in trades)
        clean = sum(1 for t in trades if not parse_rule_breaks(t.rule_breaks))
        discipline_score = clean / total

        rule_break_counts: Counter = Counter()
        tag_counts: Counter = Counter()
        for t in trades:
            rule_break_counts.update(c.value for c in parse_rule_breaks(t.rule_breaks))
            tag_counts.update(parse_tags(t.tags))

        by_session = self._breakdown(trades, lambda t: t.session)
        by_timeframe = self._breakdown(trades, lambda t: t.timeframe)
        by_bias = self._breakdown(trades, lambda t: t.bias)
        by_strategy = self._strategy_breakdown(trades, strategy_names)

        coach = self._coach(total, discipline_score, rule_break_counts, tag_counts, by_session, by_timeframe)

        return {
            "window_days": window_days,
            "total_trades": total,
            "wins": wins,
            "win_rate": round(wins / total, 4),
            "total_r": round(total_r, 2),
            "avg_r": round(total_r / total, 4),
            "discipline_score": round(discipline_score, 4),
            "top_rule_breaks": dict(rule_break_counts.most_common(TOP_N)),
            "top_tags": dict(tag_counts.most_common(TOP_N)),
            "per_session": by_session,
            "per_timeframe": by_timeframe,
            "per_bias": by_bias,
            "per_strategy": by_strategy,
            "coach": coach,
        }

    def _breakdown(self, trades: list[Trade], key) -> dict[str, dict]:
        grouped: dict[str, list[Trade]] = defaultdict(list)
        for t in trades:
            grouped[(key(t) or "").strip() or EMPTY_LABEL].append(t)
        return {label: self._stat_row(label, rows) for label, rows in grouped.items()}

    def _strategy_breakdown(self, trades: list[Trade], names: dict[str, str]) -> dict[str, dict]:
        grouped: dict[str, list[Trade]] = defaultdict(list)
        for t in trades:
            grouped[(t.strategy_id or "").strip() or EMPTY_LABEL].append(t)

        result = {}
        for strategy_id, rows in grouped.items():
            if strategy_id == EMPTY_LABEL:
                label = "No Strategy"
            else:
                snapshot = next((t.strategy_name for t in rows if (t.strategy_name or "").strip()), "")
                label = names.get(strategy_id) or snapshot or f"Strategy {strategy_id[:6]}"
            result[strategy_id] = self._stat_row(label, rows)
        return result

    def _stat_row(self, label: str, rows: list[Trade]) -> dict:
        total = len(rows)
        wins = sum(1 for t in rows if t.result_r > 0)
        total_r = sum(t.result_r for t in rows)
        return {
            "label": label,
            "trade_count": total,
            "win_rate": round(wins / total, 4) if total else 0.0,
            "total_r": round(total_r, 2),
            "avg_r": round(total_r / total, 4) if total else 0.0,
        }

    def _coach(self, total, discipline_score, rule_breaks, tags, by_session, by_timeframe) -> list[str]:
        if total < MIN_TRADES_FOR_COACHING:
            return [f"Log at least {MIN_TRADES_FOR_COACHING} trades in this window to unlock stronger insights."]

        pct = f"{round(discipline_score * 100)}%"
        coach = []
        if discipline_score < 0.8:
            coach.append(f"Discipline is slipping ({pct} clean). Aim 90%+ clean trades (no rule breaks).")
        else:
            coach.append(f"Discipline is solid ({pct} clean). Keep it above 90%.")

        override_used = rule_breaks.get(RuleBreakCode.OVERRIDE_USED.value, 0)
        if override_used:
            coach.append(f"Override used {override_used}×. Goal: 0. Only emergencies.")

        closeout_missing = rule_breaks.get(RuleBreakCode.CLOSEOUT_MISSING.value, 0)
        if closeout_missing:
            coach.append(f"Closeout missing {closeout_missing}×. Do closeout after trading to stay sharp.")

        worst_session = _worst(by_session)
        if worst_session and worst_session["trade_count"] >= LEAK_MIN_TRADES and worst_session["total_r"] < 0:
            coach.append(
                f'Session leak: "{worst_session["label"]}" is bleeding ({worst_session["total_r"]:.2f}R). '
                "Reduce size, tighten rules, or avoid it."
            )

        worst_tf = _worst(by_timeframe)
        if worst_tf and worst_tf["trade_count"] >= LEAK_MIN_TRADES and worst_tf["total_r"] < 0:
            coach.append(
                f'Timeframe leak: "{worst_tf["label"]}" is bleeding ({worst_tf["total_r"]:.2f}R). '
                "Either change execution rules or stop trading it."
            )

        mistake, fomo, revenge = tags.get("MISTAKE", 0), tags.get("FOMO", 0), tags.get("REVENGE", 0)
        if mistake + fomo + revenge > 0:
            coach.append(
                f"Mistake tags found: Mistake {mistake}× • FOMO {fomo}× • Revenge {revenge}×. "
                "Focus ONE fix for the next 10 trades."
            )
        return coach

    def _empty_result(self, window_days: int) -> dict:
        return {
            "window_days": window_days,
            "total_trades": 0,
            "wins": 0,
            "win_rate": 0.0,
            "total_r": 0.0,
            "avg_r": 0.0,
            "discipline_score": 1.0,
            "top_rule_breaks": {},
            "top_tags": {},
            "per_session": {},
            "per_timeframe": {},
            "per_bias": {},
            "per_strategy": {},
            "coach": [f"Log at least {MIN_TRADES_FOR_COACHING} trades in this window to unlock stronger insights."],
        }


def _worst(rows: dict[str, dict]) -> dict | None:
    if not rows:
        return None
    return min(rows.values(), key=lambda r: (r["total_r"], -r["trade_count"]))
