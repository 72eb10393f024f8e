import logging
from dataclasses import dataclass, asdict
from datetime import tzinfo

from sqlalchemy import select, func, case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tradegate.exceptions import StorageError
from tradegate.models.trade import Trade
from tradegate.utils.day_keys import day_bounds_ms

logger = logging.getLogger(__name__)

# Losing-streak lookback is capped to the most recent trades of the day
STREAK_LOOKBACK = 50


@dataclass(frozen=True)
class TradeStats:
    trade_count: int = 0
    sum_r: float = 0.0
    consecutive_losses: int = 0
    wins: int = 0
    win_rate: float = 0.0
    avg_r: float = 0.0

    def as_dict(self) -> dict:
        return asdict(self)


class TradeAggregator:
    """Per-day statistics over logged trades. Read-only, recomputed per call."""

    def __init__(self, tz: tzinfo | None):
        self.tz = tz

    async def get_trade_stats_for_day(
        self, db_session: AsyncSession, day_key: str
    ) -> TradeStats:
        start_ms, end_ms = day_bounds_ms(day_key, self.tz)
        in_day = (Trade.created_at >= start_ms, Trade.created_at < end_ms)

        try:
            totals = (
                await db_session.execute(
                    select(
                        func.count(Trade.id),
                        func.coalesce(func.sum(Trade.result_r), 0.0),
                        func.coalesce(func.sum(case((Trade.result_r > 0, 1), else_=0)), 0),
                    ).where(*in_day)
                )
            ).one()

            recent = await db_session.execute(
                select(Trade.result_r)
                .where(*in_day)
                .order_by(Trade.created_at.desc(), Trade.id.desc())
                .limit(STREAK_LOOKBACK)
            )
            recent_results = list(recent.scalars().all())
        except SQLAlchemyError as e:
            logger.exception("Trade stats query failed for %s", day_key)
            raise StorageError(f"Failed to read trades for {day_key}") from e

        trade_count = int(totals[0] or 0)
        sum_r = float(totals[1] or 0.0)
        wins = int(totals[2] or 0)

        return TradeStats(
            trade_count=trade_count,
            sum_r=sum_r,
            consecutive_losses=count_consecutive_losses(recent_results),
            wins=wins,
            win_rate=wins / trade_count if trade_count > 0 else 0.0,
            avg_r=sum_r / trade_count if trade_count > 0 else 0.0,
        )


def count_consecutive_losses(results_newest_first: list[float]) -> int:
    """Length of the leading run of negative results."""
    count = 0
    for result_r in results_newest_first:
        if result_r is not None and result_r < 0:
            count += 1
        else:
            break
    return count
