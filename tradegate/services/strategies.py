import logging
import uuid
from collections import defaultdict

from sqlalchemy import select, update, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tradegate.exceptions import StorageError
from tradegate.models.strategy import Strategy, StrategyMarket
from tradegate.models.trade import Trade

logger = logging.getLogger(__name__)


class StrategyService:
    """Strategy CRUD. Deleting a strategy leaves its trades (and their name snapshot) alone."""

    async def upsert_strategy(self, db_session: AsyncSession, data: dict, now_ms: int) -> Strategy:
        strategy_id = data.get("id") or f"{now_ms}-{uuid.uuid4().hex[:12]}"
        try:
            strategy = await db_session.get(Strategy, strategy_id)
            if strategy is None:
                strategy = Strategy(id=strategy_id, created_at=now_ms)
                db_session.add(strategy)
            strategy.updated_at = now_ms
            strategy.name = data["name"].strip()
            strategy.market = StrategyMarket(data.get("market") or StrategyMarket.BOTH).value
            strategy.style_tags = (data.get("style_tags") or "").strip()
            strategy.timeframes = (data.get("timeframes") or "").strip()
            strategy.description = (data.get("description") or "").strip()
            strategy.checklist = (data.get("checklist") or "").strip()
            strategy.image_url = (data.get("image_url") or "").strip()
            await db_session.commit()
            await db_session.refresh(strategy)
        except SQLAlchemyError as e:
            await db_session.rollback()
            raise StorageError(f"Failed to save strategy {strategy_id}") from e
        logger.info("Saved strategy %s (%s)", strategy.id, strategy.name)
        return strategy

    async def get_strategy(self, db_session: AsyncSession, strategy_id: str) -> Strategy | None:
        try:
            return await db_session.get(Strategy, strategy_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read strategy {strategy_id}") from e

    async def list_strategies(self, db_session: AsyncSession) -> list[Strategy]:
        try:
            result = await db_session.execute(select(Strategy).order_by(Strategy.updated_at.desc()))
        except SQLAlchemyError as e:
            raise StorageError("Failed to list strategies") from e
        return list(result.scalars().all())

    async def delete_strategy(self, db_session: AsyncSession, strategy_id: str) -> bool:
        try:
            result = await db_session.execute(delete(Strategy).where(Strategy.id == strategy_id))
            await db_session.commit()
        except SQLAlchemyError as e:
            await db_session.rollback()
            raise StorageError(f"Failed to delete strategy {strategy_id}") from e
        return result.rowcount > 0

    async def get_strategy_stats(self, db_session: AsyncSession) -> dict[str, dict]:
        """Per-strategy trade count, win rate and R totals for trades tagged with a strategy."""
        try:
            trades = (
                await db_session.execute(
                    select(Trade.strategy_id, Trade.strategy_name, Trade.result_r)
                    .where(Trade.strategy_id.isnot(None))
                    .where(Trade.strategy_id != "")
                )
            ).all()
            names = dict(
                (await db_session.execute(select(Strategy.id, Strategy.name))).all()
            )
        except SQLAlchemyError as e:
            raise StorageError("Failed to compute strategy stats") from e

        by_strategy: dict[str, list] = defaultdict(list)
        for row in trades:
            by_strategy[row.strategy_id].append(row)

        result = {}
        for strategy_id, rows in by_strategy.items():
            total = len(rows)
            wins = sum(1 for r in rows if r.result_r > 0)
            total_r = sum(r.result_r for r in rows)
            snapshot = next((r.strategy_name for r in rows if (r.strategy_name or "").strip()), None)
            result[strategy_id] = {
                "strategy_id": strategy_id,
                "strategy_name": names.get(strategy_id) or snapshot or strategy_id,
                "trade_count": total,
                "win_rate": wins / total if total else 0.0,
                "avg_r": total_r / total if total else 0.0,
                "total_r": total_r,
            }
        return result

    async def backfill_strategy_names(self, db_session: AsyncSession) -> int:
        """Fill empty trade.strategy_name from strategies that still exist."""
        name_subq = (
            select(Strategy.name)
            .where(Strategy.id == Trade.strategy_id)
            .limit(1)
            .scalar_subquery()
        )
        has_strategy = select(Strategy.id).where(Strategy.id == Trade.strategy_id).exists()
        try:
            result = await db_session.execute(
                update(Trade)
                .where((Trade.strategy_name.is_(None)) | (Trade.strategy_name == ""))
                .where(Trade.strategy_id.isnot(None))
                .where(Trade.strategy_id != "")
                .where(has_strategy)
                .values(strategy_name=name_subq)
                .execution_options(synchronize_session=False)
            )
            await db_session.commit()
        except SQLAlchemyError as e:
            await db_session.rollback()
            raise StorageError("Failed to backfill strategy names") from e
        if result.rowcount:
            logger.info("Backfilled strategy_name on %d trades", result.rowcount)
        return result.rowcount or 0
