import logging
import uuid
from datetime import tzinfo

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tradegate.exceptions import StorageError
from tradegate.models.trade import Trade
from tradegate.services.rule_breaks import format_rule_breaks, format_tags, parse_rule_breaks, parse_tags
from tradegate.utils.day_keys import day_bounds_ms, day_key_from_date, from_epoch_ms

logger = logging.getLogger(__name__)


def make_trade_id(now_ms: int) -> str:
    return f"{now_ms}-{uuid.uuid4().hex[:12]}"


class TradeService:
    """Trade rows: insert, lookup, notes/tags edits and hard delete."""

    async def insert_trade(self, db_session: AsyncSession, data: dict, now_ms: int) -> Trade:
        trade = Trade(
            id=make_trade_id(now_ms),
            created_at=now_ms,
            strategy_id=data.get("strategy_id") or "",
            strategy_name=data.get("strategy_name") or "",
            bias=data.get("bias") or "",
            session=data.get("session") or "",
            timeframe=data.get("timeframe") or "",
            risk_r=data.get("risk_r"),
            result_r=data["result_r"],
            tags=format_tags(data.get("tags") or []),
            rule_breaks=format_rule_breaks(data.get("rule_breaks") or []),
            notes=(data.get("notes") or "").strip(),
        )
        try:
            db_session.add(trade)
            await db_session.commit()
            await db_session.refresh(trade)
        except SQLAlchemyError as e:
            await db_session.rollback()
            raise StorageError("Failed to insert trade") from e
        logger.info(
            "Logged trade %s: %+.2fR rule_breaks=%s", trade.id, trade.result_r, trade.rule_breaks or "-"
        )
        return trade

    async def get_trade(self, db_session: AsyncSession, trade_id: str) -> Trade | None:
        try:
            return await db_session.get(Trade, trade_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read trade {trade_id}") from e

    async def list_trades_for_day(
        self, db_session: AsyncSession, day_key: str, tz: tzinfo | None
    ) -> list[Trade]:
        start_ms, end_ms = day_bounds_ms(day_key, tz)
        return await self._list(
            db_session,
            select(Trade)
            .where(Trade.created_at >= start_ms, Trade.created_at < end_ms)
            .order_by(Trade.created_at.desc()),
        )

    async def list_trades_since(
        self, db_session: AsyncSession, since_ms: int, limit: int = 5000
    ) -> list[Trade]:
        return await self._list(
            db_session,
            select(Trade)
            .where(Trade.created_at >= since_ms)
            .order_by(Trade.created_at.desc())
            .limit(limit),
        )

    async def recent_day_keys(
        self, db_session: AsyncSession, since_ms: int, tz: tzinfo | None
    ) -> list[str]:
        """Distinct local day-keys that have trades, newest first."""
        try:
            result = await db_session.execute(
                select(Trade.created_at)
                .where(Trade.created_at >= since_ms)
                .order_by(Trade.created_at.desc())
            )
            stamps = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StorageError("Failed to read trade days") from e

        keys: list[str] = []
        for ms in stamps:
            key = day_key_from_date(from_epoch_ms(ms, tz).date())
            if not keys or keys[-1] != key:
                keys.append(key)
        return keys

    async def update_notes(self, db_session: AsyncSession, trade_id: str, notes: str) -> Trade | None:
        return await self._update(db_session, trade_id, notes=(notes or "").strip())

    async def update_tags(self, db_session: AsyncSession, trade_id: str, tags: str | list[str]) -> Trade | None:
        tag_list = parse_tags(tags) if isinstance(tags, str) else tags
        return await self._update(db_session, trade_id, tags=format_tags(tag_list))

    async def delete_trade(self, db_session: AsyncSession, trade_id: str) -> bool:
        try:
            result = await db_session.execute(delete(Trade).where(Trade.id == trade_id))
            await db_session.commit()
        except SQLAlchemyError as e:
            await db_session.rollback()
            raise StorageError(f"Failed to delete trade {trade_id}") from e
        deleted = result.rowcount > 0
        if deleted:
            logger.info("Deleted trade %s", trade_id)
        return deleted

    async def _update(self, db_session: AsyncSession, trade_id: str, **fields) -> Trade | None:
        trade = await self.get_trade(db_session, trade_id)
        if trade is None:
            return None
        try:
            for name, value in fields.items():
                setattr(trade, name, value)
            await db_session.commit()
            await db_session.refresh(trade)
        except SQLAlchemyError as e:
            await db_session.rollback()
            raise StorageError(f"Failed to update trade {trade_id}") from e
        return trade

    async def _list(self, db_session: AsyncSession, query) -> list[Trade]:
        try:
            result = await db_session.execute(query)
        except SQLAlchemyError as e:
            raise StorageError("Failed to list trades") from e
        return list(result.scalars().all())


def trade_rule_breaks(trade: Trade) -> list[str]:
    return [c.value for c in parse_rule_breaks(trade.rule_breaks)]


def trade_tags(trade: Trade) -> list[str]:
    return parse_tags(trade.tags)
