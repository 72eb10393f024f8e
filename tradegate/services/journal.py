"""Daily plan / closeout persistence and the presence checks the gate consumes."""

import logging

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tradegate.exceptions import StorageError
from tradegate.models.journal import DailyCloseout, DailyPlan

logger = logging.getLogger(__name__)


class DailyJournalService:
    """One plan and one closeout per day-key; re-saving a day overwrites it."""

    async def upsert_plan(
        self, db_session: AsyncSession, day_key: str, data: dict, now_ms: int
    ) -> DailyPlan:
        return await self._upsert(
            db_session,
            DailyPlan,
            day_key,
            now_ms,
            bias=data.get("bias") or "",
            news_caution=bool(data.get("news_caution")),
            key_levels=data.get("key_levels") or "",
            scenarios=data.get("scenarios") or "",
        )

    async def upsert_closeout(
        self, db_session: AsyncSession, day_key: str, data: dict, now_ms: int
    ) -> DailyCloseout:
        mood = data.get("mood")
        return await self._upsert(
            db_session,
            DailyCloseout,
            day_key,
            now_ms,
            bias=data.get("bias") or "",
            news_caution=bool(data.get("news_caution")),
            mood=mood if isinstance(mood, int) else 0,
            mistakes=data.get("mistakes") or "",
            wins=data.get("wins") or "",
            improvement=data.get("improvement") or "",
            execution_grade=data.get("execution_grade") or "",
        )

    async def get_plan(self, db_session: AsyncSession, day_key: str) -> DailyPlan | None:
        return await self._get(db_session, DailyPlan, day_key)

    async def get_closeout(self, db_session: AsyncSession, day_key: str) -> DailyCloseout | None:
        return await self._get(db_session, DailyCloseout, day_key)

    async def has_daily_plan(self, db_session: AsyncSession, day_key: str) -> bool:
        return await self._exists(db_session, DailyPlan, day_key)

    async def has_daily_closeout(self, db_session: AsyncSession, day_key: str) -> bool:
        return await self._exists(db_session, DailyCloseout, day_key)

    async def _upsert(self, db_session, model, day_key, now_ms, **fields):
        try:
            row = await db_session.get(model, day_key)
            if row is None:
                row = model(day_key=day_key)
                db_session.add(row)
            # Overwrite, including created_at, like INSERT OR REPLACE
            row.created_at = now_ms
            for name, value in fields.items():
                setattr(row, name, value)
            await db_session.commit()
            await db_session.refresh(row)
        except SQLAlchemyError as e:
            await db_session.rollback()
            raise StorageError(f"Failed to save {model.__tablename__} for {day_key}") from e
        logger.info("Saved %s for %s", model.__tablename__, day_key)
        return row

    async def _get(self, db_session, model, day_key):
        try:
            return await db_session.get(model, day_key)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read {model.__tablename__} for {day_key}") from e

    async def _exists(self, db_session, model, day_key) -> bool:
        try:
            result = await db_session.execute(
                select(func.count()).select_from(model).where(model.day_key == day_key)
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read {model.__tablename__} for {day_key}") from e
        return (result.scalar_one() or 0) > 0
