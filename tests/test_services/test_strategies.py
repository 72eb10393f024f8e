from datetime import timedelta

import pytest

from tradegate.services.strategies import StrategyService
from tradegate.services.trades import TradeService


@pytest.fixture
def strategies():
    return StrategyService()


class TestStrategyCrud:
    @pytest.mark.asyncio
    async def test_create_and_update_keeps_created_at(self, strategies, db_session):
        created = await strategies.upsert_strategy(
            db_session, {"name": " NY Open ", "market": "us30", "timeframes": "M5,M15"}, 1_000
        )
        assert created.name == "NY Open"
        assert created.market == "us30"
        assert created.created_at == 1_000

        updated = await strategies.upsert_strategy(
            db_session, {"id": created.id, "name": "NY Open v2"}, 2_000
        )
        assert updated.id == created.id
        assert updated.name == "NY Open v2"
        assert updated.market == "both"
        assert updated.created_at == 1_000
        assert updated.updated_at == 2_000

    @pytest.mark.asyncio
    async def test_list_newest_updated_first(self, strategies, db_session):
        a = await strategies.upsert_strategy(db_session, {"name": "A"}, 1_000)
        await strategies.upsert_strategy(db_session, {"name": "B"}, 2_000)
        await strategies.upsert_strategy(db_session, {"id": a.id, "name": "A"}, 3_000)

        names = [s.name for s in await strategies.list_strategies(db_session)]
        assert names == ["A", "B"]

    @pytest.mark.asyncio
    async def test_delete_leaves_trades_alone(self, strategies, db_session, now, add_trade):
        strategy = await strategies.upsert_strategy(db_session, {"name": "Fade"}, 1_000)
        await add_trade(1.0, now, strategy_id=strategy.id, strategy_name="Fade")

        assert await strategies.delete_strategy(db_session, strategy.id) is True
        assert await strategies.delete_strategy(db_session, strategy.id) is False

        trades = await TradeService().list_trades_since(db_session, 0)
        assert trades[0].strategy_name == "Fade"


class TestStrategyStats:
    @pytest.mark.asyncio
    async def test_stats_per_strategy(self, strategies, db_session, now, add_trade):
        strategy = await strategies.upsert_strategy(db_session, {"name": "Breakout"}, 1_000)
        await add_trade(2.0, now - timedelta(hours=2), strategy_id=strategy.id)
        await add_trade(-1.0, now - timedelta(hours=1), strategy_id=strategy.id)
        await add_trade(1.0, now)

        stats = await strategies.get_strategy_stats(db_session)

        assert list(stats) == [strategy.id]
        row = stats[strategy.id]
        assert row["strategy_name"] == "Breakout"
        assert row["trade_count"] == 2
        assert row["win_rate"] == pytest.approx(0.5)
        assert row["total_r"] == pytest.approx(1.0)
        assert row["avg_r"] == pytest.approx(0.5)

    @pytest.mark.asyncio
    async def test_deleted_strategy_uses_snapshot_name(self, strategies, db_session, now, add_trade):
        await add_trade(1.0, now, strategy_id="gone", strategy_name="Old Name")
        await add_trade(1.0, now, strategy_id="gone-too")

        stats = await strategies.get_strategy_stats(db_session)
        assert stats["gone"]["strategy_name"] == "Old Name"
        assert stats["gone-too"]["strategy_name"] == "gone-too"


class TestBackfill:
    @pytest.mark.asyncio
    async def test_fills_only_empty_names_of_existing_strategies(self, strategies, db_session, now, add_trade):
        strategy = await strategies.upsert_strategy(db_session, {"name": "Trend"}, 1_000)
        blank_id = (await add_trade(1.0, now, strategy_id=strategy.id)).id
        named_id = (await add_trade(1.0, now, strategy_id=strategy.id, strategy_name="Kept")).id
        orphan_id = (await add_trade(1.0, now, strategy_id="missing")).id

        updated = await strategies.backfill_strategy_names(db_session)

        assert updated == 1
        db_session.expire_all()
        trades = TradeService()
        assert (await trades.get_trade(db_session, blank_id)).strategy_name == "Trend"
        assert (await trades.get_trade(db_session, named_id)).strategy_name == "Kept"
        assert (await trades.get_trade(db_session, orphan_id)).strategy_name == ""
