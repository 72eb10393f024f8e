from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from tradegate.dependencies import get_db_session

HEADERS = {"X-API-Key": "test_secret"}

REAL_ONE_TRADE = {
    "mode": "real",
    "max_trades_per_day": 1,
    "require_daily_plan": False,
    "require_daily_closeout": False,
}


@pytest.mark.asyncio
async def test_gate_requires_valid_key(client):
    response = await client.get("/api/v1/gate", headers={"X-API-Key": "wrong"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_gate_default_is_demo(client):
    response = await client.get("/api/v1/gate", headers=HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert data["mode"] == "demo"
    assert data["can_trade"] is True
    assert data["day_key"] == "2025-03-12"
    assert data["requirements"] == {"plan_done": True, "closeout_done": True}
    assert data["settings"]["max_trades_per_day"] == 3


@pytest.mark.asyncio
async def test_lock_override_and_cooldown_flow(client, clock):
    await client.put("/api/v1/settings", json=REAL_ONE_TRADE, headers=HEADERS)

    first = await client.post("/api/v1/trades", json={"result_r": "+1"}, headers=HEADERS)
    assert first.status_code == 200
    assert first.json()["message"] == "Saved"

    locked = await client.post("/api/v1/trades", json={"result_r": "+1"}, headers=HEADERS)
    assert locked.status_code == 423
    assert locked.json() == {"detail": "Locked by rules", "reasons": ["Max trades hit (1/1)."]}

    override = await client.post("/api/v1/gate/override", headers=HEADERS)
    assert override.status_code == 200
    body = override.json()
    assert body["activated"] is True
    assert body["message"] == "Override active for 1 hour"
    assert body["gate"]["override_active"] is True
    assert body["gate"]["can_trade"] is True
    assert body["gate"]["block_codes"] == ["MAX_TRADES_HIT"]

    clock.advance(minutes=10)
    second = await client.post("/api/v1/trades", json={"result_r": "-1"}, headers=HEADERS)
    assert second.status_code == 200
    assert second.json()["message"] == "Saved (override used)"
    assert second.json()["trade"]["rule_breaks"] == ["OVERRIDE_USED", "MAX_TRADES_HIT"]

    again = await client.post("/api/v1/gate/override", headers=HEADERS)
    assert again.json()["activated"] is False
    assert again.json()["message"] == "Override on cooldown"

    clock.advance(hours=1)
    expired = await client.get("/api/v1/gate", headers=HEADERS)
    assert expired.json()["override_active"] is False
    assert expired.json()["can_trade"] is False
    assert expired.json()["cooldown_active"] is True


@pytest.mark.asyncio
async def test_override_refused_in_demo(client):
    response = await client.post("/api/v1/gate/override", headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["activated"] is False
    assert response.json()["message"] == "Override is only available in real mode"


@pytest.mark.asyncio
async def test_clear_override(client):
    await client.put("/api/v1/settings", json=REAL_ONE_TRADE, headers=HEADERS)
    await client.post("/api/v1/trades", json={"result_r": "1"}, headers=HEADERS)
    await client.post("/api/v1/gate/override", headers=HEADERS)

    response = await client.delete("/api/v1/gate/override", headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["override_active"] is False
    assert response.json()["can_trade"] is False
    assert response.json()["cooldown_active"] is True


@pytest.mark.asyncio
async def test_soft_warnings_in_real_mode(client):
    await client.put("/api/v1/settings", json={"mode": "real"}, headers=HEADERS)

    gate = (await client.get("/api/v1/gate", headers=HEADERS)).json()
    assert gate["can_trade"] is True
    assert gate["soft_warnings"] == ["PLAN_MISSING", "CLOSEOUT_MISSING"]

    trade = await client.post("/api/v1/trades", json={"result_r": "0"}, headers=HEADERS)
    assert trade.json()["message"] == "Saved with warnings: PLAN_MISSING, CLOSEOUT_MISSING"
    assert trade.json()["trade"]["rule_breaks"] == ["PLAN_MISSING", "CLOSEOUT_MISSING"]


@pytest.mark.asyncio
async def test_storage_failure_is_not_allowed(client, test_app):
    session = AsyncMock()
    session.execute.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))

    async def failing_session():
        yield session

    test_app.dependency_overrides[get_db_session] = failing_session

    response = await client.get("/api/v1/gate", headers=HEADERS)
    assert response.status_code == 503
    assert "can_trade" not in response.json()
