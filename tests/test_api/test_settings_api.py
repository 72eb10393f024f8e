import pytest

from tradegate.api.admin import format_setting_number

HEADERS = {"X-API-Key": "test_secret"}


@pytest.mark.asyncio
async def test_get_defaults(client):
    response = await client.get("/api/v1/settings", headers=HEADERS)
    assert response.status_code == 200
    assert response.json() == {
        "mode": "demo",
        "max_trades_per_day": 3,
        "max_daily_loss_r": 2,
        "max_consecutive_losses": 2,
        "default_risk_percent": 1,
        "require_daily_plan": True,
        "require_daily_closeout": True,
        "override_until_ms": 0,
        "override_cooldown_until_ms": 0,
    }


@pytest.mark.asyncio
async def test_partial_update(client):
    response = await client.put(
        "/api/v1/settings",
        json={"max_daily_loss_r": 1.5, "require_daily_closeout": False},
        headers=HEADERS,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["max_daily_loss_r"] == 1.5
    assert data["require_daily_closeout"] is False
    assert data["max_trades_per_day"] == 3
    assert data["mode"] == "demo"

    again = await client.get("/api/v1/settings", headers=HEADERS)
    assert again.json()["max_daily_loss_r"] == 1.5


@pytest.mark.asyncio
async def test_mode_switch_keeps_override_state(client):
    await client.put("/api/v1/settings", json={"mode": "real"}, headers=HEADERS)
    await client.post("/api/v1/gate/override", headers=HEADERS)

    demo = await client.put("/api/v1/settings", json={"mode": "demo"}, headers=HEADERS)
    assert demo.json()["override_until_ms"] > 0
    assert demo.json()["override_cooldown_until_ms"] > 0

    real = await client.put("/api/v1/settings", json={"mode": "real"}, headers=HEADERS)
    assert real.json()["override_cooldown_until_ms"] == demo.json()["override_cooldown_until_ms"]


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"mode": "live"}, {"max_trades_per_day": -1}])
async def test_invalid_values_rejected(client, payload):
    response = await client.put("/api/v1/settings", json=payload, headers=HEADERS)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_limits_keep_full_precision(client):
    await client.put(
        "/api/v1/settings",
        json={"max_daily_loss_r": 2.1234567, "max_trades_per_day": 1234567},
        headers=HEADERS,
    )

    data = (await client.get("/api/v1/settings", headers=HEADERS)).json()
    assert data["max_daily_loss_r"] == 2.1234567
    assert data["max_trades_per_day"] == 1234567


def test_format_setting_number():
    assert format_setting_number(3.0) == "3"
    assert format_setting_number(1234567) == "1234567"
    assert format_setting_number(0.1) == "0.1"
    assert format_setting_number(2.1234567) == "2.1234567"
