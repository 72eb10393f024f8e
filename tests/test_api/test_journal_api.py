import pytest

HEADERS = {"X-API-Key": "test_secret"}


@pytest.mark.asyncio
async def test_save_and_get_plan(client):
    response = await client.put(
        "/api/v1/plans/2025-03-12",
        json={"bias": "short", "news_caution": True, "key_levels": "2950", "scenarios": "Fade the open"},
        headers=HEADERS,
    )
    assert response.status_code == 200
    assert response.json()["day_key"] == "2025-03-12"

    fetched = await client.get("/api/v1/plans/2025-03-12", headers=HEADERS)
    assert fetched.status_code == 200
    assert fetched.json()["bias"] == "short"
    assert fetched.json()["news_caution"] is True


@pytest.mark.asyncio
async def test_missing_plan_is_404(client):
    response = await client.get("/api/v1/plans/2025-03-12", headers=HEADERS)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_bad_day_key_is_422(client):
    response = await client.put("/api/v1/plans/12-03-2025", json={}, headers=HEADERS)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_closeout_round_trip(client):
    response = await client.put(
        "/api/v1/closeouts/2025-03-11",
        json={"mood": 3, "mistakes": "Overtraded", "execution_grade": "C"},
        headers=HEADERS,
    )
    assert response.status_code == 200

    fetched = await client.get("/api/v1/closeouts/2025-03-11", headers=HEADERS)
    assert fetched.json()["mood"] == 3
    assert fetched.json()["mistakes"] == "Overtraded"


@pytest.mark.asyncio
async def test_closeout_mood_out_of_range(client):
    response = await client.put("/api/v1/closeouts/2025-03-11", json={"mood": 6}, headers=HEADERS)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_journal_satisfies_gate_requirements(client):
    await client.put("/api/v1/settings", json={"mode": "real"}, headers=HEADERS)
    await client.put("/api/v1/plans/2025-03-12", json={}, headers=HEADERS)
    await client.put("/api/v1/closeouts/2025-03-11", json={}, headers=HEADERS)

    gate = (await client.get("/api/v1/gate", headers=HEADERS)).json()
    assert gate["requirements"] == {"plan_done": True, "closeout_done": True}
    assert gate["soft_warnings"] == []
