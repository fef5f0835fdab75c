"""Dashboard API tests."""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import bearer, wallet_sign_in


def _iso(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


@pytest.mark.asyncio
async def test_dashboard_window(client, wallet):
    auth = bearer(await wallet_sign_in(client, wallet))
    now = datetime.now(timezone.utc)

    for days_ago, severity in [(2, 4), (10, 6), (40, 9)]:
        r = await client.post(
            "/api/headaches",
            json={"severity": severity, "timestamp": _iso(now - timedelta(days=days_ago))},
            headers=auth,
        )
        assert r.status_code == 201
    await client.post(
        "/api/events",
        json={"event_type": "sleep", "value": "4h", "timestamp": _iso(now - timedelta(days=1))},
        headers=auth,
    )

    r = await client.get("/api/dashboard", params={"days": 30}, headers=auth)
    assert r.status_code == 200
    data = r.json()
    assert data["days_requested"] == 30
    assert data["end_date"] == now.date().isoformat()
    # Oldest first, 40-day-old entry excluded
    assert [h["severity"] for h in data["headaches"]] == [6, 4]
    assert [e["event_type"] for e in data["events"]] == ["sleep"]


@pytest.mark.asyncio
async def test_dashboard_defaults_to_30_days(client, wallet):
    auth = bearer(await wallet_sign_in(client, wallet))
    r = await client.get("/api/dashboard", headers=auth)
    assert r.status_code == 200
    assert r.json()["days_requested"] == 30
    assert r.json()["headaches"] == []


@pytest.mark.asyncio
@pytest.mark.parametrize("days", [0, 366])
async def test_dashboard_days_bounds(client, wallet, days):
    auth = bearer(await wallet_sign_in(client, wallet))
    r = await client.get("/api/dashboard", params={"days": days}, headers=auth)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_dashboard_requires_auth(client):
    assert (await client.get("/api/dashboard")).status_code == 401
