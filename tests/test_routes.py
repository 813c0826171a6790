import asyncio
import contextlib

import pytest
from fastapi.testclient import TestClient

from lounge_proxy.main import create_app, sweep_expired


@pytest.fixture
def client(service):
    return TestClient(create_app(service=service))


def test_player_details_passthrough(client):
    response = client.get("/api/player/details/Bob", params={"season": "1"})

    assert response.status_code == 200
    assert response.json() == {"name": "Bob", "mmr": 9000}


def test_player_details_not_found_body(client):
    response = client.get("/api/player/details/Ghost")

    assert response.status_code == 404
    assert response.json() == {"error": 'No lounge records found for "Ghost"'}


def test_invalid_season_is_a_400_not_a_422(client, stub_client):
    response = client.get("/api/player/details/Bob", params={"season": "abc"})

    assert response.status_code == 400
    assert "Season" in response.json()["error"]
    assert stub_client.calls == []


def test_compare_partial_failure_still_returns_200(client):
    response = client.get("/api/players/compare", params={"names": "RealPlayer,NoSuchPlayer123"})

    assert response.status_code == 200
    body = response.json()
    assert len(body) == 2
    assert body[1]["error"] is True
    assert body[1]["name"] == "NoSuchPlayer123"


def test_compare_without_names_is_rejected(client):
    response = client.get("/api/players/compare")

    assert response.status_code == 400
    assert response.json()["error"].startswith("Please provide 1-4 player names")


def test_leaderboard_clamps_page_size(client, stub_client):
    stub_client.leaderboard = {"data": [], "totalPlayers": 42}

    response = client.get("/api/leaderboard", params={"pageSize": "500", "sortBy": "Mmr"})

    assert response.status_code == 200
    assert response.json() == {"data": [], "totalCount": 42, "totalPlayers": 42}
    assert stub_client.calls[0][1]["pageSize"] <= 100


def test_upstream_failure_body_hides_upstream_details(client, stub_client):
    stub_client.fail("stats", 503)

    response = client.get("/api/player/stats", params={"season": "1", "game": "mkworld"})

    assert response.status_code == 503
    assert response.json() == {"error": "Failed to fetch player stats"}


def test_table_id_must_be_numeric(client):
    assert client.get("/api/table/12345").status_code == 200
    assert client.get("/api/table/abc").status_code == 400
    assert client.get("/api/table/777").json() == {"error": "No lounge table found for that ID"}


def test_player_leaderboard_lookup(client, stub_client):
    stub_client.leaderboard = {"data": [{"name": "Bob", "id": 7}], "totalPlayers": 1}

    assert client.get("/api/player/leaderboard/bob").json() == {"name": "Bob", "id": 7}
    assert client.get("/api/player/leaderboard/Alice").status_code == 404


def test_health_reports_cache_size(client):
    client.get("/api/player/details/Bob")

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "lounge-proxy", "cache_entries": 1}


def test_lifespan_starts_and_stops_cleanly(service):
    with TestClient(create_app(service=service)) as client:
        assert client.get("/health").status_code == 200


@pytest.mark.asyncio
async def test_background_sweep_drops_expired_entries(cache, clock):
    await cache.set("stale", 1, ttl=1)
    await cache.set("fresh", 2, ttl=100)
    clock.advance(5)

    sweeper = asyncio.create_task(sweep_expired(cache, 0.01))
    await asyncio.sleep(0.05)
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper

    assert "stale" not in cache
    assert "fresh" in cache


def test_stats_failure_invalidates_stats_family(client, stub_client, cache):
    seeded = client.get("/api/player/stats", params={"season": "1", "game": "mkworld"})
    assert seeded.status_code == 200
    assert "player-stats|game:mkworld|season:1" in cache

    stub_client.fail("stats", 500)
    response = client.get("/api/player/stats", params={"season": "2", "game": "mkworld"})

    assert response.status_code == 500
    assert "player-stats|game:mkworld|season:1" not in cache
