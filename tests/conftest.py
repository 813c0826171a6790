import pathlib
import sys

import pytest

# Ensure repo root on sys.path for direct module imports when running tests locally.
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lounge_proxy.cache import ResponseCache
from lounge_proxy.errors import UpstreamError
from lounge_proxy.lounge_service import LoungeService


class FakeClock:
    """Manually advanced timer for ResponseCache."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def upstream_error(status: int) -> UpstreamError:
    return UpstreamError(status_code=status, detail=f"upstream said {status}", kind="http")


class StubLoungeClient:
    """In-memory stand-in for LoungeClient that records every call."""

    base_url = "http://lounge.test"

    def __init__(self, players=None, leaderboard=None, tables=None, stats=None):
        self.players = players or {}
        self.leaderboard = leaderboard if leaderboard is not None else {"data": [], "totalPlayers": 0}
        self.tables = tables or {}
        self.stats = stats if stats is not None else {"totalPlayers": 0}
        self.failures: dict[str, UpstreamError] = {}
        self.calls: list[tuple] = []

    def fail(self, target: str, status: int) -> None:
        self.failures[target] = upstream_error(status)

    async def get_player_details(self, name, season, game):
        self.calls.append(("details", name, season, game))
        if name in self.failures:
            raise self.failures[name]
        if name not in self.players:
            raise upstream_error(404)
        return self.players[name]

    async def search_leaderboard(self, params):
        self.calls.append(("leaderboard", dict(params)))
        if "leaderboard" in self.failures:
            raise self.failures["leaderboard"]
        return self.leaderboard

    async def get_table(self, table_id):
        self.calls.append(("table", table_id))
        if table_id not in self.tables:
            raise upstream_error(404)
        return self.tables[table_id]

    async def get_player_stats(self, season, game):
        self.calls.append(("stats", season, game))
        if "stats" in self.failures:
            raise self.failures["stats"]
        return self.stats


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ResponseCache(max_entries=1000, default_ttl=60, timer=clock)


@pytest.fixture
def stub_client():
    return StubLoungeClient(
        players={
            "Bob": {"name": "Bob", "mmr": 9000},
            "Alice": {"name": "Alice", "mmr": 8500},
            "RealPlayer": {"name": "RealPlayer", "mmr": 7000},
        },
        tables={"12345": {"id": 12345, "format": "FFA"}},
        stats={"totalPlayers": 4200, "averageMmr": 5120},
    )


@pytest.fixture
def service(cache, stub_client):
    return LoungeService(cache=cache, client=stub_client, default_game="mkworld")
