"""Lounge endpoint services: validation, caching and upstream orchestration."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .cache import ResponseCache, build_cache_key
from .config_loader import config
from .errors import InvalidInputError, NotFoundError, UpstreamError
from .lounge_client import LoungeClient, normalize_leaderboard
from .models import ComparisonError
from .service_base import BaseService, CachedFetchMixin
from .validators import (
    ValidationResult,
    validate_game,
    validate_int,
    validate_player_name,
    validate_search,
    validate_season,
    validate_sort_by,
    validate_table_id,
)

DEFAULT_SEASON = 1
MAX_COMPARE_PLAYERS = 4
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50

# Cache key prefixes; each one is also the family invalidated on failure.
PLAYER_DETAILS = "player-details"
PLAYER_LEADERBOARD = "player-leaderboard"
PLAYERS_COMPARE = "players-compare"
LEADERBOARD = "leaderboard"
TABLE = "table"
PLAYER_STATS = "player-stats"


def _require(result: ValidationResult, prefix: str = "") -> Any:
    """Unwrap a validation result or raise a 400."""
    if not result.valid:
        raise InvalidInputError(f"{prefix}{result.error}")
    return result.sanitized


class LoungeService(BaseService, CachedFetchMixin):
    """Serves every proxied lounge endpoint through the shared response cache."""

    def __init__(
        self,
        cache: ResponseCache,
        client: LoungeClient | None = None,
        logger: logging.Logger | None = None,
        default_game: str | None = None,
    ):
        super().__init__(logger=logger)
        self.cache = cache
        self.client = client or LoungeClient(logger=self.logger)
        self.default_game = default_game or config.default_game

    @property
    def long_ttl(self) -> float:
        """TTL for data that changes less often than a leaderboard page."""
        return 2 * self.cache.default_ttl

    def _season(self, season: Any) -> int:
        if season is None or season == "":
            return DEFAULT_SEASON
        return _require(validate_season(season))

    async def get_player_details(self, name: Any, season: Any = None) -> Any:
        player_name = _require(validate_player_name(name))
        season_number = self._season(season)
        game = self.default_game

        return await self.cached_fetch(
            prefix=PLAYER_DETAILS,
            params={"name": player_name, "season": season_number},
            fetch=lambda: self.client.get_player_details(player_name, season_number, game),
            ttl=self.long_ttl,
            not_found_detail=f'No lounge records found for "{name}"',
            failure_detail="Failed to retrieve player details",
        )

    async def find_leaderboard_player(self, name: Any, season: Any = None) -> Any:
        """
        Look a player up on the leaderboard by exact name.

        Upstream search is a substring match, so candidates are narrowed to a
        case-insensitive exact match; no exact match is a 404.
        """
        player_name = _require(validate_player_name(name))
        season_number = self._season(season)
        not_found = f'Player "{name}" not found on the leaderboard'

        def pick_exact(payload: Any) -> Any:
            candidates = payload.get("data") if isinstance(payload, dict) else None
            wanted = player_name.lower()
            for candidate in candidates or []:
                candidate_name = candidate.get("name") if isinstance(candidate, dict) else None
                if isinstance(candidate_name, str) and candidate_name.lower() == wanted:
                    self.logger.info(
                        "Leaderboard match for %s: id=%s mmr=%s",
                        player_name,
                        candidate.get("id"),
                        candidate.get("mmr"),
                    )
                    return candidate
            raise NotFoundError(not_found)

        return await self.cached_fetch(
            prefix=PLAYER_LEADERBOARD,
            params={"name": player_name, "season": season_number},
            fetch=lambda: self.client.search_leaderboard(
                {"game": self.default_game, "season": season_number, "search": player_name}
            ),
            not_found_detail=not_found,
            failure_detail="Failed to fetch leaderboard data",
            transform=pick_exact,
        )

    async def compare_players(self, names: Any, season: Any = None) -> list[Any]:
        """
        Fetch details for 1-4 players concurrently.

        A failing player never fails the batch: its slot becomes a
        ComparisonError. Results are keyed by the sorted name list, so the
        cached array is reordered to match the request on the way out.
        Duplicate names are kept and fetched once per occurrence.
        """
        raw_names = names.split(",") if isinstance(names, str) and names else []
        if not raw_names or len(raw_names) > MAX_COMPARE_PLAYERS:
            raise InvalidInputError(
                f"Please provide 1-{MAX_COMPARE_PLAYERS} player names separated by commas"
            )
        requested = [
            _require(validate_player_name(name), "Invalid player name: ") for name in raw_names
        ]
        season_number = self._season(season)
        ordered = sorted(requested)

        key = build_cache_key(
            PLAYERS_COMPARE, {"names": ",".join(ordered), "season": season_number}
        )
        cached = await self.cache.get(key)
        if cached is not None:
            self.logger.debug("Cache hit: %s", key)
            return self._in_request_order(requested, ordered, cached)

        outcomes = await asyncio.gather(
            *(self._compare_slot(name, season_number) for name in ordered)
        )
        slots = [slot for slot, _ in outcomes]
        if any(hard_failure for _, hard_failure in outcomes):
            removed = await self.cache.invalidate_prefix(PLAYERS_COMPARE)
            self.logger.warning(
                "Upstream failure while comparing %s; invalidated %s cached entries",
                ordered,
                removed,
            )
        else:
            await self.cache.set(key, slots)
        return self._in_request_order(requested, ordered, slots)

    async def _compare_slot(self, name: str, season: int) -> tuple[Any, bool]:
        """Return (slot, hard_failure); 404s are soft failures and cacheable."""
        try:
            details = await self.client.get_player_details(name, season, self.default_game)
        except UpstreamError as exc:
            if exc.is_not_found:
                return ComparisonError(name=name, message="Player not found").model_dump(), False
            self.logger.warning("Compare lookup failed for %s: %s", name, exc.detail)
            message = "Failed to fetch player details"
            return ComparisonError(name=name, message=message).model_dump(), True
        return details, False

    @staticmethod
    def _in_request_order(requested: list[str], ordered: list[str], slots: list[Any]) -> list[Any]:
        by_name = dict(zip(ordered, slots, strict=True))
        return [by_name[name] for name in requested]

    async def get_leaderboard(
        self,
        *,
        skip: Any = None,
        page_size: Any = None,
        min_mmr: Any = None,
        max_mmr: Any = None,
        search: Any = None,
        sort_by: Any = None,
        season: Any = None,
    ) -> dict[str, Any]:
        """Fetch one normalized leaderboard page; pageSize never exceeds 100."""
        params = {
            "game": self.default_game,
            "season": self._season(season),
            "skip": _require(validate_int(skip, "skip", 0, minimum=0)),
            "pageSize": _require(
                validate_int(
                    page_size, "pageSize", DEFAULT_PAGE_SIZE, minimum=1, maximum=MAX_PAGE_SIZE
                )
            ),
            "sortBy": _require(validate_sort_by(sort_by)),
            "minMmr": _require(validate_int(min_mmr, "minMmr")),
            "maxMmr": _require(validate_int(max_mmr, "maxMmr")),
            "search": _require(validate_search(search)),
        }
        params = {key: value for key, value in params.items() if value is not None}

        return await self.cached_fetch(
            prefix=LEADERBOARD,
            params=params,
            fetch=lambda: self.client.search_leaderboard(params),
            failure_detail="Failed to fetch leaderboard",
            transform=normalize_leaderboard,
        )

    async def get_table(self, table_id: Any) -> Any:
        sanitized_id = _require(validate_table_id(table_id))

        return await self.cached_fetch(
            prefix=TABLE,
            params={"tableId": sanitized_id},
            fetch=lambda: self.client.get_table(sanitized_id),
            not_found_detail="No lounge table found for that ID",
            failure_detail="Failed to fetch table",
        )

    async def get_player_stats(self, season: Any = None, game: Any = None) -> Any:
        season_number = self._season(season)
        game_code = _require(validate_game(game if game not in (None, "") else self.default_game))

        return await self.cached_fetch(
            prefix=PLAYER_STATS,
            params={"game": game_code, "season": season_number},
            fetch=lambda: self.client.get_player_stats(season_number, game_code),
            ttl=self.long_ttl,
            failure_detail="Failed to fetch player stats",
        )


__all__ = ["LoungeService"]
