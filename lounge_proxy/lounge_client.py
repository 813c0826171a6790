"""Thin HTTP client for the upstream lounge ranking API."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from .config_loader import config
from .errors import UpstreamError
from .models import NormalizedLeaderboardResponse

DEFAULT_TIMEOUT = 30


def normalize_leaderboard(payload: Any) -> dict[str, Any]:
    """
    Reshape an upstream leaderboard page into the stable caller contract.

    Upstream only reports ``totalPlayers``; callers get it as both
    ``totalCount`` and ``totalPlayers``.
    """
    payload = payload if isinstance(payload, dict) else {}
    data = payload.get("data")
    try:
        total = int(payload.get("totalPlayers") or 0)
    except (TypeError, ValueError):
        total = 0
    return NormalizedLeaderboardResponse(
        data=data if isinstance(data, list) else [],
        totalCount=total,
        totalPlayers=total,
    ).model_dump()


class LoungeClient:
    """Encapsulates lounge API calls so services stay focused on orchestration."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        logger: logging.Logger | None = None,
    ):
        self.base_url = (base_url or config.lounge_api_url).rstrip("/")
        self.timeout = timeout or config.upstream_timeout or DEFAULT_TIMEOUT
        self.logger = logger or logging.getLogger(self.__class__.__module__)

    async def get_player_details(self, name: str, season: int, game: str) -> Any:
        return await self._get_json(
            "/api/player/details", {"name": name, "game": game, "season": season}
        )

    async def search_leaderboard(self, params: dict[str, Any]) -> Any:
        """Fetch one leaderboard page; ``search`` is a fuzzy substring match upstream."""
        return await self._get_json("/api/player/leaderboard", params)

    async def get_table(self, table_id: str) -> Any:
        return await self._get_json("/api/table", {"tableId": table_id})

    async def get_player_stats(self, season: int, game: str) -> Any:
        return await self._get_json("/api/player/stats", {"season": season, "game": game})

    async def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        """
        Execute a GET against the lounge API and return the parsed JSON body.

        Every failure surfaces as UpstreamError: non-2xx responses keep the
        upstream status, timeouts map to 504 and connection failures to 503.
        Cancellation is left to propagate so an abandoned request aborts.
        """
        url = f"{self.base_url}{path}"
        query = {key: value for key, value in params.items() if value is not None}
        headers = {
            "Accept": "application/json",
            "User-Agent": config.upstream_user_agent,
        }
        self.logger.info("Fetching %s with params %s", url, query)

        async with aiohttp.ClientSession() as session:
            try:
                async with session.get(
                    url,
                    params=query,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if not 200 <= response.status < 300:
                        error_text = await response.text()
                        self.logger.warning(
                            "Lounge API returned %s for %s: %s",
                            response.status,
                            path,
                            error_text[:500],
                        )
                        status = response.status if response.status >= 400 else 502
                        raise UpstreamError(
                            status_code=status,
                            detail=f"Lounge API request failed with status {response.status}",
                            kind="http",
                        )
                    return await response.json(content_type=None)
            except UpstreamError:
                raise
            except TimeoutError as exc:
                self.logger.error("Lounge API timeout after %ss: %s", self.timeout, path)
                raise UpstreamError(
                    status_code=504, detail="Lounge API timeout", kind="timeout"
                ) from exc
            except aiohttp.ClientError as exc:
                self.logger.error("Lounge API connection error: %s", exc)
                raise UpstreamError(
                    status_code=503,
                    detail="Cannot connect to lounge API",
                    kind="network",
                ) from exc
            except ValueError as exc:
                self.logger.error("Lounge API returned invalid JSON for %s: %s", path, exc)
                raise UpstreamError(
                    status_code=500, detail="Invalid response from lounge API"
                ) from exc
