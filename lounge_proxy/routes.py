"""
FastAPI route handlers for the lounge proxy endpoints.

Handlers stay thin: they read raw path/query values and delegate
validation, caching and upstream calls to LoungeService. Query parameters
are accepted as plain strings so malformed input reaches the validators and
comes back as a 400 instead of FastAPI's 422.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from .lounge_service import LoungeService
from .models import HealthResponse

T = TypeVar("T")

# How often an in-flight request checks whether its client went away.
DISCONNECT_POLL_SECONDS = 0.1
CLIENT_CLOSED_REQUEST = 499

logger = logging.getLogger(__name__)

router = APIRouter()


def get_lounge_service(request: Request) -> LoungeService:
    """Resolve the service built by the application factory."""
    return request.app.state.lounge_service


async def _wait_for_disconnect(request: Request) -> None:
    while not await request.is_disconnected():
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


async def run_until_disconnect(request: Request, work: Awaitable[T]) -> T:
    """
    Await ``work`` unless the client disconnects first.

    On disconnect the work is cancelled, which aborts the in-flight upstream
    call before anything is written to the cache.
    """
    task = asyncio.ensure_future(work)
    watcher = asyncio.create_task(_wait_for_disconnect(request))
    try:
        await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        watcher.cancel()
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    if task.cancelled():
        logger.info("Client disconnected, aborted %s %s", request.method, request.url.path)
        raise HTTPException(status_code=CLIENT_CLOSED_REQUEST, detail="Client closed request")
    return task.result()


@router.get("/api/player/details/{name}")
async def player_details(
    request: Request,
    name: str,
    season: str | None = Query(None),
    service: LoungeService = Depends(get_lounge_service),
) -> Any:
    """Upstream player details, passed through verbatim."""
    return await run_until_disconnect(request, service.get_player_details(name, season))


@router.get("/api/player/leaderboard/{name}")
async def player_leaderboard(
    request: Request,
    name: str,
    season: str | None = Query(None),
    service: LoungeService = Depends(get_lounge_service),
) -> Any:
    """Single leaderboard row whose name matches exactly (case-insensitive)."""
    return await run_until_disconnect(request, service.find_leaderboard_player(name, season))


@router.get("/api/players/compare")
async def compare_players(
    request: Request,
    names: str | None = Query(None),
    season: str | None = Query(None),
    service: LoungeService = Depends(get_lounge_service),
) -> list[Any]:
    """
    Compare 1-4 players.

    Always 200 once the names validate; players that could not be fetched
    appear as ``{"error": true, "name": ..., "message": ...}`` slots.
    """
    return await run_until_disconnect(request, service.compare_players(names, season))


@router.get("/api/leaderboard")
async def leaderboard(
    request: Request,
    skip: str | None = Query(None),
    page_size: str | None = Query(None, alias="pageSize"),
    min_mmr: str | None = Query(None, alias="minMmr"),
    max_mmr: str | None = Query(None, alias="maxMmr"),
    search: str | None = Query(None),
    sort_by: str | None = Query(None, alias="sortBy"),
    season: str | None = Query(None),
    service: LoungeService = Depends(get_lounge_service),
) -> dict[str, Any]:
    """Paginated, filtered leaderboard as ``{data, totalCount, totalPlayers}``."""
    return await run_until_disconnect(
        request,
        service.get_leaderboard(
            skip=skip,
            page_size=page_size,
            min_mmr=min_mmr,
            max_mmr=max_mmr,
            search=search,
            sort_by=sort_by,
            season=season,
        ),
    )


@router.get("/api/table/{tableid}")
async def table(
    request: Request,
    tableid: str,
    service: LoungeService = Depends(get_lounge_service),
) -> Any:
    return await run_until_disconnect(request, service.get_table(tableid))


@router.get("/api/player/stats")
async def player_stats(
    request: Request,
    season: str | None = Query(None),
    game: str | None = Query(None),
    service: LoungeService = Depends(get_lounge_service),
) -> Any:
    """Global player statistics for a season and game."""
    return await run_until_disconnect(request, service.get_player_stats(season, game))


@router.get("/health")
async def health(service: LoungeService = Depends(get_lounge_service)) -> HealthResponse:
    """
    Health check endpoint.

    Returns:
        Service status plus the current number of cached responses
    """
    return HealthResponse(
        status="ok", service="lounge-proxy", cache_entries=len(service.cache)
    )
