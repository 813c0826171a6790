"""
Pydantic models for the lounge proxy response contracts.

Player, table and stats payloads are upstream objects passed through
verbatim, so only the shapes this service owns are modelled here.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field


class NormalizedLeaderboardResponse(BaseModel):
    """
    Leaderboard page exposed to callers.

    Attributes:
        data: Player summaries for the requested page
        totalCount: Total players matching the filters
        totalPlayers: Same value under the upstream field name
    """

    data: list[Any] = Field(default_factory=list)
    totalCount: int = 0
    totalPlayers: int = 0


class ComparisonError(BaseModel):
    """
    Per-player failure slot in a compare response.

    Attributes:
        error: Always True so callers can filter failed slots
        name: Sanitized player name that failed
        message: Short, caller-safe failure reason
    """

    error: Literal[True] = True
    name: str
    message: str


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    service: str
    cache_entries: int


__all__ = [
    "ComparisonError",
    "ErrorResponse",
    "HealthResponse",
    "NormalizedLeaderboardResponse",
]
