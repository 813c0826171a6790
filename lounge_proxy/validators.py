"""
Validation and sanitization for every untrusted input the proxy accepts.

Each validator returns a ``ValidationResult`` and never raises: callers branch
on ``result.valid``. Sanitized values are safe to embed both in cache keys and
in URL-encoded upstream query parameters.
"""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

MAX_PLAYER_NAME_LENGTH = 50
MAX_SEARCH_LENGTH = 100
MIN_SEASON = 0
MAX_SEASON = 100
SUPPORTED_GAMES = frozenset({"mkworld"})

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_TABLE_ID = re.compile(r"^\d{1,10}$")
_SORT_FIELD = re.compile(r"^[A-Za-z]{1,32}$")


class Valid(BaseModel):
    """Successful validation carrying the sanitized value."""

    model_config = ConfigDict(frozen=True)

    valid: Literal[True] = True
    sanitized: Any = None


class Invalid(BaseModel):
    """Failed validation carrying a human-readable reason."""

    model_config = ConfigDict(frozen=True)

    valid: Literal[False] = False
    error: str


ValidationResult = Valid | Invalid


def strip_control_chars(value: str) -> str:
    return _CONTROL_CHARS.sub("", value)


def _coerce_int(value: Any) -> int | None:
    """Numeric coercion that only accepts integral values."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return int(number) if number.is_integer() else None
    return None


def validate_player_name(name: Any) -> ValidationResult:
    if not name or not isinstance(name, str):
        return Invalid(error="Player name is required")

    trimmed = name.strip()
    if not trimmed:
        return Invalid(error="Player name cannot be empty")
    if len(trimmed) > MAX_PLAYER_NAME_LENGTH:
        return Invalid(
            error=f"Player name cannot exceed {MAX_PLAYER_NAME_LENGTH} characters"
        )

    sanitized = strip_control_chars(trimmed)
    if not sanitized:
        return Invalid(error="Player name cannot be empty")
    return Valid(sanitized=sanitized)


def validate_season(season: Any) -> ValidationResult:
    """
    Validate a season number.

    0 is the pre-season and is a legitimate value, so only ``None`` and the
    empty string count as missing.
    """
    if season is None or (isinstance(season, str) and not season.strip()):
        return Invalid(error="Season is required")

    number = _coerce_int(season)
    if number is None or not MIN_SEASON <= number <= MAX_SEASON:
        return Invalid(
            error=f"Season must be an integer between {MIN_SEASON} and {MAX_SEASON}"
        )
    return Valid(sanitized=number)


def validate_game(game: Any) -> ValidationResult:
    if not isinstance(game, str) or not game.strip():
        return Invalid(error="Game is required")

    normalized = game.strip().lower()
    if normalized not in SUPPORTED_GAMES:
        supported = ", ".join(sorted(SUPPORTED_GAMES))
        return Invalid(error=f"Unsupported game. Supported games: {supported}")
    return Valid(sanitized=normalized)


def validate_table_id(table_id: Any) -> ValidationResult:
    if table_id is None:
        return Invalid(error="Table ID is required")

    text = str(table_id).strip()
    if not _TABLE_ID.match(text):
        return Invalid(error="Table ID must be numeric (1-10 digits)")
    return Valid(sanitized=text)


def validate_search(term: Any) -> ValidationResult:
    """
    Sanitize a leaderboard search term.

    Never invalid: an empty result means "no search filter" and is reported
    as ``sanitized=None``.
    """
    if not isinstance(term, str):
        return Valid(sanitized=None)

    sanitized = strip_control_chars(term.strip()[:MAX_SEARCH_LENGTH])
    return Valid(sanitized=sanitized or None)


def validate_sort_by(sort_by: Any, default: str = "Mmr") -> ValidationResult:
    """Leaderboard sort field: letters only, forwarded upstream verbatim."""
    if sort_by is None or (isinstance(sort_by, str) and not sort_by.strip()):
        return Valid(sanitized=default)
    if not isinstance(sort_by, str) or not _SORT_FIELD.match(sort_by.strip()):
        return Invalid(error="sortBy must be a field name of up to 32 letters")
    return Valid(sanitized=sort_by.strip())


def validate_int(
    value: Any,
    field: str,
    default: int | None = None,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> ValidationResult:
    """
    Parse an optional integer query parameter.

    Missing values fall back to ``default``; out-of-range values are clamped
    into ``[minimum, maximum]`` rather than rejected.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return Valid(sanitized=default)

    number = _coerce_int(value)
    if number is None:
        return Invalid(error=f"{field} must be an integer")
    if minimum is not None:
        number = max(number, minimum)
    if maximum is not None:
        number = min(number, maximum)
    return Valid(sanitized=number)


__all__ = [
    "Invalid",
    "MAX_PLAYER_NAME_LENGTH",
    "MAX_SEARCH_LENGTH",
    "SUPPORTED_GAMES",
    "Valid",
    "ValidationResult",
    "strip_control_chars",
    "validate_game",
    "validate_int",
    "validate_player_name",
    "validate_search",
    "validate_season",
    "validate_sort_by",
    "validate_table_id",
]
