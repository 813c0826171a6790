import pytest

from lounge_proxy.validators import (
    validate_game,
    validate_int,
    validate_player_name,
    validate_search,
    validate_season,
    validate_sort_by,
    validate_table_id,
)


def test_player_name_is_trimmed_and_stripped_of_control_chars():
    result = validate_player_name("  Bob\x01\x02  ")

    assert result.valid
    assert result.sanitized == "Bob"


@pytest.mark.parametrize("name", [None, "", "   ", 42, "x" * 51])
def test_player_name_rejects_missing_or_oversized(name):
    result = validate_player_name(name)

    assert not result.valid
    assert result.error


def test_player_name_accepts_fifty_characters():
    assert validate_player_name("x" * 50).valid


def test_invalid_result_never_carries_sanitized_value():
    result = validate_player_name("")

    assert not hasattr(result, "sanitized")


def test_season_zero_is_not_treated_as_missing():
    assert validate_season(0).valid
    assert validate_season("0").sanitized == 0


@pytest.mark.parametrize("season", [None, "", "abc", "1.5", -1, 101, True])
def test_season_rejects_non_integers_and_out_of_range(season):
    assert not validate_season(season).valid


def test_season_coerces_numeric_strings():
    assert validate_season(" 12 ").sanitized == 12
    assert validate_season("3.0").sanitized == 3


def test_game_is_normalized_against_allow_set():
    assert validate_game("  MKWorld ").sanitized == "mkworld"
    assert not validate_game("mk8dx").valid
    assert not validate_game(None).valid


@pytest.mark.parametrize("table_id", ["1", 1234567890, "0042"])
def test_table_id_accepts_short_numeric_ids(table_id):
    result = validate_table_id(table_id)

    assert result.valid
    assert result.sanitized == str(table_id)


@pytest.mark.parametrize("table_id", [None, "", "12a", "../1", "12345678901", "-5"])
def test_table_id_rejects_everything_else(table_id):
    assert not validate_table_id(table_id).valid


def test_search_is_truncated_and_sanitized():
    result = validate_search("  " + "a" * 120 + "  ")

    assert result.valid
    assert result.sanitized == "a" * 100
    assert validate_search("ab\x00c").sanitized == "abc"


@pytest.mark.parametrize("term", [None, "", "   ", "\x01\x02"])
def test_empty_search_means_no_filter(term):
    result = validate_search(term)

    assert result.valid
    assert result.sanitized is None


def test_int_parameters_default_and_clamp():
    assert validate_int(None, "skip", 0).sanitized == 0
    assert validate_int("500", "pageSize", 50, minimum=1, maximum=100).sanitized == 100
    assert validate_int("-3", "skip", 0, minimum=0).sanitized == 0
    assert not validate_int("ten", "pageSize").valid


def test_sort_by_defaults_and_rejects_symbols():
    assert validate_sort_by(None).sanitized == "Mmr"
    assert validate_sort_by("EventsPlayed").sanitized == "EventsPlayed"
    assert not validate_sort_by("Mmr;drop").valid


@pytest.mark.parametrize("name", ["\x01", "\x00\x7f", " \x02\x03 "])
def test_player_name_of_only_control_chars_is_empty(name):
    result = validate_player_name(name)

    assert not result.valid
    assert result.error == "Player name cannot be empty"
