"""
Map score validation: first to 6, no ties.
"""
from typing import Optional

from .errors import (
    BracketError,
    INVALID_SCORE,
    SCORE_TOO_HIGH,
    TIED_SCORE,
    NO_WINNER,
)

WINNING_SCORE = 6


def coerce_score(value) -> Optional[int]:
    """Return value as a non-negative int, or None if it cannot be read as one.

    Accepts ints, int-valued floats and decimal strings. Booleans are rejected
    even though they are ints in Python.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        score = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        score = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text.isdecimal():
            return None
        score = int(text)
    else:
        return None
    return score if score >= 0 else None


def validate_map_score(team_a_score, team_b_score) -> Optional[BracketError]:
    """Check a single map's score pair. Returns None when the pair is valid."""
    a = coerce_score(team_a_score)
    b = coerce_score(team_b_score)
    if a is None or b is None:
        return BracketError(INVALID_SCORE,
                            f'Scores must be non-negative integers, got {team_a_score!r} and {team_b_score!r}')

    if a > WINNING_SCORE or b > WINNING_SCORE:
        return BracketError(SCORE_TOO_HIGH, f'Score cannot exceed {WINNING_SCORE}')

    if a == b == WINNING_SCORE:
        return BracketError(NO_WINNER, f'Only one team can reach {WINNING_SCORE}')

    if a == b:
        return BracketError(TIED_SCORE, 'There must be a winner - scores cannot be equal')

    if WINNING_SCORE not in (a, b):
        return BracketError(NO_WINNER, f'One team must reach {WINNING_SCORE} to win the map')

    return None


def map_winner(team_a_score, team_b_score) -> Optional[int]:
    """Return 1 or 2 for the side that won a valid map, None otherwise."""
    if validate_map_score(team_a_score, team_b_score) is not None:
        return None
    return 1 if coerce_score(team_a_score) == WINNING_SCORE else 2
