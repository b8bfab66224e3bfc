"""
Dual-submission score reconciliation.

Each map of a match has its own small state machine:

    empty --(side X submits)--> partial(X)
    partial(X) --(other side submits same pair)--> confirmed
    partial(X) --(other side submits different pair)--> empty, scores_mismatch=True

A map result is never trusted from a single side. Confirmed maps are final.
"""
import copy
from typing import Dict, List, Optional, Tuple

from .errors import (
    BracketError,
    INVALID_SIDE,
    MAP_ALREADY_CONFIRMED,
)
from .models import SIDES, TEAM_A, new_map_score_entry, other_side
from .scores import coerce_score, map_winner, validate_map_score

EMPTY = 'empty'
PARTIAL = 'partial'
CONFIRMED = 'confirmed'


def map_state(entry: Optional[Dict]) -> str:
    """Return 'empty', 'partial' or 'confirmed' for a map score entry."""
    if not entry:
        return EMPTY
    if entry.get('confirmed'):
        return CONFIRMED
    if entry.get('team_a_submitted') or entry.get('team_b_submitted'):
        return PARTIAL
    return EMPTY


def submit_map_score(entry: Optional[Dict], side: str, team_a_score, team_b_score,
                     map_index: int = 0) -> Tuple[Optional[Dict], Optional[BracketError]]:
    """
    Apply one side's submission for a map.

    Args:
        entry: Current map score entry, or None if nothing was submitted yet
        side: 'team_a' or 'team_b', the side reporting the score
        team_a_score: Reported score for team A
        team_b_score: Reported score for team B
        map_index: Index used when a new entry has to be created

    Returns:
        (new_entry, error). On error new_entry is None and the caller's entry
        is left as it was. The input entry is never mutated.
    """
    if side not in SIDES:
        return None, BracketError(INVALID_SIDE, f"Side must be one of {', '.join(SIDES)}, got {side!r}")

    error = validate_map_score(team_a_score, team_b_score)
    if error is not None:
        return None, error

    if map_state(entry) == CONFIRMED:
        return None, BracketError(MAP_ALREADY_CONFIRMED,
                                  f"Map {entry['map_index'] + 1} is already confirmed")

    new_entry = copy.deepcopy(entry) if entry else new_map_score_entry(map_index)
    pair = [coerce_score(team_a_score), coerce_score(team_b_score)]

    new_entry[f'submitted_by_{side}'] = pair
    new_entry[f'{side}_submitted'] = True
    new_entry['scores_mismatch'] = False

    other = other_side(side)
    if not new_entry[f'{other}_submitted']:
        return new_entry, None

    if new_entry['submitted_by_team_a'] == new_entry['submitted_by_team_b']:
        new_entry['team_a_score'], new_entry['team_b_score'] = pair
        new_entry['winner'] = map_winner(*pair)
        new_entry['confirmed'] = True
        return new_entry, None

    # Disagreement: both reports are thrown away and must be resubmitted
    reset = new_map_score_entry(new_entry['map_index'])
    reset['scores_mismatch'] = True
    return reset, None


def count_map_wins(map_scores: List[Dict]) -> Tuple[int, int]:
    """Count confirmed map wins for (team A, team B)."""
    wins = [0, 0]
    for entry in map_scores or []:
        if entry and entry.get('confirmed') and entry.get('winner') in (1, 2):
            wins[entry['winner'] - 1] += 1
    return wins[0], wins[1]


def maps_needed_to_win(maps_per_match: int) -> int:
    return maps_per_match // 2 + 1


def match_winner(map_scores: List[Dict], maps_per_match: int = 3) -> Optional[str]:
    """Return 'team_a' / 'team_b' once a side has won enough maps, else None."""
    needed = maps_needed_to_win(maps_per_match)
    a_wins, b_wins = count_map_wins(map_scores)
    if a_wins >= needed:
        return TEAM_A
    if b_wins >= needed:
        return other_side(TEAM_A)
    return None
