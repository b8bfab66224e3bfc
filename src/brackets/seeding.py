"""
Rating-based seeding for a full tournament field.
"""
from typing import Dict, List, Optional, Tuple

from .errors import (
    BracketError,
    DUPLICATE_TEAM,
    INVALID_RATING,
    MISSING_TEAM_ID,
    NOT_POWER_OF_TWO,
    WRONG_TEAM_COUNT,
)


def is_power_of_two(n: int) -> bool:
    return isinstance(n, int) and n >= 1 and (n & (n - 1)) == 0


def team_rating(team: Dict) -> int:
    """Rating used for seeding. Missing ratings count as 0."""
    elo = team.get('elo')
    return 0 if elo is None else elo


def seed_teams(teams: List[Dict], required_capacity: int) -> Tuple[Optional[List[Tuple[Dict, Dict]]], Optional[BracketError]]:
    """
    Order teams by rating and pair them for the first round.

    Seed 1 (highest rating) plays seed n, seed 2 plays seed n-1, and so on,
    so 8 teams give 1v8, 2v7, 3v6, 4v5 in that order. Ties keep registration
    order.

    Args:
        teams: Registered team dicts with 'id' and 'elo'
        required_capacity: Number of teams the tournament was created for

    Returns:
        (pairs, error) where pairs is a list of (team_a, team_b) copies with
        'seed' set.
    """
    if len(teams) != required_capacity:
        return None, BracketError(
            WRONG_TEAM_COUNT,
            f'Seeding requires exactly {required_capacity} teams (currently have {len(teams)})')

    if required_capacity < 2 or not is_power_of_two(required_capacity):
        return None, BracketError(
            NOT_POWER_OF_TWO,
            f'Team count must be a power of two and at least 2, got {required_capacity}')

    seen = set()
    for team in teams:
        team_id = team.get('id') if team else None
        if team_id is None or team_id == '':
            return None, BracketError(MISSING_TEAM_ID, 'Every team entry needs an id')
        elo = team.get('elo')
        if elo is not None and (isinstance(elo, bool) or not isinstance(elo, int) or elo < 0):
            return None, BracketError(
                INVALID_RATING, f'Team {team_id} has an invalid rating {elo!r}')
        if team_id in seen:
            return None, BracketError(DUPLICATE_TEAM, f'Team {team_id} is registered more than once')
        seen.add(team_id)

    # sorted() is stable, so equal ratings keep input order
    ranked = sorted(teams, key=team_rating, reverse=True)
    n = len(ranked)

    pairs = []
    for i in range(n // 2):
        top = dict(ranked[i], seed=i + 1)
        bottom = dict(ranked[n - 1 - i], seed=n - i)
        pairs.append((top, bottom))
    return pairs, None
