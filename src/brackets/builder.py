"""
Bracket construction for single and double elimination.

In double elimination:
- Winners Bracket: Teams that haven't lost yet
- Losers Bracket: Teams that have lost once
- Grand Finals: Winners bracket champion vs Losers bracket champion
- Decisive Match: Only played if the losers bracket champion wins Grand Finals
"""
import math
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import (
    BracketError,
    INVALID_FORMAT,
    NOT_POWER_OF_TWO,
    WRONG_TEAM_COUNT,
)
from .models import (
    DOUBLE_ELIMINATION,
    FORMATS,
    GRAND_FINALS,
    LOSERS,
    UPCOMING,
    WINNERS,
    MatchRef,
)
from .seeding import is_power_of_two


def get_round_name(teams_in_round: int) -> str:
    """Get the name of a single elimination round based on number of teams."""
    if teams_in_round == 2:
        return "Final"
    elif teams_in_round == 4:
        return "Semifinal"
    elif teams_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {teams_in_round}"


def get_winners_round_name(teams_in_round: int) -> str:
    """Get the name for a winners bracket round."""
    if teams_in_round == 2:
        return "Winners Final"
    elif teams_in_round == 4:
        return "Winners Semifinal"
    elif teams_in_round == 8:
        return "Winners Quarterfinal"
    else:
        return f"Winners Round of {teams_in_round}"


def get_losers_round_name(round_num: int, total_losers_rounds: int) -> str:
    """Get the name for a losers bracket round (0-indexed)."""
    rounds_from_end = total_losers_rounds - round_num - 1
    if rounds_from_end == 0:
        return "Losers Final"
    elif rounds_from_end == 1:
        return "Losers Semifinal"
    else:
        return f"Losers Round {round_num + 1}"


def calculate_losers_bracket_rounds(bracket_size: int) -> int:
    """
    Calculate number of rounds in losers bracket.
    For N teams in winners bracket (power of 2):
    - Winners bracket has log2(N) rounds
    - Losers bracket has 2 * (log2(N) - 1) rounds

    Pattern: minor, major, minor, major, ... ending with a major round
    """
    if bracket_size < 2:
        return 0
    winners_rounds = int(math.log2(bracket_size))
    return 2 * (winners_rounds - 1)


def losers_round_match_count(bracket_size: int, losers_round: int) -> int:
    """Matches in losers round ``losers_round`` (1-indexed).

    Rounds come in pairs of equal size: the first two have N/4 matches,
    the next two N/8, down to the final two with a single match each.
    """
    return bracket_size // (2 ** ((losers_round + 1) // 2 + 1))


def new_bracket_match(ref: MatchRef, team_a: Optional[Dict] = None, team_b: Optional[Dict] = None) -> Dict:
    return {
        'match_id': ref.match_id,
        'ref': ref.to_dict(),
        'team_a': team_a,
        'team_b': team_b,
        'scores': {'team_a': 0, 'team_b': 0},
        'status': UPCOMING,
        'winner': None,
    }


def build_bracket(tournament_id: str, seeded_pairs: List[Tuple[Dict, Dict]],
                  fmt: str) -> Tuple[Optional[Dict], Optional[BracketError]]:
    """
    Build the full round structure for a seeded field.

    Args:
        tournament_id: Id used to derive stable match ids
        seeded_pairs: First round pairings from seed_teams()
        fmt: 'single_elimination' or 'double_elimination'

    Returns (bracket, error). The bracket dict has:
    - 'format': the tournament format
    - 'team_count': number of teams
    - 'rounds': winners rounds, then Grand Finals and Decisive Match for double elimination
    - 'losers_rounds': losers bracket rounds (empty for single elimination)
    """
    if fmt not in FORMATS:
        return None, BracketError(INVALID_FORMAT, f"Unknown tournament format {fmt!r}")

    team_count = len(seeded_pairs) * 2
    if team_count < 2:
        return None, BracketError(WRONG_TEAM_COUNT, 'A bracket needs at least 2 teams')
    if not is_power_of_two(team_count):
        return None, BracketError(NOT_POWER_OF_TWO, f'Team count must be a power of two, got {team_count}')

    double = fmt == DOUBLE_ELIMINATION
    total_winners_rounds = int(math.log2(team_count))

    rounds = []
    teams_in_round = team_count
    for round_number in range(1, total_winners_rounds + 1):
        name = get_winners_round_name(teams_in_round) if double else get_round_name(teams_in_round)
        matches = []
        for i in range(teams_in_round // 2):
            ref = MatchRef(tournament_id, WINNERS, round_number, i + 1)
            if round_number == 1:
                team_a, team_b = seeded_pairs[i]
                matches.append(new_bracket_match(ref, team_a, team_b))
            else:
                matches.append(new_bracket_match(ref))
        rounds.append({'bracket': WINNERS, 'round': round_number, 'name': name, 'matches': matches})
        teams_in_round //= 2

    losers_rounds = []
    if double:
        grand_finals_round = total_winners_rounds + 1
        rounds.append({
            'bracket': GRAND_FINALS,
            'round': grand_finals_round,
            'name': 'Grand Finals',
            'matches': [new_bracket_match(MatchRef(tournament_id, GRAND_FINALS, grand_finals_round, 1))],
        })
        rounds.append({
            'bracket': GRAND_FINALS,
            'round': grand_finals_round + 1,
            'name': 'Decisive Match',
            'conditional': True,
            'matches': [new_bracket_match(MatchRef(tournament_id, GRAND_FINALS, grand_finals_round + 1, 1))],
        })

        total_losers_rounds = calculate_losers_bracket_rounds(team_count)
        for round_number in range(1, total_losers_rounds + 1):
            matches = [
                new_bracket_match(MatchRef(tournament_id, LOSERS, round_number, i + 1))
                for i in range(losers_round_match_count(team_count, round_number))
            ]
            losers_rounds.append({
                'bracket': LOSERS,
                'round': round_number,
                'name': get_losers_round_name(round_number - 1, total_losers_rounds),
                'matches': matches,
            })

    return {
        'format': fmt,
        'team_count': team_count,
        'rounds': rounds,
        'losers_rounds': losers_rounds,
    }, None


def get_round(bracket: Dict, bracket_key: str, round_number: int) -> Optional[Dict]:
    """Look up a round by bracket key and 1-indexed round number."""
    if not bracket:
        return None
    rounds = bracket['losers_rounds'] if bracket_key == LOSERS else bracket['rounds']
    if 1 <= round_number <= len(rounds):
        return rounds[round_number - 1]
    return None


def iter_bracket_matches(bracket: Dict) -> Iterator[Tuple[Dict, Dict]]:
    """Yield (round, match) for every match in the bracket."""
    if not bracket:
        return
    for round_data in bracket['rounds'] + bracket['losers_rounds']:
        for match in round_data['matches']:
            yield round_data, match


def find_bracket_match(bracket: Dict, match_id: str) -> Optional[Dict]:
    for _, match in iter_bracket_matches(bracket):
        if match['match_id'] == match_id:
            return match
    return None


def winners_round_count(bracket: Dict) -> int:
    """Rounds in the winners bracket proper (Grand Finals rounds excluded)."""
    return int(math.log2(bracket['team_count']))
