"""
Match completion and bracket progression.

Every public function here takes a tournament document and returns a new
one; the input is never modified, so a failed transition leaves nothing
half-written for the store to persist.

Progression rules:
- Winners of match m in a round go to match ceil(m/2) of the next round,
  slot A for odd m and slot B for even m.
- Double elimination: Winners Round 1 losers pair off in Losers Round 1;
  losers of Winners Round r >= 2 drop into Losers Round 2r-2 (slot A, same
  match number), where they meet the winner of the previous losers round
  (slot B). The winners champion takes Grand Finals slot A and the losers
  champion slot B. If slot B wins Grand Finals, the Decisive Match is played.
- Matches of a round are only created once every round feeding it is
  completely finished; creation is skipped for ids that already exist.
"""
import copy
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .builder import find_bracket_match, get_round, winners_round_count
from .errors import (
    BracketError,
    INVALID_MAP_INDEX,
    INVALID_SIDE,
    MATCH_NOT_FOUND,
    MATCH_NOT_LIVE,
    ROUND_NOT_COMPLETE,
    SLOT_ALREADY_RESOLVED,
)
from .models import (
    ACTIVE,
    COMPLETED,
    DOUBLE_ELIMINATION,
    GRAND_FINALS,
    LIVE,
    LOSERS,
    SIDES,
    TEAM_A,
    TEAM_B,
    WINNERS,
    MatchRef,
    new_map_score_entry,
    other_side,
)
from .reconcile import CONFIRMED, count_map_wins, map_state, match_winner, submit_map_score

logger = logging.getLogger(__name__)

DEFAULT_MAPS_PER_MATCH = 3


def _now() -> str:
    return datetime.now().isoformat()


def _slot_for(match_number: int) -> str:
    return TEAM_A if match_number % 2 == 1 else TEAM_B


def _next_match_number(match_number: int) -> int:
    return (match_number + 1) // 2


def find_live_match(tournament: Dict, match_id: str) -> Optional[Dict]:
    for match in tournament.get('matches') or []:
        if match['match_id'] == match_id:
            return match
    return None


# ---------------------------------------------------------------------------
# Bracket topology
# ---------------------------------------------------------------------------

def source_rounds(bracket: Dict, bracket_key: str, round_number: int) -> List[Tuple[str, int]]:
    """Rounds whose results feed teams into the given round."""
    k = winners_round_count(bracket)
    total_losers = len(bracket['losers_rounds'])

    if bracket_key == WINNERS:
        return [(WINNERS, round_number - 1)] if round_number > 1 else []
    if bracket_key == LOSERS:
        if round_number == 1:
            return [(WINNERS, 1)]
        if round_number % 2 == 0:
            return [(LOSERS, round_number - 1), (WINNERS, round_number // 2 + 1)]
        return [(LOSERS, round_number - 1)]
    # Grand Finals rounds
    if round_number == k + 1:
        sources = [(WINNERS, k)]
        if total_losers:
            sources.append((LOSERS, total_losers))
        return sources
    return [(GRAND_FINALS, k + 1)]


def rounds_fed_by(bracket: Dict, bracket_key: str, round_number: int) -> List[Tuple[str, int]]:
    """Rounds that take at least one team from the given round."""
    fed = []
    for round_data in bracket['rounds'] + bracket['losers_rounds']:
        target = (round_data['bracket'], round_data['round'])
        if (bracket_key, round_number) in source_rounds(bracket, *target):
            fed.append(target)
    return fed


def round_complete(bracket: Dict, bracket_key: str, round_number: int) -> bool:
    round_data = get_round(bracket, bracket_key, round_number)
    if round_data is None:
        return False
    return all(m['status'] == COMPLETED for m in round_data['matches'])


def winner_destination(bracket: Dict, ref: MatchRef) -> Optional[Tuple[MatchRef, str]]:
    """Where the winner of ``ref`` plays next, as (match ref, slot).

    Returns None when the winner has no further match to play in the
    regular flow (final, Grand Finals, Decisive Match).
    """
    double = bracket['format'] == DOUBLE_ELIMINATION
    k = winners_round_count(bracket)
    total_losers = len(bracket['losers_rounds'])
    tid = ref.tournament_id

    if ref.bracket == WINNERS:
        if ref.round < k:
            return (MatchRef(tid, WINNERS, ref.round + 1, _next_match_number(ref.match_number)),
                    _slot_for(ref.match_number))
        if double:
            return MatchRef(tid, GRAND_FINALS, k + 1, 1), TEAM_A
        return None

    if ref.bracket == LOSERS:
        if ref.round == total_losers:
            return MatchRef(tid, GRAND_FINALS, k + 1, 1), TEAM_B
        if ref.round % 2 == 1:
            # Minor round winners wait for a dropped-down team at the same index
            return MatchRef(tid, LOSERS, ref.round + 1, ref.match_number), TEAM_B
        return (MatchRef(tid, LOSERS, ref.round + 1, _next_match_number(ref.match_number)),
                _slot_for(ref.match_number))

    return None


def loser_destination(bracket: Dict, ref: MatchRef) -> Optional[Tuple[MatchRef, str]]:
    """Where the loser of a winners bracket match drops in double elimination."""
    if bracket['format'] != DOUBLE_ELIMINATION or ref.bracket != WINNERS:
        return None
    k = winners_round_count(bracket)
    tid = ref.tournament_id

    if not bracket['losers_rounds']:
        # Two-team field: the only loser goes straight to Grand Finals
        return MatchRef(tid, GRAND_FINALS, k + 1, 1), TEAM_B
    if ref.round == 1:
        return (MatchRef(tid, LOSERS, 1, _next_match_number(ref.match_number)),
                _slot_for(ref.match_number))
    return MatchRef(tid, LOSERS, 2 * ref.round - 2, ref.match_number), TEAM_A


# ---------------------------------------------------------------------------
# Mutating helpers (operate on a private copy)
# ---------------------------------------------------------------------------

def _place_team(tournament: Dict, dest: MatchRef, slot: str, team: Dict) -> Optional[BracketError]:
    """Write the full team into a slot of the bracket and of its live match."""
    bracket_match = find_bracket_match(tournament['bracket'], dest.match_id)
    if bracket_match is None:
        return BracketError(MATCH_NOT_FOUND, f'Bracket match {dest.match_id} not found')

    current = bracket_match.get(slot)
    if current is not None and current.get('id') != team.get('id'):
        return BracketError(
            SLOT_ALREADY_RESOLVED,
            f"{slot} of {dest.match_id} is already taken by {current.get('name')}")

    bracket_match[slot] = copy.deepcopy(team)
    live = find_live_match(tournament, dest.match_id)
    if live is not None:
        live[slot] = copy.deepcopy(team)

    logger.info(f"Advanced {team.get('name')} to {dest.match_id} as {slot}")
    return None


def _new_live_match(bracket_match: Dict, maps: List[Dict]) -> Dict:
    now = _now()
    return {
        'match_id': bracket_match['match_id'],
        'ref': copy.deepcopy(bracket_match['ref']),
        'team_a': copy.deepcopy(bracket_match['team_a']),
        'team_b': copy.deepcopy(bracket_match['team_b']),
        'status': LIVE,
        'maps': maps,
        'map_scores': [],
        'scores': {TEAM_A: 0, TEAM_B: 0},
        'winner': None,
        'created_at': now,
        'started_at': now,
    }


def _materialize(tournament: Dict, bracket_key: str, round_number: int, map_selector) -> List[Dict]:
    """Create live matches for every fully populated match of a round."""
    round_data = get_round(tournament['bracket'], bracket_key, round_number)
    if round_data is None:
        return []

    existing = {m['match_id'] for m in tournament.get('matches') or []}
    maps_per_match = tournament.get('maps_per_match', DEFAULT_MAPS_PER_MATCH)
    created = []
    for bracket_match in round_data['matches']:
        if bracket_match['match_id'] in existing:
            continue
        if bracket_match['team_a'] is None or bracket_match['team_b'] is None:
            continue
        live = _new_live_match(bracket_match, map_selector.select(maps_per_match))
        tournament.setdefault('matches', []).append(live)
        bracket_match['status'] = LIVE
        created.append(live)
        existing.add(live['match_id'])

    if created:
        logger.info(f"Created {len(created)} match(es) for {round_data['name']}")
    return created


def _sources_complete(bracket: Dict, bracket_key: str, round_number: int) -> bool:
    sources = source_rounds(bracket, bracket_key, round_number)
    return all(round_complete(bracket, key, number) for key, number in sources)


def calculate_standings(tournament: Dict) -> List[Dict]:
    """Win/loss record per registered team over all completed matches."""
    records = {}
    order = []
    for team in tournament.get('registered_teams') or []:
        records[team['id']] = {'team': copy.deepcopy(team), 'wins': 0, 'losses': 0}
        order.append(team['id'])

    for match in tournament.get('matches') or []:
        if match['status'] != COMPLETED or match.get('winner') not in SIDES:
            continue
        winner = match[match['winner']]
        loser = match[other_side(match['winner'])]
        if winner and winner['id'] in records:
            records[winner['id']]['wins'] += 1
        if loser and loser['id'] in records:
            records[loser['id']]['losses'] += 1

    standings = [records[team_id] for team_id in order]
    standings.sort(key=lambda r: (-r['wins'], r['losses']))
    return standings


def _complete_tournament(tournament: Dict, champion: Dict):
    tournament['status'] = COMPLETED
    tournament['winner'] = copy.deepcopy(champion)
    tournament['completed_at'] = _now()
    tournament['standings'] = calculate_standings(tournament)
    logger.info(f"Tournament {tournament['id']} completed! Winner: {champion.get('name')}")


# ---------------------------------------------------------------------------
# Public transitions
# ---------------------------------------------------------------------------

def launch_first_round(tournament: Dict, map_selector) -> Tuple[Optional[Dict], List[Dict], Optional[BracketError]]:
    """Create live matches for round 1 and mark the tournament active."""
    updated = copy.deepcopy(tournament)
    created = _materialize(updated, WINNERS, 1, map_selector)
    updated['status'] = ACTIVE
    updated['launched_at'] = _now()
    return updated, created, None


def materialize_round(tournament: Dict, bracket_key: str, round_number: int,
                      map_selector) -> Tuple[Optional[Dict], List[Dict], Optional[BracketError]]:
    """
    Create the live matches of a round whose feeding rounds are finished.

    Safe to call repeatedly: matches whose id already exists are skipped.
    Returns RoundNotComplete if any feeding round still has unfinished matches.
    """
    bracket = tournament['bracket']
    if get_round(bracket, bracket_key, round_number) is None:
        return None, [], BracketError(MATCH_NOT_FOUND, f'Round {bracket_key}{round_number} does not exist')
    if not _sources_complete(bracket, bracket_key, round_number):
        return None, [], BracketError(
            ROUND_NOT_COMPLETE, f'Rounds feeding {bracket_key}{round_number} are not finished')

    updated = copy.deepcopy(tournament)
    created = _materialize(updated, bracket_key, round_number, map_selector)
    return updated, created, None


def record_match_result(tournament: Dict, match_id: str, winner_side: str,
                        map_selector) -> Tuple[Optional[Dict], List[Dict], Optional[BracketError]]:
    """
    Complete a live match and push its teams through the bracket.

    Args:
        tournament: Tournament document
        match_id: Id of the live match that finished
        winner_side: 'team_a' or 'team_b'
        map_selector: Picks maps for any match this result unlocks

    Returns:
        (tournament, created_matches, error)
    """
    if winner_side not in SIDES:
        return None, [], BracketError(INVALID_SIDE, f'Winner must be one of {SIDES}, got {winner_side!r}')

    updated = copy.deepcopy(tournament)
    live = find_live_match(updated, match_id)
    if live is None:
        return None, [], BracketError(MATCH_NOT_FOUND, f'Match {match_id} not found')
    if live['status'] != LIVE:
        return None, [], BracketError(MATCH_NOT_LIVE, f"Match {match_id} is {live['status']}")

    bracket = updated['bracket']
    bracket_match = find_bracket_match(bracket, match_id)
    if bracket_match is None:
        return None, [], BracketError(MATCH_NOT_FOUND, f'Match {match_id} is not part of the bracket')

    a_wins, b_wins = count_map_wins(live.get('map_scores'))
    scores = {TEAM_A: a_wins, TEAM_B: b_wins}
    for target in (live, bracket_match):
        target['status'] = COMPLETED
        target['winner'] = winner_side
        target['scores'] = dict(scores)
    live['completed_at'] = _now()

    ref = MatchRef.from_dict(live['ref'])
    winning_team = live[winner_side]
    losing_team = live[other_side(winner_side)]
    k = winners_round_count(bracket)

    if ref.bracket == GRAND_FINALS:
        if ref.round == k + 1 and winner_side == TEAM_B:
            # Losers bracket champion forced a bracket reset
            decisive = MatchRef(ref.tournament_id, GRAND_FINALS, k + 2, 1)
            for slot in SIDES:
                error = _place_team(updated, decisive, slot, live[slot])
                if error:
                    return None, [], error
        else:
            _complete_tournament(updated, winning_team)
    else:
        dest = winner_destination(bracket, ref)
        if dest is None:
            _complete_tournament(updated, winning_team)
        else:
            error = _place_team(updated, dest[0], dest[1], winning_team)
            if error:
                return None, [], error

        drop = loser_destination(bracket, ref)
        if drop is not None:
            error = _place_team(updated, drop[0], drop[1], losing_team)
            if error:
                return None, [], error

    created = []
    if updated['status'] != COMPLETED and round_complete(bracket, ref.bracket, ref.round):
        for key, number in rounds_fed_by(bracket, ref.bracket, ref.round):
            if _sources_complete(bracket, key, number):
                created.extend(_materialize(updated, key, number, map_selector))

    return updated, created, None


def apply_map_submission(tournament: Dict, match_id: str, map_index, side: str,
                         team_a_score, team_b_score, map_selector) -> Tuple[Optional[Dict], Optional[Dict], Optional[BracketError]]:
    """
    Record one side's score report for a map and complete the match when a
    side has won enough confirmed maps.

    Returns (tournament, outcome, error). ``outcome`` describes the map state
    after the submission, whether the reports disagreed, and any matches the
    result created.
    """
    live = find_live_match(tournament, match_id)
    if live is None:
        return None, None, BracketError(MATCH_NOT_FOUND, f'Match {match_id} not found')
    if live['status'] != LIVE:
        return None, None, BracketError(MATCH_NOT_LIVE, f"Match {match_id} is {live['status']}")

    maps_per_match = tournament.get('maps_per_match', DEFAULT_MAPS_PER_MATCH)
    if isinstance(map_index, bool) or not isinstance(map_index, int) or not 0 <= map_index < maps_per_match:
        return None, None, BracketError(
            INVALID_MAP_INDEX, f'Map index must be between 0 and {maps_per_match - 1}, got {map_index!r}')

    existing = live.get('map_scores') or []
    entry = existing[map_index] if map_index < len(existing) else None
    new_entry, error = submit_map_score(entry, side, team_a_score, team_b_score, map_index)
    if error:
        return None, None, error

    updated = copy.deepcopy(tournament)
    live = find_live_match(updated, match_id)
    map_scores = live.setdefault('map_scores', [])
    while len(map_scores) <= map_index:
        map_scores.append(new_map_score_entry(len(map_scores)))
    map_scores[map_index] = new_entry

    a_wins, b_wins = count_map_wins(map_scores)
    live['scores'] = {TEAM_A: a_wins, TEAM_B: b_wins}
    bracket_match = find_bracket_match(updated['bracket'], match_id)
    if bracket_match is not None:
        bracket_match['scores'] = dict(live['scores'])

    outcome = {
        'match_id': match_id,
        'map': new_entry,
        'map_state': map_state(new_entry),
        'scores_mismatch': new_entry['scores_mismatch'],
        'match_completed': False,
        'winner': None,
        'created_matches': [],
    }
    if new_entry['scores_mismatch']:
        logger.warning(f'Score reports for {match_id} map {map_index + 1} disagree; both sides must resubmit')

    if map_state(new_entry) != CONFIRMED:
        return updated, outcome, None

    winner_side = match_winner(map_scores, maps_per_match)
    if winner_side is None:
        return updated, outcome, None

    updated, created, error = record_match_result(updated, match_id, winner_side, map_selector)
    if error:
        return None, None, error
    outcome['match_completed'] = True
    outcome['winner'] = winner_side
    outcome['created_matches'] = [m['match_id'] for m in created]
    return updated, outcome, None


def admin_set_winner(tournament: Dict, match_id: str, winning_team: int,
                     map_selector) -> Tuple[Optional[Dict], List[Dict], Optional[BracketError]]:
    """Force a 2-0 result (6-0 on the first two maps) for team 1 or 2."""
    if winning_team not in (1, 2):
        return None, [], BracketError(INVALID_SIDE, 'Invalid winner. Must be 1 (Team A) or 2 (Team B)')

    live = find_live_match(tournament, match_id)
    if live is None:
        return None, [], BracketError(MATCH_NOT_FOUND, f'Match {match_id} not found')
    if live['status'] != LIVE:
        return None, [], BracketError(MATCH_NOT_LIVE, f"Match {match_id} is {live['status']}")

    updated = copy.deepcopy(tournament)
    live = find_live_match(updated, match_id)
    maps = live.get('maps') or []
    forced = []
    for i in range(2):
        pair = [6, 0] if winning_team == 1 else [0, 6]
        entry = new_map_score_entry(i)
        entry.update({
            'submitted_by_team_a': list(pair),
            'submitted_by_team_b': list(pair),
            'team_a_submitted': True,
            'team_b_submitted': True,
            'team_a_score': pair[0],
            'team_b_score': pair[1],
            'winner': winning_team,
            'confirmed': True,
        })
        if i < len(maps):
            entry['map_name'] = maps[i].get('map_name')
        forced.append(entry)
    live['map_scores'] = forced

    return record_match_result(updated, match_id, TEAM_A if winning_team == 1 else TEAM_B, map_selector)
