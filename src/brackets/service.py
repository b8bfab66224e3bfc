"""
Tournament lifecycle on top of the document store.

Each mutating operation reads the tournament, runs a pure transition on it
and writes the result back conditionally on the version it read. When a
concurrent request wins the race the whole step is retried with fresh state,
a bounded number of times, before a Conflict error is returned.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from .advancement import (
    admin_set_winner,
    apply_map_submission,
    launch_first_round,
)
from .builder import build_bracket
from .errors import (
    BracketError,
    CONFLICT,
    DUPLICATE_TEAM,
    INVALID_FORMAT,
    INVALID_RATING,
    INVALID_STATE,
    MISSING_TEAM_ID,
    NOT_POWER_OF_TWO,
    TEAM_NOT_FOUND,
    TOURNAMENT_FULL,
    TOURNAMENT_NOT_FOUND,
    StoreConflictError,
)
from .maps import MapSelector
from .models import (
    ACTIVE,
    COMPLETED,
    FORMATS,
    REGISTRATION,
    SEEDED,
    Team,
)
from .seeding import is_power_of_two, seed_teams
from .store import TournamentStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


def _log_match_live(tournament: Dict, match: Dict):
    logger.info(f"Match {match['match_id']} is live: "
                f"{match['team_a']['name']} vs {match['team_b']['name']} "
                f"({tournament.get('name')})")


def _require_status(tournament: Dict, *allowed: str) -> Optional[BracketError]:
    if tournament['status'] not in allowed:
        return BracketError(
            INVALID_STATE,
            f"Tournament is {tournament['status']}; expected {' or '.join(allowed)}")
    return None


class TournamentService:
    """
    Entry point used by the HTTP layer.

    Args:
        store: Document store holding tournaments
        map_selector: Picks maps for new matches (random pool selection by default)
        max_attempts: Tries per operation when concurrent writes collide
        on_match_live: Called with (tournament, match) for every match that goes live
    """

    def __init__(self, store: TournamentStore, map_selector: Optional[MapSelector] = None,
                 max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 on_match_live: Optional[Callable[[Dict, Dict], None]] = None):
        self.store = store
        self.map_selector = map_selector if map_selector is not None else MapSelector()
        self.max_attempts = max(1, max_attempts)
        self.on_match_live = on_match_live or _log_match_live

    # -------------------------
    # Internals
    # -------------------------

    def _mutate(self, tournament_id: str, transition) -> Tuple[Optional[Tuple[Dict, object]], Optional[BracketError]]:
        """Run ``transition(doc) -> (new_doc, payload, error)`` with optimistic retries."""
        for attempt in range(1, self.max_attempts + 1):
            doc = self.store.load(tournament_id)
            if doc is None:
                return None, BracketError(TOURNAMENT_NOT_FOUND, f'Tournament {tournament_id} not found')

            new_doc, payload, error = transition(doc)
            if error is not None:
                return None, error

            new_doc['updated_at'] = datetime.now().isoformat()
            try:
                saved = self.store.replace(new_doc, doc.get('version', 0))
            except StoreConflictError as e:
                logger.warning(f'Attempt {attempt}/{self.max_attempts} lost a write race: {e}')
                continue
            return (saved, payload), None

        return None, BracketError(
            CONFLICT, f'Tournament {tournament_id} was modified concurrently, please retry')

    def _announce(self, tournament: Dict, matches: List[Dict]):
        for match in matches:
            self.on_match_live(tournament, match)

    # -------------------------
    # Public API
    # -------------------------

    def create_tournament(self, name: str, fmt: str, max_teams: int = 8, maps_per_match: int = 3,
                          tournament_id: Optional[str] = None) -> Tuple[Optional[Dict], Optional[BracketError]]:
        if fmt not in FORMATS:
            return None, BracketError(INVALID_FORMAT, f"Unknown tournament format {fmt!r}")
        if not isinstance(max_teams, int) or max_teams < 2 or not is_power_of_two(max_teams):
            return None, BracketError(NOT_POWER_OF_TWO, f'Team capacity must be a power of two, got {max_teams!r}')
        if not isinstance(maps_per_match, int) or maps_per_match < 1 or maps_per_match % 2 == 0:
            return None, BracketError(INVALID_FORMAT, f'Maps per match must be a positive odd number, got {maps_per_match!r}')

        now = datetime.now().isoformat()
        doc = {
            'id': tournament_id or uuid4().hex[:12],
            'name': name or 'Tournament',
            'format': fmt,
            'max_teams': max_teams,
            'maps_per_match': maps_per_match,
            'status': REGISTRATION,
            'registered_teams': [],
            'bracket': None,
            'matches': [],
            'winner': None,
            'standings': [],
            'created_at': now,
            'updated_at': now,
        }
        try:
            return self.store.create(doc), None
        except StoreConflictError:
            return None, BracketError(CONFLICT, f"Tournament {doc['id']} already exists")
        except ValueError as e:
            return None, BracketError(INVALID_FORMAT, str(e))

    def get_tournament(self, tournament_id: str) -> Tuple[Optional[Dict], Optional[BracketError]]:
        doc = self.store.load(tournament_id)
        if doc is None:
            return None, BracketError(TOURNAMENT_NOT_FOUND, f'Tournament {tournament_id} not found')
        return doc, None

    def list_tournaments(self) -> List[Dict]:
        return self.store.list()

    def delete_tournament(self, tournament_id: str) -> Tuple[Optional[bool], Optional[BracketError]]:
        if not self.store.delete(tournament_id):
            return None, BracketError(TOURNAMENT_NOT_FOUND, f'Tournament {tournament_id} not found')
        return True, None

    def register_team(self, tournament_id: str, team_data: Dict) -> Tuple[Optional[Dict], Optional[BracketError]]:
        team = Team.from_dict(team_data or {}).to_dict()
        if team['id'] is None or team['id'] == '':
            return None, BracketError(MISSING_TEAM_ID, 'Team id is required')
        elo = team['elo']
        if elo is None:
            team['elo'] = 0
        elif isinstance(elo, bool) or not isinstance(elo, int) or elo < 0:
            return None, BracketError(INVALID_RATING, f'Rating must be a non-negative integer, got {elo!r}')

        def transition(doc):
            error = _require_status(doc, REGISTRATION)
            if error:
                return None, None, error
            teams = doc['registered_teams']
            if any(t['id'] == team['id'] for t in teams):
                return None, None, BracketError(DUPLICATE_TEAM, f"Team {team['id']} is already registered")
            if len(teams) >= doc['max_teams']:
                return None, None, BracketError(TOURNAMENT_FULL, f"Tournament is full ({doc['max_teams']} teams)")
            doc['registered_teams'] = teams + [team]
            return doc, team, None

        result, error = self._mutate(tournament_id, transition)
        if error:
            return None, error
        return result[0], None

    def unregister_team(self, tournament_id: str, team_id) -> Tuple[Optional[Dict], Optional[BracketError]]:
        def transition(doc):
            error = _require_status(doc, REGISTRATION)
            if error:
                return None, None, error
            remaining = [t for t in doc['registered_teams'] if t['id'] != team_id]
            if len(remaining) == len(doc['registered_teams']):
                return None, None, BracketError(TEAM_NOT_FOUND, f'Team {team_id} is not registered')
            doc['registered_teams'] = remaining
            return doc, None, None

        result, error = self._mutate(tournament_id, transition)
        if error:
            return None, error
        return result[0], None

    def _seeded_bracket(self, doc: Dict):
        pairs, error = seed_teams(doc['registered_teams'], doc['max_teams'])
        if error:
            return None, error
        return build_bracket(doc['id'], pairs, doc['format'])

    def preseed(self, tournament_id: str) -> Tuple[Optional[Dict], Optional[BracketError]]:
        """Seed the registered teams and build the bracket."""
        def transition(doc):
            error = _require_status(doc, REGISTRATION)
            if error:
                return None, None, error
            bracket, error = self._seeded_bracket(doc)
            if error:
                return None, None, error
            doc['bracket'] = bracket
            doc['status'] = SEEDED
            return doc, None, None

        result, error = self._mutate(tournament_id, transition)
        if error:
            return None, error
        logger.info(f'Tournament {tournament_id} bracket has been pre-seeded')
        return result[0], None

    def unseed(self, tournament_id: str) -> Tuple[Optional[Dict], Optional[BracketError]]:
        """Throw away a seeded bracket so registration can change again."""
        def transition(doc):
            error = _require_status(doc, SEEDED)
            if error:
                return None, None, error
            doc['bracket'] = None
            doc['status'] = REGISTRATION
            return doc, None, None

        result, error = self._mutate(tournament_id, transition)
        if error:
            return None, error
        return result[0], None

    def launch(self, tournament_id: str) -> Tuple[Optional[Dict], Optional[BracketError]]:
        """Start the tournament: round 1 matches go live with their maps."""
        def transition(doc):
            error = _require_status(doc, SEEDED)
            if error:
                return None, None, error
            return launch_first_round(doc, self.map_selector)

        result, error = self._mutate(tournament_id, transition)
        if error:
            return None, error
        saved, created = result
        logger.info(f'Tournament {tournament_id} launched with {len(created)} match(es)')
        self._announce(saved, created)
        return saved, None

    def reset(self, tournament_id: str) -> Tuple[Optional[Dict], Optional[BracketError]]:
        """Discard all results and rebuild the seeded bracket."""
        def transition(doc):
            error = _require_status(doc, SEEDED, ACTIVE, COMPLETED)
            if error:
                return None, None, error
            bracket, error = self._seeded_bracket(doc)
            if error:
                return None, None, error
            doc['bracket'] = bracket
            doc['matches'] = []
            doc['winner'] = None
            doc['standings'] = []
            doc['status'] = SEEDED
            for key in ('launched_at', 'completed_at'):
                doc.pop(key, None)
            return doc, None, None

        result, error = self._mutate(tournament_id, transition)
        if error:
            return None, error
        logger.info(f'Tournament {tournament_id} reset')
        return result[0], None

    def submit_map_score(self, tournament_id: str, match_id: str, map_index, side: str,
                         team_a_score, team_b_score) -> Tuple[Optional[Dict], Optional[BracketError]]:
        """
        Record a score report from one side of a live match.

        Returns the submission outcome: the map entry after reconciliation,
        whether the two reports disagreed, and whether the match finished.
        """
        def transition(doc):
            error = _require_status(doc, ACTIVE)
            if error:
                return None, None, error
            return apply_map_submission(doc, match_id, map_index, side,
                                        team_a_score, team_b_score, self.map_selector)

        result, error = self._mutate(tournament_id, transition)
        if error:
            return None, error
        saved, outcome = result
        created = [m for m in saved['matches'] if m['match_id'] in outcome['created_matches']]
        self._announce(saved, created)
        outcome['tournament_status'] = saved['status']
        return outcome, None

    def admin_set_winner(self, tournament_id: str, match_id: str,
                         winning_team: int) -> Tuple[Optional[Dict], Optional[BracketError]]:
        def transition(doc):
            error = _require_status(doc, ACTIVE)
            if error:
                return None, None, error
            return admin_set_winner(doc, match_id, winning_team, self.map_selector)

        result, error = self._mutate(tournament_id, transition)
        if error:
            return None, error
        saved, created = result
        self._announce(saved, created)
        return {
            'match_id': match_id,
            'winner': 'team_a' if winning_team == 1 else 'team_b',
            'created_matches': [m['match_id'] for m in created],
            'tournament_status': saved['status'],
        }, None
