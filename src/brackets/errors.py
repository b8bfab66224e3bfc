"""
Error values returned by the bracket engine.

Pure components (validator, seeding, builder, advancement) never raise for
bad input: they return a ``BracketError`` alongside their result so the HTTP
layer can map the kind to a status code.
"""
from typing import Dict


# Score validation
INVALID_SCORE = 'InvalidScore'
SCORE_TOO_HIGH = 'ScoreTooHigh'
TIED_SCORE = 'TiedScore'
NO_WINNER = 'NoWinner'

# Seeding / building
DUPLICATE_TEAM = 'DuplicateTeam'
WRONG_TEAM_COUNT = 'WrongTeamCount'
NOT_POWER_OF_TWO = 'NotPowerOfTwo'
MISSING_TEAM_ID = 'MissingTeamId'
INVALID_RATING = 'InvalidRating'
INVALID_FORMAT = 'InvalidFormat'

# Advancement / submission
MATCH_NOT_FOUND = 'MatchNotFound'
SLOT_ALREADY_RESOLVED = 'SlotAlreadyResolved'
ROUND_NOT_COMPLETE = 'RoundNotComplete'
MAP_ALREADY_CONFIRMED = 'MapAlreadyConfirmed'
INVALID_MAP_INDEX = 'InvalidMapIndex'
INVALID_SIDE = 'InvalidSide'
MATCH_NOT_LIVE = 'MatchNotLive'

# Tournament lifecycle
TOURNAMENT_NOT_FOUND = 'TournamentNotFound'
TOURNAMENT_FULL = 'TournamentFull'
TEAM_NOT_FOUND = 'TeamNotFound'
INVALID_STATE = 'InvalidState'
CONFLICT = 'Conflict'

_HTTP_STATUS = {
    MATCH_NOT_FOUND: 404,
    TOURNAMENT_NOT_FOUND: 404,
    TEAM_NOT_FOUND: 404,
    SLOT_ALREADY_RESOLVED: 409,
    ROUND_NOT_COMPLETE: 409,
    MAP_ALREADY_CONFIRMED: 409,
    MATCH_NOT_LIVE: 409,
    TOURNAMENT_FULL: 409,
    INVALID_STATE: 409,
    CONFLICT: 409,
}


class BracketError:
    """An error kind plus a human readable message."""

    def __init__(self, kind: str, message: str):
        self.kind = kind
        self.message = message

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS.get(self.kind, 400)

    @property
    def retryable(self) -> bool:
        return self.kind == CONFLICT

    def to_dict(self) -> Dict[str, str]:
        return {'error': self.kind, 'message': self.message}

    def __eq__(self, other):
        if not isinstance(other, BracketError):
            return NotImplemented
        return self.kind == other.kind and self.message == other.message

    def __repr__(self):
        return f"BracketError(kind={self.kind}, message={self.message})"


class StoreConflictError(Exception):
    """Raised by the store when a write is based on a stale document version."""

    def __init__(self, tournament_id: str, expected_version: int, actual_version: int):
        super().__init__(
            f"Tournament {tournament_id} changed: expected version "
            f"{expected_version}, found {actual_version}"
        )
        self.tournament_id = tournament_id
        self.expected_version = expected_version
        self.actual_version = actual_version
