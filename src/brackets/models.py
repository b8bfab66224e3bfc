SINGLE_ELIMINATION = 'single_elimination'
DOUBLE_ELIMINATION = 'double_elimination'
FORMATS = (SINGLE_ELIMINATION, DOUBLE_ELIMINATION)

# Bracket match / live match status
UPCOMING = 'upcoming'
LIVE = 'live'
COMPLETED = 'completed'

# Tournament status
REGISTRATION = 'registration'
SEEDED = 'seeded'
ACTIVE = 'active'

# Bracket keys
WINNERS = 'W'
LOSERS = 'L'
GRAND_FINALS = 'GF'

TEAM_A = 'team_a'
TEAM_B = 'team_b'
SIDES = (TEAM_A, TEAM_B)


class Team:
    def __init__(self, team_id, name=None, tag=None, elo=0):
        self.id = team_id
        self.name = name if name is not None else str(team_id)
        self.tag = tag
        self.elo = elo

    @classmethod
    def from_dict(cls, data):
        return cls(data.get('id'), data.get('name'), data.get('tag'), data.get('elo', 0))

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'tag': self.tag, 'elo': self.elo}

    def __repr__(self):
        return f"Team(id={self.id}, name={self.name}, elo={self.elo})"


class MatchRef:
    """Structured position of a match: which bracket, round and slot it occupies."""

    def __init__(self, tournament_id, bracket, round_number, match_number):
        self.tournament_id = str(tournament_id)
        self.bracket = bracket
        self.round = round_number
        self.match_number = match_number

    @property
    def match_id(self) -> str:
        # Grand finals rounds continue the winners numbering
        letter = 'l' if self.bracket == LOSERS else 'r'
        return f"{self.tournament_id}-{letter}{self.round}-m{self.match_number}"

    @classmethod
    def from_dict(cls, data):
        return cls(data['tournament_id'], data['bracket'], data['round'], data['match_number'])

    def to_dict(self):
        return {
            'tournament_id': self.tournament_id,
            'bracket': self.bracket,
            'round': self.round,
            'match_number': self.match_number,
        }

    def __eq__(self, other):
        if not isinstance(other, MatchRef):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash(self.match_id)

    def __repr__(self):
        return f"MatchRef({self.match_id})"


def new_map_score_entry(map_index):
    """Empty per-map submission record."""
    return {
        'map_index': map_index,
        'submitted_by_team_a': None,
        'submitted_by_team_b': None,
        'team_a_submitted': False,
        'team_b_submitted': False,
        'team_a_score': None,
        'team_b_score': None,
        'winner': None,
        'confirmed': False,
        'scores_mismatch': False,
    }


def other_side(side):
    return TEAM_B if side == TEAM_A else TEAM_A
