"""
Shared pytest fixtures for bracket engine tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - skip full tournament runs
"""
import copy
import random
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from brackets.builder import build_bracket
from brackets.maps import MapSelector
from brackets.models import SEEDED
from brackets.seeding import seed_teams
from brackets.service import TournamentService
from brackets.store import TournamentStore

MAP_POOL = [
    {'name': 'Bridge', 'game_mode': 'Attrition'},
    {'name': 'Canyon', 'game_mode': 'Attrition', 'small_option': True},
    {'name': 'Harbor', 'game_mode': 'Capture'},
    {'name': 'Outpost', 'game_mode': 'Attrition'},
]


def error_kind(error):
    """Kind of an optional BracketError, or None."""
    return error.kind if error is not None else None


def make_teams(count, start_elo=2000, step=100):
    """Teams T1..Tn with strictly decreasing ratings, so T1 is seed 1."""
    return [
        {'id': f'T{i + 1}', 'name': f'Team {i + 1}', 'tag': f'T{i + 1}', 'elo': start_elo - i * step}
        for i in range(count)
    ]


def make_tournament(fmt, team_count=8, tournament_id='T100', maps_per_match=3):
    """A seeded tournament document, as the service would store it."""
    teams = make_teams(team_count)
    pairs, error = seed_teams(teams, team_count)
    assert error is None
    bracket, error = build_bracket(tournament_id, pairs, fmt)
    assert error is None
    return {
        'id': tournament_id,
        'name': 'Test Cup',
        'format': fmt,
        'max_teams': team_count,
        'maps_per_match': maps_per_match,
        'status': SEEDED,
        'registered_teams': copy.deepcopy(teams),
        'bracket': bracket,
        'matches': [],
        'winner': None,
        'standings': [],
        'version': 1,
    }


@pytest.fixture
def eight_teams():
    """Eight teams rated 2000 down to 1300."""
    return make_teams(8)


@pytest.fixture
def map_selector():
    """Deterministic map selection."""
    return MapSelector(MAP_POOL, rng=random.Random(7))


@pytest.fixture
def store(tmp_path):
    return TournamentStore(str(tmp_path))


@pytest.fixture
def service(store, map_selector):
    announced = []
    svc = TournamentService(store, map_selector=map_selector,
                            on_match_live=lambda t, m: announced.append(m['match_id']))
    svc.announced = announced
    return svc


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point the Flask app at a temporary data directory."""
    import app as app_module
    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    monkeypatch.setattr(app_module, 'MAP_POOL_FILE', None)
    return tmp_path


@pytest.fixture
def client(data_dir):
    """Create a test client bound to the temporary data directory."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client
