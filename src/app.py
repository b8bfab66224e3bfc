"""
Flask JSON API for the tournament bracket engine.
"""
import os
import logging
import yaml
from flask import Flask, request, jsonify
from brackets.errors import BracketError, INVALID_MAP_INDEX, INVALID_SIDE
from brackets.maps import MapSelector, load_map_pool
from brackets.models import DOUBLE_ELIMINATION, SIDES
from brackets.service import TournamentService
from brackets.store import TournamentStore

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))
SETTINGS_FILE_NAME = 'settings.yaml'
MAP_POOL_FILE = os.environ.get('MAP_POOL_FILE')

logging.basicConfig(level=os.environ.get('LOG_LEVEL', 'INFO').upper())


def get_default_settings():
    """Return default settings."""
    return {
        'maps_per_match': 3,
        'max_submit_attempts': 3,
        'default_max_teams': 8,
        'default_format': DOUBLE_ELIMINATION,
        'map_pool': [],
    }


def load_settings():
    """Load settings.yaml from the data directory, merged over the defaults."""
    settings = get_default_settings()
    path = os.path.join(DATA_DIR, SETTINGS_FILE_NAME)
    if not os.path.exists(path):
        return settings
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        app.logger.warning(f'Failed to parse {path}: {e}')
        return settings
    if isinstance(data, dict):
        settings.update(data)
    return settings


def get_service():
    """Build the service for the current data directory and settings."""
    settings = load_settings()
    map_pool = load_map_pool(MAP_POOL_FILE) if MAP_POOL_FILE else settings.get('map_pool') or []
    return TournamentService(
        TournamentStore(DATA_DIR),
        map_selector=MapSelector(map_pool),
        max_attempts=int(settings.get('max_submit_attempts', 3)),
    )


def _error_response(error: BracketError):
    if error.retryable:
        app.logger.warning(f'{error.kind}: {error.message}')
    return jsonify({'success': False, **error.to_dict()}), error.http_status


def _bad_request(message):
    return jsonify({'success': False, 'error': 'BadRequest', 'message': message}), 400


def _to_int(value):
    """Read an int from JSON that may carry it as a string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return None


@app.route('/api/tournaments', methods=['GET'])
def api_list_tournaments():
    tournaments = get_service().list_tournaments()
    return jsonify({'success': True, 'tournaments': [
        {'id': t['id'], 'name': t['name'], 'format': t['format'], 'status': t['status'],
         'registered': len(t.get('registered_teams') or []), 'max_teams': t['max_teams']}
        for t in tournaments
    ]})


@app.route('/api/tournaments', methods=['POST'])
def api_create_tournament():
    """Create a tournament. Body: name, format, max_teams, optional id."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return _bad_request('Request body must be a JSON object')
    settings = load_settings()
    max_teams = _to_int(data.get('max_teams', settings['default_max_teams']))
    tournament, error = get_service().create_tournament(
        name=(data.get('name') or '').strip(),
        fmt=data.get('format', settings['default_format']),
        max_teams=max_teams,
        maps_per_match=int(settings.get('maps_per_match', 3)),
        tournament_id=str(data['id']) if data.get('id') else None,
    )
    if error:
        return _error_response(error)
    app.logger.info(f"Tournament {tournament['id']} created ({tournament['format']})")
    return jsonify({'success': True, 'tournament': tournament}), 201


@app.route('/api/tournaments/<tournament_id>', methods=['GET'])
def api_get_tournament(tournament_id):
    tournament, error = get_service().get_tournament(tournament_id)
    if error:
        return _error_response(error)
    return jsonify({'success': True, 'tournament': tournament})


@app.route('/api/tournaments/<tournament_id>', methods=['DELETE'])
def api_delete_tournament(tournament_id):
    _, error = get_service().delete_tournament(tournament_id)
    if error:
        return _error_response(error)
    return jsonify({'success': True})


@app.route('/api/tournaments/<tournament_id>/bracket', methods=['GET'])
def api_get_bracket(tournament_id):
    tournament, error = get_service().get_tournament(tournament_id)
    if error:
        return _error_response(error)
    return jsonify({'success': True, 'bracket': tournament.get('bracket'),
                    'status': tournament['status'], 'winner': tournament.get('winner')})


@app.route('/api/tournaments/<tournament_id>/matches', methods=['GET'])
def api_get_matches(tournament_id):
    tournament, error = get_service().get_tournament(tournament_id)
    if error:
        return _error_response(error)
    matches = tournament.get('matches') or []
    status = request.args.get('status')
    if status:
        matches = [m for m in matches if m['status'] == status]
    return jsonify({'success': True, 'matches': matches})


@app.route('/api/tournaments/<tournament_id>/register', methods=['POST'])
def api_register_team(tournament_id):
    """Register a team. Body: id, name, tag, elo."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return _bad_request('No data provided')
    tournament, error = get_service().register_team(tournament_id, data)
    if error:
        return _error_response(error)
    return jsonify({'success': True, 'registered': len(tournament['registered_teams']),
                    'max_teams': tournament['max_teams']})


@app.route('/api/tournaments/<tournament_id>/unregister', methods=['POST'])
def api_unregister_team(tournament_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or data.get('id') is None:
        return _bad_request('Missing team id')
    tournament, error = get_service().unregister_team(tournament_id, data['id'])
    if error:
        return _error_response(error)
    return jsonify({'success': True, 'registered': len(tournament['registered_teams'])})


@app.route('/api/tournaments/<tournament_id>/preseed', methods=['POST'])
def api_preseed(tournament_id):
    tournament, error = get_service().preseed(tournament_id)
    if error:
        return _error_response(error)
    return jsonify({'success': True, 'message': 'Tournament bracket has been pre-seeded',
                    'bracket': tournament['bracket']})


@app.route('/api/tournaments/<tournament_id>/unseed', methods=['POST'])
def api_unseed(tournament_id):
    _, error = get_service().unseed(tournament_id)
    if error:
        return _error_response(error)
    return jsonify({'success': True})


@app.route('/api/tournaments/<tournament_id>/launch', methods=['POST'])
def api_launch(tournament_id):
    tournament, error = get_service().launch(tournament_id)
    if error:
        return _error_response(error)
    return jsonify({'success': True, 'matches': tournament['matches']})


@app.route('/api/tournaments/<tournament_id>/reset', methods=['POST'])
def api_reset(tournament_id):
    _, error = get_service().reset(tournament_id)
    if error:
        return _error_response(error)
    return jsonify({'success': True, 'message': 'Tournament reset successfully'})


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>/scores', methods=['POST'])
def api_submit_score(tournament_id, match_id):
    """Score report from one side of a match.

    Requires: map_index, team_a_score, team_b_score and side ('team_a' or
    'team_b'; team_index 0/1 is also accepted) in JSON body.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return _bad_request('No data provided')

    side = data.get('side')
    if side is None and data.get('team_index') in (0, 1):
        side = SIDES[data['team_index']]
    if side not in SIDES:
        return _error_response(BracketError(INVALID_SIDE, "side must be 'team_a' or 'team_b'"))

    map_index = _to_int(data.get('map_index'))
    if map_index is None:
        return _error_response(BracketError(INVALID_MAP_INDEX, 'map_index must be an integer'))

    outcome, error = get_service().submit_map_score(
        tournament_id, match_id, map_index, side,
        data.get('team_a_score'), data.get('team_b_score'))
    if error:
        return _error_response(error)

    if outcome['scores_mismatch']:
        message = 'Scores do not match - both teams must resubmit'
    elif outcome['match_completed']:
        message = 'Match completed'
    else:
        message = 'Score submitted successfully'
    return jsonify({'success': True, 'message': message, **outcome})


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>/admin-winner', methods=['POST'])
def api_admin_set_winner(tournament_id, match_id):
    """Force a match result. Requires winning_team (1 or 2) in JSON body."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return _bad_request('No data provided')
    winning_team = _to_int(data.get('winning_team'))
    if winning_team not in (1, 2):
        return _error_response(BracketError(INVALID_SIDE, 'Invalid winner. Must be 1 (Team A) or 2 (Team B)'))

    result, error = get_service().admin_set_winner(tournament_id, match_id, winning_team)
    if error:
        return _error_response(error)
    return jsonify({'success': True, **result})


if __name__ == '__main__':
    app.run(debug=os.environ.get('FLASK_DEBUG') == '1')
