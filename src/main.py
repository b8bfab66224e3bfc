# Command line entry point: seed a field of teams and print the bracket

import argparse
import sys
import yaml
from brackets.builder import build_bracket
from brackets.models import FORMATS, SINGLE_ELIMINATION, Team
from brackets.seeding import seed_teams


def load_teams(file_path):
    """Read teams from YAML: a list of {id, name, tag, elo} entries (or {'teams': [...]})."""
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or []
    if isinstance(data, dict):
        data = data.get('teams', [])
    return [Team.from_dict(entry).to_dict() for entry in data if isinstance(entry, dict)]


def print_bracket(bracket):
    for round_data in bracket['rounds'] + bracket['losers_rounds']:
        print(f"\n{round_data['name']}")
        for match in round_data['matches']:
            team_a = match['team_a']
            team_b = match['team_b']
            label_a = f"({team_a['seed']}) {team_a['name']}" if team_a else 'TBD'
            label_b = f"({team_b['seed']}) {team_b['name']}" if team_b else 'TBD'
            print(f"  {match['match_id']}: {label_a} vs {label_b}")


def main(argv=None):
    parser = argparse.ArgumentParser(description='Seed teams and print the tournament bracket.')
    parser.add_argument('teams_file', help='YAML file with the registered teams')
    parser.add_argument('--format', choices=FORMATS, default=SINGLE_ELIMINATION)
    parser.add_argument('--tournament-id', default='T1')
    parser.add_argument('--capacity', type=int, default=None,
                        help='Required team count (defaults to the number of teams in the file)')
    args = parser.parse_args(argv)

    teams = load_teams(args.teams_file)
    capacity = args.capacity if args.capacity is not None else len(teams)

    pairs, error = seed_teams(teams, capacity)
    if error is None:
        bracket, error = build_bracket(args.tournament_id, pairs, args.format)
    if error is not None:
        print(f"Error ({error.kind}): {error.message}", file=sys.stderr)
        return 1

    print_bracket(bracket)
    return 0


if __name__ == '__main__':
    sys.exit(main())
