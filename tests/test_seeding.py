"""
Tests for rating-based seeding.
"""
import pytest
from brackets.errors import (
    DUPLICATE_TEAM,
    INVALID_RATING,
    MISSING_TEAM_ID,
    NOT_POWER_OF_TWO,
    WRONG_TEAM_COUNT,
)
from brackets.seeding import is_power_of_two, seed_teams

from conftest import error_kind, make_teams


class TestIsPowerOfTwo:
    def test_powers(self):
        for n in (1, 2, 4, 8, 16, 64):
            assert is_power_of_two(n)

    def test_non_powers(self):
        for n in (0, 3, 6, 12, -4):
            assert not is_power_of_two(n)


class TestSeedTeams:
    """Tests for seed_teams."""

    def test_eight_team_pairings(self, eight_teams):
        """Highest rated meets lowest: 1v8, 2v7, 3v6, 4v5."""
        pairs, error = seed_teams(eight_teams, 8)
        assert error is None
        assert [(a['id'], b['id']) for a, b in pairs] == [
            ('T1', 'T8'), ('T2', 'T7'), ('T3', 'T6'), ('T4', 'T5'),
        ]
        assert [(a['seed'], b['seed']) for a, b in pairs] == [(1, 8), (2, 7), (3, 6), (4, 5)]

    def test_order_of_input_does_not_matter(self, eight_teams):
        shuffled = [eight_teams[i] for i in (5, 2, 7, 0, 3, 6, 1, 4)]
        pairs, _ = seed_teams(shuffled, 8)
        assert [(a['id'], b['id']) for a, b in pairs][0] == ('T1', 'T8')

    def test_every_team_appears_once(self):
        teams = make_teams(16)
        pairs, _ = seed_teams(teams, 16)
        ids = [t['id'] for pair in pairs for t in pair]
        assert sorted(ids) == sorted(t['id'] for t in teams)

    def test_pair_seeds_sum_to_n_plus_one(self):
        pairs, _ = seed_teams(make_teams(16), 16)
        assert all(a['seed'] + b['seed'] == 17 for a, b in pairs)
        assert all(a['elo'] >= b['elo'] for a, b in pairs)

    def test_ties_keep_registration_order(self):
        teams = [{'id': f'T{i}', 'elo': 1500} for i in range(4)]
        pairs, _ = seed_teams(teams, 4)
        assert [(a['id'], b['id']) for a, b in pairs] == [('T0', 'T3'), ('T1', 'T2')]

    def test_missing_rating_counts_as_zero(self):
        teams = [{'id': 'A', 'elo': 100}, {'id': 'B'}, {'id': 'C', 'elo': 50}, {'id': 'D', 'elo': 10}]
        pairs, error = seed_teams(teams, 4)
        assert error is None
        assert pairs[0][1]['id'] == 'B'

    def test_inputs_are_not_modified(self, eight_teams):
        seed_teams(eight_teams, 8)
        assert all('seed' not in t for t in eight_teams)

    def test_two_teams(self):
        pairs, error = seed_teams(make_teams(2), 2)
        assert error is None
        assert len(pairs) == 1


class TestSeedTeamsErrors:
    """Tests for seed_teams error reporting."""

    def test_wrong_team_count(self, eight_teams):
        _, error = seed_teams(eight_teams[:7], 8)
        assert error_kind(error) == WRONG_TEAM_COUNT

    @pytest.mark.parametrize('count', [3, 6, 12])
    def test_not_power_of_two(self, count):
        _, error = seed_teams(make_teams(count), count)
        assert error_kind(error) == NOT_POWER_OF_TWO

    def test_single_team_is_rejected(self):
        _, error = seed_teams(make_teams(1), 1)
        assert error_kind(error) == NOT_POWER_OF_TWO

    def test_duplicate_team(self):
        teams = make_teams(4)
        teams[3] = dict(teams[0])
        _, error = seed_teams(teams, 4)
        assert error_kind(error) == DUPLICATE_TEAM

    def test_missing_id(self):
        teams = make_teams(4)
        teams[2] = {'name': 'Nameless', 'elo': 1000}
        _, error = seed_teams(teams, 4)
        assert error_kind(error) == MISSING_TEAM_ID

    @pytest.mark.parametrize('elo', [-5, 'high', 12.5])
    def test_invalid_rating(self, elo):
        teams = make_teams(4)
        teams[1]['elo'] = elo
        _, error = seed_teams(teams, 4)
        assert error_kind(error) == INVALID_RATING
