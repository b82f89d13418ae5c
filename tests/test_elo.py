import math

import pytest

from statmind.engine.elo import (
    actual_scores,
    apply_elo_update,
    compute_elo_update,
    expected_score,
    margin_multiplier,
)
from statmind.engine.team_state import TeamState


def test_expected_score_symmetry():
    assert expected_score(1500, 1500) == pytest.approx(0.5)
    assert expected_score(1600, 1500) + expected_score(1500, 1600) == pytest.approx(1.0)
    # 400 points is 10:1 odds
    assert expected_score(1900, 1500) == pytest.approx(10 / 11)


def test_margin_multiplier():
    assert margin_multiplier(30, 10) == pytest.approx(math.log(21))
    # one-point and tied games both use a margin of 1
    assert margin_multiplier(21, 20) == pytest.approx(math.log(2))
    assert margin_multiplier(17, 17) == pytest.approx(math.log(2))


def test_actual_scores():
    assert actual_scores(24, 17) == (1.0, 0.0)
    assert actual_scores(17, 24) == (0.0, 1.0)
    assert actual_scores(20, 20) == (0.5, 0.5)


def test_even_teams_blowout():
    update = compute_elo_update(1500, 1500, 30, 10)

    assert update.expected_home == pytest.approx(0.5)
    assert update.delta_home == pytest.approx(48.71, abs=0.01)
    assert 1500 + update.delta_home == pytest.approx(1548.71, abs=0.01)
    assert 1500 + update.delta_away == pytest.approx(1451.29, abs=0.01)


@pytest.mark.parametrize(
    "home_elo, away_elo, home_score, away_score",
    [
        (1500, 1500, 30, 10),
        (1620, 1410, 3, 27),
        (1388.5, 1711.25, 20, 20),
        (1500, 1500, 21, 20),
    ],
)
def test_update_is_zero_sum(home_elo, away_elo, home_score, away_score):
    update = compute_elo_update(home_elo, away_elo, home_score, away_score)
    assert update.delta_home + update.delta_away == 0.0


def test_upset_moves_more_than_expected_win():
    favorite_wins = compute_elo_update(1700, 1500, 24, 17)
    underdog_wins = compute_elo_update(1700, 1500, 17, 24)

    assert 0 < favorite_wins.delta_home < -underdog_wins.delta_home


def test_tie_between_unequal_teams_favors_underdog():
    update = compute_elo_update(1600, 1500, 20, 20)
    assert update.delta_home < 0
    assert update.delta_away > 0


def test_apply_elo_update_mutates_states(make_game):
    home = TeamState(team_key="KC")
    away = TeamState(team_key="DET")
    update = apply_elo_update(home, away, make_game("g1", "KC", "DET", 30, 10))

    assert home.elo_rating == pytest.approx(1500 + update.delta_home)
    assert away.elo_rating == pytest.approx(1500 - update.delta_home)
    assert home.elo_rating + away.elo_rating == pytest.approx(3000.0)
