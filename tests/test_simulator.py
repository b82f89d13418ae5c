import dataclasses
import datetime as dt
import logging
import random

import pytest

from statmind.config import ENGINE_CONFIG
from statmind.engine.components import ComponentScores
from statmind.engine.errors import MissingTeamStateError, WeightValidationError
from statmind.engine.game import chronological
from statmind.engine.simulator import Simulator, run_backtest


def _flip(game):
    return dataclasses.replace(game, home_score=game.away_score, away_score=game.home_score)


def test_predictions_only_use_earlier_games(two_season_games):
    """Changing later results must not change any earlier prediction."""
    ordered = chronological(two_season_games)
    cutoff = 20
    altered = ordered[:cutoff] + [_flip(g) for g in ordered[cutoff:]]

    baseline = run_backtest(ordered)
    rerun = run_backtest(altered)

    # games up to and including the cutoff were predicted from identical history
    for a, b in zip(baseline.records[: cutoff + 1], rerun.records[: cutoff + 1]):
        assert a.prediction == b.prediction
        assert a.home_elo_pre == b.home_elo_pre

    assert baseline.records[-1].prediction != rerun.records[-1].prediction


def test_first_game_uses_neutral_state(two_season_games):
    result = run_backtest(two_season_games)
    first = result.records[0]

    assert first.home_elo_pre == ENGINE_CONFIG.base_elo
    assert first.away_elo_pre == ENGINE_CONFIG.base_elo
    assert first.prediction.components == ComponentScores(
        elo=0.0, power=0.0, situational=5.0, matchup=0.0, recentForm=0.0
    )
    assert first.prediction.predicted_winner == first.game.home_team


def test_replay_is_deterministic_and_order_independent(two_season_games):
    shuffled = list(two_season_games)
    random.Random(7).shuffle(shuffled)

    a = run_backtest(two_season_games, transition="regress")
    b = run_backtest(shuffled, transition="regress")

    assert a.to_frame().equals(b.to_frame())
    assert a.final_elo() == b.final_elo()
    assert [r.game.game_id for r in a.records] == [
        g.game_id for g in chronological(two_season_games)
    ]


def test_dominant_team_is_picked_after_first_meeting(make_game):
    games = []
    for week in range(1, 7):
        home, away = ("KC", "DET") if week % 2 else ("DET", "KC")
        kc_home = home == "KC"
        games.append(
            make_game(
                f"2023_{week:02d}_{away}_{home}",
                home,
                away,
                24 if kc_home else 17,
                17 if kc_home else 24,
                week=week,
            )
        )

    result = run_backtest(games)

    assert all(r.prediction.predicted_winner == "KC" for r in result.records)
    assert result.accuracy == 1.0
    assert result.correct == result.total == 6
    elo = result.final_elo()
    assert elo["KC"] > 1500 > elo["DET"]
    assert elo["KC"] + elo["DET"] == pytest.approx(3000.0)


def test_accuracy_counters_are_consistent(two_season_games):
    result = run_backtest(two_season_games)

    assert result.total == len(two_season_games)
    assert sum(b["total"] for b in result.by_confidence.values()) == result.total
    assert sum(b["correct"] for b in result.by_confidence.values()) == result.correct
    assert [s.season for s in result.seasons] == [2022, 2023]
    assert sum(s.correct for s in result.seasons) == result.correct
    assert 0.0 <= result.accuracy <= 1.0


def test_ties_are_excluded_from_accuracy(make_game):
    games = [
        make_game("g1", "KC", "DET", 20, 20, week=1),
        make_game("g2", "DET", "KC", 10, 24, week=2),
    ]
    result = run_backtest(games)

    tie = result.records[0]
    assert tie.correct is None
    assert tie.actual_winner is None
    assert tie.elo_update.delta_home == pytest.approx(0.0)
    assert result.total == 1
    assert result.seasons[0].games == 2
    assert result.seasons[0].decided == 1


def test_unplayed_games_are_ignored(make_game):
    games = [
        make_game("g1", "KC", "DET", 24, 17, week=1),
        make_game("g2", "DET", "KC", week=2),
    ]
    sim = Simulator()
    result = sim.run(games)

    assert len(result.records) == 1
    with pytest.raises(ValueError):
        sim.step(games[1])


def test_unknown_team_is_skipped(make_game, caplog):
    games = [
        make_game("g1", "KC", "DET", 24, 17, week=1),
        make_game("g2", "KC", "XXX", 30, 3, week=2),
        make_game("g3", "DET", "KC", 20, 27, week=3),
    ]

    with caplog.at_level(logging.WARNING, logger="statmind.engine.simulator"):
        result = run_backtest(games, known_teams={"KC", "DET"})

    assert [r.game.game_id for r in result.records] == ["g1", "g3"]
    assert [s.game_id for s in result.skipped] == ["g2"]
    assert "XXX" in result.skipped[0].reason
    assert "Skipping game g2" in caplog.text

    # the known home team was not touched by the skipped game
    board = {s.team_key: s for s in result.leaderboard}
    assert set(board) == {"KC", "DET"}
    assert board["KC"].games_played == 2


def test_blank_team_key_is_skipped(make_game):
    games = [
        make_game("g1", "KC", "DET", 24, 17, week=1),
        make_game("g2", " ", "KC", 0, 3, week=2),
    ]
    result = run_backtest(games)

    assert [s.game_id for s in result.skipped] == ["g2"]
    assert len(result.records) == 1


def test_step_raises_for_unknown_team(make_game):
    sim = Simulator(known_teams={"KC"})
    with pytest.raises(MissingTeamStateError):
        sim.step(make_game("g1", "KC", "DET", 24, 17))
    assert len(sim.store) == 0


def test_predict_does_not_change_state(make_game):
    sim = Simulator()
    sim.run([make_game("g1", "KC", "DET", 24, 17)])
    before = sim.store.snapshot()

    prediction = sim.predict(make_game("g2", "DET", "BUF", week=2))

    assert prediction.home_team == "DET"
    assert "BUF" not in sim.store
    assert sim.store.get("DET").elo_rating == before["DET"].elo_rating
    assert sim.store.get("DET").games_played == before["DET"].games_played


def test_invalid_weights_fail_before_replay():
    with pytest.raises(WeightValidationError):
        Simulator({"elo": 0.5, "power": 0.5, "situational": 0.5, "matchup": 0.0, "recentForm": 0.0})


def _first_record_of(result, season):
    return next(r for r in result.records if r.game.season == season)


def test_reset_transition_starts_season_fresh(two_season_games):
    result = run_backtest(two_season_games, transition="reset")
    first = _first_record_of(result, 2023)

    assert first.home_elo_pre == first.away_elo_pre == ENGINE_CONFIG.base_elo
    assert first.prediction.components.situational == 5.0
    assert first.prediction.components.recentForm == 0.0


def test_carry_and_regress_transitions(two_season_games):
    season_2022 = [g for g in two_season_games if g.season == 2022]
    end_of_2022 = run_backtest(season_2022).final_elo()

    carried = _first_record_of(run_backtest(two_season_games, transition="carry"), 2023)
    assert carried.home_elo_pre == pytest.approx(end_of_2022[carried.game.home_team])
    assert carried.prediction.components.power == 0.0
    assert carried.prediction.components.recentForm == 0.0

    regressed = _first_record_of(run_backtest(two_season_games, transition="regress"), 2023)
    expected = 0.7 * end_of_2022[regressed.game.home_team] + 0.3 * ENGINE_CONFIG.base_elo
    assert regressed.home_elo_pre == pytest.approx(expected)


def test_none_transition_is_one_continuous_replay(two_season_games):
    continuous = run_backtest(two_season_games, transition="none")
    first = _first_record_of(continuous, 2023)

    # counters survive the season boundary
    assert first.prediction.components.power != 0.0
    assert first.prediction.components.recentForm != 0.0
    end_of_2022 = run_backtest([g for g in two_season_games if g.season == 2022]).final_elo()
    assert first.home_elo_pre == pytest.approx(end_of_2022[first.game.home_team])


def test_separate_simulators_do_not_share_state(two_season_games):
    a = Simulator()
    b = Simulator()
    a.run(two_season_games)
    assert len(b.store) == 0


def test_same_team_on_both_sides_is_skipped(make_game, caplog):
    games = [
        make_game("g1", "KC", "DET", 24, 17, week=1),
        make_game("g2", "KC", "KC", 27, 20, week=2),
    ]

    with caplog.at_level(logging.WARNING, logger="statmind.engine.simulator"):
        result = run_backtest(games)

    assert [r.game.game_id for r in result.records] == ["g1"]
    assert [s.game_id for s in result.skipped] == ["g2"]
    assert "both sides" in result.skipped[0].reason
    assert "Skipping game g2" in caplog.text

    kc = {s.team_key: s for s in result.leaderboard}["KC"]
    assert kc.games_played == 1
    assert kc.wins == 1


def test_step_rejects_same_team_without_touching_state(make_game):
    sim = Simulator()
    with pytest.raises(MissingTeamStateError):
        sim.step(make_game("g1", "KC", "KC", 24, 17))
    assert len(sim.store) == 0


def test_overlapping_seasons_get_one_summary_each(make_game, caplog):
    games = [
        make_game("a1", "KC", "DET", 24, 17, season=2022, gameday=dt.date(2023, 1, 1)),
        make_game("b1", "BUF", "NYJ", 20, 10, season=2023, gameday=dt.date(2023, 1, 2)),
        make_game("a2", "DET", "KC", 13, 27, season=2022, gameday=dt.date(2023, 1, 3)),
        make_game("b2", "NYJ", "BUF", 3, 30, season=2023, gameday=dt.date(2023, 1, 4)),
    ]

    with caplog.at_level(logging.WARNING, logger="statmind.engine.simulator"):
        result = run_backtest(games, transition="reset")

    assert [s.season for s in result.seasons] == [2022, 2023]
    assert [s.games for s in result.seasons] == [2, 2]
    assert sum(s.games for s in result.seasons) == len(result.records) == 4
    assert "interleave" in caplog.text

    # only the single move from 2022 to 2023 reset the state
    a2 = next(r for r in result.records if r.game.game_id == "a2")
    assert a2.home_elo_pre == ENGINE_CONFIG.base_elo
    b2 = next(r for r in result.records if r.game.game_id == "b2")
    assert b2.away_elo_pre > ENGINE_CONFIG.base_elo
