import datetime as dt
import itertools

import pytest
import pandas as pd

from statmind.engine.game import Game


@pytest.fixture
def mock_games_data() -> pd.DataFrame:
    """Mock schedules data for unit tests (no live API calls)."""
    return pd.DataFrame(
        {
            "game_id": ["2023_01_KC_DET", "2023_01_NYJ_BUF", "2023_02_KC_JAX"],
            "season": [2023, 2023, 2023],
            "week": [1, 1, 2],
            "gameday": ["2023-09-07", "2023-09-11", "2023-09-17"],
            "game_type": ["REG", "REG", "REG"],
            "home_team": ["KC", "NYJ", "JAX"],
            "away_team": ["DET", "BUF", "KC"],
            "home_score": [20, 22, None],
            "away_score": [21, 16, None],
            # extra source columns the loader should drop
            "result": [-1, 6, None],
            "spread_line": [-6.5, -2.5, 3.5],
        }
    )


@pytest.fixture
def make_game():
    """Factory for Game records with sensible defaults."""

    def _make(
        game_id,
        home,
        away,
        home_score=None,
        away_score=None,
        season=2023,
        week=1,
        gameday=None,
    ):
        if gameday is None:
            gameday = dt.date(season, 9, 7) + dt.timedelta(days=7 * (week - 1))
        return Game(
            game_id=game_id,
            season=season,
            week=week,
            gameday=gameday,
            home_team=home,
            away_team=away,
            home_score=home_score,
            away_score=away_score,
        )

    return _make


@pytest.fixture
def two_season_games(make_game) -> list:
    """
    Small round-robin over two seasons.

    KC wins every game it plays, BUF beats everyone but KC, and so on, so a
    sensible engine should predict the stronger side once it has history.
    """
    strength = {"KC": 3, "BUF": 2, "MIA": 1, "NYJ": 0}
    games = []
    for season in (2022, 2023):
        for week in (1, 2, 3):
            for n, (a, b) in enumerate(itertools.combinations(strength, 2)):
                home, away = (a, b) if (week + n) % 2 else (b, a)
                stronger_home = strength[home] > strength[away]
                games.append(
                    make_game(
                        f"{season}_{week:02d}_{away}_{home}",
                        home,
                        away,
                        24 if stronger_home else 17,
                        17 if stronger_home else 24,
                        season=season,
                        week=week,
                    )
                )
    return games
