from __future__ import annotations

import math
from dataclasses import dataclass

from statmind.config import ENGINE_CONFIG, EngineConfig
from statmind.engine.game import Game
from statmind.engine.team_state import TeamState


@dataclass(frozen=True)
class EloUpdate:
    """Outcome of one pairwise Elo update (home perspective first)."""

    expected_home: float
    expected_away: float
    actual_home: float
    actual_away: float
    margin_multiplier: float
    delta_home: float
    delta_away: float


def expected_score(rating: float, opponent_rating: float, scale: float = 400.0) -> float:
    """Logistic Elo expectation of `rating` against `opponent_rating`."""
    return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / scale))


def margin_multiplier(home_score: int, away_score: int) -> float:
    """ln(max(|margin|, 1) + 1): a one-point game still moves ratings by ln 2."""
    return math.log(max(abs(home_score - away_score), 1) + 1)


def actual_scores(home_score: int, away_score: int) -> tuple[float, float]:
    if home_score > away_score:
        return 1.0, 0.0
    if home_score < away_score:
        return 0.0, 1.0
    return 0.5, 0.5


def compute_elo_update(
    home_elo: float,
    away_elo: float,
    home_score: int,
    away_score: int,
    config: EngineConfig | None = None,
) -> EloUpdate:
    """
    Compute the rating change for both sides of a finished game.

    The away change is the exact negation of the home change, so the sum of
    the two ratings is preserved by every update.
    """
    config = config or ENGINE_CONFIG

    exp_home = expected_score(home_elo, away_elo, config.elo_scale)
    exp_away = 1.0 - exp_home
    act_home, act_away = actual_scores(home_score, away_score)
    mult = margin_multiplier(home_score, away_score)

    delta_home = config.k_factor * mult * (act_home - exp_home)

    return EloUpdate(
        expected_home=exp_home,
        expected_away=exp_away,
        actual_home=act_home,
        actual_away=act_away,
        margin_multiplier=mult,
        delta_home=delta_home,
        delta_away=-delta_home,
    )


def apply_elo_update(
    home: TeamState,
    away: TeamState,
    game: Game,
    config: EngineConfig | None = None,
) -> EloUpdate:
    """Update both teams' ratings in place from a completed game."""
    update = compute_elo_update(
        home.elo_rating,
        away.elo_rating,
        game.home_score,
        game.away_score,
        config=config,
    )
    home.elo_rating += update.delta_home
    away.elo_rating += update.delta_away
    return update
