from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

import pandas as pd

from statmind.config import OPTIMIZER_CONFIG
from statmind.engine.combiner import WeightVector, coerce_weights
from statmind.engine.game import Game, completed_games
from statmind.engine.optimizer import OptimizationResult, optimize_weights
from statmind.engine.simulator import BacktestResult, run_backtest
from statmind.engine.team_state import SeasonTransition
from statmind.evaluation.splits import split_games_by_season

logger = logging.getLogger(__name__)


def compare_weights(
    games: Iterable[Game],
    weight_sets: Mapping[str, WeightVector | Mapping[str, float]],
    seasons: Iterable[int] | None = None,
) -> pd.DataFrame:
    """
    Score several weight vectors season by season.

    Each (weight set, season) pair is an independent replay starting from
    fresh team states, so seasons are comparable with each other.

    Returns:
        Long DataFrame with columns name, season, games, correct, accuracy.
    """
    # validate every vector before running anything
    vectors = {name: coerce_weights(w) for name, w in weight_sets.items()}
    if not vectors:
        raise ValueError("weight_sets must contain at least one entry.")

    replay = completed_games(games)
    season_list = sorted(set(seasons) if seasons is not None else {g.season for g in replay})

    rows = []
    for name, weights in vectors.items():
        for season in season_list:
            season_games = [g for g in replay if g.season == season]
            if not season_games:
                logger.warning("No completed games for season %s", season)
                continue
            result = run_backtest(season_games, weights, transition=SeasonTransition.RESET)
            rows.append(
                {
                    "name": name,
                    "season": season,
                    "games": result.total,
                    "correct": result.correct,
                    "accuracy": result.accuracy,
                }
            )
    return pd.DataFrame(rows, columns=["name", "season", "games", "correct", "accuracy"])


def _accuracy_for_seasons(result: BacktestResult, seasons: Sequence[int]) -> float:
    wanted = set(seasons)
    correct = sum(s.correct for s in result.seasons if s.season in wanted)
    total = sum(s.decided for s in result.seasons if s.season in wanted)
    return correct / total if total else 0.0


@dataclass
class WalkForwardResult:
    optimization: OptimizationResult
    train_seasons: list[int]
    test_seasons: list[int]
    train_accuracy: float
    test_accuracy: float
    baseline_test_accuracy: float
    replay: BacktestResult

    @property
    def improvement(self) -> float:
        return self.test_accuracy - self.baseline_test_accuracy


def walk_forward(
    games: Sequence[Game],
    train_seasons: Iterable[int],
    test_seasons: Iterable[int],
    step: float = OPTIMIZER_CONFIG.step,
    bounds: Mapping[str, tuple[float, float]] | None = None,
    transition: SeasonTransition | str = SeasonTransition.CARRY,
    baseline: WeightVector | Mapping[str, float] | None = None,
    executor: str = OPTIMIZER_CONFIG.executor,
    max_workers: int | None = OPTIMIZER_CONFIG.max_workers,
) -> WalkForwardResult:
    """
    Calibrate weights on training seasons, then score them on later seasons.

    The held-out score comes from one replay over train + test games with
    the calibrated weights; only predictions for test-season games count.
    The same replay with `baseline` weights (default weights if None) gives
    the comparison figure.
    """
    train_seasons = sorted(set(train_seasons))
    test_seasons = sorted(set(test_seasons))
    train_games, test_games = split_games_by_season(games, train_seasons, test_seasons)
    if not test_games:
        raise ValueError(f"No games found for test seasons {test_seasons}")
    baseline_weights = coerce_weights(baseline)

    optimization = optimize_weights(
        train_games,
        step=step,
        bounds=bounds,
        transition=transition,
        executor=executor,
        max_workers=max_workers,
    )
    if optimization.best_weights is None:
        raise RuntimeError("Weight search failed for every candidate.")

    replay_games = list(train_games) + list(test_games)
    replay = run_backtest(replay_games, optimization.best_weights, transition=transition)
    baseline_replay = run_backtest(replay_games, baseline_weights, transition=transition)

    result = WalkForwardResult(
        optimization=optimization,
        train_seasons=train_seasons,
        test_seasons=test_seasons,
        train_accuracy=optimization.best_accuracy,
        test_accuracy=_accuracy_for_seasons(replay, test_seasons),
        baseline_test_accuracy=_accuracy_for_seasons(baseline_replay, test_seasons),
        replay=replay,
    )
    logger.info(
        "Walk-forward %s -> %s: train %.1f%%, test %.1f%% (baseline %.1f%%)",
        train_seasons,
        test_seasons,
        result.train_accuracy * 100,
        result.test_accuracy * 100,
        result.baseline_test_accuracy * 100,
    )
    return result
