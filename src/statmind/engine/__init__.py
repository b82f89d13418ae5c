"""
Rating / prediction engine.

Leaves first:

- team_state: per-team running statistics and season transitions
- elo: pairwise zero-sum Elo update
- components: the five matchup sub-scores
- combiner: weights, probability, confidence, Prediction
- simulator: chronological replay (backtest)
- optimizer: simplex-lattice weight search
"""

from statmind.engine.combiner import Prediction, PredictionCombiner, WeightVector
from statmind.engine.errors import (
    ConfigurationError,
    MissingTeamStateError,
    StatMindError,
    WeightValidationError,
)
from statmind.engine.game import Game
from statmind.engine.optimizer import OptimizationResult, optimize_weights
from statmind.engine.simulator import BacktestResult, Simulator, run_backtest
from statmind.engine.team_state import SeasonTransition, TeamState, TeamStateStore

__all__ = [
    "BacktestResult",
    "ConfigurationError",
    "Game",
    "MissingTeamStateError",
    "OptimizationResult",
    "Prediction",
    "PredictionCombiner",
    "SeasonTransition",
    "Simulator",
    "StatMindError",
    "TeamState",
    "TeamStateStore",
    "WeightValidationError",
    "WeightVector",
    "optimize_weights",
    "run_backtest",
]
