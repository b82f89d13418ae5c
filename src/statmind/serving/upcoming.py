from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

import pandas as pd

from statmind.engine.combiner import Prediction, WeightVector
from statmind.engine.errors import MissingTeamStateError
from statmind.engine.game import Game, chronological
from statmind.engine.simulator import BacktestResult, Simulator
from statmind.engine.team_state import SeasonTransition

logger = logging.getLogger(__name__)


@dataclass
class UpcomingPredictions:
    """Predictions for unplayed games plus the replay that produced the state."""

    predictions: list[Prediction]
    history: BacktestResult

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([p.as_record() for p in self.predictions])


def predict_upcoming(
    games: Iterable[Game],
    weights: WeightVector | Mapping[str, float] | None = None,
    transition: SeasonTransition | str = SeasonTransition.CARRY,
    season: int | None = None,
    week: int | None = None,
) -> UpcomingPredictions:
    """
    Predict every unplayed game from the state built by all completed games.

    Completed games are replayed first (that replay is returned as
    `history`). Unplayed games are then predicted from the final state
    without changing it, so two games in the same upcoming week never see
    each other's results. Each time the unplayed games move on to a later
    season, the simulator's season transition is applied once before that
    season's first prediction.

    Args:
        games: Completed and unplayed games, in any order.
        weights: Weight vector; defaults to the configured weights.
        transition: Season transition policy.
        season, week: Optional filters on the unplayed games.
    """
    games = list(games)
    sim = Simulator(weights, transition=transition)
    history = sim.run(g for g in games if g.is_complete)

    upcoming = [
        g
        for g in chronological(games)
        if not g.is_complete
        and (season is None or g.season == season)
        and (week is None or g.week == week)
    ]

    predictions = []
    for game in upcoming:
        sim.advance_to(game.season)
        try:
            predictions.append(sim.predict(game))
        except MissingTeamStateError as e:
            logger.warning("Skipping upcoming game %s: %s", game.game_id, e)

    logger.info("Generated %d predictions for upcoming games", len(predictions))
    return UpcomingPredictions(predictions=predictions, history=history)
