"""
Chronological replay of completed games (backtesting).

For every game, in (gameday, game_id) order:

    1. fetch-or-create both TeamStates
    2. score the matchup and combine into a Prediction using ONLY those
       pre-game states
    3. record the prediction and compare it to the final score
    4. fold the result into both TeamStates and update Elo

Step 4 always happens after step 2, so a prediction can only depend on games
that come strictly earlier in the stream.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import groupby
from typing import Iterable, Mapping

import pandas as pd

from statmind.config import ENGINE_CONFIG, EngineConfig
from statmind.engine.combiner import (
    CONFIDENCE_LEVELS,
    Prediction,
    PredictionCombiner,
    WeightVector,
)
from statmind.engine.components import score_matchup
from statmind.engine.elo import EloUpdate, apply_elo_update
from statmind.engine.errors import MissingTeamStateError
from statmind.engine.game import Game, chronological
from statmind.engine.team_state import SeasonTransition, TeamState, TeamStateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplayRecord:
    """A prediction together with what actually happened."""

    game: Game
    prediction: Prediction
    actual_winner: str | None
    correct: bool | None  # None for ties
    home_elo_pre: float
    away_elo_pre: float
    elo_update: EloUpdate

    def as_record(self) -> dict:
        row = {
            "game_id": self.game.game_id,
            "season": self.game.season,
            "week": self.game.week,
            "gameday": self.game.gameday,
            "home_score": self.game.home_score,
            "away_score": self.game.away_score,
            "home_elo_pre": self.home_elo_pre,
            "away_elo_pre": self.away_elo_pre,
            "home_elo_change": self.elo_update.delta_home,
        }
        row.update(self.prediction.as_record())
        row["actual_winner"] = self.actual_winner
        row["correct"] = self.correct
        return row


@dataclass(frozen=True)
class SkippedGame:
    game_id: str
    reason: str


@dataclass
class AccuracyCounter:
    """Correct / decided counts overall and per confidence bucket."""

    correct: int = 0
    total: int = 0
    by_confidence: dict[str, list[int]] = field(
        default_factory=lambda: {level: [0, 0] for level in CONFIDENCE_LEVELS}
    )

    def add(self, confidence: str, correct: bool | None) -> None:
        if correct is None:
            return
        self.total += 1
        self.by_confidence[confidence][1] += 1
        if correct:
            self.correct += 1
            self.by_confidence[confidence][0] += 1

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0

    def confidence_accuracy(self) -> dict[str, dict[str, float]]:
        return {
            level: {
                "correct": c,
                "total": t,
                "accuracy": c / t if t else 0.0,
            }
            for level, (c, t) in self.by_confidence.items()
        }


@dataclass(frozen=True)
class SeasonSummary:
    season: int
    games: int
    decided: int
    correct: int
    accuracy: float
    by_confidence: dict[str, dict[str, float]]


@dataclass
class BacktestResult:
    """
    Everything a replay produces.

    `leaderboard` holds end-of-run TeamState snapshots sorted by Elo
    (descending); they are copies, so later runs cannot alter them.
    """

    weights: WeightVector
    transition: SeasonTransition
    records: list[ReplayRecord]
    leaderboard: list[TeamState]
    seasons: list[SeasonSummary]
    skipped: list[SkippedGame]
    counter: AccuracyCounter

    @property
    def predictions(self) -> list[Prediction]:
        return [r.prediction for r in self.records]

    @property
    def accuracy(self) -> float:
        return self.counter.accuracy

    @property
    def correct(self) -> int:
        return self.counter.correct

    @property
    def total(self) -> int:
        return self.counter.total

    @property
    def by_confidence(self) -> dict[str, dict[str, float]]:
        return self.counter.confidence_accuracy()

    def final_elo(self) -> dict[str, float]:
        return {s.team_key: s.elo_rating for s in self.leaderboard}

    def to_frame(self) -> pd.DataFrame:
        """Prediction log, one row per replayed game."""
        return pd.DataFrame([r.as_record() for r in self.records])

    def leaderboard_frame(self) -> pd.DataFrame:
        df = pd.DataFrame([s.as_dict() for s in self.leaderboard])
        if not df.empty:
            df.insert(0, "rank", range(1, len(df) + 1))
        return df


class Simulator:
    """
    One replay context: a private TeamStateStore plus a fixed weight vector.

    Parameters
    ----------
    weights:
        WeightVector, mapping, or None for the configured defaults. Invalid
        weights raise WeightValidationError here, before any game is read.
    transition:
        Season transition policy applied when the replay moves on to a later
        season ("none", "reset", "carry", "regress"). A block of games from an
        earlier season that overlaps a later one by date is replayed without
        a transition and summarized under its own season.
    config:
        Engine constants; defaults to ENGINE_CONFIG.
    known_teams:
        Optional roster. Games referencing a team outside it are skipped.
    """

    def __init__(
        self,
        weights: WeightVector | Mapping[str, float] | None = None,
        transition: SeasonTransition | str = SeasonTransition.CARRY,
        config: EngineConfig | None = None,
        known_teams: Iterable[str] | None = None,
    ) -> None:
        self.config = config or ENGINE_CONFIG
        self.combiner = PredictionCombiner(weights, self.config)
        self.transition_policy = SeasonTransition.parse(transition)
        self.known_teams = frozenset(known_teams) if known_teams is not None else None
        self.store = TeamStateStore(self.config)
        self._current_season: int | None = None

    @property
    def weights(self) -> WeightVector:
        return self.combiner.weights

    # ------------------------------------------------------------------
    # Single-game operations
    # ------------------------------------------------------------------
    def _check(self, team_key: str) -> None:
        if not isinstance(team_key, str) or not team_key.strip():
            raise MissingTeamStateError(f"Invalid team key: {team_key!r}")
        if self.known_teams is not None and team_key not in self.known_teams:
            raise MissingTeamStateError(f"No team state for '{team_key}'")

    def _resolve(self, team_key: str, create: bool) -> TeamState:
        self._check(team_key)
        if create:
            return self.store.get_or_create(team_key)
        state = self.store.get(team_key)
        if state is None:
            # read-only lookups score unseen teams from a fresh state
            state = TeamState(
                team_key=team_key,
                elo_rating=self.config.base_elo,
                form_window=self.config.form_window,
            )
        return state

    def _predict_from(self, game: Game, home: TeamState, away: TeamState) -> Prediction:
        components = score_matchup(home, away, self.config.scoring)
        return self.combiner.combine(game.game_id, game.home_team, game.away_team, components)

    def predict(self, game: Game) -> Prediction:
        """Predict a game from the current state without changing it."""
        home = self._resolve(game.home_team, create=False)
        away = self._resolve(game.away_team, create=False)
        return self._predict_from(game, home, away)

    def step(self, game: Game) -> ReplayRecord:
        """
        Predict one completed game, then fold its result into the state.

        Raises MissingTeamStateError (before touching any state) if either
        team cannot be resolved or both sides are the same team.
        """
        if not game.is_complete:
            raise ValueError(f"Game {game.game_id} has no final score")

        self._check(game.home_team)
        self._check(game.away_team)
        if game.home_team == game.away_team:
            raise MissingTeamStateError(f"Game {game.game_id} lists {game.home_team!r} on both sides")
        home = self._resolve(game.home_team, create=True)
        away = self._resolve(game.away_team, create=True)

        home_elo_pre = home.elo_rating
        away_elo_pre = away.elo_rating
        prediction = self._predict_from(game, home, away)

        actual = game.winner
        correct = None if actual is None else prediction.predicted_winner == actual

        # state mutation strictly after the prediction above
        self.store.apply_result(home, game, is_home=True)
        self.store.apply_result(away, game, is_home=False)
        update = apply_elo_update(home, away, game, self.config)

        return ReplayRecord(
            game=game,
            prediction=prediction,
            actual_winner=actual,
            correct=correct,
            home_elo_pre=home_elo_pre,
            away_elo_pre=away_elo_pre,
            elo_update=update,
        )

    def transition(self, policy: SeasonTransition | str | None = None) -> None:
        """Apply a season transition to every known team."""
        policy = self.transition_policy if policy is None else SeasonTransition.parse(policy)
        logger.debug("Applying '%s' season transition to %d teams", policy.value, len(self.store))
        self.store.transition(policy)

    def advance_to(self, season: int) -> bool:
        """Move to `season`, transitioning first if it is later than the current one."""
        if self._current_season is not None and season <= self._current_season:
            return False
        if self._current_season is not None:
            self.transition()
        self._current_season = season
        return True

    # ------------------------------------------------------------------
    # Full replay
    # ------------------------------------------------------------------
    def run(self, games: Iterable[Game]) -> BacktestResult:
        """
        Replay all completed games in chronological order.

        Unplayed games are ignored. Games whose teams cannot be resolved are
        logged, recorded in `skipped`, and the replay continues.
        """
        games = list(games)
        eligible = chronological(g for g in games if g.is_complete)
        if len(eligible) < len(games):
            logger.debug("Ignoring %d games without final scores", len(games) - len(eligible))

        records: list[ReplayRecord] = []
        skipped: list[SkippedGame] = []
        counter = AccuracyCounter()
        season_counters: dict[int, AccuracyCounter] = {}
        season_games: dict[int, int] = {}

        for season, block in groupby(eligible, key=lambda g: g.season):
            if not self.advance_to(season) and season < self._current_season:
                # dates overlap across seasons; no transition backwards
                logger.warning(
                    "Season %s games interleave with season %s; replaying without a transition",
                    season,
                    self._current_season,
                )

            season_counter = season_counters.setdefault(season, AccuracyCounter())
            season_games.setdefault(season, 0)
            for game in block:
                try:
                    record = self.step(game)
                except MissingTeamStateError as e:
                    logger.warning("Skipping game %s: %s", game.game_id, e)
                    skipped.append(SkippedGame(game.game_id, str(e)))
                    continue

                records.append(record)
                season_games[season] += 1
                counter.add(record.prediction.confidence, record.correct)
                season_counter.add(record.prediction.confidence, record.correct)

        seasons = []
        for season, season_counter in season_counters.items():
            seasons.append(
                SeasonSummary(
                    season=season,
                    games=season_games[season],
                    decided=season_counter.total,
                    correct=season_counter.correct,
                    accuracy=season_counter.accuracy,
                    by_confidence=season_counter.confidence_accuracy(),
                )
            )
            logger.debug(
                "Season %s: %d/%d correct (%.1f%%)",
                season,
                season_counter.correct,
                season_counter.total,
                season_counter.accuracy * 100,
            )

        logger.debug(
            "Replayed %d games (%d skipped): accuracy %.1f%%",
            len(records),
            len(skipped),
            counter.accuracy * 100,
        )

        return BacktestResult(
            weights=self.weights,
            transition=self.transition_policy,
            records=records,
            leaderboard=[s.copy() for s in self.store.leaderboard()],
            seasons=seasons,
            skipped=skipped,
            counter=counter,
        )


def run_backtest(
    games: Iterable[Game],
    weights: WeightVector | Mapping[str, float] | None = None,
    transition: SeasonTransition | str = SeasonTransition.CARRY,
    config: EngineConfig | None = None,
    known_teams: Iterable[str] | None = None,
) -> BacktestResult:
    """Replay `games` in a brand-new Simulator and return the result."""
    sim = Simulator(weights, transition=transition, config=config, known_teams=known_teams)
    result = sim.run(games)
    logger.info(
        "Backtest (%s transition): %d/%d correct (%.1f%%), %d skipped",
        sim.transition_policy.value,
        result.correct,
        result.total,
        result.accuracy * 100,
        len(result.skipped),
    )
    return result
