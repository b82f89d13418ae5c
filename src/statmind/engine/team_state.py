"""
Per-team running statistics for one simulation run.

A TeamStateStore is the simulation context: it is created by (and belongs to)
exactly one Simulator, so parallel runs never share state. Nothing here deals
with probabilities; this module is bookkeeping only.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

import pandas as pd

from statmind.config import ENGINE_CONFIG, EngineConfig
from statmind.engine.errors import ConfigurationError
from statmind.engine.game import Game


class SeasonTransition(str, Enum):
    """
    Policy applied to every team between two blocks of games.

    NONE     - keep everything (one continuous replay)
    RESET    - fresh start: counters cleared, Elo back to base
    CARRY    - keep Elo, clear every other counter
    REGRESS  - clear counters and pull Elo toward base by regression_fraction
    """

    NONE = "none"
    RESET = "reset"
    CARRY = "carry"
    REGRESS = "regress"

    @classmethod
    def parse(cls, value: "SeasonTransition | str") -> "SeasonTransition":
        try:
            return cls(value)
        except ValueError as e:
            valid = ", ".join(p.value for p in cls)
            raise ConfigurationError(
                f"Unknown season transition policy '{value}'. Expected one of: {valid}"
            ) from e


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, with any zero denominator treated as 0."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


@dataclass
class TeamState:
    """Mutable running statistics for a single team."""

    team_key: str
    elo_rating: float = ENGINE_CONFIG.base_elo
    wins: int = 0
    losses: int = 0
    ties: int = 0
    points_for: int = 0
    points_against: int = 0
    home_wins: int = 0
    home_losses: int = 0
    away_wins: int = 0
    away_losses: int = 0
    games_played: int = 0
    offensive_rating: float = 0.0
    defensive_rating: float = 0.0
    form_window: int = ENGINE_CONFIG.form_window
    recent_results: deque = field(default=None, repr=False)

    def __post_init__(self):
        if self.recent_results is None:
            self.recent_results = deque(maxlen=self.form_window)
        elif self.recent_results.maxlen != self.form_window:
            self.recent_results = deque(self.recent_results, maxlen=self.form_window)

    # ------------------------------------------------------------------
    # Derived rates (0/0 -> 0)
    # ------------------------------------------------------------------
    @property
    def home_games(self) -> int:
        return self.home_wins + self.home_losses

    @property
    def away_games(self) -> int:
        return self.away_wins + self.away_losses

    @property
    def win_rate(self) -> float:
        return safe_ratio(self.wins, self.games_played)

    @property
    def home_win_rate(self) -> float:
        return safe_ratio(self.home_wins, self.home_games)

    @property
    def away_win_rate(self) -> float:
        return safe_ratio(self.away_wins, self.away_games)

    @property
    def points_for_per_game(self) -> float:
        return safe_ratio(self.points_for, self.games_played)

    @property
    def points_against_per_game(self) -> float:
        return safe_ratio(self.points_against, self.games_played)

    @property
    def recent_win_rate(self) -> float:
        wins = sum(1 for r in self.recent_results if r == "W")
        return safe_ratio(wins, len(self.recent_results))

    @property
    def record(self) -> str:
        if self.ties:
            return f"{self.wins}-{self.losses}-{self.ties}"
        return f"{self.wins}-{self.losses}"

    def copy(self) -> "TeamState":
        """Independent snapshot of this state."""
        clone = TeamState(**{k: v for k, v in vars(self).items() if k != "recent_results"})
        clone.recent_results.extend(self.recent_results)
        return clone

    def as_dict(self) -> dict:
        row = {k: v for k, v in vars(self).items() if k not in ("recent_results", "form_window")}
        row["recent_results"] = "".join(self.recent_results)
        return row


class TeamStateStore:
    """
    Authoritative team states for one simulation run.

    States are created lazily the first time a team appears and are never
    removed.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or ENGINE_CONFIG
        self._states: dict[str, TeamState] = {}

    def __contains__(self, team_key: str) -> bool:
        return team_key in self._states

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[TeamState]:
        return iter(self._states.values())

    def get(self, team_key: str) -> TeamState | None:
        return self._states.get(team_key)

    def get_or_create(self, team_key: str) -> TeamState:
        state = self._states.get(team_key)
        if state is None:
            state = self._new_state(team_key)
            self._states[team_key] = state
        return state

    def _new_state(self, team_key: str) -> TeamState:
        return TeamState(
            team_key=team_key,
            elo_rating=self.config.base_elo,
            form_window=self.config.form_window,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def apply_result(self, state: TeamState, game: Game, is_home: bool) -> TeamState:
        """
        Fold one completed game into a team's counters.

        Elo is NOT touched here; see statmind.engine.elo.
        """
        if not game.is_complete:
            raise ValueError(f"Cannot apply result of unplayed game {game.game_id}")

        team_score = game.home_score if is_home else game.away_score
        opp_score = game.away_score if is_home else game.home_score

        state.games_played += 1
        state.points_for += team_score
        state.points_against += opp_score

        if team_score > opp_score:
            state.wins += 1
            if is_home:
                state.home_wins += 1
            else:
                state.away_wins += 1
            state.recent_results.append("W")
        elif team_score < opp_score:
            state.losses += 1
            if is_home:
                state.home_losses += 1
            else:
                state.away_losses += 1
            state.recent_results.append("L")
        else:
            state.ties += 1
            state.recent_results.append("T")

        ppg = self.config.reference_ppg
        state.offensive_rating = (state.points_for_per_game / ppg) * 100.0
        state.defensive_rating = 100.0 - (state.points_against_per_game / ppg) * 100.0
        return state

    def reset_for_new_period(
        self,
        state: TeamState,
        policy: SeasonTransition | str,
    ) -> TeamState:
        """Apply a season transition policy to one team, in place."""
        policy = SeasonTransition.parse(policy)
        if policy is SeasonTransition.NONE:
            return state

        base = self.config.base_elo
        if policy is SeasonTransition.RESET:
            elo = base
        elif policy is SeasonTransition.CARRY:
            elo = state.elo_rating
        else:
            r = self.config.regression_fraction
            elo = state.elo_rating * (1.0 - r) + base * r

        fresh = self._new_state(state.team_key)
        for name, value in vars(fresh).items():
            setattr(state, name, value)
        state.elo_rating = elo
        return state

    def transition(self, policy: SeasonTransition | str) -> None:
        """Apply a season transition policy to every known team."""
        policy = SeasonTransition.parse(policy)
        for state in self._states.values():
            self.reset_for_new_period(state, policy)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def leaderboard(self) -> list[TeamState]:
        """States sorted by Elo descending (team_key breaks exact ties)."""
        return sorted(self._states.values(), key=lambda s: (-s.elo_rating, s.team_key))

    def snapshot(self) -> dict[str, TeamState]:
        return {key: state.copy() for key, state in self._states.items()}

    def to_frame(self) -> pd.DataFrame:
        """One row per team, ordered like leaderboard()."""
        rows = [s.as_dict() for s in self.leaderboard()]
        df = pd.DataFrame(rows)
        if not df.empty:
            df.insert(0, "rank", range(1, len(df) + 1))
        return df
