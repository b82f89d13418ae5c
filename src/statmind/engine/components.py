"""
The five matchup sub-scores.

Every score is computed from the home team's point of view (positive favors
the home side) using only the two pre-game TeamStates, and is clamped to a
symmetric range taken from ScoringConfig.

Default ranges
--------------
elo          [-50, 50]   (elo_home - elo_away) / 20
power        [-50, 50]   offense vs. opponent's inverted defense
situational  [-30, 30]   home win-rate at home vs. away win-rate on the road,
                         x30, plus a fixed 5-point home-field term
matchup      [-20, 20]   points-for vs. opponent points-against, per game
recentForm   [-50, 50]   win rate over the recent-results window, x50
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from statmind.config import ENGINE_CONFIG, WEIGHT_KEYS, ScoringConfig
from statmind.engine.team_state import TeamState


def clamp(value: float, bound: float) -> float:
    """Clamp `value` to [-bound, bound]."""
    return max(-bound, min(bound, value))


@dataclass(frozen=True)
class ComponentScores:
    elo: float
    power: float
    situational: float
    matchup: float
    recentForm: float

    def as_dict(self) -> dict[str, float]:
        return asdict(self)

    def weighted_total(self, weights: dict[str, float]) -> float:
        return sum(getattr(self, key) * weights[key] for key in WEIGHT_KEYS)


def elo_score(home: TeamState, away: TeamState, cfg: ScoringConfig) -> float:
    return clamp((home.elo_rating - away.elo_rating) / cfg.elo_divisor, cfg.elo_range)


def power_score(home: TeamState, away: TeamState, cfg: ScoringConfig) -> float:
    home_power = (home.offensive_rating + (100.0 - away.defensive_rating)) / 2.0
    away_power = (away.offensive_rating + (100.0 - home.defensive_rating)) / 2.0
    return clamp(((home_power - away_power) / 100.0) * 50.0, cfg.power_range)


def situational_score(home: TeamState, away: TeamState, cfg: ScoringConfig) -> float:
    edge = (home.home_win_rate - away.away_win_rate) * cfg.situational_scale
    return clamp(edge + cfg.situational_home_advantage, cfg.situational_range)


def matchup_score(home: TeamState, away: TeamState, cfg: ScoringConfig) -> float:
    home_edge = home.points_for_per_game - away.points_against_per_game
    away_edge = away.points_for_per_game - home.points_against_per_game
    return clamp(home_edge - away_edge, cfg.matchup_range)


def recent_form_score(home: TeamState, away: TeamState, cfg: ScoringConfig) -> float:
    diff = home.recent_win_rate - away.recent_win_rate
    return clamp(diff * cfg.recent_form_scale, cfg.recent_form_range)


def score_matchup(
    home: TeamState,
    away: TeamState,
    config: ScoringConfig | None = None,
) -> ComponentScores:
    """Compute all five component scores for a home/away pairing."""
    cfg = config or ENGINE_CONFIG.scoring
    return ComponentScores(
        elo=elo_score(home, away, cfg),
        power=power_score(home, away, cfg),
        situational=situational_score(home, away, cfg),
        matchup=matchup_score(home, away, cfg),
        recentForm=recent_form_score(home, away, cfg),
    )
