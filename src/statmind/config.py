from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

# Base directory for the project (repo root)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Recognized weight keys, in the order components are reported
WEIGHT_KEYS: Tuple[str, ...] = ("elo", "power", "situational", "matchup", "recentForm")


@dataclass(frozen=True)
class DataConfig:
    """Data storage paths and defaults."""

    raw_data_dir: Path = PROJECT_ROOT / "data" / "raw"
    processed_data_dir: Path = PROJECT_ROOT / "data" / "processed"
    default_seasons: Optional[List[int]] = None

    def __post_init__(self):
        if self.default_seasons is None:
            # Seasons replayed by the cascading backtest
            object.__setattr__(self, "default_seasons", list(range(2020, 2025)))


@dataclass(frozen=True)
class ScoringConfig:
    """
    Clamp ranges and scale factors for the five component scores.

    Each *_range is a symmetric bound: a score is clamped to [-range, +range].
    """

    elo_divisor: float = 20.0
    elo_range: float = 50.0

    power_range: float = 50.0

    situational_scale: float = 30.0
    situational_home_advantage: float = 5.0
    situational_range: float = 30.0

    matchup_range: float = 20.0

    recent_form_scale: float = 50.0
    recent_form_range: float = 50.0


@dataclass(frozen=True)
class ConfidenceThresholds:
    """
    Distance of the home win probability from 0.5 at which a prediction
    becomes "medium" or "high" confidence. Anything below `medium` is "low".
    """

    medium: float = 0.08
    high: float = 0.15

    def __post_init__(self):
        if not 0.0 <= self.medium <= self.high <= 0.5:
            raise ValueError(
                "Confidence thresholds must satisfy 0 <= medium <= high <= 0.5; "
                f"got medium={self.medium}, high={self.high}"
            )


@dataclass(frozen=True)
class EngineConfig:
    """
    Rating engine constants.

    Attributes:
        base_elo: Rating assigned to a team on first appearance or full reset.
        k_factor: Maximum rating movement per unit of margin multiplier.
        elo_scale: Logistic scale of the Elo expectation (400 points ~ 10:1).
        reference_ppg: Points per game mapped to an offensive rating of 100.
        form_window: Number of most recent results kept per team.
        regression_fraction: Share of the distance to base_elo removed by the
            "regress" season transition.
        probability_transform: "logistic" or "linear".
        logistic_scale: Divisor applied to the weighted total before the
            logistic function.
        weight_tolerance: Allowed deviation of the weight sum from 1.0.
        default_weights: Weight vector used when the caller supplies none.
    """

    base_elo: float = 1500.0
    k_factor: float = 32.0
    elo_scale: float = 400.0
    reference_ppg: float = 35.0
    form_window: int = 5
    regression_fraction: float = 0.30
    probability_transform: str = "logistic"
    logistic_scale: float = 15.0
    weight_tolerance: float = 0.01
    default_weights: Dict[str, float] = field(
        default_factory=lambda: {
            "elo": 0.35,
            "power": 0.15,
            "situational": 0.25,
            "matchup": 0.20,
            "recentForm": 0.05,
        }
    )
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    confidence: ConfidenceThresholds = field(default_factory=ConfidenceThresholds)


@dataclass(frozen=True)
class OptimizerConfig:
    """Defaults for the weight search."""

    step: float = 0.05
    # "process", "thread" or "serial"
    executor: str = "process"
    max_workers: Optional[int] = None
    chunksize: int = 16


@dataclass(frozen=True)
class LogConfig:
    """Logging settings for the run_*.py entry points."""

    level_env_var: str = "STATMIND_LOG_LEVEL"


# Global config instances
DATA_CONFIG = DataConfig()
ENGINE_CONFIG = EngineConfig()
OPTIMIZER_CONFIG = OptimizerConfig()
LOG_CONFIG = LogConfig()
