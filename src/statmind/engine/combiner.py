from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Mapping

from statmind.config import ENGINE_CONFIG, WEIGHT_KEYS, ConfidenceThresholds, EngineConfig
from statmind.engine.components import ComponentScores
from statmind.engine.errors import ConfigurationError, WeightValidationError

CONFIDENCE_LEVELS = ("low", "medium", "high")

_FACTOR_LABELS = {
    "elo": "Elo advantage",
    "power": "Power rating edge",
    "situational": "Home field advantage",
    "matchup": "Matchup superiority",
    "recentForm": "Recent form momentum",
}


@dataclass(frozen=True)
class WeightVector:
    """
    Relative importance of the five component scores.

    Entries must be non-negative and sum to 1.0 within `tolerance`. Invalid
    vectors raise WeightValidationError; they are never renormalized.
    """

    elo: float
    power: float
    situational: float
    matchup: float
    recentForm: float
    tolerance: float = field(default=ENGINE_CONFIG.weight_tolerance, compare=False, repr=False)

    def __post_init__(self):
        for key in WEIGHT_KEYS:
            value = getattr(self, key)
            if value is None or math.isnan(value):
                raise WeightValidationError(f"Weight '{key}' is missing or NaN")
            if value < 0:
                raise WeightValidationError(f"Weight '{key}' must be non-negative; got {value}")
        total = self.total
        # small epsilon so that e.g. 0.99 is accepted with tolerance 0.01
        if abs(total - 1.0) > self.tolerance + 1e-9:
            raise WeightValidationError(
                f"Weights must sum to 1.0 +/- {self.tolerance}; got {total:.4f}"
            )

    @classmethod
    def from_mapping(
        cls,
        weights: Mapping[str, float],
        tolerance: float | None = None,
    ) -> "WeightVector":
        keys = set(weights)
        unknown = keys - set(WEIGHT_KEYS)
        missing = set(WEIGHT_KEYS) - keys
        if unknown or missing:
            raise WeightValidationError(
                f"Weight keys must be exactly {list(WEIGHT_KEYS)}; "
                f"unknown={sorted(unknown)}, missing={sorted(missing)}"
            )
        if tolerance is None:
            tolerance = ENGINE_CONFIG.weight_tolerance
        return cls(**{k: float(weights[k]) for k in WEIGHT_KEYS}, tolerance=tolerance)

    @classmethod
    def default(cls) -> "WeightVector":
        return cls.from_mapping(ENGINE_CONFIG.default_weights)

    @property
    def total(self) -> float:
        return sum(getattr(self, key) for key in WEIGHT_KEYS)

    def as_dict(self) -> dict[str, float]:
        return {key: getattr(self, key) for key in WEIGHT_KEYS}


def coerce_weights(weights: WeightVector | Mapping[str, float] | None) -> WeightVector:
    """Accept a WeightVector, a plain mapping, or None (default weights)."""
    if weights is None:
        return WeightVector.default()
    if isinstance(weights, WeightVector):
        return weights
    return WeightVector.from_mapping(weights)


@dataclass(frozen=True)
class Prediction:
    """A single pre-game prediction. Never modified after creation."""

    game_id: str
    home_team: str
    away_team: str
    predicted_winner: str
    home_win_probability: float
    away_win_probability: float
    confidence: str
    components: ComponentScores
    total_score: float
    weights: WeightVector
    reasoning: str = ""

    @property
    def predicts_home(self) -> bool:
        return self.predicted_winner == self.home_team

    def as_record(self) -> dict:
        """Flat dict suitable for a DataFrame row."""
        row = {
            "game_id": self.game_id,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "predicted_winner": self.predicted_winner,
            "home_win_probability": self.home_win_probability,
            "away_win_probability": self.away_win_probability,
            "confidence": self.confidence,
            "total_score": self.total_score,
        }
        for key, value in asdict(self.components).items():
            row[f"{key}_score"] = value
        for key, value in self.weights.as_dict().items():
            row[f"{key}_weight"] = value
        row["reasoning"] = self.reasoning
        return row


# ---------------------------------------------------------------------------
# Probability transforms
# ---------------------------------------------------------------------------


def logistic_probability(total: float, scale: float = 15.0) -> float:
    """1 / (1 + e^(-total/scale)); total = 0 maps to exactly 0.5."""
    z = total / scale
    # split on sign to keep math.exp from overflowing for extreme totals
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    e = math.exp(z)
    return e / (1.0 + e)


def linear_probability(total: float) -> float:
    """(total + 100) / 200, clamped to [0, 1]."""
    return max(0.0, min(1.0, (total + 100.0) / 200.0))


def to_probability(total: float, config: EngineConfig | None = None) -> float:
    config = config or ENGINE_CONFIG
    transform = config.probability_transform
    if transform == "logistic":
        return logistic_probability(total, config.logistic_scale)
    if transform == "linear":
        return linear_probability(total)
    raise ConfigurationError(
        f"Unknown probability transform '{transform}'. Expected 'logistic' or 'linear'."
    )


def confidence_level(
    home_win_probability: float,
    thresholds: ConfidenceThresholds | None = None,
) -> str:
    """
    Bucket a probability by its distance from a coin flip.

    The buckets are half-open and cover [0, 0.5] without gaps:
    [0, medium) -> low, [medium, high) -> medium, [high, 0.5] -> high.
    """
    thresholds = thresholds or ENGINE_CONFIG.confidence
    distance = abs(home_win_probability - 0.5)
    if distance >= thresholds.high:
        return "high"
    if distance >= thresholds.medium:
        return "medium"
    return "low"


def explain_prediction(
    home_team: str,
    away_team: str,
    components: ComponentScores,
    home_win_probability: float,
) -> str:
    """Short human-readable summary naming the strongest supporting factors."""
    home_favored = home_win_probability > 0.5
    favored = home_team if home_favored else away_team
    pct = round(max(home_win_probability, 1.0 - home_win_probability) * 100)

    text = f"{favored} favored with {pct}% win probability."

    supporting = [
        (abs(value), key)
        for key, value in components.as_dict().items()
        if value != 0 and (value > 0) == home_favored
    ]
    supporting.sort(key=lambda item: item[0], reverse=True)
    if supporting:
        names = ", ".join(_FACTOR_LABELS[key] for _, key in supporting[:2])
        text += f" Key factors: {names}."
    return text


class PredictionCombiner:
    """Weighted aggregation of component scores into a Prediction."""

    def __init__(
        self,
        weights: WeightVector | Mapping[str, float] | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.weights = coerce_weights(weights)
        self.config = config or ENGINE_CONFIG
        # fail fast on a bad transform name instead of on the first game
        to_probability(0.0, self.config)

    def combine(
        self,
        game_id: str,
        home_team: str,
        away_team: str,
        components: ComponentScores,
    ) -> Prediction:
        total = components.weighted_total(self.weights.as_dict())
        p_home = to_probability(total, self.config)
        winner = home_team if p_home > 0.5 else away_team

        return Prediction(
            game_id=game_id,
            home_team=home_team,
            away_team=away_team,
            predicted_winner=winner,
            home_win_probability=p_home,
            away_win_probability=1.0 - p_home,
            confidence=confidence_level(p_home, self.config.confidence),
            components=components,
            total_score=total,
            weights=self.weights,
            reasoning=explain_prediction(home_team, away_team, components, p_home),
        )
