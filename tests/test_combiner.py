import math

import pytest

from statmind.config import ConfidenceThresholds, EngineConfig
from statmind.engine.combiner import (
    PredictionCombiner,
    WeightVector,
    coerce_weights,
    confidence_level,
    explain_prediction,
    linear_probability,
    logistic_probability,
    to_probability,
)
from statmind.engine.components import ComponentScores
from statmind.engine.errors import ConfigurationError, WeightValidationError

BASE = {"elo": 0.35, "power": 0.15, "situational": 0.25, "matchup": 0.20, "recentForm": 0.05}


def _weights(**overrides):
    w = dict(BASE)
    w.update(overrides)
    return w


@pytest.mark.parametrize(
    "weights",
    [
        BASE,
        _weights(elo=0.345),  # sums to 0.995
        _weights(elo=0.34),  # sums to 0.99, on the tolerance edge
        _weights(elo=0.36),  # sums to 1.01
        {"elo": 1.0, "power": 0.0, "situational": 0.0, "matchup": 0.0, "recentForm": 0.0},
    ],
)
def test_weight_vector_accepts_valid_sums(weights):
    vector = WeightVector.from_mapping(weights)
    assert vector.as_dict() == {k: pytest.approx(v) for k, v in weights.items()}


@pytest.mark.parametrize(
    "weights",
    [
        _weights(elo=0.32),  # sums to 0.97
        _weights(elo=0.40),  # sums to 1.05
        _weights(elo=0.45, power=-0.10),
        _weights(elo=float("nan")),
    ],
)
def test_weight_vector_rejects_invalid(weights):
    with pytest.raises(WeightValidationError):
        WeightVector.from_mapping(weights)


def test_weight_vector_requires_exact_keys():
    with pytest.raises(WeightValidationError, match="missing"):
        WeightVector.from_mapping({k: v for k, v in BASE.items() if k != "matchup"})

    with pytest.raises(WeightValidationError, match="homeField"):
        WeightVector.from_mapping({**BASE, "homeField": 0.0})


def test_weight_validation_error_is_value_error():
    with pytest.raises(ValueError):
        WeightVector.from_mapping(_weights(elo=0.9))


def test_coerce_weights():
    default = coerce_weights(None)
    assert default == WeightVector.default()
    assert default.as_dict() == BASE
    assert coerce_weights(default) is default
    assert coerce_weights(BASE) == default


def test_logistic_probability():
    assert logistic_probability(0.0) == 0.5
    assert logistic_probability(15.0) == pytest.approx(1 / (1 + math.e ** -1))
    assert logistic_probability(10.0) + logistic_probability(-10.0) == pytest.approx(1.0)
    # no overflow at extreme totals
    assert logistic_probability(1e6) == 1.0
    assert logistic_probability(-1e6) == 0.0


def test_linear_probability():
    assert linear_probability(0.0) == 0.5
    assert linear_probability(50.0) == 0.75
    assert linear_probability(250.0) == 1.0
    assert linear_probability(-250.0) == 0.0


def test_to_probability_follows_config():
    assert to_probability(50.0, EngineConfig(probability_transform="linear")) == 0.75
    assert to_probability(15.0) == pytest.approx(logistic_probability(15.0))

    with pytest.raises(ConfigurationError):
        to_probability(1.0, EngineConfig(probability_transform="probit"))


def test_combiner_rejects_unknown_transform_early():
    with pytest.raises(ConfigurationError):
        PredictionCombiner(config=EngineConfig(probability_transform="probit"))


@pytest.mark.parametrize(
    "p, expected",
    [
        (0.5, "low"),
        (0.55, "low"),
        (0.45, "low"),
        (0.6, "medium"),
        (0.4, "medium"),
        (0.7, "high"),
        (0.2, "high"),
        (1.0, "high"),
        (0.0, "high"),
    ],
)
def test_confidence_level(p, expected):
    assert confidence_level(p) == expected


def test_confidence_buckets_are_half_open():
    thresholds = ConfidenceThresholds(medium=0.25, high=0.375)
    assert confidence_level(0.75, thresholds) == "medium"
    assert confidence_level(0.875, thresholds) == "high"
    assert confidence_level(0.125, thresholds) == "high"


def test_confidence_thresholds_must_be_ordered():
    with pytest.raises(ValueError):
        ConfidenceThresholds(medium=0.2, high=0.1)
    with pytest.raises(ValueError):
        ConfidenceThresholds(medium=0.1, high=0.6)


def test_combine_home_favored():
    components = ComponentScores(elo=20.0, power=0.0, situational=5.0, matchup=0.0, recentForm=0.0)
    prediction = PredictionCombiner().combine("g1", "KC", "DET", components)

    assert prediction.total_score == pytest.approx(20.0 * 0.35 + 5.0 * 0.25)
    assert prediction.predicted_winner == "KC"
    assert prediction.predicts_home
    assert prediction.home_win_probability > 0.5
    assert prediction.home_win_probability + prediction.away_win_probability == pytest.approx(1.0)
    assert prediction.confidence == confidence_level(prediction.home_win_probability)
    assert prediction.reasoning.startswith("KC favored with")
    assert "Elo advantage, Home field advantage" in prediction.reasoning


def test_combine_even_matchup_picks_away_team():
    zero = ComponentScores(elo=0.0, power=0.0, situational=0.0, matchup=0.0, recentForm=0.0)
    prediction = PredictionCombiner().combine("g1", "KC", "DET", zero)

    assert prediction.home_win_probability == 0.5
    assert prediction.predicted_winner == "DET"
    assert prediction.confidence == "low"


def test_combine_away_favored():
    components = ComponentScores(
        elo=-40.0, power=-10.0, situational=5.0, matchup=-8.0, recentForm=-20.0
    )
    prediction = PredictionCombiner(BASE).combine("g1", "KC", "DET", components)

    assert prediction.predicted_winner == "DET"
    assert prediction.away_win_probability > 0.5
    assert prediction.confidence == "high"


def test_prediction_as_record_columns():
    components = ComponentScores(elo=20.0, power=0.0, situational=5.0, matchup=0.0, recentForm=0.0)
    record = PredictionCombiner().combine("g1", "KC", "DET", components).as_record()

    for key in BASE:
        assert f"{key}_score" in record
        assert record[f"{key}_weight"] == BASE[key]
    assert record["game_id"] == "g1"
    assert record["predicted_winner"] == "KC"


def test_explain_prediction_only_names_supporting_factors():
    components = ComponentScores(elo=-30.0, power=4.0, situational=5.0, matchup=-10.0, recentForm=0.0)
    text = explain_prediction("KC", "DET", components, 0.3)

    assert text == "DET favored with 70% win probability. Key factors: Elo advantage, Matchup superiority."
