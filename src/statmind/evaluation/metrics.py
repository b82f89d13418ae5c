"""
Accuracy and probability-quality metrics over a prediction log.

Every function takes the DataFrame produced by BacktestResult.to_frame()
(one row per replayed game). Tied games have correct = None and are left
out of every metric.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from statmind.engine.combiner import CONFIDENCE_LEVELS

_REQUIRED = ["home_team", "away_team", "home_win_probability", "actual_winner", "correct"]


def _decided(log: pd.DataFrame) -> pd.DataFrame:
    missing = [c for c in _REQUIRED if c not in log.columns]
    if missing:
        raise KeyError(f"Prediction log is missing columns: {missing}")
    out = log[log["correct"].notna()].copy()
    out["correct"] = out["correct"].astype(bool)
    return out


def _home_won(decided: pd.DataFrame) -> np.ndarray:
    return (decided["actual_winner"] == decided["home_team"]).to_numpy(dtype=float)


def _accuracy_table(grouped) -> pd.DataFrame:
    table = grouped["correct"].agg(total="count", correct="sum").reset_index()
    table["correct"] = table["correct"].astype(int)
    # groups only exist for teams/buckets with at least one decided game
    table["accuracy"] = table["correct"] / table["total"]
    return table


def accuracy_by_confidence(log: pd.DataFrame) -> pd.DataFrame:
    """Total / correct / accuracy per confidence bucket, high first."""
    decided = _decided(log)
    table = _accuracy_table(decided.groupby("confidence"))
    order = pd.Index(list(CONFIDENCE_LEVELS[::-1]), name="confidence")
    table = table.set_index("confidence").reindex(order)
    table["total"] = table["total"].fillna(0).astype(int)
    table["correct"] = table["correct"].fillna(0).astype(int)
    table["accuracy"] = table["accuracy"].fillna(0.0)
    return table.reset_index()


def accuracy_by_week(log: pd.DataFrame) -> pd.DataFrame:
    """Accuracy per (season, week), in calendar order."""
    decided = _decided(log)
    return _accuracy_table(decided.groupby(["season", "week"])).sort_values(
        ["season", "week"]
    ).reset_index(drop=True)


def accuracy_by_team(log: pd.DataFrame, limit: int | None = None) -> pd.DataFrame:
    """
    How often games involving each team were called correctly.

    Each game counts once for its home team and once for its away team.
    Sorted most-predictable first.
    """
    decided = _decided(log)
    long = pd.concat(
        [
            decided[["home_team", "correct"]].rename(columns={"home_team": "team"}),
            decided[["away_team", "correct"]].rename(columns={"away_team": "team"}),
        ],
        ignore_index=True,
    )
    table = _accuracy_table(long.groupby("team"))
    table = table.sort_values(["accuracy", "total", "team"], ascending=[False, False, True])
    table = table.reset_index(drop=True)
    if limit is not None:
        table = table.head(limit)
    return table


def brier_score(log: pd.DataFrame) -> float:
    """Mean squared error of the home win probability (lower is better)."""
    decided = _decided(log)
    if decided.empty:
        return float("nan")
    p = decided["home_win_probability"].to_numpy(dtype=float)
    return float(np.mean((p - _home_won(decided)) ** 2))


def log_loss(log: pd.DataFrame, eps: float = 1e-15) -> float:
    """Binary cross-entropy of the home win probability."""
    decided = _decided(log)
    if decided.empty:
        return float("nan")
    p = np.clip(decided["home_win_probability"].to_numpy(dtype=float), eps, 1 - eps)
    y = _home_won(decided)
    return float(-np.mean(y * np.log(p) + (1 - y) * np.log(1 - p)))


def calibration_table(log: pd.DataFrame, bins: int = 10) -> pd.DataFrame:
    """
    Predicted vs. observed home win rate in equal-width probability bins.

    Empty bins are omitted.
    """
    decided = _decided(log)
    edges = np.linspace(0.0, 1.0, bins + 1)
    decided["bin"] = pd.cut(
        decided["home_win_probability"], edges, include_lowest=True
    )
    decided["home_won"] = _home_won(decided)
    table = (
        decided.groupby("bin", observed=True)
        .agg(
            games=("home_won", "size"),
            mean_predicted=("home_win_probability", "mean"),
            observed_rate=("home_won", "mean"),
        )
        .reset_index()
    )
    return table[table["games"] > 0].reset_index(drop=True)


def summarize(log: pd.DataFrame) -> dict:
    """Headline numbers for a replay."""
    decided = _decided(log)
    total = int(len(decided))
    correct = int(decided["correct"].sum())
    return {
        "games": int(len(log)),
        "decided": total,
        "correct": correct,
        "accuracy": correct / total if total else 0.0,
        "brier_score": brier_score(log),
        "log_loss": log_loss(log),
    }
