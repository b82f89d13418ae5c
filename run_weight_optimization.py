"""
Weight Optimization

Calibrates the component weights on the training seasons and reports how the
calibrated vector does on the held-out season compared with the defaults.

Example:
    STATMIND_LOG_LEVEL=INFO python run_weight_optimization.py
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

# Ensure src/ is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from statmind.config import DATA_CONFIG, ENGINE_CONFIG, LOG_CONFIG  # noqa: E402
from statmind.data.preprocessing.base_dataset import (  # noqa: E402
    BaseDatasetConfig,
    build_base_dataset,
    games_from_frame,
)
from statmind.engine.optimizer import lattice_size  # noqa: E402
from statmind.evaluation.comparison import compare_weights, walk_forward  # noqa: E402

STEP = 0.05

# Search box around the production weights
BOUNDS = {
    "elo": (0.15, 0.35),
    "power": (0.15, 0.35),
    "situational": (0.10, 0.30),
    "matchup": (0.05, 0.25),
    "recentForm": (0.05, 0.25),
}


def main() -> None:
    logging.basicConfig(
        level=os.getenv(LOG_CONFIG.level_env_var, "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    print("=== StatMind: Weight Optimization ===")

    seasons = DATA_CONFIG.default_seasons
    train_seasons, test_seasons = seasons[:-1], seasons[-1:]
    print(f"Train: {train_seasons}  Test: {test_seasons}")
    print(f"Lattice step {STEP}: {lattice_size(STEP)} unbounded candidates")

    try:
        df = build_base_dataset(BaseDatasetConfig(seasons=seasons))
    except Exception as e:  # pragma: no cover - manual inspection script
        print("\nERROR while building dataset:\n")
        print(type(e).__name__, ":", str(e))
        return

    games = games_from_frame(df)
    result = walk_forward(games, train_seasons, test_seasons, step=STEP, bounds=BOUNDS)

    print("\n--- Best weights ---")
    for key, value in result.optimization.best_weights.as_dict().items():
        print(f"  {key:<12} {value:.2f}")
    print(f"Candidates evaluated: {result.optimization.evaluated}")
    print(f"Failed candidates:    {len(result.optimization.failed)}")
    print(f"Train accuracy:       {result.train_accuracy:.1%}")
    print(f"Test accuracy:        {result.test_accuracy:.1%}")
    print(f"Default weights:      {result.baseline_test_accuracy:.1%}")
    print(f"Improvement:          {result.improvement:+.1%}")

    print("\n--- Per-season comparison (fresh start each season) ---")
    table = compare_weights(
        games,
        {
            "default": ENGINE_CONFIG.default_weights,
            "optimized": result.optimization.best_weights,
        },
    )
    print(table.pivot(index="season", columns="name", values="accuracy").to_string())


if __name__ == "__main__":
    main()
