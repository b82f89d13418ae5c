"""
Quick Backtest Check

Loads completed games for the default seasons, replays them under each
season transition policy, and prints accuracy plus the final Elo leaderboard.

Example:
    python run_backtest_check.py
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

from statmind.config import DATA_CONFIG, LOG_CONFIG  # noqa: E402
from statmind.data.preprocessing.base_dataset import (  # noqa: E402
    BaseDatasetConfig,
    build_base_dataset,
    games_from_frame,
)
from statmind.engine.simulator import run_backtest  # noqa: E402
from statmind.engine.team_state import SeasonTransition  # noqa: E402
from statmind.evaluation.metrics import accuracy_by_confidence, summarize  # noqa: E402


def main() -> None:
    logging.basicConfig(
        level=os.getenv(LOG_CONFIG.level_env_var, "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    print("=== StatMind: Backtest Check ===")

    seasons = DATA_CONFIG.default_seasons
    print(f"Building dataset for seasons: {seasons}")

    try:
        df = build_base_dataset(BaseDatasetConfig(seasons=seasons))
    except Exception as e:  # pragma: no cover - manual inspection script
        print("\nERROR while building dataset:\n")
        print(type(e).__name__, ":", str(e))
        return

    games = games_from_frame(df)
    print(f"Completed games: {len(games)}\n")

    for policy in SeasonTransition:
        result = run_backtest(games, transition=policy)
        summary = summarize(result.to_frame())
        print(
            f"{policy.value:>8}: {summary['correct']}/{summary['decided']} "
            f"({summary['accuracy']:.1%})  brier={summary['brier_score']:.4f}"
        )

    result = run_backtest(games, transition=SeasonTransition.REGRESS)

    print("\n--- Accuracy by confidence (regress) ---")
    print(accuracy_by_confidence(result.to_frame()).to_string(index=False))

    print("\n--- Per season (regress) ---")
    for s in result.seasons:
        print(f"{s.season}: {s.correct}/{s.decided} ({s.accuracy:.1%})")

    print("\n--- Final Elo (top 10) ---")
    board = result.leaderboard_frame()
    print(board[["rank", "team_key", "elo_rating", "wins", "losses"]].head(10).to_string(index=False))

    if result.skipped:
        print(f"\nSkipped {len(result.skipped)} games.")


if __name__ == "__main__":
    main()
