"""
Quick Data Load Check

Run this script to verify that the schedule loader works correctly and that
the result is ready for replay.

Example:
    python run_data_check.py
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from statmind.data.loaders.games import GameDataLoader, GameDataLoaderConfig  # noqa: E402
from statmind.data.preprocessing.base_dataset import games_from_frame  # noqa: E402


def main():
    print("=== StatMind: Data Load Check ===")

    # Choose seasons here
    seasons = list(range(2020, 2025))
    print(f"Loading seasons: {seasons}")

    try:
        loader = GameDataLoader(
            GameDataLoaderConfig(
                seasons=seasons,
                save_parquet=False,
            )
        )

        df = loader.load()
        games = games_from_frame(df)
        completed = [g for g in games if g.is_complete]

        print("\n--- Loaded Data Summary ---")
        print(f"Total games loaded: {len(df)}")
        print(f"Completed games:    {len(completed)}")
        print(f"Unplayed games:     {len(games) - len(completed)}")
        print(f"Ties:               {sum(g.is_tie for g in completed)}")
        print(f"Teams:              {df['home_team'].nunique()}")
        print(f"Columns: {list(df.columns)}\n")

        print("--- Games per season ---")
        print(df.groupby("season").size().to_string())

        print("\n--- Head (first 10 rows) ---")
        print(df.head(10).to_string())

        print("\nSuccess! Data loaded correctly.")

    except Exception as e:
        print("\nERROR: Something went wrong while loading data.\n")
        print(type(e).__name__, ":", str(e))


if __name__ == "__main__":
    main()
