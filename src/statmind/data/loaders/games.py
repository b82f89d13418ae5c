from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import pandas as pd

from statmind.config import DATA_CONFIG

try:
    import nfl_data_py as nfl
except ImportError as e:
    raise ImportError(
        "nfl-data-py is required for GameDataLoader.\n"
        "Install with `pip install nfl-data-py` or add it to pyproject.toml."
    ) from e


@dataclass
class GameDataLoaderConfig:
    """
    Configuration for the schedule loader.

    Attributes:
        seasons: List of NFL seasons to load.
        save_parquet: If True, caches the schedule table under data/raw/.
        include_unplayed: If False, drop games that have no final score yet.
        merge_relocations: If True, map relocated franchises to their current
            abbreviation so one team keeps one rating history.
    """

    seasons: List[int]
    save_parquet: bool = True
    include_unplayed: bool = True
    merge_relocations: bool = True


class GameDataLoader:
    """
    Load NFL schedules and results from nfl_data_py.

    The output is one row per game with exactly the columns the rating engine
    consumes: game_id, season, week, gameday, home_team, away_team,
    home_score, away_score (scores are NaN for unplayed games), plus
    game_type where the source provides it.
    """

    GAME_COLS = [
        "game_id",
        "season",
        "week",
        "gameday",
        "home_team",
        "away_team",
        "home_score",
        "away_score",
    ]

    OPTIONAL_COLS = [
        "game_type",
    ]

    # Older abbreviations of relocated franchises
    RELOCATIONS = {
        "OAK": "LV",
        "SD": "LAC",
        "STL": "LA",
    }

    def __init__(self, config: Optional[GameDataLoaderConfig] = None):
        if config is None:
            config = GameDataLoaderConfig(seasons=DATA_CONFIG.default_seasons)
        self.config = config

    def load(self) -> pd.DataFrame:
        """
        Load the schedule table for the configured seasons.

        Returns:
            A DataFrame sorted by gameday then game_id.
        """
        schedules = self._load_raw_schedules()
        games = self._build_games_table(schedules)

        if self.config.save_parquet:
            DATA_CONFIG.raw_data_dir.mkdir(parents=True, exist_ok=True)
            start_season = min(self.config.seasons)
            end_season = max(self.config.seasons)
            path = DATA_CONFIG.raw_data_dir / f"schedules_{start_season}_{end_season}.parquet"
            games.to_parquet(path, index=False)

        return games

    def _load_raw_schedules(self) -> pd.DataFrame:
        seasons = self.config.seasons
        if not seasons:
            raise ValueError("At least one season must be provided to GameDataLoader.")

        try:
            schedules = nfl.import_schedules(list(seasons))
        except AttributeError as e:
            raise RuntimeError(
                "nfl_data_py.import_schedules is not available. "
                "Check your nfl-data-py version and update this loader accordingly."
            ) from e

        if not isinstance(schedules, pd.DataFrame):
            raise TypeError("nfl.import_schedules did not return a pandas DataFrame.")

        return schedules

    def _build_games_table(self, schedules: pd.DataFrame) -> pd.DataFrame:
        """Rename, select and type the columns the engine needs."""
        df = schedules.copy()

        if "gameday" in df.columns:
            df["gameday"] = pd.to_datetime(df["gameday"])
        elif "game_date" in df.columns:
            df["gameday"] = pd.to_datetime(df["game_date"])
        else:
            raise KeyError(
                "Could not find a 'gameday' or 'game_date' column in schedules."
            )

        missing = [c for c in self.GAME_COLS if c not in df.columns]
        if missing:
            raise KeyError(f"Schedules are missing required columns: {missing}")

        keep_cols = self.GAME_COLS + [c for c in self.OPTIONAL_COLS if c in df.columns]
        df = df[keep_cols].copy()

        if self.config.merge_relocations:
            for col in ("home_team", "away_team"):
                df[col] = df[col].replace(self.RELOCATIONS)

        if not self.config.include_unplayed:
            df = df[df["home_score"].notnull() & df["away_score"].notnull()]

        return df.sort_values(["gameday", "game_id"]).reset_index(drop=True)
