from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

import pandas as pd

from statmind.config import DATA_CONFIG
from statmind.engine.game import Game

REQUIRED_COLS = [
    "game_id",
    "season",
    "week",
    "gameday",
    "home_team",
    "away_team",
    "home_score",
    "away_score",
]


@dataclass
class BaseDatasetConfig:
    """
    Configuration for building the replay dataset.

    Attributes:
        seasons: List of seasons to include in the dataset.
        completed_only: If True, keep only games with both scores present.
        drop_preseason: If True, drop obvious preseason games.
        save_parquet: If True, save the resulting dataset to processed_dir.
        processed_dir: Output directory; defaults to DATA_CONFIG.processed_data_dir.
        filename: Optional custom filename for the saved dataset.
    """

    seasons: List[int]
    completed_only: bool = True
    drop_preseason: bool = True
    save_parquet: bool = False
    processed_dir: Optional[Path] = None
    filename: Optional[str] = None


def validate_games_frame(df: pd.DataFrame) -> None:
    """Structural checks on a game table (columns, dtypes, duplicate ids)."""
    if df is None or len(df) == 0:
        raise ValueError("Game table is empty.")

    missing = [c for c in REQUIRED_COLS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns in game table: {missing}")

    if not pd.api.types.is_datetime64_any_dtype(df["gameday"]):
        raise TypeError(
            f"Column 'gameday' must be datetime64; got dtype {df['gameday'].dtype}"
        )

    duplicates = df[df.duplicated(subset=["game_id"], keep=False)]
    if not duplicates.empty:
        raise ValueError(
            f"Found {len(duplicates)} duplicate game_ids in game table. "
            "Check data source for errors."
        )


def _add_season_type_flags(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add is_regular_season and is_postseason flags.

    Prefer game_type if available; otherwise fall back on week/season heuristics.
    """
    df = df.copy()

    if "game_type" in df.columns:
        # nfl_data_py uses: 'REG', 'WC', 'DIV', 'CON', 'SB' (and 'PRE' in older data)
        gt = df["game_type"].astype(str).str.upper()
        df["is_regular_season"] = gt == "REG"
        df["is_postseason"] = gt.isin(["POST", "WC", "DIV", "CON", "SB"])
    else:
        # 18-week regular season from 2021, 17 weeks before that
        last_regular_week = df["season"].apply(lambda s: 18 if s >= 2021 else 17)
        df["is_postseason"] = df["week"].notna() & (df["week"] > last_regular_week)
        df["is_regular_season"] = (~df["is_postseason"]) & (df["week"] >= 1)

    return df


def prepare_games_frame(
    df: pd.DataFrame,
    completed_only: bool = True,
    drop_preseason: bool = True,
) -> pd.DataFrame:
    """
    Validate, filter and order a raw game table.

    Steps:
        1. Validate structure (columns, dtypes, unique game_id).
        2. Optionally keep only completed games (both scores present).
        3. Add season type flags; optionally drop preseason games.
        4. Sort by gameday then game_id and assign game_index = 0..N-1.
    """
    validate_games_frame(df)

    out = df.copy()
    if completed_only:
        out = out[out["home_score"].notnull() & out["away_score"].notnull()].copy()
        if out.empty:
            raise ValueError("No completed games found in game table.")

    out = _add_season_type_flags(out)

    if drop_preseason:
        mask_keep = out["is_regular_season"] | out["is_postseason"]
        out = out[mask_keep].copy()
        if out.empty:
            raise ValueError(
                "After dropping preseason, no games remain. "
                "Check season range or flags."
            )

    out = out.sort_values(["gameday", "game_id"]).reset_index(drop=True)
    out["game_index"] = out.index
    return out


def _score(value) -> Optional[int]:
    if value is None or pd.isna(value):
        return None
    return int(value)


def games_from_frame(df: pd.DataFrame) -> list[Game]:
    """Convert a game table into Game records (NaN scores become None)."""
    missing = [c for c in REQUIRED_COLS if c not in df.columns]
    if missing:
        raise KeyError(f"Cannot build Game records; missing columns: {missing}")

    games = []
    for row in df[REQUIRED_COLS].itertuples(index=False):
        games.append(
            Game(
                game_id=str(row.game_id),
                season=int(row.season),
                week=int(row.week),
                gameday=pd.Timestamp(row.gameday).date(),
                home_team=row.home_team,
                away_team=row.away_team,
                home_score=_score(row.home_score),
                away_score=_score(row.away_score),
            )
        )
    return games


def frame_from_games(games: Iterable[Game]) -> pd.DataFrame:
    """Inverse of games_from_frame; scores stay nullable integers."""
    df = pd.DataFrame(
        [
            {
                "game_id": g.game_id,
                "season": g.season,
                "week": g.week,
                "gameday": pd.Timestamp(g.gameday),
                "home_team": g.home_team,
                "away_team": g.away_team,
                "home_score": g.home_score,
                "away_score": g.away_score,
            }
            for g in games
        ],
        columns=REQUIRED_COLS,
    )
    for col in ("home_score", "away_score"):
        df[col] = df[col].astype("Int64")
    return df


def build_base_dataset(
    config: Optional[BaseDatasetConfig] = None,
    raw_games: Optional[pd.DataFrame] = None,
) -> pd.DataFrame:
    """
    Build the replay dataset.

    Args:
        config: Dataset options; defaults to DATA_CONFIG.default_seasons.
        raw_games: Pre-loaded schedule table. If None, schedules are loaded
            with GameDataLoader (requires nfl_data_py and network access).

    Returns:
        One row per game, chronologically ordered, with game_index and
        season type flags.
    """
    if config is None:
        config = BaseDatasetConfig(seasons=DATA_CONFIG.default_seasons)

    if raw_games is None:
        # imported lazily so the engine works without nfl_data_py installed
        from statmind.data.loaders.games import GameDataLoader, GameDataLoaderConfig

        loader = GameDataLoader(
            GameDataLoaderConfig(seasons=config.seasons, save_parquet=False)
        )
        raw_games = loader.load()
    else:
        raw_games = raw_games[raw_games["season"].isin(config.seasons)]

    if raw_games.empty:
        raise ValueError(f"No games loaded for seasons {config.seasons}")

    dataset = prepare_games_frame(
        raw_games,
        completed_only=config.completed_only,
        drop_preseason=config.drop_preseason,
    )

    if config.save_parquet:
        out_dir = config.processed_dir or DATA_CONFIG.processed_data_dir
        out_dir.mkdir(parents=True, exist_ok=True)
        start_season = min(config.seasons)
        end_season = max(config.seasons)
        filename = config.filename or f"base_games_{start_season}_{end_season}.parquet"
        dataset.to_parquet(out_dir / filename, index=False)

    return dataset


def load_base_dataset(
    start_season: int,
    end_season: int,
    processed_dir: Optional[Path] = None,
) -> pd.DataFrame:
    """
    Load a previously built dataset from parquet.

    Raises:
        FileNotFoundError: If dataset hasn't been built yet
        ValueError: If required columns are missing
    """
    if processed_dir is None:
        processed_dir = DATA_CONFIG.processed_data_dir

    filepath = processed_dir / f"base_games_{start_season}_{end_season}.parquet"

    if not filepath.exists():
        raise FileNotFoundError(
            f"Base dataset not found: {filepath}\n"
            f"Run build_base_dataset() first with seasons {start_season}-{end_season}."
        )

    df = pd.read_parquet(filepath)

    missing = [c for c in REQUIRED_COLS + ["game_index"] if c not in df.columns]
    if missing:
        raise ValueError(f"Loaded dataset missing required columns: {missing}")

    return df
