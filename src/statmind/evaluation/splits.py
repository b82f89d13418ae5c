from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from statmind.engine.game import Game


def _to_int_list(seasons: Optional[Iterable[int]]) -> List[int]:
    if seasons is None:
        return []
    return sorted(int(s) for s in seasons)


def _check_disjoint(train: List[int], val: List[int], test: List[int]) -> None:
    train_set, val_set, test_set = set(train), set(val), set(test)
    if (train_set & val_set) or (train_set & test_set) or (val_set & test_set):
        raise ValueError(
            f"Season sets must not overlap.\n"
            f"train={train_set}, val={val_set}, test={test_set}"
        )


def split_by_season(
    df: pd.DataFrame,
    train_seasons: Iterable[int],
    val_seasons: Optional[Iterable[int]] = None,
    test_seasons: Optional[Iterable[int]] = None,
) -> Tuple[pd.DataFrame, Optional[pd.DataFrame], Optional[pd.DataFrame]]:
    """
    Split a game table into train/val/test sets by season.

    Args:
        df: Game table with a 'season' column.
        train_seasons: Seasons to include in the training set.
        val_seasons: Seasons for validation set (or None).
        test_seasons: Seasons for test set (or None).

    Returns:
        (train_df, val_df, test_df) where val_df/test_df may be None.

    Raises:
        ValueError if seasons overlap between splits, or season column missing.
    """
    if "season" not in df.columns:
        raise ValueError("DataFrame must contain a 'season' column for split_by_season.")

    train = _to_int_list(train_seasons)
    val = _to_int_list(val_seasons)
    test = _to_int_list(test_seasons)
    _check_disjoint(train, val, test)

    def _subset_for(season_list: List[int]) -> Optional[pd.DataFrame]:
        if not season_list:
            return None
        return df[df["season"].isin(season_list)].copy()

    return _subset_for(train), _subset_for(val), _subset_for(test)


def split_games_by_season(
    games: Sequence[Game],
    train_seasons: Iterable[int],
    test_seasons: Iterable[int],
) -> Tuple[List[Game], List[Game]]:
    """
    Split Game records into (train, test) by season.

    Every training game must be played no later than the first test game;
    otherwise calibrating on train and scoring on test would leak future
    results into the weights.
    """
    train = _to_int_list(train_seasons)
    test = _to_int_list(test_seasons)
    if not train or not test:
        raise ValueError("Both train_seasons and test_seasons must be non-empty.")
    _check_disjoint(train, [], test)

    train_games = [g for g in games if g.season in train]
    test_games = [g for g in games if g.season in test]

    if train_games and test_games:
        train_end = max(g.gameday for g in train_games)
        test_start = min(g.gameday for g in test_games)
        if train_end > test_start:
            raise ValueError(
                f"Time leakage: training games run until {train_end}, "
                f"test games start {test_start}."
            )

    return train_games, test_games
