from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class Game:
    """
    One NFL game as supplied by the storage layer.

    Scores are None for games that have not been played yet. Only games with
    both scores present are replayed by the simulator.
    """

    game_id: str
    season: int
    week: int
    gameday: dt.date
    home_team: str
    away_team: str
    home_score: int | None = None
    away_score: int | None = None

    @property
    def is_complete(self) -> bool:
        return self.home_score is not None and self.away_score is not None

    @property
    def is_tie(self) -> bool:
        return self.is_complete and self.home_score == self.away_score

    @property
    def winner(self) -> str | None:
        """Winning team key, or None for ties and unplayed games."""
        if not self.is_complete or self.home_score == self.away_score:
            return None
        return self.home_team if self.home_score > self.away_score else self.away_team


def chronological(games: Iterable[Game]) -> list[Game]:
    """Sort games by date, breaking same-day ties by game_id."""
    return sorted(games, key=lambda g: (g.gameday, g.game_id))


def completed_games(games: Iterable[Game]) -> list[Game]:
    """Games eligible for replay (both scores present), in chronological order."""
    return chronological(g for g in games if g.is_complete)
