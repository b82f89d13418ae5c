"""
statmind

Rating and prediction engine for NFL games.

Structure:
- data: schedule loading and game-table preprocessing
- engine: team state, Elo, component scores, predictions, replay, weight search
- evaluation: accuracy metrics, season splits, weight comparison
- serving: predictions for upcoming games
"""

__all__ = ["config"]
