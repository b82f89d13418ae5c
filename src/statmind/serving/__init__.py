"""Prediction delivery for games that have not been played yet.

- upcoming: replay completed games, then predict unplayed ones from the
  resulting team states without mutating them.

Persistence and notification delivery live in the service layer, not here.
"""

__all__: list[str] = ["upcoming"]
