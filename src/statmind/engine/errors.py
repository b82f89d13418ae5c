"""Exceptions raised by the rating engine."""


class StatMindError(Exception):
    """Base class for engine errors."""


class WeightValidationError(StatMindError, ValueError):
    """A weight vector has unknown keys, negative entries or a bad sum."""


class MissingTeamStateError(StatMindError, KeyError):
    """A game references a team the simulation has no state for."""

    def __str__(self):
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ""


class ConfigurationError(StatMindError, ValueError):
    """An engine option (transform, policy, executor, ...) is not recognized."""
