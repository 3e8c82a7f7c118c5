"""Error taxonomy for the scheduling engine and its store.

Every engine error is raised before any result is built, so callers can rely on
"raised means nothing changed".
"""


class SchedulingError(Exception):
    """Base class for validation failures inside the scheduling engine."""


class InvalidDeadline(SchedulingError):
    """A deadline is not strictly in the future when it is set."""


class MissingDeadline(SchedulingError):
    """A deadline-mode operation was invoked without a deadline."""


class InvalidRating(SchedulingError):
    """A review rating outside again/hard/good/easy."""


class InconsistentModeState(SchedulingError):
    """A card's mode tag disagrees with its state block or its deck."""


class NotFoundError(LookupError):
    """A deck or card id that the store does not know."""


class DeckNotFound(NotFoundError):
    pass


class CardNotFound(NotFoundError):
    pass
