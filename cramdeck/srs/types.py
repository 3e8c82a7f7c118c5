"""Data model for the scheduling engine.

A card carries exactly one state block: ``DeadlineState`` for cram decks,
``MemoryState`` for long-term decks. Its mode is read off the block, so a card
cannot claim one mode while holding the other mode's fields.

All records are frozen; engine operations return new records (deltas) and the
caller's store decides when to apply them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from cramdeck.errors import InvalidRating


class Rating(Enum):
    """Review outcome, ordered from forgot to trivially recalled."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @classmethod
    def parse(cls, value: Rating | str | int) -> Rating:
        """Accept a Rating, its name in any case, or its 1-4 value (as int or digits)."""
        if isinstance(value, Rating):
            return value
        if isinstance(value, bool):
            raise InvalidRating(f"Not a review rating: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise InvalidRating(f"Rating must be 1-4, got {value}") from None
        if isinstance(value, str):
            if value.strip().isdigit():
                return cls.parse(int(value))
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise InvalidRating(f"Unknown rating {value!r}") from None
        raise InvalidRating(f"Not a review rating: {value!r}")


class Mode(Enum):
    DEADLINE = "deadline"
    MEMORY_MODEL = "memory_model"


class Mastery(Enum):
    STRUGGLING = "struggling"
    LEARNING = "learning"
    MASTERED = "mastered"


@dataclass(frozen=True)
class DeadlineState:
    """Cram-mode scheduling state: a day-offset ladder counting up to a deadline."""

    deadline: date
    schedule: tuple[int, ...]  # day offsets from anchor, non-decreasing
    step: int  # index into schedule
    anchor: date  # day the offsets count from
    next_due: date
    again_count: int = 0  # session-scoped, never persisted

    mode = Mode.DEADLINE


@dataclass(frozen=True)
class MemoryState:
    """Long-term scheduling state for the forgetting-curve model."""

    stability: float  # days until recall decays to the target
    difficulty: float  # 1-10
    next_due: date
    last_review: date | None = None
    review_count: int = 0
    lapses: int = 0

    mode = Mode.MEMORY_MODEL

    @property
    def lapse_rate(self) -> float:
        return self.lapses / self.review_count if self.review_count else 0.0

    def is_leech(self, threshold: int) -> bool:
        return self.lapses >= threshold


CardState = DeadlineState | MemoryState


@dataclass(frozen=True)
class Card:
    """A question/answer unit with its scheduling state."""

    id: str
    deck_id: str
    created_at: datetime
    state: CardState
    history: tuple[Rating, ...] = ()  # trailing ratings, oldest first
    mastery: Mastery = Mastery.LEARNING
    suspended: bool = False
    front: str = ""
    back: str = ""
    media: tuple[str, ...] = ()

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def next_due(self) -> date:
        return self.state.next_due


@dataclass(frozen=True)
class Deck:
    """A named collection of cards sharing one scheduling mode."""

    id: str
    name: str
    mode: Mode
    deadline: date | None = None
    post_deadline_prompt_shown: bool = False


@dataclass(frozen=True)
class ReviewDelta:
    """Everything a persisted review changes on one card."""

    card_id: str
    rating: Rating
    state: CardState
    history: tuple[Rating, ...]
    mastery: Mastery
    interval_days: int
    retrievability: float | None = None  # recall estimate at review time (memory model only)

    @property
    def next_due(self) -> date:
        return self.state.next_due


@dataclass(frozen=True)
class Persist:
    """A review outcome the caller must apply to the stored card."""

    delta: ReviewDelta


@dataclass(frozen=True)
class RequeueOnly:
    """A deadline-mode "again": shown again this session, schedule untouched.

    ``session_step`` is where the regression rule would put the card; it is
    informational and never written back. Only ``history`` is stored.
    """

    card_id: str
    again_count: int
    history: tuple[Rating, ...]
    session_step: int


ReviewOutcome = Persist | RequeueOnly


@dataclass(frozen=True)
class DeckBatch:
    """A deck and every one of its cards, to be applied as one unit."""

    deck: Deck
    cards: list[Card] = field(default_factory=list)
