"""Pydantic schemas for API request/response models."""

from datetime import date

from pydantic import BaseModel, Field

from cramdeck.srs.types import Card, DeadlineState, Deck, Mode

# --- Decks ---


class DeckCreateRequest(BaseModel):
    """Request to create a deck."""

    name: str = Field(min_length=1, max_length=200)
    mode: Mode
    deadline: date | None = None


class DeckResponse(BaseModel):
    """A deck and its deadline flags."""

    id: str
    name: str
    mode: Mode
    deadline: date | None
    post_deadline_prompt_shown: bool

    @classmethod
    def from_deck(cls, deck: Deck) -> "DeckResponse":
        return cls(
            id=deck.id,
            name=deck.name,
            mode=deck.mode,
            deadline=deck.deadline,
            post_deadline_prompt_shown=deck.post_deadline_prompt_shown,
        )


class DeadlineRequest(BaseModel):
    deadline: date


class ConvertRequest(BaseModel):
    """Request to convert a deck to another mode."""

    mode: Mode
    deadline: date | None = None  # required when converting to deadline mode


class CardContent(BaseModel):
    front: str
    back: str


class AddCardsRequest(BaseModel):
    cards: list[CardContent] = Field(min_length=1)


# --- Cards ---


class CardResponse(BaseModel):
    """A card with the fields of whichever scheduling mode it is in."""

    id: str
    deck_id: str
    front: str
    back: str
    mode: Mode
    next_due: date
    mastery: str
    history: list[str]
    suspended: bool
    step: int | None = None
    schedule: list[int] | None = None
    deadline: date | None = None
    stability: float | None = None
    difficulty: float | None = None
    review_count: int | None = None
    lapses: int | None = None

    @classmethod
    def from_card(cls, card: Card) -> "CardResponse":
        state = card.state
        response = cls(
            id=card.id,
            deck_id=card.deck_id,
            front=card.front,
            back=card.back,
            mode=card.mode,
            next_due=card.next_due,
            mastery=card.mastery.value,
            history=[r.name.lower() for r in card.history],
            suspended=card.suspended,
        )
        if isinstance(state, DeadlineState):
            response.step = state.step
            response.schedule = list(state.schedule)
            response.deadline = state.deadline
        else:
            response.stability = round(state.stability, 4)
            response.difficulty = round(state.difficulty, 4)
            response.review_count = state.review_count
            response.lapses = state.lapses
        return response


class ReviewRequest(BaseModel):
    """A rating: again/hard/good/easy or 1-4."""

    rating: str | int


class ReviewResponse(BaseModel):
    """Outcome of a review.

    ``persisted`` is false when an "again" on a deadline card only requeued it.
    """

    card_id: str
    rating: str
    persisted: bool
    next_due: date | None = None
    interval_days: int | None = None
    mastery: str | None = None
    retrievability: float | None = None
    again_count: int | None = None


class PreviewResponse(BaseModel):
    again: str
    hard: str
    good: str
    easy: str


class SuspendRequest(BaseModel):
    suspended: bool


# --- Session ---


class SessionStartRequest(BaseModel):
    deck_id: str | None = None


class SessionStartResponse(BaseModel):
    """Response when starting a new study session."""

    session_id: str
    deck_id: str | None
    total_cards: int


class SessionCardResponse(BaseModel):
    """The card currently up in a study session."""

    card: CardResponse
    preview: PreviewResponse
    remaining: int


class SessionAnswerRequest(BaseModel):
    card_id: str
    rating: str | int


class SessionAnswerResponse(BaseModel):
    review: ReviewResponse
    remaining: int
    session_complete: bool


class SessionStatsResponse(BaseModel):
    """Statistics for the current study session."""

    cards_reviewed: int
    requeued: int
    ratings: dict[str, int]


# --- Stats ---


class DeckStatsResponse(BaseModel):
    """Progress overview for one deck."""

    deck_id: str
    mode: Mode
    total_cards: int
    due_today: int
    suspended: int
    struggling: int
    learning: int
    mastered: int
    leeches: int
    total_reviews: int
    days_left: int | None
    final_review_day: bool
    emergency: bool
