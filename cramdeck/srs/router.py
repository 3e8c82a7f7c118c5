"""Single entry point for "a learner rated this card".

Deadline cards and memory-model cards treat "again" differently on purpose:

- Deadline mode drills before a cutoff, so "again" only requeues the card in the
  current session. Its canonical due date and step stay as they were.
- Memory-model mode optimizes long-run retention, so every rating, "again"
  included, is a real review that gets persisted.

The router never mutates anything; it returns an outcome for the caller to apply.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, time

from cramdeck.config import settings
from cramdeck.errors import InconsistentModeState
from cramdeck.srs.dates import days_between
from cramdeck.srs.deadline import DeadlineScheduler
from cramdeck.srs.fsrs import MemoryModelScheduler
from cramdeck.srs.mastery import classify_mastery
from cramdeck.srs.types import (
    Card,
    CardState,
    DeadlineState,
    Deck,
    Mastery,
    MemoryState,
    Mode,
    Persist,
    Rating,
    RequeueOnly,
    ReviewDelta,
    ReviewOutcome,
)

logger = logging.getLogger(__name__)


class ReviewRouter:
    """Dispatches reviews and card creation to the scheduler that owns the mode."""

    def __init__(
        self,
        deadline: DeadlineScheduler | None = None,
        memory: MemoryModelScheduler | None = None,
        history_length: int = settings.history_length,
    ) -> None:
        self.deadline = deadline or DeadlineScheduler()
        self.memory = memory or MemoryModelScheduler()
        self.history_length = max(1, history_length)

    def review(self, card: Card, rating: Rating | str | int, today: date) -> ReviewOutcome:
        """Route a rating to the card's scheduler.

        Returns:
            ``RequeueOnly`` for "again" on a deadline card, otherwise ``Persist``.

        Raises:
            InvalidRating: If ``rating`` is not again/hard/good/easy.
            InconsistentModeState: If the card's state block is malformed.
        """
        rating = Rating.parse(rating)
        check_card_state(card)
        history = self._append_history(card.history, rating)

        if isinstance(card.state, DeadlineState):
            return self._review_deadline(card, card.state, rating, history, today)
        return self._review_memory(card, card.state, rating, history, today)

    def _review_deadline(
        self,
        card: Card,
        state: DeadlineState,
        rating: Rating,
        history: tuple[Rating, ...],
        today: date,
    ) -> ReviewOutcome:
        if rating is Rating.AGAIN:
            regressed = self.deadline.regress_on_incorrect(state)
            logger.debug(
                "Requeue card %s (again x%d, session step %d)",
                card.id,
                regressed.again_count,
                regressed.step,
            )
            return RequeueOnly(
                card_id=card.id,
                again_count=regressed.again_count,
                history=history,
                session_step=regressed.step,
            )

        if rating.value < Rating.GOOD.value and state.step == 0:
            new_state = self.deadline.regress_on_incorrect(state)
        else:
            new_state = self.deadline.advance_on_correct(state)

        return Persist(self._delta(card, rating, new_state, history, today))

    def _review_memory(
        self,
        card: Card,
        state: MemoryState,
        rating: Rating,
        history: tuple[Rating, ...],
        today: date,
    ) -> ReviewOutcome:
        result = self.memory.review(state, rating, today)
        return Persist(
            self._delta(
                card,
                rating,
                result.new_state,
                history,
                today,
                retrievability=result.retrievability,
            )
        )

    def _delta(
        self,
        card: Card,
        rating: Rating,
        new_state: CardState,
        history: tuple[Rating, ...],
        today: date,
        retrievability: float | None = None,
    ) -> ReviewDelta:
        mastery = classify_mastery(replace(card, state=new_state, history=history))
        return ReviewDelta(
            card_id=card.id,
            rating=rating,
            state=new_state,
            history=history,
            mastery=mastery,
            interval_days=max(0, days_between(today, new_state.next_due)),
            retrievability=retrievability,
        )

    def _append_history(
        self, history: tuple[Rating, ...], rating: Rating
    ) -> tuple[Rating, ...]:
        return (*history, rating)[-self.history_length :]

    def initial_state(self, deck: Deck, today: date) -> CardState:
        """Scheduling state for a card accepted into ``deck`` today.

        Raises:
            MissingDeadline: If the deck is in deadline mode without a deadline.
        """
        if deck.mode is Mode.DEADLINE:
            return self.deadline.initial_state(deck.deadline, today)
        return self.memory.initial_state(Mastery.LEARNING, today)

    def create_card(
        self,
        deck: Deck,
        card_id: str,
        front: str,
        back: str,
        today: date,
        created_at: datetime | None = None,
        media: tuple[str, ...] = (),
    ) -> Card:
        """Build a new card inheriting the deck's mode (and deadline)."""
        state = self.initial_state(deck, today)
        card = Card(
            id=card_id,
            deck_id=deck.id,
            created_at=created_at or datetime.combine(today, time.min),
            state=state,
            front=front,
            back=back,
            media=media,
        )
        return replace(card, mastery=classify_mastery(card))


def check_card_state(card: Card) -> None:
    """Reject cards whose state block is missing or out of bounds."""
    state = card.state
    if isinstance(state, DeadlineState):
        if not state.schedule:
            raise InconsistentModeState(f"Card {card.id} has an empty deadline schedule")
        if not 0 <= state.step < len(state.schedule):
            raise InconsistentModeState(
                f"Card {card.id} step {state.step} is outside its "
                f"{len(state.schedule)}-rung schedule"
            )
        return
    if not isinstance(state, MemoryState):
        raise InconsistentModeState(f"Card {card.id} has no scheduling state")


default_router = ReviewRouter()


def generate_schedule(deadline: date | None, today: date) -> list[int]:
    return default_router.deadline.build_schedule(deadline, today)


def schedule_card_creation(deck: Deck, today: date) -> CardState:
    return default_router.initial_state(deck, today)


def create_card(
    deck: Deck,
    card_id: str,
    front: str,
    back: str,
    today: date,
    created_at: datetime | None = None,
    media: tuple[str, ...] = (),
) -> Card:
    return default_router.create_card(deck, card_id, front, back, today, created_at, media)


def review_card(card: Card, rating: Rating | str | int, today: date) -> ReviewOutcome:
    return default_router.review(card, rating, today)
