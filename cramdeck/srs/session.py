"""Study session over a due set.

Keeps the session's own copy of each card so that requeued deadline cards carry
their session again-count from one showing to the next. Persisted outcomes are
handed back to the caller; the session never writes to a store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date

from cramdeck.config import settings
from cramdeck.srs.due import get_due_cards, order_for_review
from cramdeck.srs.router import ReviewRouter, default_router
from cramdeck.srs.types import (
    Card,
    DeadlineState,
    Deck,
    Persist,
    Rating,
    RequeueOnly,
    ReviewOutcome,
)

logger = logging.getLogger(__name__)


def apply_outcome(card: Card, outcome: ReviewOutcome) -> Card:
    """Return ``card`` with a review outcome applied."""
    if isinstance(outcome, Persist):
        delta = outcome.delta
        return replace(card, state=delta.state, history=delta.history, mastery=delta.mastery)

    state = card.state
    if isinstance(state, DeadlineState):
        state = replace(state, again_count=outcome.again_count)
    return replace(card, state=state, history=outcome.history)


@dataclass
class SessionStats:
    """Statistics for a study session."""

    cards_reviewed: int = 0
    requeued: int = 0
    ratings: dict[str, int] = field(default_factory=lambda: {r.name.lower(): 0 for r in Rating})


@dataclass
class StudySession:
    """An in-memory queue of cards to study, with same-session requeue."""

    cards: list[Card]
    router: ReviewRouter = field(default=default_router)
    requeue_gap: int = settings.requeue_gap
    stats: SessionStats = field(default_factory=SessionStats)
    _order: list[str] = field(default_factory=list)
    _cards: dict[str, Card] = field(default_factory=dict)
    _index: int = 0

    def __post_init__(self) -> None:
        """Index the cards and lay out the initial order."""
        self._cards = {card.id: card for card in self.cards}
        self._order = [card.id for card in self.cards]

    @property
    def remaining(self) -> int:
        """Return the number of showings left, requeues included."""
        return max(0, len(self._order) - self._index)

    @property
    def is_complete(self) -> bool:
        return self._index >= len(self._order)

    @property
    def current_card(self) -> Card | None:
        """Return the current card or None if the session is complete."""
        if self._index < len(self._order):
            return self._cards[self._order[self._index]]
        return None

    def answer(self, rating: Rating | str | int, today: date) -> ReviewOutcome:
        """Rate the current card and move on.

        Raises:
            IndexError: If the session is already complete.
            InvalidRating: If ``rating`` is not a valid rating.
        """
        card = self.current_card
        if card is None:
            raise IndexError("Study session is complete")

        outcome = self.router.review(card, rating, today)
        self._cards[card.id] = apply_outcome(card, outcome)

        name = (outcome.delta.rating if isinstance(outcome, Persist) else Rating.AGAIN).name
        self.stats.ratings[name.lower()] += 1
        self.stats.cards_reviewed += 1

        self._index += 1
        if isinstance(outcome, RequeueOnly):
            position = min(self._index + self.requeue_gap, len(self._order))
            self._order.insert(position, card.id)
            self.stats.requeued += 1
            logger.debug("Card %s requeued at position %d", card.id, position)

        return outcome

    def drop_current(self) -> Card | None:
        """Take the current card out of the session, including any pending requeues."""
        card = self.current_card
        if card is None:
            return None
        upcoming = [cid for cid in self._order[self._index :] if cid != card.id]
        self._order = self._order[: self._index] + upcoming
        logger.info("Dropped card %s from session", card.id)
        return card


def start_study_session(
    cards: list[Card],
    decks: list[Deck],
    today: date,
    deck_id: str | None = None,
    router: ReviewRouter = default_router,
) -> StudySession:
    """Build a session over today's due cards, in study order."""
    due = order_for_review(get_due_cards(cards, decks, today, deck_id), decks, today)
    if not due:
        logger.warning("No cards due for deck %s", deck_id or "(all)")
    else:
        logger.info("Started study session with %d cards", len(due))
    return StudySession(cards=due, router=router)
