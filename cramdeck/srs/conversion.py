"""Deck-wide operations: creating decks, editing deadlines, switching modes.

Each operation checks every card before building any result and returns the deck
together with all of its cards, so the caller can apply them as one batch.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date

from cramdeck.errors import InconsistentModeState, InvalidDeadline, MissingDeadline
from cramdeck.srs.mastery import classify_mastery
from cramdeck.srs.router import ReviewRouter, check_card_state, default_router
from cramdeck.srs.types import Card, DeadlineState, Deck, DeckBatch, MemoryState, Mode

logger = logging.getLogger(__name__)


def validate_deadline(deadline: date | None, today: date) -> date:
    """Return ``deadline`` if it is strictly after ``today``."""
    if deadline is None:
        raise MissingDeadline("Deadline mode needs a deadline")
    if deadline <= today:
        raise InvalidDeadline(f"Deadline {deadline} is not after {today}")
    return deadline


def new_deck(
    deck_id: str,
    name: str,
    mode: Mode,
    today: date,
    deadline: date | None = None,
) -> Deck:
    """Create a deck, validating the deadline for deadline mode.

    Memory-model decks never carry a deadline.
    """
    if mode is Mode.DEADLINE:
        validate_deadline(deadline, today)
        return Deck(id=deck_id, name=name, mode=mode, deadline=deadline)
    return Deck(id=deck_id, name=name, mode=mode)


def check_deck_cards(deck: Deck, cards: list[Card]) -> None:
    """Every card must belong to ``deck``, share its mode and hold a sane state."""
    for card in cards:
        if card.deck_id != deck.id:
            raise InconsistentModeState(
                f"Card {card.id} belongs to deck {card.deck_id}, not {deck.id}"
            )
        if card.mode is not deck.mode:
            raise InconsistentModeState(
                f"Card {card.id} is in {card.mode.value} mode but deck {deck.id} "
                f"is in {deck.mode.value} mode"
            )
        check_card_state(card)


def edit_deadline(
    deck: Deck,
    cards: list[Card],
    new_deadline: date | None,
    today: date,
    router: ReviewRouter = default_router,
) -> DeckBatch:
    """Move a deadline deck's deadline and rebuild every card's ladder.

    Each card keeps its step, clamped to the new ladder, so progress survives.
    """
    if deck.mode is not Mode.DEADLINE:
        raise InconsistentModeState(f"Deck {deck.id} is not in deadline mode")
    validate_deadline(new_deadline, today)
    check_deck_cards(deck, cards)

    new_cards = []
    for card in cards:
        state = router.deadline.reschedule(card.state, new_deadline, today)
        moved = replace(card, state=state)
        new_cards.append(replace(moved, mastery=classify_mastery(moved)))

    logger.info(
        "Deck %s deadline %s -> %s, rescheduled %d cards",
        deck.id,
        deck.deadline,
        new_deadline,
        len(new_cards),
    )
    return DeckBatch(
        deck=replace(deck, deadline=new_deadline, post_deadline_prompt_shown=False),
        cards=new_cards,
    )


def convert_deck_mode(
    deck: Deck,
    cards: list[Card],
    target_mode: Mode,
    today: date,
    new_deadline: date | None = None,
    router: ReviewRouter = default_router,
) -> DeckBatch:
    """Move a deck and all of its cards to ``target_mode``.

    Deadline -> memory model: each card's mastery seeds its stability and
    difficulty; the ladder is discarded.
    Memory model -> deadline: needs ``new_deadline``; every card restarts on the
    first rung of a fresh ladder anchored today.

    Converting to the deck's current mode returns the deck and cards unchanged.
    """
    if target_mode is deck.mode:
        logger.info("Deck %s already in %s mode", deck.id, target_mode.value)
        return DeckBatch(deck=deck, cards=list(cards))

    if target_mode is Mode.DEADLINE:
        validate_deadline(new_deadline, today)
    check_deck_cards(deck, cards)

    if target_mode is Mode.MEMORY_MODEL:
        new_cards = [_to_memory(card, today, router) for card in cards]
        new_deck_state = replace(
            deck, mode=Mode.MEMORY_MODEL, deadline=None, post_deadline_prompt_shown=True
        )
    else:
        new_cards = [_to_deadline(card, new_deadline, today, router) for card in cards]
        new_deck_state = replace(
            deck, mode=Mode.DEADLINE, deadline=new_deadline, post_deadline_prompt_shown=False
        )

    logger.info(
        "Converted deck %s from %s to %s (%d cards)",
        deck.id,
        deck.mode.value,
        target_mode.value,
        len(new_cards),
    )
    return DeckBatch(deck=new_deck_state, cards=new_cards)


def _to_memory(card: Card, today: date, router: ReviewRouter) -> Card:
    seed = classify_mastery(card)
    state: MemoryState = router.memory.initial_state(seed, today)
    converted = replace(card, state=state, history=())
    return replace(converted, mastery=classify_mastery(converted))


def _to_deadline(card: Card, deadline: date, today: date, router: ReviewRouter) -> Card:
    state: DeadlineState = router.deadline.initial_state(deadline, today, anchor=today)
    converted = replace(card, state=state, history=())
    return replace(converted, mastery=classify_mastery(converted))
