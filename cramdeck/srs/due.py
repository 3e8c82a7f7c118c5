"""Due-card selection and per-deck deadline day flags.

A card is due when its due day is today or earlier. On a deadline deck's
emergency day (the deadline itself or later) every card in the deck is due,
whatever its stored due date. Suspended cards are never due.
"""

import logging
from dataclasses import replace
from datetime import date

from cramdeck.srs.dates import day_before, day_floor
from cramdeck.srs.types import Card, Deck, Mastery, Mode

logger = logging.getLogger(__name__)

MASTERY_ORDER = {Mastery.STRUGGLING: 0, Mastery.LEARNING: 1, Mastery.MASTERED: 2}


def is_final_review_day(deadline: date | None, today: date) -> bool:
    """True on the day immediately before the deadline."""
    return deadline is not None and day_floor(today) == day_before(deadline)


def is_emergency_day(deadline: date | None, today: date) -> bool:
    """True on the deadline day and every day after it."""
    return deadline is not None and day_floor(today) >= day_floor(deadline)


def deck_in_emergency(deck: Deck, today: date) -> bool:
    return deck.mode is Mode.DEADLINE and is_emergency_day(deck.deadline, today)


def get_due_cards(
    cards: list[Card],
    decks: list[Deck],
    today: date,
    deck_id: str | None = None,
) -> list[Card]:
    """Return the cards due for review today, in input order.

    Args:
        cards: Card population to filter.
        decks: Decks the cards belong to.
        today: Current day.
        deck_id: Restrict the result to one deck.

    Returns:
        The due subset. Calling again with the same inputs gives the same list.
    """
    today = day_floor(today)
    decks_by_id = {deck.id: deck for deck in decks}
    due: list[Card] = []

    for card in cards:
        if deck_id is not None and card.deck_id != deck_id:
            continue
        deck = decks_by_id.get(card.deck_id)
        if deck is None:
            logger.warning("Skipping card %s: deck %s not in snapshot", card.id, card.deck_id)
            continue
        if card.suspended:
            continue
        if deck_in_emergency(deck, today) or day_floor(card.next_due) <= today:
            due.append(card)

    return due


def order_for_review(cards: list[Card], decks: list[Deck], today: date) -> list[Card]:
    """Order a due set for study.

    Cards of a deck on its final review day go STRUGGLING first, then LEARNING,
    then MASTERED. Other cards keep their order, most overdue first.
    """
    decks_by_id = {deck.id: deck for deck in decks}

    def key(card: Card) -> tuple[int, int, date]:
        deck = decks_by_id.get(card.deck_id)
        final_day = (
            deck is not None
            and deck.mode is Mode.DEADLINE
            and is_final_review_day(deck.deadline, today)
        )
        rank = MASTERY_ORDER[card.mastery] if final_day else 0
        return (0 if final_day else 1, rank, card.next_due)

    return sorted(cards, key=key)


def needs_post_deadline_prompt(deck: Deck, today: date) -> bool:
    """A deadline deck whose deadline has arrived and whose prompt is still unshown."""
    return (
        deck.mode is Mode.DEADLINE
        and is_emergency_day(deck.deadline, today)
        and not deck.post_deadline_prompt_shown
    )


def mark_post_deadline_prompt_shown(deck: Deck) -> Deck:
    return replace(deck, post_deadline_prompt_shown=True)
