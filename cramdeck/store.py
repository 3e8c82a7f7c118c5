"""Persistence for decks and cards.

The store is the only writer: it loads rows, turns them into engine snapshots,
asks the engine for an outcome and writes the outcome back. Deck-wide results
(deadline edits, mode conversions) are written in one transaction.

The session-scoped again-count is not stored; cards load with it at zero.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import replace
from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from cramdeck.errors import CardNotFound, DeckNotFound, InconsistentModeState
from cramdeck.models.card import Card as CardRow
from cramdeck.models.deck import Deck as DeckRow
from cramdeck.models.review_log import ReviewLog
from cramdeck.srs.conversion import convert_deck_mode, edit_deadline, new_deck
from cramdeck.srs.due import mark_post_deadline_prompt_shown, needs_post_deadline_prompt
from cramdeck.srs.router import ReviewRouter, default_router
from cramdeck.srs.types import (
    Card,
    DeadlineState,
    Deck,
    DeckBatch,
    Mastery,
    MemoryState,
    Mode,
    Persist,
    Rating,
    ReviewOutcome,
)

logger = logging.getLogger(__name__)


# --- Row <-> snapshot ---


def deck_from_row(row: DeckRow) -> Deck:
    return Deck(
        id=row.id,
        name=row.name,
        mode=Mode(row.mode),
        deadline=row.deadline,
        post_deadline_prompt_shown=row.post_deadline_prompt_shown,
    )


def card_from_row(row: CardRow) -> Card:
    """Build an engine card from a row, refusing rows whose columns disagree with their mode."""
    mode = Mode(row.mode)
    has_deadline = row.schedule is not None or row.step is not None
    has_memory = row.stability is not None or row.difficulty is not None

    if mode is Mode.DEADLINE:
        if has_memory or row.schedule is None or row.step is None or row.deadline is None:
            raise InconsistentModeState(f"Card {row.id} row does not hold a deadline state")
        state = DeadlineState(
            deadline=row.deadline,
            schedule=tuple(json.loads(row.schedule)),
            step=row.step,
            anchor=row.anchor or row.created_at.date(),
            next_due=row.next_due,
        )
    else:
        if has_deadline or row.stability is None or row.difficulty is None:
            raise InconsistentModeState(f"Card {row.id} row does not hold a memory-model state")
        state = MemoryState(
            stability=row.stability,
            difficulty=row.difficulty,
            next_due=row.next_due,
            last_review=row.last_review,
            review_count=row.review_count or 0,
            lapses=row.lapses or 0,
        )

    return Card(
        id=row.id,
        deck_id=row.deck_id,
        created_at=row.created_at,
        state=state,
        history=_parse_history(row.history),
        mastery=Mastery(row.mastery),
        suspended=row.suspended,
        front=row.front,
        back=row.back,
        media=tuple(json.loads(row.media)) if row.media else (),
    )


def write_card(row: CardRow, card: Card) -> None:
    """Copy a card snapshot onto its row, clearing the other mode's columns."""
    state = card.state
    row.mode = card.mode.value
    row.next_due = state.next_due
    row.mastery = card.mastery.value
    row.history = ",".join(r.name.lower() for r in card.history)
    row.suspended = card.suspended

    if isinstance(state, DeadlineState):
        row.deadline = state.deadline
        row.schedule = json.dumps(list(state.schedule))
        row.step = state.step
        row.anchor = state.anchor
        row.stability = row.difficulty = row.last_review = None
        row.review_count = row.lapses = None
    else:
        row.stability = state.stability
        row.difficulty = state.difficulty
        row.last_review = state.last_review
        row.review_count = state.review_count
        row.lapses = state.lapses
        row.deadline = row.schedule = row.step = row.anchor = None


def write_deck(row: DeckRow, deck: Deck) -> None:
    row.name = deck.name
    row.mode = deck.mode.value
    row.deadline = deck.deadline
    row.post_deadline_prompt_shown = deck.post_deadline_prompt_shown


def _with_session_count(stored: Card, session_card: Card) -> Card:
    """Carry a session's again-count onto the stored card, refusing stale copies."""
    session_state = session_card.state
    if isinstance(session_state, DeadlineState):
        session_state = replace(session_state, again_count=0)
    if session_state != stored.state:
        raise InconsistentModeState(
            f"Card {stored.id} changed since the session started; reload it"
        )
    if isinstance(stored.state, DeadlineState):
        state = replace(stored.state, again_count=session_card.state.again_count)
        return replace(stored, state=state)
    return stored


def _parse_history(raw: str) -> tuple[Rating, ...]:
    return tuple(Rating.parse(name) for name in raw.split(",") if name)


# --- Store ---


class CardStore:
    """Reads snapshots from and applies engine results to the database."""

    def __init__(self, db: AsyncSession, router: ReviewRouter = default_router) -> None:
        self.db = db
        self.router = router

    async def _deck_row(self, deck_id: str) -> DeckRow:
        row = await self.db.get(DeckRow, deck_id)
        if row is None:
            raise DeckNotFound(f"Deck {deck_id} not found")
        return row

    async def _card_row(self, card_id: str) -> CardRow:
        row = await self.db.get(CardRow, card_id)
        if row is None:
            raise CardNotFound(f"Card {card_id} not found")
        return row

    async def _card_rows(self, deck_id: str | None = None) -> list[CardRow]:
        stmt = select(CardRow).order_by(CardRow.created_at.asc(), CardRow.id.asc())
        if deck_id is not None:
            stmt = stmt.where(CardRow.deck_id == deck_id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # Reads

    async def get_deck(self, deck_id: str) -> Deck:
        return deck_from_row(await self._deck_row(deck_id))

    async def list_decks(self) -> list[Deck]:
        result = await self.db.execute(select(DeckRow).order_by(DeckRow.created_at.asc()))
        return [deck_from_row(row) for row in result.scalars().all()]

    async def get_card(self, card_id: str) -> Card:
        return card_from_row(await self._card_row(card_id))

    async def list_cards(self, deck_id: str | None = None) -> list[Card]:
        return [card_from_row(row) for row in await self._card_rows(deck_id)]

    async def decks_needing_prompt(self, today: date) -> list[Deck]:
        return [deck for deck in await self.list_decks() if needs_post_deadline_prompt(deck, today)]

    # Writes

    async def create_deck(
        self,
        name: str,
        mode: Mode,
        today: date,
        deadline: date | None = None,
    ) -> Deck:
        deck = new_deck(str(uuid.uuid4()), name, mode, today, deadline)
        row = DeckRow(id=deck.id)
        write_deck(row, deck)
        self.db.add(row)
        await self.db.commit()
        logger.info("Created %s deck %s (%s)", mode.value, deck.id, name)
        return deck

    async def add_cards(
        self,
        deck_id: str,
        contents: list[tuple[str, str]],
        today: date,
    ) -> list[Card]:
        """Accept front/back pairs into a deck; all or none are added."""
        deck = await self.get_deck(deck_id)
        cards = [
            self.router.create_card(deck, str(uuid.uuid4()), front, back, today)
            for front, back in contents
        ]
        for card in cards:
            row = CardRow(
                id=card.id,
                deck_id=deck.id,
                front=card.front,
                back=card.back,
                created_at=card.created_at,
            )
            write_card(row, card)
            self.db.add(row)
        await self.db.commit()
        logger.info("Added %d cards to deck %s", len(cards), deck.id)
        return cards

    async def delete_deck(self, deck_id: str) -> None:
        await self._deck_row(deck_id)
        card_ids = select(CardRow.id).where(CardRow.deck_id == deck_id)
        await self.db.execute(delete(ReviewLog).where(ReviewLog.card_id.in_(card_ids)))
        await self.db.execute(delete(CardRow).where(CardRow.deck_id == deck_id))
        await self.db.execute(delete(DeckRow).where(DeckRow.id == deck_id))
        await self.db.commit()
        logger.info("Deleted deck %s", deck_id)

    async def delete_card(self, card_id: str) -> None:
        await self._card_row(card_id)
        await self.db.execute(delete(ReviewLog).where(ReviewLog.card_id == card_id))
        await self.db.execute(delete(CardRow).where(CardRow.id == card_id))
        await self.db.commit()

    async def set_suspended(self, card_id: str, suspended: bool) -> Card:
        row = await self._card_row(card_id)
        row.suspended = suspended
        await self.db.commit()
        return card_from_row(row)

    async def review(
        self,
        card_id: str,
        rating: Rating | str | int,
        today: date,
        card: Card | None = None,
    ) -> ReviewOutcome:
        """Review a stored card and persist the outcome.

        ``card`` is a study session's copy. Only its session again-count is
        used; the review always runs on the stored state.

        Raises:
            InconsistentModeState: If the session copy no longer matches the
                stored card (the deck was converted or its deadline moved).
        """
        row = await self._card_row(card_id)
        stored = card_from_row(row)
        if card is not None:
            stored = _with_session_count(stored, card)
        outcome = self.router.review(stored, rating, today)
        self._apply_outcome(row, stored, outcome)
        await self.db.commit()
        return outcome

    def _apply_outcome(self, row: CardRow, before: Card, outcome: ReviewOutcome) -> None:
        if not isinstance(outcome, Persist):
            # Session requeue: only the rating history is kept
            row.history = ",".join(r.name.lower() for r in outcome.history)
            return

        delta = outcome.delta
        after = replace(before, state=delta.state, history=delta.history, mastery=delta.mastery)
        write_card(row, after)
        self.db.add(_review_log(before, delta))

    async def apply_batch(self, batch: DeckBatch) -> None:
        """Write a deck and all its cards in one transaction."""
        deck_row = await self._deck_row(batch.deck.id)
        rows = {row.id: row for row in await self._card_rows(batch.deck.id)}
        try:
            write_deck(deck_row, batch.deck)
            for card in batch.cards:
                row = rows.get(card.id)
                if row is None:
                    raise CardNotFound(f"Card {card.id} not found in deck {batch.deck.id}")
                write_card(row, card)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def edit_deadline(self, deck_id: str, new_deadline: date, today: date) -> DeckBatch:
        deck = await self.get_deck(deck_id)
        cards = await self.list_cards(deck_id)
        batch = edit_deadline(deck, cards, new_deadline, today, self.router)
        await self.apply_batch(batch)
        return batch

    async def convert(
        self,
        deck_id: str,
        target_mode: Mode,
        today: date,
        new_deadline: date | None = None,
    ) -> DeckBatch:
        deck = await self.get_deck(deck_id)
        cards = await self.list_cards(deck_id)
        batch = convert_deck_mode(deck, cards, target_mode, today, new_deadline, self.router)
        await self.apply_batch(batch)
        return batch

    async def mark_prompt_shown(self, deck_id: str) -> Deck:
        row = await self._deck_row(deck_id)
        deck = mark_post_deadline_prompt_shown(deck_from_row(row))
        write_deck(row, deck)
        await self.db.commit()
        return deck


def _review_log(before: Card, delta) -> ReviewLog:
    old, new = before.state, delta.state
    log = ReviewLog(
        card_id=before.id,
        deck_id=before.deck_id,
        mode=new.mode.value,
        rating=delta.rating.value,
        next_due=delta.next_due,
        interval_days=delta.interval_days,
        retrievability=delta.retrievability,
    )
    if isinstance(new, DeadlineState):
        log.step_before = old.step
        log.step_after = new.step
    else:
        log.stability_before = old.stability
        log.stability_after = new.stability
        log.difficulty_before = old.difficulty
        log.difficulty_after = new.difficulty
    return log
