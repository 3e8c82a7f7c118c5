"""Tests for the database-backed card store."""

from dataclasses import replace
from datetime import date, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm.exc import StaleDataError

from cramdeck.database import async_session
from cramdeck.errors import (
    CardNotFound,
    DeckNotFound,
    InconsistentModeState,
    InvalidDeadline,
    InvalidRating,
)
from cramdeck.models.card import Card as CardRow
from cramdeck.models.review_log import ReviewLog
from cramdeck.srs.types import (
    DeadlineState,
    DeckBatch,
    MemoryState,
    Mode,
    Persist,
    Rating,
    RequeueOnly,
)
from cramdeck.store import CardStore

TODAY = date(2026, 3, 1)


def days(n: int) -> date:
    return TODAY + timedelta(days=n)


async def _log_count(db) -> int:
    return (await db.execute(select(func.count(ReviewLog.id)))).scalar() or 0


@pytest.mark.asyncio
async def test_create_and_read_decks(db) -> None:
    store = CardStore(db)
    cram = await store.create_deck("Exam", Mode.DEADLINE, TODAY, days(30))
    memory = await store.create_deck("Spanish", Mode.MEMORY_MODEL, TODAY)

    assert await store.get_deck(cram.id) == cram
    assert {deck.id for deck in await store.list_decks()} == {cram.id, memory.id}
    with pytest.raises(DeckNotFound):
        await store.get_deck("missing")


@pytest.mark.asyncio
async def test_invalid_deadline_stores_nothing(db) -> None:
    store = CardStore(db)
    with pytest.raises(InvalidDeadline):
        await store.create_deck("Exam", Mode.DEADLINE, TODAY, TODAY)
    assert await store.list_decks() == []


@pytest.mark.asyncio
async def test_cards_round_trip(db) -> None:
    store = CardStore(db)
    deck = await store.create_deck("Exam", Mode.DEADLINE, TODAY, days(30))
    added = await store.add_cards(deck.id, [("q1", "a1"), ("q2", "a2")], TODAY)

    loaded = await store.list_cards(deck.id)
    assert {card.id for card in loaded} == {card.id for card in added}
    card = await store.get_card(added[0].id)
    assert isinstance(card.state, DeadlineState)
    assert card.state == added[0].state
    assert card.front == "q1"
    with pytest.raises(CardNotFound):
        await store.get_card("missing")


@pytest.mark.asyncio
async def test_add_cards_to_missing_deck(db) -> None:
    with pytest.raises(DeckNotFound):
        await CardStore(db).add_cards("missing", [("q", "a")], TODAY)


class TestReviews:
    @pytest.mark.asyncio
    async def test_deadline_good_is_persisted_and_logged(self, db) -> None:
        store = CardStore(db)
        deck = await store.create_deck("Exam", Mode.DEADLINE, TODAY, days(30))
        (card,) = await store.add_cards(deck.id, [("q", "a")], TODAY)

        outcome = await store.review(card.id, Rating.GOOD, TODAY)
        assert isinstance(outcome, Persist)

        stored = await store.get_card(card.id)
        assert stored.state.step == 1
        assert stored.next_due == days(1)
        assert stored.history == (Rating.GOOD,)

        log = (await db.execute(select(ReviewLog))).scalar_one()
        assert (log.step_before, log.step_after) == (0, 1)
        assert log.rating == 3
        assert log.stability_before is None

    @pytest.mark.asyncio
    async def test_deadline_again_only_keeps_history(self, db) -> None:
        store = CardStore(db)
        deck = await store.create_deck("Exam", Mode.DEADLINE, TODAY, days(30))
        (card,) = await store.add_cards(deck.id, [("q", "a")], TODAY)
        await store.review(card.id, Rating.GOOD, TODAY)
        before = await store.get_card(card.id)

        outcome = await store.review(card.id, "again", TODAY)
        assert isinstance(outcome, RequeueOnly)

        after = await store.get_card(card.id)
        assert after.state.step == before.state.step
        assert after.next_due == before.next_due
        assert after.history == (Rating.GOOD, Rating.AGAIN)
        assert await _log_count(db) == 1

    @pytest.mark.asyncio
    async def test_memory_again_is_a_logged_lapse(self, db) -> None:
        store = CardStore(db)
        deck = await store.create_deck("Spanish", Mode.MEMORY_MODEL, TODAY)
        (card,) = await store.add_cards(deck.id, [("hola", "hello")], TODAY)

        await store.review(card.id, Rating.AGAIN, TODAY)

        stored = await store.get_card(card.id)
        assert isinstance(stored.state, MemoryState)
        assert stored.state.stability < card.state.stability
        assert stored.state.lapses == 1
        assert stored.state.last_review == TODAY
        log = (await db.execute(select(ReviewLog))).scalar_one()
        assert log.stability_after < log.stability_before
        assert log.retrievability == pytest.approx(0.9)

    @pytest.mark.asyncio
    async def test_session_copy_only_contributes_again_count(self, db) -> None:
        store = CardStore(db)
        deck = await store.create_deck("Exam", Mode.DEADLINE, TODAY, days(30))
        (card,) = await store.add_cards(deck.id, [("q", "a")], TODAY)
        session_card = replace(card, state=replace(card.state, again_count=1))

        outcome = await store.review(card.id, Rating.AGAIN, TODAY, card=session_card)
        assert isinstance(outcome, RequeueOnly)
        assert outcome.again_count == 2

    @pytest.mark.asyncio
    async def test_stale_session_copy_after_convert_is_refused(self, db) -> None:
        store = CardStore(db)
        deck = await store.create_deck("Exam", Mode.DEADLINE, TODAY, days(30))
        (card,) = await store.add_cards(deck.id, [("q", "a")], TODAY)
        session_card = await store.get_card(card.id)

        await store.convert(deck.id, Mode.MEMORY_MODEL, TODAY)
        with pytest.raises(InconsistentModeState):
            await store.review(card.id, Rating.GOOD, TODAY, card=session_card)

        stored = await store.get_card(card.id)
        assert stored.mode is (await store.get_deck(deck.id)).mode
        assert isinstance(stored.state, MemoryState)
        assert await _log_count(db) == 0

    @pytest.mark.asyncio
    async def test_stale_session_copy_after_deadline_edit_is_refused(self, db) -> None:
        store = CardStore(db)
        deck = await store.create_deck("Exam", Mode.DEADLINE, TODAY, days(30))
        (card,) = await store.add_cards(deck.id, [("q", "a")], TODAY)
        session_card = await store.get_card(card.id)

        await store.edit_deadline(deck.id, days(60), TODAY)
        with pytest.raises(InconsistentModeState):
            await store.review(card.id, Rating.GOOD, TODAY, card=session_card)
        assert (await store.get_card(card.id)).state.deadline == days(60)

    @pytest.mark.asyncio
    async def test_invalid_rating_changes_nothing(self, db) -> None:
        store = CardStore(db)
        deck = await store.create_deck("Spanish", Mode.MEMORY_MODEL, TODAY)
        (card,) = await store.add_cards(deck.id, [("hola", "hello")], TODAY)

        with pytest.raises(InvalidRating):
            await store.review(card.id, "perfect", TODAY)
        assert await store.get_card(card.id) == card
        assert await _log_count(db) == 0


class TestDeckBatches:
    @pytest.mark.asyncio
    async def test_convert_rewrites_every_row(self, db) -> None:
        store = CardStore(db)
        deck = await store.create_deck("Exam", Mode.DEADLINE, TODAY, days(30))
        await store.add_cards(deck.id, [("q1", "a1"), ("q2", "a2"), ("q3", "a3")], TODAY)

        batch = await store.convert(deck.id, Mode.MEMORY_MODEL, TODAY)
        assert batch.deck.mode is Mode.MEMORY_MODEL

        rows = (await db.execute(select(CardRow))).scalars().all()
        assert all(row.mode == "memory_model" for row in rows)
        assert all(row.schedule is None and row.step is None for row in rows)
        assert all(row.stability is not None for row in rows)
        assert (await store.get_deck(deck.id)).mode is Mode.MEMORY_MODEL

    @pytest.mark.asyncio
    async def test_convert_back_needs_deadline(self, db) -> None:
        store = CardStore(db)
        deck = await store.create_deck("Spanish", Mode.MEMORY_MODEL, TODAY)
        await store.add_cards(deck.id, [("q", "a")], TODAY)

        with pytest.raises(InvalidDeadline):
            await store.convert(deck.id, Mode.DEADLINE, TODAY, TODAY)
        assert (await store.get_deck(deck.id)).mode is Mode.MEMORY_MODEL

        await store.convert(deck.id, Mode.DEADLINE, TODAY, days(14))
        (card,) = await store.list_cards(deck.id)
        assert isinstance(card.state, DeadlineState)
        assert card.state.step == 0
        assert card.state.anchor == TODAY

    @pytest.mark.asyncio
    async def test_edit_deadline(self, db) -> None:
        store = CardStore(db)
        deck = await store.create_deck("Exam", Mode.DEADLINE, TODAY, days(30))
        (card,) = await store.add_cards(deck.id, [("q", "a")], TODAY)
        for _ in range(3):
            await store.review(card.id, Rating.GOOD, TODAY)

        await store.edit_deadline(deck.id, days(60), TODAY)

        stored = await store.get_card(card.id)
        assert stored.state.deadline == days(60)
        assert stored.state.step == 3
        assert (await store.get_deck(deck.id)).deadline == days(60)

    @pytest.mark.asyncio
    async def test_failed_batch_is_rolled_back(self, db) -> None:
        store = CardStore(db)
        deck = await store.create_deck("Exam", Mode.DEADLINE, TODAY, days(30))
        (card,) = await store.add_cards(deck.id, [("q", "a")], TODAY)
        batch = await store.edit_deadline(deck.id, days(60), TODAY)

        stray = replace(batch.cards[0], id="not-in-deck")
        renamed = replace(batch.deck, name="Renamed")
        with pytest.raises(CardNotFound):
            await store.apply_batch(DeckBatch(deck=renamed, cards=[stray]))

        assert (await store.get_deck(deck.id)).name == "Exam"
        assert (await store.get_card(card.id)).state.deadline == days(60)

    @pytest.mark.asyncio
    async def test_mismatched_row_is_refused(self, db) -> None:
        store = CardStore(db)
        deck = await store.create_deck("Exam", Mode.DEADLINE, TODAY, days(30))
        (card,) = await store.add_cards(deck.id, [("q", "a")], TODAY)

        row = await db.get(CardRow, card.id)
        row.stability = 3.0
        await db.commit()

        with pytest.raises(InconsistentModeState):
            await store.get_card(card.id)


class TestDeckLifecycle:
    @pytest.mark.asyncio
    async def test_delete_deck_removes_cards_and_logs(self, db) -> None:
        store = CardStore(db)
        deck = await store.create_deck("Exam", Mode.DEADLINE, TODAY, days(30))
        other = await store.create_deck("Spanish", Mode.MEMORY_MODEL, TODAY)
        (card,) = await store.add_cards(deck.id, [("q", "a")], TODAY)
        (kept,) = await store.add_cards(other.id, [("hola", "hello")], TODAY)
        await store.review(card.id, Rating.GOOD, TODAY)

        await store.delete_deck(deck.id)

        with pytest.raises(DeckNotFound):
            await store.get_deck(deck.id)
        assert [c.id for c in await store.list_cards()] == [kept.id]
        assert await _log_count(db) == 0

    @pytest.mark.asyncio
    async def test_post_deadline_prompt(self, db) -> None:
        store = CardStore(db)
        deck = await store.create_deck("Exam", Mode.DEADLINE, TODAY, days(5))

        assert await store.decks_needing_prompt(days(4)) == []
        assert [d.id for d in await store.decks_needing_prompt(days(5))] == [deck.id]

        shown = await store.mark_prompt_shown(deck.id)
        assert shown.post_deadline_prompt_shown
        assert await store.decks_needing_prompt(days(6)) == []

    @pytest.mark.asyncio
    async def test_suspend(self, db) -> None:
        store = CardStore(db)
        deck = await store.create_deck("Spanish", Mode.MEMORY_MODEL, TODAY)
        (card,) = await store.add_cards(deck.id, [("hola", "hello")], TODAY)

        assert (await store.set_suspended(card.id, True)).suspended
        assert (await store.get_card(card.id)).suspended


class TestConcurrentWrites:
    @pytest.mark.asyncio
    async def test_stale_update_fails_and_keeps_first_write(self, db) -> None:
        deck = await CardStore(db).create_deck("Exam", Mode.DEADLINE, TODAY, days(30))
        (card,) = await CardStore(db).add_cards(deck.id, [("q", "a")], TODAY)

        async with async_session() as first, async_session() as second:
            first_store, second_store = CardStore(first), CardStore(second)
            await first_store.get_card(card.id)
            await second_store.get_card(card.id)

            await first_store.review(card.id, Rating.GOOD, TODAY)
            with pytest.raises(StaleDataError):
                await second_store.review(card.id, Rating.EASY, TODAY)
            await second.rollback()

        async with async_session() as fresh:
            stored = await CardStore(fresh).get_card(card.id)
            row = await fresh.get(CardRow, card.id)
        assert stored.history == (Rating.GOOD,)
        assert stored.state.step == 1
        assert row.version == 2
        assert await _log_count(db) == 1
