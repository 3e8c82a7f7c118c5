"""Tests for due selection, deadline day flags and the post-deadline prompt."""

from dataclasses import replace
from datetime import date, timedelta

from cramdeck.srs.due import (
    get_due_cards,
    is_emergency_day,
    is_final_review_day,
    mark_post_deadline_prompt_shown,
    needs_post_deadline_prompt,
    order_for_review,
)
from cramdeck.srs.router import ReviewRouter
from cramdeck.srs.types import Deck, Mastery, Mode

TODAY = date(2026, 3, 1)


def days(n: int) -> date:
    return TODAY + timedelta(days=n)


def with_due(card, due: date):
    return replace(card, state=replace(card.state, next_due=due))


class TestDayFlags:
    def test_final_review_day(self) -> None:
        assert is_final_review_day(days(1), TODAY)
        assert not is_final_review_day(days(2), TODAY)
        assert not is_final_review_day(TODAY, TODAY)
        assert not is_final_review_day(None, TODAY)

    def test_emergency_day(self) -> None:
        assert is_emergency_day(TODAY, TODAY)
        assert is_emergency_day(days(-5), TODAY)
        assert not is_emergency_day(days(1), TODAY)
        assert not is_emergency_day(None, TODAY)


class TestGetDueCards:
    def setup_method(self) -> None:
        router = ReviewRouter()
        created = days(-20)
        self.cram = Deck(id="cram", name="Exam", mode=Mode.DEADLINE, deadline=days(10))
        self.memory = Deck(id="mem", name="Spanish", mode=Mode.MEMORY_MODEL)
        self.decks = [self.cram, self.memory]
        self.cards = [
            with_due(router.create_card(self.cram, "c1", "q", "a", created), days(-1)),
            with_due(router.create_card(self.cram, "c2", "q", "a", created), days(3)),
            with_due(router.create_card(self.memory, "m1", "q", "a", created), TODAY),
            with_due(router.create_card(self.memory, "m2", "q", "a", created), days(7)),
        ]

    def test_base_rule(self) -> None:
        due = get_due_cards(self.cards, self.decks, TODAY)
        assert [card.id for card in due] == ["c1", "m1"]

    def test_deck_filter(self) -> None:
        due = get_due_cards(self.cards, self.decks, TODAY, deck_id="mem")
        assert [card.id for card in due] == ["m1"]

    def test_emergency_day_makes_whole_deck_due(self) -> None:
        decks = [replace(self.cram, deadline=TODAY), self.memory]
        due = get_due_cards(self.cards, decks, TODAY)
        assert [card.id for card in due] == ["c1", "c2", "m1"]

    def test_idempotent(self) -> None:
        first = get_due_cards(self.cards, self.decks, TODAY)
        assert get_due_cards(self.cards, self.decks, TODAY) == first

    def test_suspended_cards_are_never_due(self) -> None:
        cards = [replace(self.cards[0], suspended=True), *self.cards[1:]]
        decks = [replace(self.cram, deadline=TODAY), self.memory]
        due = get_due_cards(cards, decks, TODAY)
        assert "c1" not in [card.id for card in due]

    def test_card_without_deck_is_skipped(self) -> None:
        due = get_due_cards(self.cards, [self.memory], TODAY)
        assert [card.id for card in due] == ["m1"]


class TestOrdering:
    def test_final_review_day_puts_weakest_first(self) -> None:
        router = ReviewRouter()
        deck = Deck(id="cram", name="Exam", mode=Mode.DEADLINE, deadline=days(1))
        other = Deck(id="mem", name="Spanish", mode=Mode.MEMORY_MODEL)
        base = router.create_card(deck, "x", "q", "a", days(-10))
        cards = [
            replace(base, id="mastered", mastery=Mastery.MASTERED),
            router.create_card(other, "other", "q", "a", days(-10)),
            replace(base, id="struggling", mastery=Mastery.STRUGGLING),
            replace(base, id="learning", mastery=Mastery.LEARNING),
        ]
        ordered = order_for_review(cards, [deck, other], TODAY)
        assert [card.id for card in ordered] == ["struggling", "learning", "mastered", "other"]


class TestPostDeadlinePrompt:
    def test_prompt_fires_once(self) -> None:
        deck = Deck(id="cram", name="Exam", mode=Mode.DEADLINE, deadline=TODAY)
        assert needs_post_deadline_prompt(deck, TODAY)
        shown = mark_post_deadline_prompt_shown(deck)
        assert not needs_post_deadline_prompt(shown, TODAY)
        assert not needs_post_deadline_prompt(shown, days(5))

    def test_not_before_deadline(self) -> None:
        deck = Deck(id="cram", name="Exam", mode=Mode.DEADLINE, deadline=days(1))
        assert not needs_post_deadline_prompt(deck, TODAY)

    def test_memory_decks_never_prompt(self) -> None:
        assert not needs_post_deadline_prompt(Deck(id="m", name="S", mode=Mode.MEMORY_MODEL), TODAY)
