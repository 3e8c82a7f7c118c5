"""Tests for study sessions: ordering, requeue and stats."""

from datetime import date, timedelta

import pytest

from cramdeck.srs.router import ReviewRouter
from cramdeck.srs.session import StudySession, start_study_session
from cramdeck.srs.types import Deck, Mode, Persist, Rating, RequeueOnly

TODAY = date(2026, 3, 1)


class TestStudySession:
    def setup_method(self) -> None:
        self.router = ReviewRouter()
        self.deck = Deck(id="d", name="Exam", mode=Mode.DEADLINE, deadline=TODAY + timedelta(30))
        self.cards = [
            self.router.create_card(self.deck, f"c{i}", f"q{i}", f"a{i}", TODAY) for i in range(5)
        ]
        self.session = StudySession(cards=self.cards, router=self.router, requeue_gap=3)

    def test_walks_cards_in_order(self) -> None:
        seen = []
        while not self.session.is_complete:
            seen.append(self.session.current_card.id)
            self.session.answer(Rating.GOOD, TODAY)
        assert seen == ["c0", "c1", "c2", "c3", "c4"]
        assert self.session.current_card is None

    def test_again_requeues_after_gap(self) -> None:
        outcome = self.session.answer(Rating.AGAIN, TODAY)
        assert isinstance(outcome, RequeueOnly)
        assert self.session.remaining == 5

        for _ in range(3):
            self.session.answer(Rating.GOOD, TODAY)

        card = self.session.current_card
        assert card.id == "c0"
        assert card.state.again_count == 1
        assert card.state.step == 0

    def test_requeue_near_end_goes_last(self) -> None:
        for _ in range(4):
            self.session.answer(Rating.GOOD, TODAY)
        self.session.answer(Rating.AGAIN, TODAY)
        assert self.session.current_card.id == "c4"
        assert self.session.remaining == 1

    def test_good_after_requeue_clears_again_count(self) -> None:
        session = StudySession(cards=self.cards[:1], router=self.router)
        session.answer(Rating.AGAIN, TODAY)
        outcome = session.answer(Rating.GOOD, TODAY)
        assert isinstance(outcome, Persist)
        assert outcome.delta.state.again_count == 0
        assert outcome.delta.history == (Rating.AGAIN, Rating.GOOD)
        assert session.is_complete

    def test_stats(self) -> None:
        self.session.answer(Rating.AGAIN, TODAY)
        self.session.answer("good", TODAY)
        self.session.answer(4, TODAY)
        stats = self.session.stats
        assert stats.cards_reviewed == 3
        assert stats.requeued == 1
        assert stats.ratings == {"again": 1, "hard": 0, "good": 1, "easy": 1}

    def test_drop_current_removes_pending_requeues(self) -> None:
        self.session.answer(Rating.AGAIN, TODAY)
        for _ in range(3):
            self.session.answer(Rating.GOOD, TODAY)
        assert self.session.current_card.id == "c0"

        dropped = self.session.drop_current()
        assert dropped.id == "c0"
        assert self.session.current_card.id == "c4"
        assert self.session.remaining == 1
        assert self.session.stats.cards_reviewed == 4

    def test_drop_current_on_complete_session(self) -> None:
        session = StudySession(cards=[], router=self.router)
        assert session.drop_current() is None

    def test_answer_after_completion(self) -> None:
        session = StudySession(cards=[], router=self.router)
        assert session.is_complete
        with pytest.raises(IndexError):
            session.answer(Rating.GOOD, TODAY)


class TestStartStudySession:
    def test_only_due_cards_in_study_order(self) -> None:
        router = ReviewRouter()
        cram = Deck(id="cram", name="Exam", mode=Mode.DEADLINE, deadline=TODAY + timedelta(1))
        memory = Deck(id="mem", name="Spanish", mode=Mode.MEMORY_MODEL)
        cards = [
            router.create_card(memory, "m1", "q", "a", TODAY),  # due in 2 days
            router.create_card(cram, "c1", "q", "a", TODAY - timedelta(days=5)),
        ]
        session = start_study_session(cards, [cram, memory], TODAY, router=router)
        assert session.remaining == 1
        assert session.current_card.id == "c1"

    def test_memory_again_is_not_requeued(self) -> None:
        router = ReviewRouter()
        memory = Deck(id="mem", name="Spanish", mode=Mode.MEMORY_MODEL)
        card = router.create_card(memory, "m1", "q", "a", TODAY - timedelta(days=5))
        session = start_study_session([card], [memory], TODAY, router=router)
        outcome = session.answer(Rating.AGAIN, TODAY)
        assert isinstance(outcome, Persist)
        assert session.is_complete
        assert session.stats.requeued == 0
