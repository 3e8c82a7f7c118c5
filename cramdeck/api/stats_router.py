"""API routes for deck progress statistics."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cramdeck.api.errors import http_error
from cramdeck.api.schemas import DeckStatsResponse
from cramdeck.config import settings
from cramdeck.database import get_session
from cramdeck.errors import NotFoundError, SchedulingError
from cramdeck.models.review_log import ReviewLog
from cramdeck.srs.dates import days_between, today
from cramdeck.srs.due import get_due_cards, is_emergency_day, is_final_review_day
from cramdeck.srs.types import Card, Deck, Mastery, MemoryState, Mode
from cramdeck.store import CardStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats", tags=["stats"])


def deck_progress(deck: Deck, cards: list[Card], total_reviews: int = 0) -> DeckStatsResponse:
    """Summarize a deck's cards as of today."""
    now = today()
    due = get_due_cards(cards, [deck], now, deck.id)
    deadline_deck = deck.mode is Mode.DEADLINE and deck.deadline is not None

    def count(mastery: Mastery) -> int:
        return sum(1 for card in cards if card.mastery is mastery)

    leeches = sum(
        1
        for card in cards
        if isinstance(card.state, MemoryState) and card.state.is_leech(settings.leech_threshold)
    )

    return DeckStatsResponse(
        deck_id=deck.id,
        mode=deck.mode,
        total_cards=len(cards),
        due_today=len(due),
        suspended=sum(1 for card in cards if card.suspended),
        struggling=count(Mastery.STRUGGLING),
        learning=count(Mastery.LEARNING),
        mastered=count(Mastery.MASTERED),
        leeches=leeches,
        total_reviews=total_reviews,
        days_left=max(0, days_between(now, deck.deadline)) if deadline_deck else None,
        final_review_day=deadline_deck and is_final_review_day(deck.deadline, now),
        emergency=deadline_deck and is_emergency_day(deck.deadline, now),
    )


@router.get("/decks/{deck_id}", response_model=DeckStatsResponse)
async def get_deck_stats(
    deck_id: str,
    db: AsyncSession = Depends(get_session),
) -> DeckStatsResponse:
    """Get progress statistics for a deck."""
    store = CardStore(db)
    try:
        deck = await store.get_deck(deck_id)
        cards = await store.list_cards(deck_id)
    except (NotFoundError, SchedulingError) as exc:
        raise http_error(exc) from exc

    reviews_stmt = select(func.count(ReviewLog.id)).where(ReviewLog.deck_id == deck_id)
    total_reviews = (await db.execute(reviews_stmt)).scalar() or 0

    return deck_progress(deck, cards, total_reviews)
