"""API routes for due cards, single reviews and per-card actions."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from cramdeck.api.errors import http_error
from cramdeck.api.schemas import (
    CardResponse,
    PreviewResponse,
    ReviewRequest,
    ReviewResponse,
    SuspendRequest,
)
from cramdeck.database import get_session
from cramdeck.errors import NotFoundError, SchedulingError
from cramdeck.srs.dates import today
from cramdeck.srs.due import get_due_cards, order_for_review
from cramdeck.srs.preview import preview_intervals
from cramdeck.srs.types import Persist, Rating, ReviewOutcome
from cramdeck.store import CardStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["review"])


def review_response(outcome: ReviewOutcome) -> ReviewResponse:
    if isinstance(outcome, Persist):
        delta = outcome.delta
        return ReviewResponse(
            card_id=delta.card_id,
            rating=delta.rating.name.lower(),
            persisted=True,
            next_due=delta.next_due,
            interval_days=delta.interval_days,
            mastery=delta.mastery.value,
            retrievability=delta.retrievability,
        )
    return ReviewResponse(
        card_id=outcome.card_id,
        rating=Rating.AGAIN.name.lower(),
        persisted=False,
        again_count=outcome.again_count,
    )


@router.get("/due", response_model=list[CardResponse])
async def due_cards(
    deck_id: str | None = None,
    db: AsyncSession = Depends(get_session),
) -> list[CardResponse]:
    """Cards due today, across all decks or for one deck, in study order."""
    store = CardStore(db)
    try:
        decks = await store.list_decks()
        cards = await store.list_cards(deck_id)
    except SchedulingError as exc:
        raise http_error(exc) from exc

    now = today()
    due = order_for_review(get_due_cards(cards, decks, now, deck_id), decks, now)
    logger.info("%d cards due for %s", len(due), deck_id or "all decks")
    return [CardResponse.from_card(card) for card in due]


@router.post("/review/{card_id}", response_model=ReviewResponse)
async def review(
    card_id: str,
    request: ReviewRequest,
    db: AsyncSession = Depends(get_session),
) -> ReviewResponse:
    """Rate a card outside a study session."""
    try:
        outcome = await CardStore(db).review(card_id, request.rating, today())
    except (NotFoundError, SchedulingError) as exc:
        raise http_error(exc) from exc
    return review_response(outcome)


@router.get("/cards/{card_id}", response_model=CardResponse)
async def get_card(card_id: str, db: AsyncSession = Depends(get_session)) -> CardResponse:
    try:
        return CardResponse.from_card(await CardStore(db).get_card(card_id))
    except (NotFoundError, SchedulingError) as exc:
        raise http_error(exc) from exc


@router.get("/cards/{card_id}/preview", response_model=PreviewResponse)
async def preview(card_id: str, db: AsyncSession = Depends(get_session)) -> PreviewResponse:
    """The interval each rating would give the card today."""
    try:
        card = await CardStore(db).get_card(card_id)
        intervals = preview_intervals(card, today())
    except (NotFoundError, SchedulingError) as exc:
        raise http_error(exc) from exc
    return PreviewResponse(**vars(intervals))


@router.put("/cards/{card_id}/suspend", response_model=CardResponse)
async def suspend(
    card_id: str,
    request: SuspendRequest,
    db: AsyncSession = Depends(get_session),
) -> CardResponse:
    """Suspend or unsuspend a card; suspended cards are never due."""
    try:
        card = await CardStore(db).set_suspended(card_id, request.suspended)
    except (NotFoundError, SchedulingError) as exc:
        raise http_error(exc) from exc
    return CardResponse.from_card(card)


@router.delete("/cards/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_card(card_id: str, db: AsyncSession = Depends(get_session)) -> None:
    try:
        await CardStore(db).delete_card(card_id)
    except NotFoundError as exc:
        raise http_error(exc) from exc
