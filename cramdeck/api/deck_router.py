"""API routes for decks and the cards in them."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from cramdeck.api.errors import http_error
from cramdeck.api.schemas import (
    AddCardsRequest,
    CardResponse,
    ConvertRequest,
    DeadlineRequest,
    DeckCreateRequest,
    DeckResponse,
)
from cramdeck.database import get_session
from cramdeck.errors import NotFoundError, SchedulingError
from cramdeck.srs.dates import today
from cramdeck.store import CardStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/decks", tags=["decks"])


@router.get("", response_model=list[DeckResponse])
async def list_decks(db: AsyncSession = Depends(get_session)) -> list[DeckResponse]:
    return [DeckResponse.from_deck(deck) for deck in await CardStore(db).list_decks()]


@router.post("", response_model=DeckResponse, status_code=status.HTTP_201_CREATED)
async def create_deck(
    request: DeckCreateRequest,
    db: AsyncSession = Depends(get_session),
) -> DeckResponse:
    """Create a deck; deadline decks need a deadline after today."""
    try:
        store = CardStore(db)
        deck = await store.create_deck(request.name, request.mode, today(), request.deadline)
    except SchedulingError as exc:
        raise http_error(exc) from exc
    return DeckResponse.from_deck(deck)


@router.get("/prompts", response_model=list[DeckResponse])
async def list_prompts(db: AsyncSession = Depends(get_session)) -> list[DeckResponse]:
    """Decks whose deadline has arrived and still need the "what next?" prompt."""
    decks = await CardStore(db).decks_needing_prompt(today())
    return [DeckResponse.from_deck(deck) for deck in decks]


@router.get("/{deck_id}", response_model=DeckResponse)
async def get_deck(deck_id: str, db: AsyncSession = Depends(get_session)) -> DeckResponse:
    try:
        return DeckResponse.from_deck(await CardStore(db).get_deck(deck_id))
    except NotFoundError as exc:
        raise http_error(exc) from exc


@router.delete("/{deck_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_deck(deck_id: str, db: AsyncSession = Depends(get_session)) -> None:
    """Delete a deck and all its cards."""
    try:
        await CardStore(db).delete_deck(deck_id)
    except NotFoundError as exc:
        raise http_error(exc) from exc


@router.get("/{deck_id}/cards", response_model=list[CardResponse])
async def list_cards(deck_id: str, db: AsyncSession = Depends(get_session)) -> list[CardResponse]:
    store = CardStore(db)
    try:
        await store.get_deck(deck_id)
        cards = await store.list_cards(deck_id)
    except (NotFoundError, SchedulingError) as exc:
        raise http_error(exc) from exc
    return [CardResponse.from_card(card) for card in cards]


@router.post(
    "/{deck_id}/cards",
    response_model=list[CardResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_cards(
    deck_id: str,
    request: AddCardsRequest,
    db: AsyncSession = Depends(get_session),
) -> list[CardResponse]:
    """Add cards to a deck; they inherit its mode and deadline."""
    contents = [(card.front, card.back) for card in request.cards]
    try:
        cards = await CardStore(db).add_cards(deck_id, contents, today())
    except (NotFoundError, SchedulingError) as exc:
        raise http_error(exc) from exc
    return [CardResponse.from_card(card) for card in cards]


@router.put("/{deck_id}/deadline", response_model=DeckResponse)
async def edit_deadline(
    deck_id: str,
    request: DeadlineRequest,
    db: AsyncSession = Depends(get_session),
) -> DeckResponse:
    """Move a deadline deck's deadline and reschedule its cards."""
    try:
        batch = await CardStore(db).edit_deadline(deck_id, request.deadline, today())
    except (NotFoundError, SchedulingError) as exc:
        raise http_error(exc) from exc
    return DeckResponse.from_deck(batch.deck)


@router.post("/{deck_id}/convert", response_model=DeckResponse)
async def convert_deck(
    deck_id: str,
    request: ConvertRequest,
    db: AsyncSession = Depends(get_session),
) -> DeckResponse:
    """Switch a deck between deadline and memory-model scheduling."""
    try:
        batch = await CardStore(db).convert(deck_id, request.mode, today(), request.deadline)
    except (NotFoundError, SchedulingError) as exc:
        raise http_error(exc) from exc
    return DeckResponse.from_deck(batch.deck)


@router.post("/{deck_id}/prompt-shown", response_model=DeckResponse)
async def mark_prompt_shown(deck_id: str, db: AsyncSession = Depends(get_session)) -> DeckResponse:
    try:
        return DeckResponse.from_deck(await CardStore(db).mark_prompt_shown(deck_id))
    except NotFoundError as exc:
        raise http_error(exc) from exc
