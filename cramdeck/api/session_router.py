"""API routes for study sessions."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from cramdeck.api.errors import http_error
from cramdeck.api.review_router import review_response
from cramdeck.api.schemas import (
    CardResponse,
    PreviewResponse,
    SessionAnswerRequest,
    SessionAnswerResponse,
    SessionCardResponse,
    SessionStartRequest,
    SessionStartResponse,
    SessionStatsResponse,
)
from cramdeck.database import get_session
from cramdeck.errors import InconsistentModeState, NotFoundError, SchedulingError
from cramdeck.srs.dates import today
from cramdeck.srs.preview import preview_intervals
from cramdeck.srs.session import StudySession, start_study_session
from cramdeck.store import CardStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session", tags=["session"])

# In-memory session store; sessions do not survive a restart
_active_sessions: dict[str, StudySession] = {}


def _get_active(session_id: str) -> StudySession:
    study_session = _active_sessions.get(session_id)
    if not study_session:
        raise HTTPException(status_code=404, detail="Session not found")
    return study_session


@router.post("/start", response_model=SessionStartResponse)
async def session_start(
    request: SessionStartRequest,
    db: AsyncSession = Depends(get_session),
) -> SessionStartResponse:
    """Start a study session over today's due cards."""
    store = CardStore(db)
    try:
        if request.deck_id is not None:
            await store.get_deck(request.deck_id)
        decks = await store.list_decks()
        cards = await store.list_cards(request.deck_id)
    except (NotFoundError, SchedulingError) as exc:
        raise http_error(exc) from exc

    study_session = start_study_session(cards, decks, today(), request.deck_id)
    if study_session.is_complete:
        raise HTTPException(status_code=404, detail="No cards available for review")

    session_id = str(uuid.uuid4())
    _active_sessions[session_id] = study_session

    return SessionStartResponse(
        session_id=session_id,
        deck_id=request.deck_id,
        total_cards=study_session.remaining,
    )


@router.get("/next/{session_id}", response_model=SessionCardResponse)
async def session_next(session_id: str) -> SessionCardResponse:
    """Get the card currently up, with its rating previews."""
    study_session = _get_active(session_id)
    card = study_session.current_card
    if card is None:
        raise HTTPException(status_code=410, detail="Session is complete")

    return SessionCardResponse(
        card=CardResponse.from_card(card),
        preview=PreviewResponse(**vars(preview_intervals(card, today()))),
        remaining=study_session.remaining,
    )


@router.post("/answer/{session_id}", response_model=SessionAnswerResponse)
async def session_answer(
    session_id: str,
    request: SessionAnswerRequest,
    db: AsyncSession = Depends(get_session),
) -> SessionAnswerResponse:
    """Rate the current card; persisted outcomes are written immediately."""
    study_session = _get_active(session_id)
    card = study_session.current_card
    if card is None:
        raise HTTPException(status_code=410, detail="Session is complete")

    if card.id != request.card_id:
        raise HTTPException(status_code=400, detail="Card ID mismatch")

    now = today()
    try:
        outcome = await CardStore(db).review(card.id, request.rating, now, card=card)
        study_session.answer(request.rating, now)
    except InconsistentModeState as exc:
        # The card was rescheduled outside this session
        study_session.drop_current()
        raise http_error(exc) from exc
    except (NotFoundError, SchedulingError) as exc:
        raise http_error(exc) from exc

    return SessionAnswerResponse(
        review=review_response(outcome),
        remaining=study_session.remaining,
        session_complete=study_session.is_complete,
    )


@router.get("/stats/{session_id}", response_model=SessionStatsResponse)
async def session_stats(session_id: str) -> SessionStatsResponse:
    """Get stats for the current session."""
    s = _get_active(session_id).stats
    return SessionStatsResponse(
        cards_reviewed=s.cards_reviewed,
        requeued=s.requeued,
        ratings=dict(s.ratings),
    )


@router.post("/end/{session_id}")
async def session_end(session_id: str) -> dict:
    """End a session and clean up."""
    study_session = _active_sessions.pop(session_id, None)
    if not study_session:
        raise HTTPException(status_code=404, detail="Session not found")

    s = study_session.stats
    logger.info("Session %s ended after %d reviews", session_id, s.cards_reviewed)
    return {
        "status": "ended",
        "cards_reviewed": s.cards_reviewed,
        "requeued": s.requeued,
    }
