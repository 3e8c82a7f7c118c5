"""Dual-mode scheduling engine (deadline ladder + memory model)."""

from .conversion import convert_deck_mode, edit_deadline, new_deck, validate_deadline
from .deadline import DeadlineScheduler
from .due import (
    get_due_cards,
    is_emergency_day,
    is_final_review_day,
    mark_post_deadline_prompt_shown,
    needs_post_deadline_prompt,
)
from .fsrs import MemoryModelScheduler
from .mastery import classify_mastery
from .preview import IntervalPreview, format_interval, preview_intervals
from .router import (
    ReviewRouter,
    create_card,
    generate_schedule,
    review_card,
    schedule_card_creation,
)
from .session import StudySession, start_study_session
from .types import (
    Card,
    DeadlineState,
    Deck,
    DeckBatch,
    Mastery,
    MemoryState,
    Mode,
    Persist,
    Rating,
    RequeueOnly,
    ReviewDelta,
)

__all__ = [
    "Card",
    "DeadlineScheduler",
    "DeadlineState",
    "Deck",
    "DeckBatch",
    "IntervalPreview",
    "Mastery",
    "MemoryModelScheduler",
    "MemoryState",
    "Mode",
    "Persist",
    "Rating",
    "RequeueOnly",
    "ReviewDelta",
    "ReviewRouter",
    "StudySession",
    "classify_mastery",
    "convert_deck_mode",
    "create_card",
    "edit_deadline",
    "format_interval",
    "generate_schedule",
    "get_due_cards",
    "is_emergency_day",
    "is_final_review_day",
    "mark_post_deadline_prompt_shown",
    "needs_post_deadline_prompt",
    "new_deck",
    "preview_intervals",
    "review_card",
    "schedule_card_creation",
    "start_study_session",
    "validate_deadline",
]
