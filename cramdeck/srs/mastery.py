"""Three-level mastery labels derived from stored scheduling state.

The label is a pure function of what the store persists (state block and
trailing history), so it can be recomputed from storage at any time.
"""

from cramdeck.srs.types import Card, DeadlineState, Mastery, MemoryState, Rating

# Deadline mode
REPEATED_AGAIN = 2  # "again" ratings in the trailing history that mean struggling
NEAR_END_PROGRESS = 0.8  # share of the ladder climbed that counts as near the end
RECENT_WINDOW = 3

# Memory model
MASTERED_STABILITY = 21.0  # three weeks
MASTERED_MAX_LAPSE_RATE = 0.1
STRUGGLING_STABILITY = 1.5
STRUGGLING_LAPSE_RATE = 0.4
STRUGGLING_MIN_LAPSES = 2


def classify_mastery(card: Card) -> Mastery:
    """Collapse a card's scheduling state into STRUGGLING / LEARNING / MASTERED."""
    if isinstance(card.state, DeadlineState):
        return classify_deadline(card.state, card.history)
    return classify_memory(card.state)


def classify_deadline(state: DeadlineState, history: tuple[Rating, ...]) -> Mastery:
    if history.count(Rating.AGAIN) >= REPEATED_AGAIN:
        return Mastery.STRUGGLING

    progress = (state.step + 1) / len(state.schedule)
    recent = history[-RECENT_WINDOW:]
    if history and progress >= NEAR_END_PROGRESS and Rating.AGAIN not in recent:
        return Mastery.MASTERED
    return Mastery.LEARNING


def classify_memory(state: MemoryState) -> Mastery:
    frequent_lapses = (
        state.lapses >= STRUGGLING_MIN_LAPSES and state.lapse_rate >= STRUGGLING_LAPSE_RATE
    )
    if state.stability < STRUGGLING_STABILITY or frequent_lapses:
        return Mastery.STRUGGLING
    if state.stability >= MASTERED_STABILITY and state.lapse_rate <= MASTERED_MAX_LAPSE_RATE:
        return Mastery.MASTERED
    return Mastery.LEARNING
