"""FSRS-style memory model scheduler for long-term decks.

A simplified FSRS-4 implementation working at day granularity.
Reference: https://github.com/open-spaced-repetition/fsrs4anki

Key concepts:
- Stability (S): Days until the forgetting curve decays by the target factor.
- Difficulty (D): A value between 1 and 10 representing inherent card difficulty.
- Retrievability (R): The probability of recall at a given time since last review.
  A card that was just reviewed sits at 0.9 and decays from there.
- Rating: Again / Hard / Good / Easy
"""

import logging
import math
from dataclasses import dataclass
from datetime import date

from cramdeck.config import settings
from cramdeck.srs.dates import add_days, days_between
from cramdeck.srs.types import Mastery, MemoryState, Rating

logger = logging.getLogger(__name__)

# FSRS-4 default parameters
# w[0..3]: initial stability per first rating (unused: cards are seeded by mastery)
# w[4..5]: difficulty baseline (unused)
# w[6]: difficulty shift per rating step
# w[7]: unused
# w[8]: stability growth base (exponent)
# w[9]: stability saturation (power)
# w[10]: retrievability influence on growth
# w[11..14]: lapse stability base, difficulty power, stability power, retrievability factor
# w[15]: hard penalty on growth
# w[16]: unused
DEFAULT_WEIGHTS = [
    0.4,  # w0
    0.6,  # w1
    2.4,  # w2
    5.8,  # w3
    4.93,  # w4
    0.94,  # w5
    0.86,  # w6: difficulty shift per rating step
    0.01,  # w7
    1.49,  # w8: growth base
    0.14,  # w9: stability saturation
    0.94,  # w10: retrievability influence
    2.18,  # w11: lapse base
    0.05,  # w12: lapse difficulty power
    0.34,  # w13: lapse stability power
    1.26,  # w14: lapse retrievability factor
    0.29,  # w15: hard penalty
    2.61,  # w16
]

DEFAULT_TARGET_RETENTION = 0.9

# Recall estimate right after a review, and for cards never reviewed
INITIAL_RETRIEVABILITY = 0.9
# The forgetting curve loses this factor every S days
DECAY_BASE = 0.9
EASY_BONUS = 1.3
# A lapse keeps at most this share of the previous stability
LAPSE_CAP = 0.5

MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0
MIN_STABILITY = 0.1
MAX_STABILITY = 1_000_000.0

# Stability/difficulty seeds for cards entering the memory model, keyed by mastery
MASTERY_SEEDS: dict[Mastery, tuple[float, float]] = {
    Mastery.MASTERED: (4.0, 3.0),
    Mastery.LEARNING: (2.0, 5.0),
    Mastery.STRUGGLING: (1.0, 7.0),
}


@dataclass
class ReviewResult:
    """The result of applying a review to a card."""

    new_state: MemoryState
    interval_days: int
    retrievability: float  # Estimated recall probability at time of review


class MemoryModelScheduler:
    """Adaptive forgetting-curve scheduler."""

    def __init__(
        self,
        weights: list[float] | None = None,
        target_retention: float = settings.target_retention,
        maximum_interval: int = settings.maximum_interval,
    ) -> None:
        """Initialize with optional custom weights, retention target and interval cap."""
        self.w = weights or DEFAULT_WEIGHTS
        self.target_retention = target_retention
        self.maximum_interval = maximum_interval

    def retrievability(self, stability: float, days_since_review: float) -> float:
        """Probability of recall ``days_since_review`` days after a review.

        R = 0.9 * exp((t / S) * ln(0.9)): 0.9 at t=0, strictly decreasing in t.
        """
        stability = self._clamp_stability(stability)
        days = max(0.0, days_since_review)
        return INITIAL_RETRIEVABILITY * math.exp((days / stability) * math.log(DECAY_BASE))

    def current_retrievability(self, state: MemoryState, today: date) -> float:
        """Recall estimate for a card today; never-reviewed cards sit at the initial value."""
        if state.last_review is None:
            return INITIAL_RETRIEVABILITY
        return self.retrievability(state.stability, days_between(state.last_review, today))

    def interval_for(self, stability: float) -> int:
        """Days until the forgetting curve has decayed to the retention target.

        Solving: DECAY_BASE ** (I / S) = target_retention
        gives:   I = S * ln(target_retention) / ln(DECAY_BASE)
        """
        raw = stability * math.log(self.target_retention) / math.log(DECAY_BASE)
        if not math.isfinite(raw):
            return self.maximum_interval
        return max(1, min(round(raw), self.maximum_interval))

    def initial_state(self, mastery: Mastery, today: date) -> MemoryState:
        """Seed a card entering the memory model from its mastery label."""
        stability, difficulty = MASTERY_SEEDS[mastery]
        return MemoryState(
            stability=stability,
            difficulty=difficulty,
            next_due=add_days(today, self.interval_for(stability)),
        )

    def review(self, state: MemoryState, rating: Rating, today: date) -> ReviewResult:
        """Apply a review rating to a memory-model state.

        Args:
            state: Current card state.
            rating: Review outcome; AGAIN counts as a lapse.
            today: Review day.

        Returns:
            ReviewResult with the new card state.
        """
        stability = self._clamp_stability(state.stability)
        difficulty = self._clamp_difficulty(state.difficulty)
        retrievability = self.current_retrievability(state, today)

        new_difficulty = self._next_difficulty(difficulty, rating)

        if rating is Rating.AGAIN:
            new_stability = self._stability_after_lapse(stability, difficulty, retrievability)
            lapses = state.lapses + 1
        else:
            new_stability = self._stability_after_success(
                stability, difficulty, retrievability, rating
            )
            lapses = state.lapses

        new_stability = self._clamp_stability(new_stability)
        interval = self.interval_for(new_stability)

        new_state = MemoryState(
            stability=new_stability,
            difficulty=new_difficulty,
            next_due=add_days(today, interval),
            last_review=today,
            review_count=state.review_count + 1,
            lapses=lapses,
        )
        logger.debug(
            "Memory review %s: S %.2f -> %.2f, D %.2f -> %.2f, R=%.3f, next in %dd",
            rating.name,
            stability,
            new_stability,
            difficulty,
            new_difficulty,
            retrievability,
            interval,
        )
        return ReviewResult(
            new_state=new_state,
            interval_days=interval,
            retrievability=retrievability,
        )

    def _next_difficulty(self, difficulty: float, rating: Rating) -> float:
        """D' = D - w6 * (grade - 3), clamped to [1, 10]."""
        return self._clamp_difficulty(difficulty - self.w[6] * (rating.value - 3))

    def _stability_after_success(
        self,
        stability: float,
        difficulty: float,
        retrievability: float,
        rating: Rating,
    ) -> float:
        """Calculate new stability after a successful review (rating >= Hard).

        S' = S * (1 + e^(w8) * (11 - D) * S^(-w9) * (e^(w10 * (1 - R)) - 1) * modifier)
        """
        growth = (
            math.exp(self.w[8])
            * (11 - difficulty)
            * stability ** (-self.w[9])
            * (math.exp(self.w[10] * (1 - retrievability)) - 1)
        )
        if rating is Rating.HARD:
            growth *= self.w[15]
        elif rating is Rating.EASY:
            growth *= EASY_BONUS
        return stability * (1 + growth)

    def _stability_after_lapse(
        self,
        stability: float,
        difficulty: float,
        retrievability: float,
    ) -> float:
        """Calculate new stability after a lapse (rating = Again).

        S' = w11 * D^(-w12) * (S^w13 - 1) * e^(w14 * (1 - R)), capped at S * LAPSE_CAP.

        The cap makes S' < S. ``review`` then clamps to MIN_STABILITY, and the
        floor wins: a card already at MIN_STABILITY stays there after a lapse.
        """
        new_s = (
            self.w[11]
            * difficulty ** (-self.w[12])
            * (stability ** self.w[13] - 1)
            * math.exp(self.w[14] * (1 - retrievability))
        )
        # Forgetting costs stability, down to the MIN_STABILITY floor
        return min(new_s, stability * LAPSE_CAP)

    @staticmethod
    def _clamp_stability(stability: float) -> float:
        if not math.isfinite(stability):
            return MAX_STABILITY if stability > 0 else MIN_STABILITY
        return max(MIN_STABILITY, min(MAX_STABILITY, stability))

    @staticmethod
    def _clamp_difficulty(difficulty: float) -> float:
        if not math.isfinite(difficulty):
            return (MIN_DIFFICULTY + MAX_DIFFICULTY) / 2
        return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, difficulty))
