"""Fixed-deadline ("cram") scheduler.

A card walks a ladder of day offsets counted from its anchor day. The ladder is
sparse early on and turns daily for the final stretch, and its last rung is always
the day before the deadline (the final review day). No due date ever lands on or
after the deadline itself.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date

from cramdeck.config import settings
from cramdeck.errors import MissingDeadline
from cramdeck.srs.dates import add_days, day_before, days_between
from cramdeck.srs.types import DeadlineState

logger = logging.getLogger(__name__)

# Sparse offsets used ahead of the final stretch
STANDARD_LADDER = (0, 1, 3, 7, 14, 21, 28, 35, 45, 60, 90, 120)


class DeadlineScheduler:
    """Builds and walks deadline-bounded review ladders."""

    def __init__(
        self,
        ladder: tuple[int, ...] = STANDARD_LADDER,
        final_stretch_days: int = settings.final_stretch_days,
        again_reset_threshold: int = settings.again_reset_threshold,
        max_again_count: int = settings.max_again_count,
    ) -> None:
        self.ladder = tuple(sorted(ladder))
        self.final_stretch_days = max(1, final_stretch_days)
        self.again_reset_threshold = max(1, again_reset_threshold)
        self.max_again_count = max(1, max_again_count)

    def build_schedule(self, deadline: date | None, today: date) -> list[int]:
        """Return the day-offset ladder for a deadline as seen from ``today``.

        Offsets below the final stretch come from the sparse ladder; the final
        stretch is daily and ends on ``days_left - 1``. A deadline tomorrow or
        earlier collapses to ``[0]``.
        """
        if deadline is None:
            raise MissingDeadline("Cannot build a deadline schedule without a deadline")

        days_left = days_between(today, deadline)
        final_offset = days_left - 1
        if final_offset <= 0:
            return [0]

        stretch_start = max(0, final_offset - self.final_stretch_days + 1)
        offsets = [o for o in self.ladder if o < stretch_start]
        offsets.extend(range(stretch_start, final_offset + 1))
        return offsets

    def due_date_for_step(
        self,
        schedule: tuple[int, ...] | list[int],
        step: int,
        anchor: date,
        deadline: date,
    ) -> date:
        """``min(anchor + schedule[step], deadline - 1)``."""
        step = self.clamp_step(schedule, step)
        return min(add_days(anchor, schedule[step]), day_before(deadline))

    @staticmethod
    def clamp_step(schedule: tuple[int, ...] | list[int], step: int) -> int:
        return max(0, min(step, len(schedule) - 1))

    def advance_on_correct(self, state: DeadlineState) -> DeadlineState:
        """Move one rung up the ladder and clear the failure streak."""
        step = self.clamp_step(state.schedule, state.step + 1)
        return replace(
            state,
            step=step,
            again_count=0,
            next_due=self.due_date_for_step(state.schedule, step, state.anchor, state.deadline),
        )

    def regress_on_incorrect(self, state: DeadlineState) -> DeadlineState:
        """Drop back after a failed recall.

        The first failures in a row drop one rung; once the streak reaches the
        reset threshold the card goes back to the first rung.
        """
        again_count = min(state.again_count + 1, self.max_again_count)
        if again_count >= self.again_reset_threshold:
            step = 0
        else:
            step = self.clamp_step(state.schedule, state.step - 1)
        return replace(
            state,
            step=step,
            again_count=again_count,
            next_due=self.due_date_for_step(state.schedule, step, state.anchor, state.deadline),
        )

    def initial_state(
        self,
        deadline: date | None,
        today: date,
        anchor: date | None = None,
    ) -> DeadlineState:
        """State for a card entering deadline mode today, on the first rung."""
        schedule = tuple(self.build_schedule(deadline, today))
        anchor = anchor or today
        return DeadlineState(
            deadline=deadline,
            schedule=schedule,
            step=0,
            anchor=anchor,
            next_due=self.due_date_for_step(schedule, 0, anchor, deadline),
        )

    def reschedule(self, state: DeadlineState, deadline: date, today: date) -> DeadlineState:
        """Rebuild the ladder for a new deadline, keeping progress where it fits.

        The new offsets count from ``today``, so the card is re-anchored there and
        its last rung still lands on the day before the new deadline.
        """
        schedule = tuple(self.build_schedule(deadline, today))
        step = self.clamp_step(schedule, state.step)
        new_state = replace(
            state,
            deadline=deadline,
            schedule=schedule,
            step=step,
            anchor=today,
            next_due=self.due_date_for_step(schedule, step, today, deadline),
        )
        logger.debug(
            "Rescheduled ladder: %d -> %d rungs, step %d -> %d",
            len(state.schedule),
            len(schedule),
            state.step,
            step,
        )
        return new_state
