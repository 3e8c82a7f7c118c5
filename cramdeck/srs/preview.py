"""Interval hints for the rating buttons, computed without applying anything."""

from dataclasses import dataclass
from datetime import date

from cramdeck.srs.router import ReviewRouter, default_router
from cramdeck.srs.types import Card, Persist, Rating


@dataclass
class IntervalPreview:
    again: str
    hard: str
    good: str
    easy: str


def format_interval(days: float) -> str:
    """Render a day count the way the rating buttons show it."""
    if days <= 0:
        return "Now"
    if days < 1:
        hours = days * 24
        if hours < 1:
            return f"{round(hours * 60)}m"
        return f"{round(hours)}h"
    if days < 7:
        return f"{round(days)}d"
    if days < 30:
        return f"{round(days / 7)}w"
    if days < 365:
        return f"{round(days / 30)}mo"
    return f"{round(days / 365)}y"


def preview_intervals(
    card: Card,
    today: date,
    router: ReviewRouter = default_router,
) -> IntervalPreview:
    """What each rating would do to ``card`` today."""
    labels = {}
    for rating in Rating:
        outcome = router.review(card, rating, today)
        if isinstance(outcome, Persist):
            labels[rating] = format_interval(outcome.delta.interval_days)
        else:
            labels[rating] = "Now"
    return IntervalPreview(
        again=labels[Rating.AGAIN],
        hard=labels[Rating.HARD],
        good=labels[Rating.GOOD],
        easy=labels[Rating.EASY],
    )
