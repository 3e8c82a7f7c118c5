"""CLI interface for Cramdeck.

Usage:
    python -m cramdeck_cli deck                          List decks
    python -m cramdeck_cli deck "Biology" -d 2026-06-01  Create a deadline deck
    python -m cramdeck_cli deck "Spanish"                Create a memory-model deck
    python -m cramdeck_cli add DECK "front" "back"       Add a card
    python -m cramdeck_cli due [--deck DECK]             Show what is due today
    python -m cramdeck_cli review [--deck DECK]          Start a study session
    python -m cramdeck_cli deadline DECK 2026-06-15      Move a deck's deadline
    python -m cramdeck_cli convert DECK memory_model     Switch a deck's mode
    python -m cramdeck_cli stats DECK                    Show deck progress
"""

import argparse
import asyncio
import logging
import sys
from datetime import date

from sqlalchemy import func, select

from cramdeck.api.stats_router import deck_progress
from cramdeck.database import async_session, engine
from cramdeck.errors import InconsistentModeState, NotFoundError, SchedulingError
from cramdeck.models import Base
from cramdeck.models.review_log import ReviewLog
from cramdeck.srs.dates import today
from cramdeck.srs.due import get_due_cards, needs_post_deadline_prompt
from cramdeck.srs.preview import preview_intervals
from cramdeck.srs.session import start_study_session
from cramdeck.srs.types import DeadlineState, Mode, Persist
from cramdeck.store import CardStore

RATING_KEYS = {"1": "again", "2": "hard", "3": "good", "4": "easy"}


async def ensure_db() -> None:
    """Create tables if they don't exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def cmd_deck(args: argparse.Namespace) -> None:
    """Create a deck, or list decks when no name is given."""
    await ensure_db()
    now = today()

    async with async_session() as db:
        store = CardStore(db)
        if args.name is None:
            decks = await store.list_decks()
            if not decks:
                print("  No decks yet.")
                return
            for deck in decks:
                flag = ""
                if needs_post_deadline_prompt(deck, now):
                    flag = "  (deadline passed, choose what next)"
                deadline = f"  due {deck.deadline.isoformat()}" if deck.deadline else ""
                print(f"  {deck.id}  {deck.name:<24} {deck.mode.value}{deadline}{flag}")
            return

        if args.mode:
            mode = Mode(args.mode)
        else:
            mode = Mode.DEADLINE if args.deadline else Mode.MEMORY_MODEL
        deck = await store.create_deck(args.name, mode, now, args.deadline)
        print(f"  Created {deck.mode.value} deck '{deck.name}' (id={deck.id})")


async def cmd_add(args: argparse.Namespace) -> None:
    """Add a card to a deck."""
    await ensure_db()

    async with async_session() as db:
        (card,) = await CardStore(db).add_cards(args.deck, [(args.front, args.back)], today())

    print(f"  Added card {card.id}, first review {card.next_due.isoformat()}")


async def cmd_due(args: argparse.Namespace) -> None:
    """Show how many cards are due."""
    await ensure_db()
    now = today()

    async with async_session() as db:
        store = CardStore(db)
        decks = await store.list_decks()
        cards = await store.list_cards(args.deck)

    due = get_due_cards(cards, decks, now, args.deck)
    by_deck: dict[str, int] = {}
    for card in due:
        by_deck[card.deck_id] = by_deck.get(card.deck_id, 0) + 1

    print(f"  {len(due)} cards due")
    for deck in decks:
        if deck.id in by_deck:
            print(f"    {deck.name:<24} {by_deck[deck.id]}")


async def cmd_review(args: argparse.Namespace) -> None:
    """Run an interactive study session."""
    await ensure_db()
    now = today()

    async with async_session() as db:
        store = CardStore(db)
        decks = await store.list_decks()
        cards = await store.list_cards(args.deck)
        study_session = start_study_session(cards, decks, now, args.deck)

        if study_session.is_complete:
            print("\nNo cards due for review. You're all caught up!")
            return

        print("\n  Study Session")
        print(f"  {study_session.remaining} cards\n")
        print("  Ratings: 1=Again  2=Hard  3=Good  4=Easy")
        print("  Type 'q' to quit\n")

        while not study_session.is_complete and study_session.stats.cards_reviewed < args.max_cards:
            card = study_session.current_card
            preview = preview_intervals(card, now)
            print(f"  [{study_session.remaining} left] {card.front}")
            if input("  (enter to reveal) ").strip().lower() == "q":
                print("\n  Session ended early.")
                break
            print(f"  {card.back}")

            hint = f"1={preview.again} 2={preview.hard} 3={preview.good} 4={preview.easy}"
            key = input(f"  Rate [{hint}]: ").strip().lower()
            if key == "q":
                print("\n  Session ended early.")
                break
            if key not in RATING_KEYS:
                print("  Please answer 1-4.\n")
                continue

            try:
                outcome = await store.review(card.id, RATING_KEYS[key], now, card=card)
            except InconsistentModeState as exc:
                print(f"  Skipped: {exc}\n")
                study_session.drop_current()
                continue
            study_session.answer(RATING_KEYS[key], now)
            if isinstance(outcome, Persist):
                print(f"  Next review in {outcome.delta.interval_days} days\n")
            else:
                print("  Coming back shortly\n")

    s = study_session.stats
    print("\n  Session Complete!")
    print(f"  Reviewed: {s.cards_reviewed}  Requeued: {s.requeued}\n")


async def cmd_deadline(args: argparse.Namespace) -> None:
    """Move a deadline deck's deadline."""
    await ensure_db()

    async with async_session() as db:
        batch = await CardStore(db).edit_deadline(args.deck, args.deadline, today())

    print(f"  Deadline moved to {args.deadline.isoformat()}, {len(batch.cards)} cards rescheduled")


async def cmd_convert(args: argparse.Namespace) -> None:
    """Convert a deck to another scheduling mode."""
    await ensure_db()

    async with async_session() as db:
        batch = await CardStore(db).convert(args.deck, Mode(args.mode), today(), args.deadline)

    print(f"  Deck '{batch.deck.name}' is now {batch.deck.mode.value} ({len(batch.cards)} cards)")


async def cmd_stats(args: argparse.Namespace) -> None:
    """Show progress for a deck."""
    await ensure_db()

    async with async_session() as db:
        store = CardStore(db)
        deck = await store.get_deck(args.deck)
        cards = await store.list_cards(args.deck)
        reviews = (
            await db.execute(select(func.count(ReviewLog.id)).where(ReviewLog.deck_id == args.deck))
        ).scalar() or 0

    stats = deck_progress(deck, cards, reviews)
    on_ladder = sum(1 for card in cards if isinstance(card.state, DeadlineState))

    print(f"\n  {deck.name} ({deck.mode.value})")
    print(f"  {'Total cards:':<20} {stats.total_cards}")
    print(f"  {'Due today:':<20} {stats.due_today}")
    print(f"  {'Struggling:':<20} {stats.struggling}")
    print(f"  {'Learning:':<20} {stats.learning}")
    print(f"  {'Mastered:':<20} {stats.mastered}")
    print(f"  {'Total reviews:':<20} {stats.total_reviews}")
    if stats.days_left is not None:
        print(f"  {'Days left:':<20} {stats.days_left}")
        print(f"  {'On ladder:':<20} {on_ladder}")
    if stats.leeches:
        print(f"  {'Leeches:':<20} {stats.leeches}")
    if stats.final_review_day:
        print("  Final review day: weakest cards first.")
    if stats.emergency:
        print("  Deadline reached: every card is due.")
    print()


def main() -> None:
    """Entry point for the Cramdeck CLI application."""
    parser = argparse.ArgumentParser(
        prog="cramdeck_cli",
        description="Flashcards scheduled for a deadline or for long-term memory",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # deck
    deck_parser = subparsers.add_parser("deck", help="Create a deck, or list decks")
    deck_parser.add_argument("name", nargs="?", help="Deck name (omit to list decks)")
    deck_parser.add_argument("-d", "--deadline", type=date.fromisoformat, help="YYYY-MM-DD")
    deck_parser.add_argument("-m", "--mode", choices=[m.value for m in Mode])

    # add
    add_parser = subparsers.add_parser("add", help="Add a card to a deck")
    add_parser.add_argument("deck", help="Deck id")
    add_parser.add_argument("front", help="Question side")
    add_parser.add_argument("back", help="Answer side")

    # due
    due_parser = subparsers.add_parser("due", help="Show cards due for review")
    due_parser.add_argument("--deck", help="Restrict to one deck")

    # review
    review_parser = subparsers.add_parser("review", help="Start a study session")
    review_parser.add_argument("--deck", help="Restrict to one deck")
    review_parser.add_argument("--max-cards", type=int, default=50, help="Max reviews per session")

    # deadline
    deadline_parser = subparsers.add_parser("deadline", help="Move a deck's deadline")
    deadline_parser.add_argument("deck", help="Deck id")
    deadline_parser.add_argument("deadline", type=date.fromisoformat, help="YYYY-MM-DD")

    # convert
    convert_parser = subparsers.add_parser("convert", help="Switch a deck's scheduling mode")
    convert_parser.add_argument("deck", help="Deck id")
    convert_parser.add_argument("mode", choices=[m.value for m in Mode])
    convert_parser.add_argument("-d", "--deadline", type=date.fromisoformat, help="YYYY-MM-DD")

    # stats
    stats_parser = subparsers.add_parser("stats", help="Show deck progress")
    stats_parser.add_argument("deck", help="Deck id")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    cmd_map = {
        "deck": cmd_deck,
        "add": cmd_add,
        "due": cmd_due,
        "review": cmd_review,
        "deadline": cmd_deadline,
        "convert": cmd_convert,
        "stats": cmd_stats,
    }

    try:
        asyncio.run(cmd_map[args.command](args))
    except (NotFoundError, SchedulingError) as exc:
        print(f"  Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
