"""SQLAlchemy ORM models for the Cramdeck database."""

from cramdeck.models.base import Base
from cramdeck.models.card import Card
from cramdeck.models.deck import Deck
from cramdeck.models.review_log import ReviewLog

__all__ = ["Base", "Card", "Deck", "ReviewLog"]
