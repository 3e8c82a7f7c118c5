"""Card rows holding both scheduling state blocks; only the one matching ``mode`` is set."""

from datetime import date

from sqlalchemy import Boolean, Date, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cramdeck.models.base import Base, TimestampMixin


class Card(Base, TimestampMixin):
    """A flashcard with its deadline-ladder or memory-model scheduling state."""

    __tablename__ = "cards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    deck_id: Mapped[str] = mapped_column(
        ForeignKey("decks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    front: Mapped[str] = mapped_column(Text, nullable=False, default="")
    back: Mapped[str] = mapped_column(Text, nullable=False, default="")
    media: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON array of references
    mode: Mapped[str] = mapped_column(String(20), nullable=False)  # deadline, memory_model
    next_due: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    mastery: Mapped[str] = mapped_column(String(20), nullable=False, default="learning")
    history: Mapped[str] = mapped_column(String(100), nullable=False, default="")  # "again,good"
    suspended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Deadline mode
    deadline: Mapped[date | None] = mapped_column(Date, nullable=True)
    schedule: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON array of day offsets
    step: Mapped[int | None] = mapped_column(Integer, nullable=True)
    anchor: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Memory model
    stability: Mapped[float | None] = mapped_column(Float, nullable=True)
    difficulty: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_review: Mapped[date | None] = mapped_column(Date, nullable=True)
    review_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    lapses: Mapped[int | None] = mapped_column(Integer, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    deck: Mapped["Deck"] = relationship(back_populates="cards")  # type: ignore[name-defined] # noqa: F821
    review_logs: Mapped[list["ReviewLog"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        back_populates="card", cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": version}
