"""SQLAlchemy ORM models for Mokuroku.

Defines all database tables using SQLAlchemy 2.x declarative patterns.
Enum-valued columns are stored as text guarded by CHECK constraints so the
same schema works on PostgreSQL and SQLite.
"""

from datetime import date, datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    SmallInteger,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Enums
# =============================================================================


class WatchStatus(str, PyEnum):
    """Per-user consumption state of a catalog item.

    States:
        not_seen: Never watched/read, or reverted back to unseen
        consuming: Currently watching (anime) or reading (manga)
        finished: Completed
    """

    not_seen = "NOT_SEEN"
    consuming = "CONSUMING"
    finished = "FINISHED"


class MediaKind(str, PyEnum):
    """Kinds of catalog media that can be searched and tracked."""

    anime = "ANIME"
    manga = "MANGA"


def _in_check(column: str, enum: type[PyEnum]) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum)
    return f"{column} IN ({values})"


# =============================================================================
# Models
# =============================================================================


class WatchRecord(Base):
    """One user's tracking state for one catalog item.

    Exactly one row per (user_id, item_id). Rows are only ever written by the
    watch-list toggles and are never deleted; last_status keeps the state the
    most recent toggle superseded so the same toggle pressed twice reverts it.

    title and start_date are a snapshot of the catalog item taken at toggle
    time so watch-list listings never need the remote catalog.
    """

    __tablename__ = "watch_records"

    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    item_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    item_kind: Mapped[str] = mapped_column(
        Text, nullable=False, server_default=text(f"'{MediaKind.anime.value}'")
    )
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        Text, nullable=False, server_default=text(f"'{WatchStatus.not_seen.value}'")
    )
    last_status: Mapped[str] = mapped_column(
        Text, nullable=False, server_default=text(f"'{WatchStatus.not_seen.value}'")
    )
    suggests: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    rating: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint(_in_check("status", WatchStatus), name="ck_watch_records_status"),
        CheckConstraint(_in_check("last_status", WatchStatus), name="ck_watch_records_last_status"),
        CheckConstraint(_in_check("item_kind", MediaKind), name="ck_watch_records_item_kind"),
        CheckConstraint(
            "rating IS NULL OR (rating >= 0 AND rating <= 100)", name="ck_watch_records_rating"
        ),
        Index("ix_watch_records_user_status", "user_id", "status"),
    )
