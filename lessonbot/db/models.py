"""
SQLAlchemy ORM models for lessons, links, news and per-user progress.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class Section(str, Enum):
    """Content categories that scope lessons and progress."""

    PREP = "prep"
    STEAM = "steam"


# Upper bounds for ord columns (Integer) and for ids (BigInteger).
ORD_MAX = 2**31 - 1
ID_MAX = 2**63 - 1

# Same constraint names as the initial migration.
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_N_name)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "pk": "pk_%(table_name)s",
}

SECTION_VALUES = tuple(section.value for section in Section)
_SECTION_CHECK = "section IN ({})".format(", ".join(f"'{value}'" for value in SECTION_VALUES))


class Base(AsyncAttrs, DeclarativeBase):
    """Declarative base that enables async-friendly ORM operations."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class Lesson(Base):
    """A channel post filed into an ordered slot of a section."""

    __tablename__ = "lessons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    section: Mapped[str] = mapped_column(String(16), nullable=False)
    ord: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    message_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utc_now,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("section", "ord", name="uq_lessons_section_ord"),
        CheckConstraint(_SECTION_CHECK, name="ck_lessons_section"),
        CheckConstraint("ord > 0", name="ck_lessons_ord_positive"),
    )


class Link(Base):
    """Useful external link shown in the links menu."""

    __tablename__ = "links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    ord: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    __table_args__ = (Index("ix_links_ord_id", "ord", "id"),)


class NewsItem(Base):
    """Channel post filed as news."""

    __tablename__ = "news"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_id: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utc_now,
        server_default=func.now(),
    )


class Progress(Base):
    """Where a user stopped in a section; one row per (user, section)."""

    __tablename__ = "progress"

    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    section: Mapped[str] = mapped_column(String(16), primary_key=True)
    ord: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utc_now,
        onupdate=_utc_now,
        server_default=func.now(),
    )

    __table_args__ = (CheckConstraint(_SECTION_CHECK, name="ck_progress_section"),)


__all__ = [
    "Base",
    "ID_MAX",
    "NAMING_CONVENTION",
    "ORD_MAX",
    "Lesson",
    "Link",
    "NewsItem",
    "Progress",
    "SECTION_VALUES",
    "Section",
]
