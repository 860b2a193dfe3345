"""
vriksha.database.models — SQLAlchemy 2.0 Snapshot Tables
=========================================================

Relational form of a :class:`~vriksha.engine.entities.StoreSnapshot`.
Only primary data lives here; current status, rank, level, badges and
notifications are derived after loading.

Tables:
- users            — Volunteers and admins with their eco points
- saplings         — Planted saplings (guardian is a weak reference)
- sapling_updates  — Append-only observation history, ordered by position
- social_posts     — Feed posts
- post_likes       — One row per (post, user) like, ordered by position
- post_comments    — Append-only comments, ordered by position
- challenges       — Community challenges
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from vriksha.engine.entities import HealthStatus, Role


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Vriksha ORM models."""


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)  # insertion order
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[Role] = mapped_column(Enum(Role, native_enum=False), nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0)

    def __repr__(self) -> str:
        return f"<UserRow id={self.id!r} name={self.name!r} points={self.points}>"


# ---------------------------------------------------------------------------
# Saplings & their updates
# ---------------------------------------------------------------------------
class SaplingRow(Base):
    __tablename__ = "saplings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    species: Mapped[str] = mapped_column(String(100), nullable=False)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    # No FK: a sapling may outlive its guardian
    guardian_id: Mapped[str] = mapped_column(String(64), nullable=False)
    planted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    updates: Mapped[list[SaplingUpdateRow]] = relationship(
        back_populates="sapling",
        cascade="all, delete-orphan",
        order_by="SaplingUpdateRow.position",
    )

    __table_args__ = (
        Index("ix_saplings_guardian_id", "guardian_id"),
    )

    def __repr__(self) -> str:
        return f"<SaplingRow id={self.id!r} species={self.species!r}>"


class SaplingUpdateRow(Base):
    __tablename__ = "sapling_updates"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    sapling_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("saplings.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[HealthStatus] = mapped_column(
        Enum(HealthStatus, native_enum=False), nullable=False
    )
    image_url: Mapped[str | None] = mapped_column(Text, default=None)
    submitted_by: Mapped[str] = mapped_column(String(64), nullable=False)
    recommendation: Mapped[str | None] = mapped_column(Text, default=None)
    confidence: Mapped[float | None] = mapped_column(Float, default=None)
    # Weather snapshot; all three set or all three NULL
    temp: Mapped[float | None] = mapped_column(Float, default=None)
    humidity: Mapped[float | None] = mapped_column(Float, default=None)
    rainfall: Mapped[float | None] = mapped_column(Float, default=None)
    soil_condition: Mapped[str | None] = mapped_column(String(50), default=None)
    submission_id: Mapped[str | None] = mapped_column(String(100), default=None)

    sapling: Mapped[SaplingRow] = relationship(back_populates="updates")

    __table_args__ = (
        UniqueConstraint("sapling_id", "position", name="uq_updates_sapling_position"),
    )

    def __repr__(self) -> str:
        return f"<SaplingUpdateRow id={self.id!r} sapling={self.sapling_id!r} status={self.status}>"


# ---------------------------------------------------------------------------
# Social
# ---------------------------------------------------------------------------
class SocialPostRow(Base):
    __tablename__ = "social_posts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    caption: Mapped[str] = mapped_column(Text, default="")
    image_url: Mapped[str | None] = mapped_column(Text, default=None)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    sapling_id: Mapped[str | None] = mapped_column(String(64), default=None)

    likes: Mapped[list[PostLikeRow]] = relationship(
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="PostLikeRow.position",
    )
    comments: Mapped[list[PostCommentRow]] = relationship(
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="PostCommentRow.position",
    )

    def __repr__(self) -> str:
        return f"<SocialPostRow id={self.id!r} user={self.user_id!r}>"


class PostLikeRow(Base):
    __tablename__ = "post_likes"

    post_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("social_posts.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    post: Mapped[SocialPostRow] = relationship(back_populates="likes")


class PostCommentRow(Base):
    __tablename__ = "post_comments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    post_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("social_posts.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    post: Mapped[SocialPostRow] = relationship(back_populates="comments")


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------
class ChallengeRow(Base):
    __tablename__ = "challenges"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    points: Mapped[int] = mapped_column(Integer, default=0)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    def __repr__(self) -> str:
        return f"<ChallengeRow id={self.id!r} title={self.title!r}>"
