"""
vriksha.database.snapshot — Store Snapshot Persistence
=======================================================

``save_snapshot`` replaces whatever is stored with one
:class:`StoreSnapshot` in a single transaction.  ``load_snapshot``
rebuilds it.  Ordering that matters (user insertion order, update
history, like order, comment order) is carried by ``position`` columns.

Timestamps are written and read back as UTC.  Some backends (SQLite)
drop the offset, so naive values coming out of the database are tagged
UTC again.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import Engine, delete, select

from vriksha.database.engine import get_session
from vriksha.database.models import (
    ChallengeRow,
    PostCommentRow,
    PostLikeRow,
    SaplingRow,
    SaplingUpdateRow,
    SocialPostRow,
    UserRow,
)
from vriksha.engine.entities import (
    Challenge,
    Comment,
    Location,
    Sapling,
    SaplingUpdate,
    SocialPost,
    StoreSnapshot,
    User,
    WeatherData,
)

logger = logging.getLogger(__name__)

__all__ = ["load_snapshot", "save_snapshot"]


def _to_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


# ---------------------------------------------------------------------------
# Save
# ---------------------------------------------------------------------------
def _update_row(update: SaplingUpdate, position: int) -> SaplingUpdateRow:
    weather = update.weather
    return SaplingUpdateRow(
        id=update.id,
        position=position,
        timestamp=_to_utc(update.timestamp),
        status=update.status,
        image_url=update.image_url,
        submitted_by=update.submitted_by,
        recommendation=update.recommendation,
        confidence=update.confidence,
        temp=weather.temp if weather else None,
        humidity=weather.humidity if weather else None,
        rainfall=weather.rainfall if weather else None,
        soil_condition=update.soil_condition,
        submission_id=update.submission_id,
    )


def save_snapshot(engine: Engine, snapshot: StoreSnapshot) -> None:
    """Replace the stored snapshot with *snapshot* (all or nothing)."""
    with get_session(engine) as session:
        # Children first so the delete works without FK cascade support
        for model in (
            PostLikeRow, PostCommentRow, SocialPostRow,
            SaplingUpdateRow, SaplingRow, UserRow, ChallengeRow,
        ):
            session.execute(delete(model))

        session.add_all(
            UserRow(id=u.id, position=i, name=u.name, role=u.role, points=u.points)
            for i, u in enumerate(snapshot.users)
        )
        for i, sapling in enumerate(snapshot.saplings):
            row = SaplingRow(
                id=sapling.id,
                position=i,
                species=sapling.species,
                lat=sapling.location.lat,
                lng=sapling.location.lng,
                guardian_id=sapling.guardian_id,
                planted_at=_to_utc(sapling.planted_at),
            )
            row.updates = [_update_row(u, pos) for pos, u in enumerate(sapling.updates)]
            session.add(row)

        for post in snapshot.posts:
            row = SocialPostRow(
                id=post.id,
                user_id=post.user_id,
                caption=post.caption,
                image_url=post.image_url,
                timestamp=_to_utc(post.timestamp),
                sapling_id=post.sapling_id,
            )
            row.likes = [
                PostLikeRow(user_id=uid, position=pos) for pos, uid in enumerate(post.likes)
            ]
            row.comments = [
                PostCommentRow(
                    id=c.id, position=pos, user_id=c.user_id,
                    text=c.text, timestamp=_to_utc(c.timestamp),
                )
                for pos, c in enumerate(post.comments)
            ]
            session.add(row)

        session.add_all(
            ChallengeRow(
                id=c.id, title=c.title, description=c.description,
                points=c.points, end_date=c.end_date,
            )
            for c in snapshot.challenges
        )

    logger.info(
        "Snapshot saved: %d users, %d saplings, %d posts, %d challenges",
        len(snapshot.users), len(snapshot.saplings),
        len(snapshot.posts), len(snapshot.challenges),
    )


# ---------------------------------------------------------------------------
# Load
# ---------------------------------------------------------------------------
def _update_from_row(row: SaplingUpdateRow) -> SaplingUpdate:
    weather = None
    if row.rainfall is not None:
        weather = WeatherData(
            temp=row.temp or 0.0, humidity=row.humidity or 0.0, rainfall=row.rainfall,
        )
    return SaplingUpdate(
        id=row.id,
        timestamp=_to_utc(row.timestamp),
        status=row.status,
        image_url=row.image_url,
        submitted_by=row.submitted_by,
        recommendation=row.recommendation,
        confidence=row.confidence,
        weather=weather,
        soil_condition=row.soil_condition,
        submission_id=row.submission_id,
    )


def load_snapshot(engine: Engine) -> StoreSnapshot:
    """Rebuild the stored :class:`StoreSnapshot` (empty if nothing saved)."""
    with get_session(engine) as session:
        users = tuple(
            User(id=r.id, name=r.name, role=r.role, points=r.points)
            for r in session.scalars(select(UserRow).order_by(UserRow.position))
        )
        saplings = tuple(
            Sapling(
                id=r.id,
                species=r.species,
                location=Location(lat=r.lat, lng=r.lng),
                guardian_id=r.guardian_id,
                planted_at=_to_utc(r.planted_at),
                updates=tuple(_update_from_row(u) for u in r.updates),
            )
            for r in session.scalars(select(SaplingRow).order_by(SaplingRow.position))
        )
        posts = tuple(
            SocialPost(
                id=r.id,
                user_id=r.user_id,
                caption=r.caption,
                image_url=r.image_url,
                timestamp=_to_utc(r.timestamp),
                likes=tuple(like.user_id for like in r.likes),
                comments=tuple(
                    Comment(
                        id=c.id, user_id=c.user_id, text=c.text,
                        timestamp=_to_utc(c.timestamp),
                    )
                    for c in r.comments
                ),
                sapling_id=r.sapling_id,
            )
            for r in session.scalars(
                select(SocialPostRow).order_by(SocialPostRow.timestamp, SocialPostRow.id)
            )
        )
        challenges = tuple(
            Challenge(
                id=r.id, title=r.title, description=r.description,
                points=r.points, end_date=r.end_date,
            )
            for r in session.scalars(select(ChallengeRow).order_by(ChallengeRow.end_date))
        )

    logger.info("Snapshot loaded: %d users, %d saplings", len(users), len(saplings))
    return StoreSnapshot(users=users, saplings=saplings, posts=posts, challenges=challenges)
