"""
vriksha.engine.store — Entity Store
====================================

Owns the canonical collections (users, saplings with their update
history, social posts, challenges) and every mutation on them.

Every write follows the pattern:
  1. Validate input (raise ValidationError / NotFoundError, no change)
  2. Build replacement value(s) under the write lock
  3. Swap them into the collection
  4. Release the lock
  5. Broadcast exactly one change notification

Reads copy the collections under the same lock, so a reader observes
either the pre- or the post-state of any mutation.  Entities are frozen
dataclasses, which makes the copies cheap and safe to hand out.
"""

from __future__ import annotations

import logging
import math
import threading
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import UTC, date, datetime

from vriksha.constants import OBSERVABLE_STATUSES, POINTS_PER_UPDATE
from vriksha.engine.broadcaster import ChangeBroadcaster, Observer
from vriksha.engine.entities import (
    Challenge,
    Comment,
    HealthStatus,
    Location,
    Notification,
    Role,
    Sapling,
    SaplingUpdate,
    SocialPost,
    StoreSnapshot,
    User,
    WeatherData,
)
from vriksha.engine.notifications import generate_notifications
from vriksha.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

__all__ = ["EntityStore", "coerce_status", "utc_now"]


def utc_now() -> datetime:
    return datetime.now(UTC)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}"


# ---------------------------------------------------------------------------
# Input validation helpers
# ---------------------------------------------------------------------------
def coerce_status(status: HealthStatus | str) -> HealthStatus:
    """Return *status* as an observable :class:`HealthStatus`.

    Accepts enum members, their values ("Needs Water") or their names
    ("NEEDS_WATER").  The ``NO_DATA`` sentinel is rejected.
    """
    if isinstance(status, HealthStatus):
        candidate: HealthStatus | None = status
    else:
        text = str(status).strip()
        candidate = next(
            (s for s in HealthStatus if text in (s.value, s.name)), None,
        )
    if candidate is None or candidate not in OBSERVABLE_STATUSES:
        raise ValidationError(
            f"Invalid health status: {status!r}. "
            f"Must be one of {[s.value for s in OBSERVABLE_STATUSES]}",
            field_name="status",
        )
    return candidate


def _validate_location(location: Location | None) -> Location:
    if location is None:
        raise ValidationError("Location is required.", field_name="location")
    lat, lng = location.lat, location.lng
    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise ValidationError("Location coordinates must be finite.", field_name="location")
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        raise ValidationError(
            f"Location out of range: ({lat}, {lng})", field_name="location",
        )
    return location


def _validate_weather(weather: WeatherData | None) -> None:
    if weather is not None and weather.rainfall < 0:
        raise ValidationError("Rainfall cannot be negative.", field_name="weather")


def _require_text(value: str | None, field_name: str, message: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(message, field_name=field_name)
    return value.strip()


# ---------------------------------------------------------------------------
# EntityStore
# ---------------------------------------------------------------------------
class EntityStore:
    """Thread-safe in-memory store with change notification.

    Usage:
        store = EntityStore()
        alice = store.register_user("Alice")
        unsubscribe = store.subscribe(on_change)
        sapling = store.add_sapling("Neem", Location(12.97, 77.59), alice.id)
        store.add_sapling_update(sapling.id, HealthStatus.NEEDS_WATER, None, alice.id)
    """

    def __init__(
        self,
        broadcaster: ChangeBroadcaster | None = None,
        *,
        points_per_update: int = POINTS_PER_UPDATE,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if points_per_update < 0:
            raise ValueError("points_per_update must be >= 0")
        self._broadcaster = broadcaster or ChangeBroadcaster()
        self._points_per_update = points_per_update
        self._clock = clock or utc_now
        self._lock = threading.Lock()

        # Insertion order is meaningful: it is the leaderboard tie-breaker
        # and the default listing order.
        self._users: dict[str, User] = {}
        self._saplings: dict[str, Sapling] = {}
        self._posts: dict[str, SocialPost] = {}
        self._challenges: dict[str, Challenge] = {}

    # -------------------------------------------------------------------
    # Change notification
    # -------------------------------------------------------------------
    @property
    def broadcaster(self) -> ChangeBroadcaster:
        return self._broadcaster

    @property
    def points_per_update(self) -> int:
        return self._points_per_update

    def now(self) -> datetime:
        return self._clock()

    def subscribe(self, callback: Observer) -> Callable[[], None]:
        """Register a change observer; returns the unsubscribe handle."""
        return self._broadcaster.subscribe(callback)

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Group several mutations into a single change notification."""
        with self._broadcaster.batch():
            yield

    def _changed(self) -> None:
        # Always called after the write lock is released
        self._broadcaster.notify()

    # -------------------------------------------------------------------
    # Users & challenges
    # -------------------------------------------------------------------
    def register_user(
        self,
        name: str,
        role: Role = Role.VOLUNTEER,
        *,
        user_id: str | None = None,
    ) -> User:
        """Create a user with zero points."""
        name = _require_text(name, "name", "User name is required.")
        user = User(id=user_id or _new_id("user"), name=name, role=Role(role))
        with self._lock:
            if user.id in self._users:
                raise ValidationError(f"Duplicate user id: {user.id}", field_name="user_id")
            self._users[user.id] = user
        logger.info("Registered %s %s (%s)", user.role, user.id, user.name)
        self._changed()
        return user

    def add_challenge(
        self, title: str, description: str, points: int, end_date: date,
    ) -> Challenge:
        title = _require_text(title, "title", "Challenge title is required.")
        if points < 0:
            raise ValidationError("Challenge points cannot be negative.", field_name="points")
        challenge = Challenge(
            id=_new_id("chl"),
            title=title,
            description=description or "",
            points=points,
            end_date=end_date,
        )
        with self._lock:
            self._challenges[challenge.id] = challenge
        logger.info("Challenge %s added: %s", challenge.id, challenge.title)
        self._changed()
        return challenge

    # -------------------------------------------------------------------
    # Saplings
    # -------------------------------------------------------------------
    def add_sapling(
        self,
        species: str,
        location: Location | None,
        guardian_id: str,
        image: str | None = None,
        recommendation: str | None = None,
    ) -> Sapling:
        """Register a sapling.

        When a registration photo is supplied an initial ``Healthy`` update
        carrying the optional AI recommendation is recorded.  Registration
        never awards points.
        """
        species = _require_text(species, "species", "Species is required.")
        location = _validate_location(location)
        now = self._clock()

        with self._lock:
            if guardian_id not in self._users:
                raise NotFoundError("User", guardian_id)

            updates: tuple[SaplingUpdate, ...] = ()
            if image:
                updates = (SaplingUpdate(
                    id=_new_id("upd"),
                    timestamp=now,
                    status=HealthStatus.HEALTHY,
                    image_url=image,
                    submitted_by=guardian_id,
                    recommendation=recommendation,
                ),)
            sapling = Sapling(
                id=_new_id("sap"),
                species=species,
                location=location,
                guardian_id=guardian_id,
                planted_at=now,
                updates=updates,
            )
            self._saplings[sapling.id] = sapling

        logger.info(
            "Sapling %s (%s) registered by %s", sapling.id, species, guardian_id,
        )
        self._changed()
        return sapling

    def add_sapling_update(
        self,
        sapling_id: str,
        status: HealthStatus | str,
        image: str | None,
        user_id: str,
        recommendation: str | None = None,
        confidence: float | None = None,
        weather: WeatherData | None = None,
        soil: str | None = None,
        *,
        submission_id: str | None = None,
        timestamp: datetime | None = None,
    ) -> SaplingUpdate:
        """Append an observation and award the guardian.

        A repeated *submission_id* for the same sapling is a retry: the
        previously appended update is returned and nothing changes.
        """
        status = coerce_status(status)
        if confidence is not None and not 0.0 <= confidence <= 1.0:
            raise ValidationError(
                f"Confidence must be within [0, 1], got {confidence}",
                field_name="confidence",
            )
        _validate_weather(weather)

        with self._lock:
            sapling = self._saplings.get(sapling_id)
            if sapling is None:
                raise NotFoundError("Sapling", sapling_id)

            if submission_id is not None:
                for existing in sapling.updates:
                    if existing.submission_id == submission_id:
                        logger.info(
                            "Duplicate submission %s for sapling %s ignored",
                            submission_id, sapling_id,
                        )
                        return existing

            ts = timestamp or self._clock()
            if sapling.updates and ts < sapling.updates[-1].timestamp:
                raise ValidationError(
                    "Update timestamp precedes the latest recorded update.",
                    field_name="timestamp",
                )

            update = SaplingUpdate(
                id=_new_id("upd"),
                timestamp=ts,
                status=status,
                image_url=image,
                submitted_by=user_id,
                recommendation=recommendation,
                confidence=confidence,
                weather=weather,
                soil_condition=soil,
                submission_id=submission_id,
            )
            self._saplings[sapling_id] = replace(
                sapling, updates=sapling.updates + (update,),
            )

            guardian = self._users.get(sapling.guardian_id)
            if guardian is not None:
                self._users[guardian.id] = replace(
                    guardian, points=guardian.points + self._points_per_update,
                )
            else:
                logger.warning(
                    "Guardian %s of sapling %s no longer exists; no points awarded",
                    sapling.guardian_id, sapling_id,
                )

        logger.info(
            "Update %s appended to sapling %s (%s) by %s",
            update.id, sapling_id, status, user_id,
        )
        self._changed()
        return update

    def delete_sapling(self, sapling_id: str) -> None:
        """Remove a sapling and its whole history.

        Deleting twice raises :class:`NotFoundError` the second time.
        """
        with self._lock:
            if self._saplings.pop(sapling_id, None) is None:
                raise NotFoundError("Sapling", sapling_id)
        logger.info("Sapling %s deleted", sapling_id)
        self._changed()

    # -------------------------------------------------------------------
    # Social
    # -------------------------------------------------------------------
    def create_social_post(
        self,
        user_id: str,
        caption: str,
        image: str | None = None,
        sapling_id: str | None = None,
    ) -> SocialPost:
        caption = (caption or "").strip()
        if not caption and not image:
            raise ValidationError("A post needs a caption or an image.", field_name="caption")

        with self._lock:
            if user_id not in self._users:
                raise NotFoundError("User", user_id)
            if sapling_id is not None and sapling_id not in self._saplings:
                raise NotFoundError("Sapling", sapling_id)
            post = SocialPost(
                id=_new_id("post"),
                user_id=user_id,
                caption=caption,
                image_url=image,
                timestamp=self._clock(),
                sapling_id=sapling_id,
            )
            self._posts[post.id] = post

        logger.info("Post %s created by %s", post.id, user_id)
        self._changed()
        return post

    def toggle_like(self, post_id: str, user_id: str) -> SocialPost:
        """Like the post, or remove the like if *user_id* already liked it.

        ``likes`` is a set kept in like-order: a re-like counts as a new
        like and goes to the end, so a double toggle restores the same
        members but not necessarily the same order.
        """
        with self._lock:
            post = self._posts.get(post_id)
            if post is None:
                raise NotFoundError("Post", post_id)
            if user_id not in self._users:
                raise NotFoundError("User", user_id)
            if user_id in post.likes:
                likes = tuple(uid for uid in post.likes if uid != user_id)
            else:
                likes = post.likes + (user_id,)
            post = replace(post, likes=likes)
            self._posts[post_id] = post

        logger.debug("Post %s like toggled by %s (%d likes)", post_id, user_id, len(likes))
        self._changed()
        return post

    def add_comment(self, post_id: str, user_id: str, text: str) -> Comment:
        text = _require_text(text, "text", "Comment text is required.")
        with self._lock:
            post = self._posts.get(post_id)
            if post is None:
                raise NotFoundError("Post", post_id)
            if user_id not in self._users:
                raise NotFoundError("User", user_id)
            comment = Comment(
                id=_new_id("cmt"), user_id=user_id, text=text, timestamp=self._clock(),
            )
            self._posts[post_id] = replace(post, comments=post.comments + (comment,))

        logger.info("Comment %s added to post %s by %s", comment.id, post_id, user_id)
        self._changed()
        return comment

    # -------------------------------------------------------------------
    # Reads (copy-on-read snapshots)
    # -------------------------------------------------------------------
    def get_user(self, user_id: str) -> User:
        with self._lock:
            user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def find_user_by_name(self, name: str, role: Role | None = None) -> User | None:
        """Case-insensitive login lookup.  Not a security boundary."""
        wanted = (name or "").strip().casefold()
        for user in self.get_all_users():
            if user.name.casefold() == wanted and (role is None or user.role == role):
                return user
        return None

    def get_all_users(self) -> list[User]:
        with self._lock:
            return list(self._users.values())

    def get_sapling(self, sapling_id: str) -> Sapling:
        with self._lock:
            sapling = self._saplings.get(sapling_id)
        if sapling is None:
            raise NotFoundError("Sapling", sapling_id)
        return sapling

    def get_all_saplings(self) -> list[Sapling]:
        with self._lock:
            return list(self._saplings.values())

    def get_saplings_by_guardian(self, guardian_id: str) -> list[Sapling]:
        return [s for s in self.get_all_saplings() if s.guardian_id == guardian_id]

    def get_social_feed(self) -> list[SocialPost]:
        """Posts newest first."""
        with self._lock:
            posts = list(self._posts.values())
        return sorted(posts, key=lambda p: p.timestamp, reverse=True)

    def get_post(self, post_id: str) -> SocialPost:
        with self._lock:
            post = self._posts.get(post_id)
        if post is None:
            raise NotFoundError("Post", post_id)
        return post

    def get_challenges(self) -> list[Challenge]:
        """Challenges ordered by end date, soonest first."""
        with self._lock:
            challenges = list(self._challenges.values())
        return sorted(challenges, key=lambda c: c.end_date)

    def get_notifications_for_user(self, user_id: str) -> list[Notification]:
        """Notifications derived from the current state for *user_id*."""
        snap = self.snapshot()
        if not any(u.id == user_id for u in snap.users):
            raise NotFoundError("User", user_id)
        return generate_notifications(user_id, snap, today=self._clock().date())

    # -------------------------------------------------------------------
    # Snapshot / restore
    # -------------------------------------------------------------------
    def snapshot(self) -> StoreSnapshot:
        """Consistent copy of all collections (taken under one lock)."""
        with self._lock:
            return StoreSnapshot(
                users=tuple(self._users.values()),
                saplings=tuple(self._saplings.values()),
                posts=tuple(self._posts.values()),
                challenges=tuple(self._challenges.values()),
            )

    def load_snapshot(self, snapshot: StoreSnapshot) -> None:
        """Replace the entire store content with *snapshot*.

        Only primary data is restored; status, rank, level, badges and
        notifications are re-derived on demand.
        """
        users = {u.id: u for u in snapshot.users}
        if len(users) != len(snapshot.users):
            raise ValidationError("Snapshot contains duplicate user ids.", field_name="users")
        for user in users.values():
            if user.points < 0:
                raise ValidationError(
                    f"User {user.id} has negative points.", field_name="points",
                )
        saplings = {s.id: s for s in snapshot.saplings}
        for sapling in saplings.values():
            stamps = [u.timestamp for u in sapling.updates]
            if stamps != sorted(stamps):
                raise ValidationError(
                    f"Updates of sapling {sapling.id} are not in time order.",
                    field_name="updates",
                )

        with self._lock:
            self._users = users
            self._saplings = saplings
            self._posts = {p.id: p for p in snapshot.posts}
            self._challenges = {c.id: c for c in snapshot.challenges}

        logger.info(
            "Store restored: %d users, %d saplings, %d posts, %d challenges",
            len(users), len(saplings), len(snapshot.posts), len(snapshot.challenges),
        )
        self._changed()
