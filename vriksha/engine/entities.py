"""
vriksha.engine.entities — Domain Entities & Enums
==================================================

Immutable value types for everything the :class:`EntityStore` owns.
The store never mutates an instance in place: it builds a replacement
with :func:`dataclasses.replace`, so any object handed to a caller is a
stable snapshot.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime

__all__ = [
    "Challenge",
    "Comment",
    "HealthStatus",
    "Location",
    "Notification",
    "Role",
    "Sapling",
    "SaplingUpdate",
    "Severity",
    "SocialPost",
    "StoreSnapshot",
    "User",
    "WeatherData",
]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class Role(enum.StrEnum):
    VOLUNTEER = "VOLUNTEER"
    ADMIN = "ADMIN"


class HealthStatus(enum.StrEnum):
    """Observed health of a sapling.

    ``NO_DATA`` is the sentinel current status of a sapling that has never
    been observed.  It is never a valid status for a submitted update.
    """
    HEALTHY = "Healthy"
    NEEDS_WATER = "Needs Water"
    DAMAGED = "Damaged"
    LOST = "Lost"
    NO_DATA = "No Data"


class Severity(enum.StrEnum):
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Location:
    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class WeatherData:
    """Weather at the time of an observation."""

    temp: float  # Celsius
    humidity: float  # %
    rainfall: float  # mm over the last 24h


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class User:
    """A volunteer or admin.

    ``points`` is the only stored score; level, rank and badges are
    always recomputed by :mod:`vriksha.engine.leaderboard`.
    """

    id: str
    name: str
    role: Role = Role.VOLUNTEER
    points: int = 0


@dataclass(frozen=True, slots=True)
class SaplingUpdate:
    id: str
    timestamp: datetime
    status: HealthStatus
    image_url: str | None
    submitted_by: str
    recommendation: str | None = None
    confidence: float | None = None
    weather: WeatherData | None = None
    soil_condition: str | None = None
    submission_id: str | None = None


@dataclass(frozen=True, slots=True)
class Sapling:
    """A planted sapling and its append-only observation history.

    ``updates`` is ordered by timestamp ascending.
    """

    id: str
    species: str
    location: Location
    guardian_id: str
    planted_at: datetime
    updates: tuple[SaplingUpdate, ...] = ()


@dataclass(frozen=True, slots=True)
class Comment:
    id: str
    user_id: str
    text: str
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class SocialPost:
    """A feed post.  ``likes`` holds user ids in like order, each at most once."""

    id: str
    user_id: str
    caption: str
    image_url: str | None
    timestamp: datetime
    likes: tuple[str, ...] = ()
    comments: tuple[Comment, ...] = ()
    sapling_id: str | None = None


@dataclass(frozen=True, slots=True)
class Challenge:
    id: str
    title: str
    description: str
    points: int
    end_date: date


@dataclass(frozen=True, slots=True)
class Notification:
    id: str
    user_id: str
    message: str
    severity: Severity = Severity.INFO


# ---------------------------------------------------------------------------
# Snapshot: the unit of persistence, seeding and restore
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class StoreSnapshot:
    users: tuple[User, ...] = ()
    saplings: tuple[Sapling, ...] = ()
    posts: tuple[SocialPost, ...] = ()
    challenges: tuple[Challenge, ...] = ()
