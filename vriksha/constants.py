"""
vriksha.constants — Shared Constants
=====================================

Single source of truth for scoring tables, reward amounts and
presentation labels.  Import from here instead of duplicating values in
the engine, services and API.
"""

from __future__ import annotations

from vriksha.engine.entities import HealthStatus

# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------
POINTS_PER_UPDATE = 10  # Flat award to the guardian per appended update


# ---------------------------------------------------------------------------
# Health scoring (trend chart)
# ---------------------------------------------------------------------------
HEALTH_SCORES: dict[HealthStatus, int] = {
    HealthStatus.HEALTHY: 4,
    HealthStatus.NEEDS_WATER: 3,
    HealthStatus.DAMAGED: 2,
    HealthStatus.LOST: 1,
}

OBSERVABLE_STATUSES: tuple[HealthStatus, ...] = tuple(HEALTH_SCORES)

TREND_WINDOW = 30  # Most recent date buckets kept in the health trend

# Statuses that raise a "needs attention" alert for the guardian
ATTENTION_STATUSES: frozenset[HealthStatus] = frozenset({
    HealthStatus.NEEDS_WATER,
    HealthStatus.DAMAGED,
})


# ---------------------------------------------------------------------------
# Rainfall bins as (label, inclusive upper bound in mm); None = unbounded
# ---------------------------------------------------------------------------
RAINFALL_BINS: tuple[tuple[str, float | None], ...] = (
    ("Dry (0mm)", 0.0),
    ("Low (1-5mm)", 5.0),
    ("Med (6-15mm)", 15.0),
    ("High (>15mm)", None),
)


# ---------------------------------------------------------------------------
# Leaderboard defaults
# ---------------------------------------------------------------------------
GUARDIAN_MIN_POINTS = 100
HERO_MIN_POINTS = 250
HIGH_SCORER_POINTS = 200

LEVEL_EMOJI: dict[str, str] = {
    "Green Novice": "\U0001f33f",  # 🌿
    "Eco Guardian": "\U0001f332",  # 🌲
    "Forest Hero": "\U0001f333",   # 🌳
}

BADGE_TITLES: dict[str, str] = {
    "top_rank": "Rank #1",
    "high_scorer": "Growth Hero",
}


# ---------------------------------------------------------------------------
# API sessions
# ---------------------------------------------------------------------------
MAX_INBOXES = 1024  # notification inboxes kept per store, one per session and user
