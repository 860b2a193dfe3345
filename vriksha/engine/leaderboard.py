"""
vriksha.engine.leaderboard — Leaderboard Ranker
================================================

Rank, level and badges for volunteers.  Nothing here is stored: every
value is recomputed from the users' ``points`` on each call.

Ranking rules:
  * only ``Role.VOLUNTEER`` users are ranked;
  * points descending, ties keep the input (store insertion) order;
  * ranks are 1..N by sorted position, so they are unique.

Levels are threshold functions over points; badges are a registry of
predicates keyed by :class:`Badge`, each evaluated against a
:class:`BadgeContext`.

This module is pure calculation — no store access, no I/O.
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from vriksha.constants import (
    BADGE_TITLES,
    GUARDIAN_MIN_POINTS,
    HERO_MIN_POINTS,
    HIGH_SCORER_POINTS,
    LEVEL_EMOJI,
)
from vriksha.engine.entities import Role, User

if TYPE_CHECKING:
    from vriksha.config import VrikshaConfig

__all__ = [
    "BADGE_RULES",
    "Badge",
    "BadgeContext",
    "LeaderboardRules",
    "Level",
    "RankedUser",
    "badges_for",
    "level_for_points",
    "rank_users",
    "standing_for",
    "top_volunteers",
]


# ---------------------------------------------------------------------------
# Enumerated levels & badges
# ---------------------------------------------------------------------------
class Level(enum.StrEnum):
    NOVICE = "Green Novice"
    GUARDIAN = "Eco Guardian"
    HERO = "Forest Hero"

    @property
    def label(self) -> str:
        """Display label with its emoji, e.g. ``"🌳 Forest Hero"``."""
        return f"{LEVEL_EMOJI[self.value]} {self.value}"


class Badge(enum.StrEnum):
    TOP_RANK = "top_rank"
    HIGH_SCORER = "high_scorer"

    @property
    def display_name(self) -> str:
        return BADGE_TITLES[self.value]


def _default_thresholds() -> dict[Level, int]:
    return {
        Level.NOVICE: 0,
        Level.GUARDIAN: GUARDIAN_MIN_POINTS,
        Level.HERO: HERO_MIN_POINTS,
    }


@dataclass(frozen=True, slots=True)
class LeaderboardRules:
    """Tunable thresholds for levels and the ``high_scorer`` badge.

    Parameters
    ----------
    level_thresholds : Minimum points for each level.  ``NOVICE`` must
        start at 0 and the values must ascend in enum order.
    high_scorer_points : Minimum points for the ``high_scorer`` badge.
    """

    level_thresholds: Mapping[Level, int] = field(default_factory=_default_thresholds)
    high_scorer_points: int = HIGH_SCORER_POINTS

    def __post_init__(self) -> None:
        values = [self.level_thresholds.get(level) for level in Level]
        if values[0] != 0 or None in values or values != sorted(values):
            raise ValueError(
                f"Level thresholds must start at 0 and ascend: {dict(self.level_thresholds)}"
            )

    @classmethod
    def from_config(cls, cfg: VrikshaConfig) -> LeaderboardRules:
        return cls(
            level_thresholds={
                Level.NOVICE: 0,
                Level.GUARDIAN: cfg.level_thresholds["guardian"],
                Level.HERO: cfg.level_thresholds["hero"],
            },
            high_scorer_points=cfg.high_scorer_points,
        )


DEFAULT_RULES = LeaderboardRules()


# ---------------------------------------------------------------------------
# Level
# ---------------------------------------------------------------------------
def level_for_points(points: int, rules: LeaderboardRules = DEFAULT_RULES) -> Level:
    """Highest level whose threshold *points* reaches."""
    level = Level.NOVICE
    for candidate in Level:
        if points >= rules.level_thresholds[candidate]:
            level = candidate
    return level


# ---------------------------------------------------------------------------
# Badges: predicate registry
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class BadgeContext:
    rank: int
    points: int
    rules: LeaderboardRules


def _check_top_rank(ctx: BadgeContext) -> bool:
    return ctx.rank == 1


def _check_high_scorer(ctx: BadgeContext) -> bool:
    return ctx.points >= ctx.rules.high_scorer_points


BADGE_RULES: dict[Badge, Callable[[BadgeContext], bool]] = {
    Badge.TOP_RANK: _check_top_rank,
    Badge.HIGH_SCORER: _check_high_scorer,
}


def badges_for(
    rank: int, points: int, rules: LeaderboardRules = DEFAULT_RULES,
) -> tuple[Badge, ...]:
    """Badges earned at *rank* with *points*, in :class:`Badge` order."""
    ctx = BadgeContext(rank=rank, points=points, rules=rules)
    return tuple(badge for badge in Badge if BADGE_RULES[badge](ctx))


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RankedUser:
    user: User
    rank: int
    level: Level
    badges: tuple[Badge, ...] = ()

    @property
    def points(self) -> int:
        return self.user.points


def rank_users(
    users: Iterable[User], rules: LeaderboardRules = DEFAULT_RULES,
) -> list[RankedUser]:
    """Rank every volunteer in *users*.

    ``sorted`` is stable, so volunteers with equal points keep the order
    in which they were passed in (the store's insertion order).
    """
    volunteers = [u for u in users if u.role == Role.VOLUNTEER]
    ordered = sorted(volunteers, key=lambda u: -u.points)
    return [
        RankedUser(
            user=user,
            rank=position,
            level=level_for_points(user.points, rules),
            badges=badges_for(position, user.points, rules),
        )
        for position, user in enumerate(ordered, start=1)
    ]


def standing_for(
    users: Iterable[User], user_id: str, rules: LeaderboardRules = DEFAULT_RULES,
) -> RankedUser | None:
    """Ranked entry for *user_id*, or ``None`` for admins and unknown ids."""
    return next((r for r in rank_users(users, rules) if r.user.id == user_id), None)


def top_volunteers(
    users: Iterable[User], limit: int = 10, rules: LeaderboardRules = DEFAULT_RULES,
) -> list[RankedUser]:
    return rank_users(users, rules)[:max(limit, 0)]
