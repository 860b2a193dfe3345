"""
vriksha.engine.analytics — Derived Views over a Store Snapshot
===============================================================

Pure functions.  No store access, no I/O; callers pass the saplings
(and users) they pulled from the store.

:func:`current_status` is THE definition of a sapling's current health.
Dashboard counts, map markers, list filters, notifications and the
rainfall chart all go through it.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, tzinfo

from vriksha.constants import HEALTH_SCORES, RAINFALL_BINS, TREND_WINDOW
from vriksha.engine.entities import HealthStatus, Role, Sapling, SaplingUpdate, User

__all__ = [
    "DashboardSummary",
    "GuardianStats",
    "MapMarker",
    "RainfallBin",
    "TrendPoint",
    "current_status",
    "dashboard_summary",
    "filter_saplings",
    "guardian_stats",
    "health_distribution",
    "health_trend",
    "latest_update",
    "map_markers",
    "mean_rainfall",
    "rainfall_bin_label",
    "rainfall_survival",
]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TrendPoint:
    day: date
    average_score: float
    count: int


@dataclass(frozen=True, slots=True)
class RainfallBin:
    label: str
    total: int
    survived: int

    @property
    def survival_rate(self) -> float:
        return self.survived / self.total * 100 if self.total else 0.0


@dataclass(frozen=True, slots=True)
class DashboardSummary:
    total_saplings: int
    lost_saplings: int
    survival_rate: float
    follow_up_count: int
    follow_up_rate: float
    active_volunteers: int


@dataclass(frozen=True, slots=True)
class GuardianStats:
    total_saplings: int
    needs_water: int


@dataclass(frozen=True, slots=True)
class MapMarker:
    sapling_id: str
    species: str
    lat: float
    lng: float
    status: HealthStatus


# ---------------------------------------------------------------------------
# Current status
# ---------------------------------------------------------------------------
def latest_update(sapling: Sapling) -> SaplingUpdate | None:
    return sapling.updates[-1] if sapling.updates else None


def current_status(sapling: Sapling) -> HealthStatus:
    """Status of the most recent update, or ``NO_DATA`` if never observed."""
    last = latest_update(sapling)
    return last.status if last is not None else HealthStatus.NO_DATA


# ---------------------------------------------------------------------------
# Health distribution & trend
# ---------------------------------------------------------------------------
def health_distribution(saplings: Iterable[Sapling]) -> dict[HealthStatus, int]:
    """Count of saplings per current status (every status present, zero-filled).

    The counts always sum to the number of saplings passed in.
    """
    counts = {status: 0 for status in HealthStatus}
    for sapling in saplings:
        counts[current_status(sapling)] += 1
    return counts


def _local_day(ts: datetime, tz: tzinfo | None) -> date:
    # Naive timestamps are taken as already being in the viewer's calendar
    if ts.tzinfo is None:
        return ts.date()
    return ts.astimezone(tz).date()


def health_trend(
    saplings: Iterable[Sapling],
    *,
    window: int = TREND_WINDOW,
    tz: tzinfo | None = None,
) -> list[TrendPoint]:
    """Average health score per calendar day over every update.

    Days are the viewer's local calendar days (*tz*, default: system local
    zone).  Days without updates are absent.  At most the *window* most
    recent days are returned, oldest first.
    """
    totals: dict[date, list[int]] = {}
    for sapling in saplings:
        for update in sapling.updates:
            bucket = totals.setdefault(_local_day(update.timestamp, tz), [0, 0])
            bucket[0] += HEALTH_SCORES[update.status]
            bucket[1] += 1

    points = [
        TrendPoint(day=day, average_score=total / count, count=count)
        for day, (total, count) in sorted(totals.items())
    ]
    return points[-window:] if window > 0 else []


# ---------------------------------------------------------------------------
# Rainfall vs survival
# ---------------------------------------------------------------------------
def mean_rainfall(sapling: Sapling) -> float | None:
    """Mean rainfall over updates carrying weather; ``None`` if there are none."""
    readings = [u.weather.rainfall for u in sapling.updates if u.weather is not None]
    if not readings:
        return None
    return sum(readings) / len(readings)


def rainfall_bin_label(rainfall: float) -> str:
    for label, upper in RAINFALL_BINS:
        if upper is None or rainfall <= upper:
            return label
    return RAINFALL_BINS[-1][0]


def rainfall_survival(saplings: Iterable[Sapling]) -> list[RainfallBin]:
    """Survival percentage per mean-rainfall bin.

    Saplings without any weather reading are left out.  A sapling counts
    as survived unless its current status is ``Lost``.
    """
    tallies = {label: [0, 0] for label, _ in RAINFALL_BINS}
    for sapling in saplings:
        rainfall = mean_rainfall(sapling)
        if rainfall is None:
            continue
        tally = tallies[rainfall_bin_label(rainfall)]
        tally[0] += 1
        if current_status(sapling) != HealthStatus.LOST:
            tally[1] += 1

    return [
        RainfallBin(label=label, total=total, survived=survived)
        for label, (total, survived) in tallies.items()
    ]


# ---------------------------------------------------------------------------
# Dashboard helpers
# ---------------------------------------------------------------------------
def dashboard_summary(
    saplings: Sequence[Sapling], users: Iterable[User],
) -> DashboardSummary:
    total = len(saplings)
    lost = sum(1 for s in saplings if current_status(s) == HealthStatus.LOST)
    follow_ups = sum(1 for s in saplings if len(s.updates) > 1)
    return DashboardSummary(
        total_saplings=total,
        lost_saplings=lost,
        survival_rate=(total - lost) / total * 100 if total else 0.0,
        follow_up_count=follow_ups,
        follow_up_rate=follow_ups / total * 100 if total else 0.0,
        active_volunteers=sum(1 for u in users if u.role == Role.VOLUNTEER),
    )


def guardian_stats(saplings: Sequence[Sapling]) -> GuardianStats:
    return GuardianStats(
        total_saplings=len(saplings),
        needs_water=sum(
            1 for s in saplings if current_status(s) == HealthStatus.NEEDS_WATER
        ),
    )


def filter_saplings(
    saplings: Iterable[Sapling],
    users: Iterable[User],
    *,
    lost_only: bool = False,
    search: str | None = None,
) -> list[Sapling]:
    """Sapling list filter: lost-only toggle plus free-text search.

    The search matches (case-insensitively) the sapling id, the species or
    the guardian's name.
    """
    names = {u.id: u.name.casefold() for u in users}
    needle = (search or "").strip().casefold()

    result = []
    for sapling in saplings:
        if lost_only and current_status(sapling) != HealthStatus.LOST:
            continue
        if needle and not (
            needle in sapling.id.casefold()
            or needle in sapling.species.casefold()
            or needle in names.get(sapling.guardian_id, "")
        ):
            continue
        result.append(sapling)
    return result


def map_markers(saplings: Iterable[Sapling]) -> list[MapMarker]:
    return [
        MapMarker(
            sapling_id=s.id,
            species=s.species,
            lat=s.location.lat,
            lng=s.location.lng,
            status=current_status(s),
        )
        for s in saplings
    ]
