"""
vriksha.api.routes.insights — Dashboard analytics & leaderboard
================================================================
"""

from __future__ import annotations

from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, Query

from vriksha.api.deps import get_config, get_rules, get_store
from vriksha.api.serializers import ranked_dict
from vriksha.config import VrikshaConfig
from vriksha.engine.analytics import (
    dashboard_summary,
    health_distribution,
    health_trend,
    rainfall_survival,
)
from vriksha.engine.leaderboard import LeaderboardRules, rank_users, top_volunteers
from vriksha.engine.store import EntityStore
from vriksha.errors import ValidationError

router = APIRouter(prefix="/insights", tags=["insights"])

StoreDep = Annotated[EntityStore, Depends(get_store)]
RulesDep = Annotated[LeaderboardRules, Depends(get_rules)]


@router.get("/summary")
def get_summary(store: StoreDep, rules: RulesDep):
    """Admin dashboard header cards plus the top-10 volunteers."""
    users = store.get_all_users()
    summary = dashboard_summary(store.get_all_saplings(), users)
    return {
        "total_saplings": summary.total_saplings,
        "lost_saplings": summary.lost_saplings,
        "survival_rate": round(summary.survival_rate, 1),
        "follow_up_count": summary.follow_up_count,
        "follow_up_rate": round(summary.follow_up_rate, 1),
        "active_volunteers": summary.active_volunteers,
        "top_volunteers": [ranked_dict(r) for r in top_volunteers(users, 10, rules)],
    }


@router.get("/distribution")
def get_distribution(store: StoreDep):
    return {str(k): v for k, v in health_distribution(store.get_all_saplings()).items()}


@router.get("/trend")
def get_trend(
    store: StoreDep,
    cfg: Annotated[VrikshaConfig, Depends(get_config)],
    tz: str | None = Query(None, description="Viewer's IANA time zone, e.g. Asia/Kolkata"),
):
    try:
        zone = ZoneInfo(tz) if tz else None
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown time zone: {tz}", field_name="tz") from None
    points = health_trend(store.get_all_saplings(), window=cfg.trend_window, tz=zone)
    return [
        {"date": p.day.isoformat(), "average_score": round(p.average_score, 2), "count": p.count}
        for p in points
    ]


@router.get("/rainfall")
def get_rainfall(store: StoreDep):
    return [
        {
            "label": b.label,
            "total": b.total,
            "survived": b.survived,
            "survival_rate": round(b.survival_rate, 1),
        }
        for b in rainfall_survival(store.get_all_saplings())
    ]


@router.get("/leaderboard")
def get_leaderboard(
    store: StoreDep,
    rules: RulesDep,
    limit: int | None = Query(None, ge=1, le=100),
):
    ranked = rank_users(store.get_all_users(), rules)
    if limit is not None:
        ranked = ranked[:limit]
    return [ranked_dict(r) for r in ranked]
