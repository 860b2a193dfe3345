"""
vriksha.api.serializers — Entity → JSON dict helpers
=====================================================
"""

from __future__ import annotations

from vriksha.engine.analytics import current_status
from vriksha.engine.entities import (
    Challenge,
    Comment,
    Notification,
    Sapling,
    SaplingUpdate,
    SocialPost,
    User,
    WeatherData,
)
from vriksha.engine.leaderboard import RankedUser


def _iso(value) -> str | None:
    return value.isoformat() if value is not None else None


def user_dict(u: User) -> dict:
    return {"id": u.id, "name": u.name, "role": str(u.role), "points": u.points}


def ranked_dict(r: RankedUser) -> dict:
    return {
        **user_dict(r.user),
        "rank": r.rank,
        "level": str(r.level),
        "level_label": r.level.label,
        "badges": [
            {"id": str(b), "title": b.display_name} for b in r.badges
        ],
    }


def weather_dict(w: WeatherData | None) -> dict | None:
    if w is None:
        return None
    return {"temp": w.temp, "humidity": w.humidity, "rainfall": w.rainfall}


def update_dict(u: SaplingUpdate) -> dict:
    return {
        "id": u.id,
        "timestamp": _iso(u.timestamp),
        "status": str(u.status),
        "image_url": u.image_url,
        "submitted_by": u.submitted_by,
        "recommendation": u.recommendation,
        "confidence": u.confidence,
        "weather": weather_dict(u.weather),
        "soil_condition": u.soil_condition,
        "submission_id": u.submission_id,
    }


def sapling_dict(s: Sapling, *, with_updates: bool = True) -> dict:
    data = {
        "id": s.id,
        "species": s.species,
        "location": {"lat": s.location.lat, "lng": s.location.lng},
        "guardian_id": s.guardian_id,
        "planted_at": _iso(s.planted_at),
        "status": str(current_status(s)),
        "update_count": len(s.updates),
    }
    if with_updates:
        data["updates"] = [update_dict(u) for u in s.updates]
    return data


def comment_dict(c: Comment) -> dict:
    return {"id": c.id, "user_id": c.user_id, "text": c.text, "timestamp": _iso(c.timestamp)}


def post_dict(p: SocialPost) -> dict:
    return {
        "id": p.id,
        "user_id": p.user_id,
        "caption": p.caption,
        "image_url": p.image_url,
        "timestamp": _iso(p.timestamp),
        "sapling_id": p.sapling_id,
        "likes": list(p.likes),
        "like_count": len(p.likes),
        "comments": [comment_dict(c) for c in p.comments],
    }


def challenge_dict(c: Challenge) -> dict:
    return {
        "id": c.id,
        "title": c.title,
        "description": c.description,
        "points": c.points,
        "end_date": c.end_date.isoformat(),
    }


def notification_dict(n: Notification) -> dict:
    return {"id": n.id, "message": n.message, "severity": str(n.severity)}
