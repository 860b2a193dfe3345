"""
vriksha.services.seed — Demo Data Seeder
=========================================

Builds a :class:`StoreSnapshot` from a YAML fixture (default:
``seeds/demo.yaml``) and restores it into an :class:`EntityStore`.

Dates in the fixture are relative (``days_ago`` / ``ends_in_days``) and
are anchored at the store's clock, so demo data always looks recent.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from vriksha.engine.entities import (
    Challenge,
    Comment,
    Location,
    Role,
    Sapling,
    SaplingUpdate,
    SocialPost,
    StoreSnapshot,
    User,
    WeatherData,
)
from vriksha.engine.store import coerce_status

if TYPE_CHECKING:
    from vriksha.engine.store import EntityStore

logger = logging.getLogger(__name__)

# Resolve the seeds directory relative to the project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_SEEDS_DIR = _PROJECT_ROOT / "seeds"
DEFAULT_SEED_FILE = _SEEDS_DIR / "demo.yaml"


def resolve_seed_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_SEED_FILE
    seed_path = Path(path)
    return seed_path if seed_path.is_absolute() else _PROJECT_ROOT / seed_path


def load_seed_file(path: str | Path | None = None) -> dict[str, Any]:
    """Read a seed fixture; a missing file yields an empty fixture.

    Relative paths (such as ``seed_file: seeds/demo.yaml`` in the config)
    are resolved against the project root, not the working directory.
    """
    seed_path = resolve_seed_path(path)
    if not seed_path.exists():
        logger.warning("Seed file not found: %s", seed_path)
        return {}
    with open(seed_path, encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _weather(item: dict) -> WeatherData | None:
    if "rainfall" not in item:
        return None
    return WeatherData(
        temp=float(item.get("temp", 28.0)),
        humidity=float(item.get("humidity", 60.0)),
        rainfall=float(item["rainfall"]),
    )


def _sapling(data: dict, now: datetime) -> Sapling:
    planted_at = now - timedelta(days=data.get("planted_days_ago", 0))
    raw_updates = sorted(data.get("updates") or [], key=lambda u: -u.get("days_ago", 0))
    updates = tuple(
        SaplingUpdate(
            id=u.get("id") or f"{data['id']}-u{i + 1}",
            timestamp=now - timedelta(days=u.get("days_ago", 0)),
            status=coerce_status(u["status"]),
            image_url=u.get("image"),
            submitted_by=u.get("submitted_by", data["guardian"]),
            recommendation=u.get("recommendation"),
            confidence=u.get("confidence"),
            weather=_weather(u),
            soil_condition=u.get("soil"),
        )
        for i, u in enumerate(raw_updates)
    )
    return Sapling(
        id=data["id"],
        species=data["species"],
        location=Location(lat=float(data["lat"]), lng=float(data["lng"])),
        guardian_id=data["guardian"],
        planted_at=planted_at,
        updates=updates,
    )


def build_snapshot(data: dict[str, Any], *, now: datetime) -> StoreSnapshot:
    """Turn a parsed fixture into a snapshot anchored at *now*."""
    users = tuple(
        User(
            id=u["id"],
            name=u["name"],
            role=Role(u.get("role", Role.VOLUNTEER)),
            points=int(u.get("points", 0)),
        )
        for u in data.get("users") or []
    )
    challenges = tuple(
        Challenge(
            id=c["id"],
            title=c["title"],
            description=c.get("description", ""),
            points=int(c.get("points", 0)),
            end_date=(now + timedelta(days=c.get("ends_in_days", 0))).date(),
        )
        for c in data.get("challenges") or []
    )
    saplings = tuple(_sapling(s, now) for s in data.get("saplings") or [])
    posts = tuple(
        SocialPost(
            id=p["id"],
            user_id=p["user"],
            caption=p.get("caption", ""),
            image_url=p.get("image"),
            timestamp=now - timedelta(hours=p.get("hours_ago", 0)),
            likes=tuple(p.get("likes") or ()),
            comments=tuple(
                Comment(
                    id=f"{p['id']}-c{i + 1}",
                    user_id=c["user"],
                    text=c["text"],
                    timestamp=now - timedelta(hours=c.get("hours_ago", 0)),
                )
                for i, c in enumerate(p.get("comments") or [])
            ),
            sapling_id=p.get("sapling"),
        )
        for p in data.get("posts") or []
    )
    return StoreSnapshot(users=users, saplings=saplings, posts=posts, challenges=challenges)


def seed_store(store: EntityStore, path: str | Path | None = None) -> StoreSnapshot:
    """Replace *store*'s content with the fixture at *path*."""
    snapshot = build_snapshot(load_seed_file(path), now=store.now())
    store.load_snapshot(snapshot)
    logger.info(
        "Seeded %d users, %d saplings, %d challenges.",
        len(snapshot.users), len(snapshot.saplings), len(snapshot.challenges),
    )
    return snapshot
