"""
vriksha.api.routes.users — Login lookup, profiles & notifications
==================================================================

Login is a name lookup, not authentication.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from vriksha.api.deps import (
    InboxRegistry,
    get_inbox_registry,
    get_rules,
    get_session_id,
    get_store,
)
from vriksha.api.serializers import (
    notification_dict,
    ranked_dict,
    sapling_dict,
    user_dict,
)
from vriksha.engine.analytics import guardian_stats
from vriksha.engine.entities import Role
from vriksha.engine.leaderboard import LeaderboardRules, standing_for
from vriksha.engine.store import EntityStore

router = APIRouter(tags=["users"])

StoreDep = Annotated[EntityStore, Depends(get_store)]


class LoginRequest(BaseModel):
    name: str = Field(min_length=1)
    role: Role | None = None


class UserCreate(BaseModel):
    name: str
    role: Role = Role.VOLUNTEER


# ---------------------------------------------------------------------------
# Login & registration
# ---------------------------------------------------------------------------
@router.post("/login")
def login(body: LoginRequest, store: StoreDep):
    user = store.find_user_by_name(body.name, body.role)
    if user is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Unknown user")
    return user_dict(user)


@router.get("/users")
def list_users(store: StoreDep):
    return [user_dict(u) for u in store.get_all_users()]


@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(body: UserCreate, store: StoreDep):
    return user_dict(store.register_user(body.name, body.role))


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------
@router.get("/users/{user_id}")
def get_user(
    user_id: str,
    store: StoreDep,
    rules: Annotated[LeaderboardRules, Depends(get_rules)],
):
    """Profile with derived standing and quick stats."""
    user = store.get_user(user_id)
    standing = standing_for(store.get_all_users(), user_id, rules)
    stats = guardian_stats(store.get_saplings_by_guardian(user_id))
    return {
        **(ranked_dict(standing) if standing is not None else user_dict(user)),
        "stats": {
            "total_saplings": stats.total_saplings,
            "needs_water": stats.needs_water,
        },
    }


@router.get("/users/{user_id}/saplings")
def get_user_saplings(user_id: str, store: StoreDep):
    store.get_user(user_id)
    return [sapling_dict(s) for s in store.get_saplings_by_guardian(user_id)]


# ---------------------------------------------------------------------------
# Notifications (dismissal is per X-Session-Id)
# ---------------------------------------------------------------------------
@router.get("/users/{user_id}/notifications")
def get_notifications(
    user_id: str,
    registry: Annotated[InboxRegistry, Depends(get_inbox_registry)],
    session_id: Annotated[str, Depends(get_session_id)],
):
    inbox = registry.inbox(session_id, user_id)
    return [notification_dict(n) for n in inbox.pending()]


@router.post(
    "/users/{user_id}/notifications/{notification_id}/dismiss",
    status_code=status.HTTP_204_NO_CONTENT,
)
def dismiss_notification(
    user_id: str,
    notification_id: str,
    registry: Annotated[InboxRegistry, Depends(get_inbox_registry)],
    session_id: Annotated[str, Depends(get_session_id)],
):
    registry.inbox(session_id, user_id).dismiss(notification_id)
