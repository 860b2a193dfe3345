"""
vriksha.api.routes.social — Feed, likes, comments & challenges
===============================================================
"""

from __future__ import annotations

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from vriksha.api.deps import get_field_service, get_store
from vriksha.api.serializers import challenge_dict, comment_dict, post_dict
from vriksha.database.engine import run_db
from vriksha.engine.store import EntityStore
from vriksha.services.field_service import FieldService

router = APIRouter(tags=["social"])

StoreDep = Annotated[EntityStore, Depends(get_store)]


class PostCreate(BaseModel):
    user_id: str
    caption: str = ""
    image: str | None = None
    sapling_id: str | None = None


class LikeToggle(BaseModel):
    user_id: str


class CommentCreate(BaseModel):
    user_id: str
    text: str


class CaptionRequest(BaseModel):
    image: str


class ChallengeCreate(BaseModel):
    title: str
    description: str = ""
    points: int = 0
    end_date: date


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------
@router.get("/feed")
def get_feed(store: StoreDep):
    return [post_dict(p) for p in store.get_social_feed()]


@router.post("/posts", status_code=status.HTTP_201_CREATED)
def create_post(body: PostCreate, store: StoreDep):
    post = store.create_social_post(body.user_id, body.caption, body.image, body.sapling_id)
    return post_dict(post)


@router.post("/posts/{post_id}/like")
def toggle_like(post_id: str, body: LikeToggle, store: StoreDep):
    return post_dict(store.toggle_like(post_id, body.user_id))


@router.post("/posts/{post_id}/comments", status_code=status.HTTP_201_CREATED)
def add_comment(post_id: str, body: CommentCreate, store: StoreDep):
    return comment_dict(store.add_comment(post_id, body.user_id, body.text))


@router.post("/captions")
async def suggest_caption(
    body: CaptionRequest,
    field: Annotated[FieldService, Depends(get_field_service)],
):
    return {"caption": await run_db(field.suggest_caption, body.image)}


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------
@router.get("/challenges")
def list_challenges(store: StoreDep):
    return [challenge_dict(c) for c in store.get_challenges()]


@router.post("/challenges", status_code=status.HTTP_201_CREATED)
def create_challenge(body: ChallengeCreate, store: StoreDep):
    challenge = store.add_challenge(body.title, body.description, body.points, body.end_date)
    return challenge_dict(challenge)
