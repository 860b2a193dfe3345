"""
vriksha.api.routes.snapshots — Save / restore the store to the database
========================================================================
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import Engine

from vriksha.api.deps import get_engine, get_store
from vriksha.database.engine import run_db
from vriksha.database.snapshot import load_snapshot, save_snapshot
from vriksha.engine.store import EntityStore

router = APIRouter(prefix="/snapshot", tags=["snapshot"])

StoreDep = Annotated[EntityStore, Depends(get_store)]
EngineDep = Annotated[Engine, Depends(get_engine)]


def _counts(snapshot) -> dict:
    return {
        "users": len(snapshot.users),
        "saplings": len(snapshot.saplings),
        "posts": len(snapshot.posts),
        "challenges": len(snapshot.challenges),
    }


@router.post("/save")
async def save(store: StoreDep, engine: EngineDep):
    snapshot = store.snapshot()
    await run_db(save_snapshot, engine, snapshot)
    return _counts(snapshot)


@router.post("/restore")
async def restore(store: StoreDep, engine: EngineDep):
    snapshot = await run_db(load_snapshot, engine)
    store.load_snapshot(snapshot)
    return _counts(snapshot)
