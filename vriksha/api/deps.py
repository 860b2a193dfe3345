"""
vriksha.api.deps — FastAPI dependency injection
================================================

Process-wide objects (config, store, field service, snapshot engine) are
built lazily once via ``lru_cache``.  Tests swap them out with
``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
import os
import threading
import weakref
from collections import OrderedDict
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy import Engine

from vriksha.config import VrikshaConfig, load_config
from vriksha.constants import MAX_INBOXES
from vriksha.database.engine import create_db_engine, init_db
from vriksha.engine.leaderboard import LeaderboardRules
from vriksha.engine.notifications import NotificationInbox
from vriksha.engine.store import EntityStore
from vriksha.services.field_service import FieldService
from vriksha.services.seed import seed_store

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_config() -> VrikshaConfig:
    path = Path(os.getenv("VRIKSHA_CONFIG", "config.yaml"))
    if not path.exists():
        logger.info("No config file at %s; using defaults", path)
        return VrikshaConfig()
    return load_config(path)


@lru_cache(maxsize=1)
def get_store() -> EntityStore:
    cfg = get_config()
    store = EntityStore(points_per_update=cfg.points_per_update)
    if cfg.seed_file:
        seed_store(store, cfg.seed_file)
    return store


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    engine = create_db_engine()
    init_db(engine)
    return engine


def get_rules(cfg: Annotated[VrikshaConfig, Depends(get_config)]) -> LeaderboardRules:
    return LeaderboardRules.from_config(cfg)


def get_field_service(
    store: Annotated[EntityStore, Depends(get_store)],
) -> FieldService:
    return FieldService(store)


# ---------------------------------------------------------------------------
# Notification sessions
# ---------------------------------------------------------------------------
class InboxRegistry:
    """One :class:`NotificationInbox` per (client session, user).

    Held in memory only, so a restart forgets every dismissal.  At most
    *max_inboxes* are kept; the least recently used one is dropped first.
    """

    def __init__(self, store: EntityStore, max_inboxes: int = MAX_INBOXES) -> None:
        self._store = store
        self._max_inboxes = max_inboxes
        self._inboxes: OrderedDict[tuple[str, str], NotificationInbox] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._inboxes)

    def inbox(self, session_id: str, user_id: str) -> NotificationInbox:
        """Return the session's inbox for *user_id*.

        Raises
        ------
        NotFoundError
            If the user does not exist; no inbox is created for them.
        """
        self._store.get_user(user_id)
        key = (session_id, user_id)
        with self._lock:
            inbox = self._inboxes.get(key)
            if inbox is None:
                inbox = self._inboxes[key] = NotificationInbox(self._store, user_id)
                while len(self._inboxes) > self._max_inboxes:
                    evicted, _ = self._inboxes.popitem(last=False)
                    logger.debug("Inbox for session %s / user %s evicted", *evicted)
            else:
                self._inboxes.move_to_end(key)
            return inbox


_registries: weakref.WeakKeyDictionary[EntityStore, InboxRegistry] = weakref.WeakKeyDictionary()
_registries_lock = threading.Lock()


def get_inbox_registry(
    store: Annotated[EntityStore, Depends(get_store)],
) -> InboxRegistry:
    with _registries_lock:
        registry = _registries.get(store)
        if registry is None:
            registry = _registries[store] = InboxRegistry(store)
        return registry


def get_session_id(
    x_session_id: Annotated[str | None, Header()] = None,
) -> str:
    return x_session_id or "default"
