"""
vriksha.engine.notifications — Notification Generator
======================================================

Notifications are never stored.  :func:`generate_notifications` derives
them from a :class:`StoreSnapshot` every time it is called:

- WARNING per owned sapling whose current status needs attention
  (``Needs Water`` / ``Damaged``)
- INFO per owned sapling reported ``Lost``
- INFO per owned sapling still waiting for its first photo
- INFO per challenge that has not ended yet
- SUCCESS when the user holds leaderboard rank 1

Ids are deterministic (keyed by the fact they describe), so a dismissal
holds until that fact changes.  A new update on a sapling yields a new id
and the alert comes back.

Dismissal lives in a :class:`NotificationInbox`, one per consuming
session; it is never written back into the store.
"""

from __future__ import annotations

import logging
import threading
from datetime import date
from typing import TYPE_CHECKING

from vriksha.constants import ATTENTION_STATUSES
from vriksha.engine.analytics import current_status, latest_update
from vriksha.engine.entities import HealthStatus, Notification, Severity, StoreSnapshot
from vriksha.engine.leaderboard import DEFAULT_RULES, LeaderboardRules, standing_for
from vriksha.errors import NotFoundError

if TYPE_CHECKING:
    from vriksha.engine.store import EntityStore

logger = logging.getLogger(__name__)

__all__ = ["NotificationInbox", "generate_notifications"]


def generate_notifications(
    user_id: str,
    snapshot: StoreSnapshot,
    *,
    today: date,
    rules: LeaderboardRules = DEFAULT_RULES,
) -> list[Notification]:
    """Notifications currently relevant to *user_id*, in display order."""
    notes: list[Notification] = []

    for sapling in snapshot.saplings:
        if sapling.guardian_id != user_id:
            continue
        status = current_status(sapling)
        last = latest_update(sapling)

        if status in ATTENTION_STATUSES:
            notes.append(Notification(
                id=f"attention:{sapling.id}:{last.id}",
                user_id=user_id,
                message=f"Your {sapling.species} ({sapling.id}) needs attention: {status}.",
                severity=Severity.WARNING,
            ))
        elif status == HealthStatus.LOST:
            notes.append(Notification(
                id=f"lost:{sapling.id}:{last.id}",
                user_id=user_id,
                message=f"Your {sapling.species} ({sapling.id}) has been reported lost.",
                severity=Severity.INFO,
            ))
        elif status == HealthStatus.NO_DATA:
            notes.append(Notification(
                id=f"first-photo:{sapling.id}",
                user_id=user_id,
                message=f"Add a first photo of your {sapling.species} ({sapling.id}).",
                severity=Severity.INFO,
            ))

    for challenge in sorted(snapshot.challenges, key=lambda c: c.end_date):
        if challenge.end_date < today:
            continue
        notes.append(Notification(
            id=f"challenge:{challenge.id}",
            user_id=user_id,
            message=(
                f"New challenge: {challenge.title} "
                f"(+{challenge.points} pts, ends {challenge.end_date.isoformat()})."
            ),
            severity=Severity.INFO,
        ))

    standing = standing_for(snapshot.users, user_id, rules)
    if standing is not None and standing.rank == 1:
        notes.append(Notification(
            id=f"top-rank:{user_id}",
            user_id=user_id,
            message="You are the top volunteer on the leaderboard!",
            severity=Severity.SUCCESS,
        ))

    return notes


class NotificationInbox:
    """A consuming session's view of one user's notifications.

    Every :meth:`pending` call re-derives from the store, then filters out
    ids dismissed in this inbox.  A fresh inbox starts with no dismissals.
    """

    def __init__(self, store: EntityStore, user_id: str) -> None:
        self._store = store
        self._user_id = user_id
        self._dismissed: set[str] = set()
        self._lock = threading.Lock()

    @property
    def user_id(self) -> str:
        return self._user_id

    def pending(self) -> list[Notification]:
        notes = self._store.get_notifications_for_user(self._user_id)
        with self._lock:
            return [n for n in notes if n.id not in self._dismissed]

    def dismiss(self, notification_id: str) -> None:
        """Hide *notification_id* for the rest of this session.

        Raises
        ------
        NotFoundError
            If the id is not among the currently pending notifications.
        """
        if not any(n.id == notification_id for n in self.pending()):
            raise NotFoundError("Notification", notification_id)
        with self._lock:
            self._dismissed.add(notification_id)
        logger.debug("Notification %s dismissed for %s", notification_id, self._user_id)
