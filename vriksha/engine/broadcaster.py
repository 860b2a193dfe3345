"""
vriksha.engine.broadcaster — Change Broadcaster
================================================

Payload-free change notification for the entity store.  Observers are
plain callables; on every notification they re-pull whatever they need
from the store, so they always see current state.

Rules:
  * callbacks run synchronously, in registration order;
  * the observer list is snapshotted before a round, so unsubscribing
    (or subscribing) from inside a callback is safe and takes effect
    from the next round;
  * inside :meth:`ChangeBroadcaster.batch` notifications are deferred and
    collapsed into one when the outermost batch exits.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)

__all__ = ["ChangeBroadcaster", "Observer"]

Observer = Callable[[], None]


class ChangeBroadcaster:
    """Ordered observer registry with optional batching.

    Usage::

        broadcaster = ChangeBroadcaster()
        unsubscribe = broadcaster.subscribe(lambda: print("changed"))
        broadcaster.notify()
        unsubscribe()
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # token → callback; dicts keep insertion (= registration) order
        self._observers: dict[int, Observer] = {}
        self._next_token = 0
        self._batch_depth = 0
        self._pending = False

    def subscribe(self, callback: Observer) -> Callable[[], None]:
        """Register *callback* and return a handle that unregisters it.

        The handle is idempotent; calling it twice is harmless.
        """
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._observers[token] = callback

        def unsubscribe() -> None:
            with self._lock:
                self._observers.pop(token, None)

        return unsubscribe

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    def notify(self) -> None:
        """Invoke every registered observer, or defer if a batch is open."""
        with self._lock:
            if self._batch_depth > 0:
                self._pending = True
                return
        self._dispatch()

    def _dispatch(self) -> None:
        with self._lock:
            tokens = list(self._observers)

        for token in tokens:
            with self._lock:
                # Skip observers removed earlier in this round
                callback = self._observers.get(token)
            if callback is None:
                continue
            try:
                callback()
            except Exception:
                logger.exception("Change observer %r failed", callback)

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Collapse all notifications inside the block into (at most) one."""
        with self._lock:
            self._batch_depth += 1
        try:
            yield
        finally:
            with self._lock:
                self._batch_depth -= 1
                flush = self._batch_depth == 0 and self._pending
                if flush:
                    self._pending = False
            if flush:
                self._dispatch()
