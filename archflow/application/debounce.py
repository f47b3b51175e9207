"""Debounced, cancellable persistence of flow snapshots."""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from archflow.domain.errors import PersistenceError

logger = logging.getLogger(__name__)

TimerFactory = Callable[..., Any]


class DebouncedPersister:
    """Pushes the latest snapshot once edits have been quiet for ``delay`` seconds.

    Every ``schedule`` cancels the pending timer and starts a new one, so a
    burst of edits results in a single push of the last snapshot. ``cancel``
    must be called when the owner goes away; nothing is written afterwards.
    """

    def __init__(
        self,
        delay: float,
        push: Callable[[Any], None],
        on_error: Optional[Callable[[PersistenceError], None]] = None,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self.delay = delay
        self._push = push
        self._on_error = on_error
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        # Held for the duration of a push; cancel waits on it
        self._push_lock = threading.RLock()
        self._timer = None
        self._pending: Any = None
        self._has_pending = False
        self._generation = 0
        self._closed = False

    @property
    def has_pending(self) -> bool:
        return self._has_pending

    def schedule(self, snapshot: Any) -> None:
        with self._lock:
            if self._closed:
                return
            self._cancel_timer()
            self._generation += 1
            self._pending = snapshot
            self._has_pending = True
            timer = self._timer_factory(self.delay, self._fire, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _take(self) -> tuple[bool, Any]:
        snapshot, had = self._pending, self._has_pending
        self._pending = None
        self._has_pending = False
        return had, snapshot

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A newer schedule or a cancel superseded this timer
            if self._closed or generation != self._generation:
                return
            self._timer = None
            had, snapshot = self._take()
        if had:
            self._run(snapshot)

    def _run(self, snapshot: Any) -> None:
        try:
            with self._push_lock:
                if self._closed:
                    return
                self._push(snapshot)
        except PersistenceError as e:
            logger.error(f"[PERSIST] Snapshot push failed: {e}")
            if self._on_error is not None:
                self._on_error(e)

    def flush(self) -> bool:
        """Push the pending snapshot now. Returns False when nothing was pending."""
        with self._lock:
            self._cancel_timer()
            self._generation += 1
            had, snapshot = self._take()
        if had:
            with self._push_lock:
                self._push(snapshot)
        return had

    def cancel(self) -> None:
        """Drop the pending snapshot and stop accepting new ones.

        A push already in flight is waited for, so nothing is written once
        this returns.
        """
        with self._lock:
            self._cancel_timer()
            self._generation += 1
            self._take()
            self._closed = True
        with self._push_lock:
            pass
