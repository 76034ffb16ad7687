"""Debounced hand-off of edited settings to an external sync target."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

LOGGER = logging.getLogger("SCControls.Sync")

DEFAULT_DEBOUNCE_SECONDS = 0.5
MIN_DEBOUNCE_SECONDS = 0.05


class DebouncedSync:
    """Collapse bursts of edits into one callback invocation.

    Each ``schedule()`` replaces the pending timer, so only the last call in a
    burst fires. The callback reads whatever state exists when it runs.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._callback = callback
        self._debounce_seconds = max(MIN_DEBOUNCE_SECONDS, float(debounce_seconds))
        self._logger = logger or LOGGER
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0

    @property
    def debounce_seconds(self) -> float:
        return self._debounce_seconds

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self) -> None:
        with self._lock:
            previous = self._timer
            self._generation += 1
            generation = self._generation
            timer = threading.Timer(self._debounce_seconds, self._fire, args=(generation,))
            timer.daemon = True
            self._timer = timer
        if previous is not None:
            previous.cancel()
        timer.start()

    def configure_debounce(self, debounce_seconds: float) -> None:
        """Update the interval and re-arm a pending sync with it."""

        with self._lock:
            self._debounce_seconds = max(MIN_DEBOUNCE_SECONDS, float(debounce_seconds))
            rearm = self._timer is not None
        if rearm:
            self.schedule()

    def cancel(self) -> None:
        with self._lock:
            timer = self._timer
            self._timer = None
            self._generation += 1
        if timer is not None:
            timer.cancel()

    def flush_pending(self) -> bool:
        """Run a pending sync immediately; returns False when nothing was pending."""

        with self._lock:
            timer = self._timer
            if timer is None:
                return False
            generation = self._generation
        timer.cancel()
        self._fire(generation)
        return True

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._timer is None:
                return
            self._timer = None
        try:
            self._callback()
        except Exception as exc:
            self._logger.exception("Settings sync failed: %s", exc)
