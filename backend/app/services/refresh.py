"""Staleness-driven refresh of cached data.

A RefreshCoordinator wraps a ``refresh()`` callable and decides when to run it:

- a periodic tick every ``min(30s, max(1s, stale_time / 2))`` runs it once the
  data is older than ``stale_time``
- becoming visible again, regaining focus or coming back online run it right
  away (while the host is visible)
- ``manual_refresh()`` runs it unconditionally and resets the clock

Only one ``refresh()`` runs at a time per coordinator. Failures are logged and
the clock still moves to "now", so a failing source is not hammered. A
TransientStoreError also schedules one retry on the next tick.
"""
import logging
import threading
import time
from typing import Callable, Optional

from app.core.errors import TransientStoreError

logger = logging.getLogger(__name__)

MAX_INTERVAL = 30.0
MIN_INTERVAL = 1.0


class RefreshCoordinator:

    def __init__(
        self,
        refresh: Callable[[], object],
        stale_time: float = 60.0,
        refresh_on_focus: bool = True,
        refresh_on_online: bool = True,
        clock: Callable[[], float] = time.monotonic,
        name: Optional[str] = None,
    ):
        if stale_time <= 0:
            raise ValueError("stale_time must be positive")
        self._refresh = refresh
        self.stale_time = float(stale_time)
        self.refresh_on_focus = refresh_on_focus
        self.refresh_on_online = refresh_on_online
        self.name = name or getattr(refresh, "__name__", "refresh")

        self._clock = clock
        self._state = threading.Lock()
        self._in_flight = threading.Lock()
        self._last_refresh = clock()
        self._visible = True
        self._retry_pending = False

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def interval(self) -> float:
        return min(MAX_INTERVAL, max(MIN_INTERVAL, self.stale_time / 2))

    @property
    def last_refresh(self) -> float:
        with self._state:
            return self._last_refresh

    @property
    def visible(self) -> bool:
        return self._visible

    def is_stale(self) -> bool:
        with self._state:
            return self._clock() - self._last_refresh > self.stale_time

    # ── Triggers ─────────────────────────────────────────────────────

    def tick(self) -> bool:
        """Timer callback: refresh only if visible and stale (or a retry is due)."""
        if not self._visible:
            return False
        with self._state:
            due = self._retry_pending or self._clock() - self._last_refresh > self.stale_time
        if not due:
            return False
        return self._run(blocking=False)

    def notify_visibility(self, visible: bool) -> bool:
        with self._state:
            became_visible = visible and not self._visible
            self._visible = visible
        if became_visible:
            return self._run(blocking=False)
        return False

    def notify_focus(self) -> bool:
        if not self.refresh_on_focus or not self._visible:
            return False
        return self._run(blocking=False)

    def notify_online(self) -> bool:
        if not self.refresh_on_online or not self._visible:
            return False
        return self._run(blocking=False)

    def manual_refresh(self):
        """Refresh now regardless of staleness.

        Waits for an in-flight refresh to finish rather than running
        alongside it. Errors are raised to the caller.
        """
        return self._run(blocking=True, propagate=True)

    # ── Execution ────────────────────────────────────────────────────

    def _run(self, blocking: bool, propagate: bool = False) -> bool:
        if not self._in_flight.acquire(blocking=blocking):
            logger.debug(f"{self.name}: refresh already in progress, skipping")
            return False
        try:
            with self._state:
                self._last_refresh = self._clock()
                self._retry_pending = False
            try:
                self._refresh()
            except TransientStoreError as e:
                logger.warning(f"{self.name}: transient failure, retrying on next tick: {e}")
                with self._state:
                    self._retry_pending = True
                if propagate:
                    raise
            except Exception as e:
                logger.error(f"{self.name}: refresh failed: {type(e).__name__}: {e}", exc_info=True)
                if propagate:
                    raise
            return True
        finally:
            self._in_flight.release()

    # ── Timer thread ─────────────────────────────────────────────────

    def start(self):
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=f"refresh-{self.name}", daemon=True)
        self._thread.start()
        logger.info(f"{self.name}: refresh timer started (every {self.interval:g}s, stale after {self.stale_time:g}s)")

    def stop(self, timeout: Optional[float] = 5.0):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _loop(self):
        while not self._stop.wait(self.interval):
            self.tick()


def register_for_refresh(refresh: Callable[[], object], options: Optional[dict] = None) -> RefreshCoordinator:
    """Create a coordinator for ``refresh`` and start its timer.

    Options: ``stale_time`` (seconds, default 60), ``refresh_on_focus``,
    ``refresh_on_online`` (default True), ``start`` (default True).
    The returned coordinator's ``manual_refresh()`` forces a refresh.
    """
    options = dict(options or {})
    start = options.pop("start", True)
    coordinator = RefreshCoordinator(refresh, **options)
    if start:
        coordinator.start()
    return coordinator
