"""Periodic sync trigger.

The scheduler owns a single repeating timer that calls the orchestrator on
every tick. It does no queuing or skipping of its own: overlapping ticks are
made safe by the orchestrator's single-flight guard.
"""

import logging
import threading
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class Timer(Protocol):
    """Protocol for a cancellable repeating timer."""

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]


class RepeatingTimer:
    """Call a function every interval seconds on a daemon thread.

    The first call happens one full interval after start(). cancel() stops
    the timer and blocks until a call that is already running has finished.

    Args:
        interval: Seconds between calls.
        function: Callable invoked on each tick.
    """

    def __init__(self, interval: float, function: Callable[[], None]) -> None:
        self.interval = interval
        self.function = function
        self._stopped = threading.Event()
        self._thread = threading.Thread(
            target=self._loop, name="vaultsync-scheduler", daemon=True
        )

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        """Stop the timer and wait for a running call to return.

        Called from the timer thread itself (a tick that cancels its own
        timer), it only stops future calls.
        """
        self._stopped.set()
        thread = self._thread
        if thread.is_alive() and thread is not threading.current_thread():
            thread.join()

    @property
    def cancelled(self) -> bool:
        return self._stopped.is_set()

    def _loop(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.function()
            except Exception as e:
                # Keep ticking
                logger.exception(f"Error in scheduled sync: {e}")


class SyncScheduler:
    """Start and stop periodic sync runs.

    Both start() and stop() are idempotent. start() refuses to install a
    timer for a non-positive interval or when no version control client is
    available.

    Args:
        run_sync: Callable performing one sync run (SyncOrchestrator.run).
        client_ready: Returns True if the version control client is usable.
        timer_factory: Builds the timer; defaults to RepeatingTimer.
    """

    def __init__(
        self,
        run_sync: Callable[[], object],
        client_ready: Callable[[], bool],
        timer_factory: TimerFactory = RepeatingTimer,
    ) -> None:
        self._run_sync = run_sync
        self._client_ready = client_ready
        self._timer_factory = timer_factory
        self._timer: Timer | None = None
        self._interval_minutes: int | None = None

    @property
    def is_running(self) -> bool:
        return self._timer is not None

    @property
    def interval_minutes(self) -> int | None:
        """Interval of the installed timer, or None when stopped."""
        return self._interval_minutes

    def start(self, interval_minutes: int) -> bool:
        """Install the periodic timer.

        Args:
            interval_minutes: Minutes between sync runs.

        Returns:
            True if a timer is running after the call.
        """
        if self._timer is not None:
            logger.debug(
                f"Auto-sync already running every {self._interval_minutes} minutes; "
                f"ignoring start({interval_minutes})."
            )
            return True
        if not self._client_ready():
            logger.info("Auto-sync cannot start, Git not initialized.")
            return False
        if interval_minutes <= 0:
            logger.info("Auto-sync interval is zero or negative, not starting.")
            return False

        logger.info(f"Starting auto-sync every {interval_minutes} minutes.")
        timer = self._timer_factory(interval_minutes * 60, self._tick)
        timer.start()
        self._timer = timer
        self._interval_minutes = interval_minutes
        return True

    def stop(self) -> None:
        """Cancel the periodic timer if one is installed."""
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        self._interval_minutes = None
        logger.info("Auto-sync stopped.")

    def restart(self, interval_minutes: int) -> bool:
        """Replace the running timer with one using a new interval."""
        self.stop()
        return self.start(interval_minutes)

    def _tick(self) -> None:
        logger.info("Auto-sync triggered by interval.")
        self._run_sync()
