"""
Timer Service - cancellable one-shot timers keyed per room.

Keys are tuples whose first element is the room id, e.g.
``(room_id, 'prep')`` or ``(room_id, 'disconnect', player_id)``.

A fired timer runs its callback under the room lock and only if it is still
the timer registered for its key, so a timer cancelled or replaced while its
callback was already waiting for the lock does nothing.
"""

import logging
import threading
import time
from typing import Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)

TimerKey = Tuple[Hashable, ...]


class _ScheduledTimer:
    """Handle for one scheduled callback."""

    def __init__(self, key: TimerKey, deadline: float):
        self.key = key
        self.deadline = deadline
        self.timer = None


class TimerService:
    """Schedules, replaces and cancels room-scoped timers."""

    def __init__(self, concurrency_control, timer_factory: Callable = threading.Timer,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            concurrency_control: ConcurrencyControlService providing room locks
            timer_factory: threading.Timer compatible factory, replaceable in tests
            clock: Monotonic clock used for time_remaining
        """
        self._concurrency_control = concurrency_control
        self._timer_factory = timer_factory
        self._clock = clock
        self._timers: Dict[TimerKey, _ScheduledTimer] = {}
        self._lock = threading.Lock()

    def schedule(self, key: TimerKey, delay: float, callback: Callable[[], None],
                 replace: bool = True) -> bool:
        """
        Schedule ``callback`` to run after ``delay`` seconds.

        Args:
            key: Timer key, first element is the room id
            delay: Seconds until the callback fires
            callback: Zero-argument callable, run under the room lock
            replace: Replace a live timer with the same key; when False an
                existing timer is kept and nothing is scheduled

        Returns:
            True if a new timer was scheduled
        """
        with self._lock:
            existing = self._timers.get(key)
            if existing is not None:
                if not replace:
                    return False
                existing.timer.cancel()

            handle = _ScheduledTimer(key, self._clock() + delay)
            timer = self._timer_factory(delay, self._fire, args=(key, handle, callback))
            timer.daemon = True
            handle.timer = timer
            self._timers[key] = handle

        timer.start()
        logger.debug(f"Scheduled timer {key} in {delay}s")
        return True

    def _fire(self, key: TimerKey, handle: _ScheduledTimer, callback: Callable[[], None]) -> None:
        with self._lock:
            if self._timers.get(key) is not handle:
                return

        room_id = key[0]
        with self._concurrency_control.room_operation(room_id):
            with self._lock:
                if self._timers.get(key) is not handle:
                    return
                del self._timers[key]

            try:
                callback()
            except Exception as e:
                logger.error(f"Timer callback {key} failed: {e}", exc_info=True)

    def cancel(self, key: TimerKey) -> bool:
        """Cancel a timer. Returns False if none was scheduled."""
        with self._lock:
            handle = self._timers.pop(key, None)
        if handle is None:
            return False
        handle.timer.cancel()
        logger.debug(f"Cancelled timer {key}")
        return True

    def cancel_room(self, room_id: str) -> int:
        """Cancel every timer belonging to a room."""
        with self._lock:
            keys = [key for key in self._timers if key[0] == room_id]
            handles = [self._timers.pop(key) for key in keys]
        for handle in handles:
            handle.timer.cancel()
        if handles:
            logger.debug(f"Cancelled {len(handles)} timers for room {room_id}")
        return len(handles)

    def has_timer(self, key: TimerKey) -> bool:
        with self._lock:
            return key in self._timers

    def time_remaining(self, key: TimerKey) -> Optional[float]:
        """Seconds until the timer fires, or None if it is not scheduled."""
        with self._lock:
            handle = self._timers.get(key)
        if handle is None:
            return None
        return max(0.0, handle.deadline - self._clock())

    def active_count(self) -> int:
        with self._lock:
            return len(self._timers)

    def shutdown(self) -> None:
        """Cancel all timers."""
        with self._lock:
            handles = list(self._timers.values())
            self._timers.clear()
        for handle in handles:
            handle.timer.cancel()
        logger.info(f"Timer service shut down, {len(handles)} timers cancelled")
