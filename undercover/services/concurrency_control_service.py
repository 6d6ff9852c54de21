"""
Concurrency Control Service for the Undercover game

Serializes every mutation of a room: socket intents and timer callbacks for
the same room run one at a time under that room's lock.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict

logger = logging.getLogger(__name__)


class ConcurrencyControlService:
    """Manages per-room locks."""

    def __init__(self):
        # Per-room locks for fine-grained control
        self._room_locks: Dict[str, threading.RLock] = {}
        # Lock for managing room locks themselves
        self._locks_lock = threading.Lock()

    def get_room_lock(self, room_id: str) -> threading.RLock:
        """Get or create a lock for a specific room."""
        with self._locks_lock:
            if room_id not in self._room_locks:
                self._room_locks[room_id] = threading.RLock()
            return self._room_locks[room_id]

    def cleanup_room_lock(self, room_id: str):
        """Clean up lock for a deleted room."""
        with self._locks_lock:
            if room_id in self._room_locks:
                del self._room_locks[room_id]

    def has_room_lock(self, room_id: str) -> bool:
        with self._locks_lock:
            return room_id in self._room_locks

    @contextmanager
    def room_operation(self, room_id: str):
        """Context manager for thread-safe room operations."""
        room_lock = self.get_room_lock(room_id)
        with room_lock:
            yield
