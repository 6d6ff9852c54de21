"""
Room Registry for the Undercover game

Keeps the live rooms keyed by their six-digit code. Rooms are never expired
implicitly: whoever empties a room deletes it.
"""

import logging
import random
import threading
from typing import Dict, List, Optional

from undercover.config.game_settings import get_game_settings
from undercover.core.game_phases import GamePhase
from undercover.room import Room

logger = logging.getLogger(__name__)

ROOM_ID_MIN = 100000
ROOM_ID_MAX = 999999


class RoomRegistry:
    """Thread-safe map of room id to Room."""

    def __init__(self, word_provider, game_settings=None, rng: Optional[random.Random] = None):
        """
        Args:
            word_provider: Shared word pair source handed to every room
            game_settings: GameSettings for room capacity limits
            rng: Random source for room codes, injectable for tests
        """
        self._word_provider = word_provider
        self._game_settings = game_settings or get_game_settings()
        self._rng = rng or random.Random()
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def _generate_room_id(self) -> str:
        if len(self._rooms) > ROOM_ID_MAX - ROOM_ID_MIN:
            raise RuntimeError("No free room ids left")
        while True:
            room_id = str(self._rng.randint(ROOM_ID_MIN, ROOM_ID_MAX))
            if room_id not in self._rooms:
                return room_id

    def create(self, host_id: str) -> Room:
        """Create an empty room with a fresh, unused id."""
        with self._lock:
            room_id = self._generate_room_id()
            room = Room(
                room_id,
                host_id,
                self._word_provider,
                max_players=self._game_settings.max_players_per_room,
                min_players=self._game_settings.min_players_to_start,
            )
            self._rooms[room_id] = room
        logger.info(f"Created room {room_id}")
        return room

    def get(self, room_id: str) -> Optional[Room]:
        with self._lock:
            return self._rooms.get(room_id)

    def delete(self, room_id: str) -> bool:
        """Delete a room. Returns False if it did not exist."""
        with self._lock:
            room = self._rooms.pop(room_id, None)
        if room is None:
            return False
        logger.info(f"Deleted room {room_id}")
        return True

    def exists(self, room_id: str) -> bool:
        with self._lock:
            return room_id in self._rooms

    def room_ids(self) -> List[str]:
        with self._lock:
            return list(self._rooms.keys())

    def list_open_rooms(self) -> List[Room]:
        """Lobby rooms with at least one player, sorted by id."""
        with self._lock:
            rooms = list(self._rooms.values())
        open_rooms = [room for room in rooms if room.phase is GamePhase.WAITING and room.players]
        return sorted(open_rooms, key=lambda room: room.id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)
