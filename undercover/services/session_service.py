"""
Session Service - Manages player session data and Socket.IO connections.

This service handles:
- Binding a Socket.IO connection to a (room, player) pair
- Looking up every live connection of a player
- Session cleanup on disconnect

A player may hold several connections at once (for example two browser tabs);
the player only counts as gone when the last one drops.
"""

import logging
from typing import Dict, List, Optional, Tuple, Any

logger = logging.getLogger(__name__)


class SessionService:
    """Manages player sessions and Socket.IO connections."""

    def __init__(self):
        """Initialize the session service."""
        # Store player sessions (socket_id -> player_info)
        self._player_sessions: Dict[str, Dict[str, str]] = {}
        logger.info("SessionService initialized")

    def create_session(self, socket_id: str, room_id: str, player_id: str, player_name: str) -> None:
        """Create or update a player session.

        Args:
            socket_id: Socket.IO connection ID
            room_id: Room the player is joining
            player_id: Unique player identifier
            player_name: Player's display name
        """
        self._player_sessions[socket_id] = {
            'room_id': room_id,
            'player_id': player_id,
            'player_name': player_name
        }
        logger.debug(f"Created session for player {player_name} ({player_id}) in room {room_id}")

    def get_session(self, socket_id: str) -> Optional[Dict[str, str]]:
        """Get player session information by socket ID.

        Args:
            socket_id: Socket.IO connection ID

        Returns:
            Dict with session info or None if not found
        """
        return self._player_sessions.get(socket_id)

    def get_session_data(self, socket_id: str) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        """Get session data as tuple for convenience.

        Returns:
            Tuple of (room_id, player_id, player_name) or (None, None, None)
        """
        session_info = self._player_sessions.get(socket_id)
        if session_info:
            return (
                session_info['room_id'],
                session_info['player_id'],
                session_info['player_name']
            )
        return None, None, None

    def has_session(self, socket_id: str) -> bool:
        return socket_id in self._player_sessions

    def remove_session(self, socket_id: str) -> Optional[Dict[str, str]]:
        """Remove a player session.

        Returns:
            The removed session info or None if not found
        """
        session_info = self._player_sessions.pop(socket_id, None)
        if session_info:
            logger.debug(f"Removed session for player {session_info['player_name']} ({session_info['player_id']})")
        return session_info

    def get_player_socket_ids(self, room_id: str, player_id: str) -> List[str]:
        """Get every live connection bound to a player in a room."""
        return [
            socket_id for socket_id, info in self._player_sessions.items()
            if info['room_id'] == room_id and info['player_id'] == player_id
        ]

    def remove_player_sessions(self, room_id: str, player_id: str) -> List[str]:
        """Unbind every connection of a player; returns the removed socket ids."""
        socket_ids = self.get_player_socket_ids(room_id, player_id)
        for socket_id in socket_ids:
            self._player_sessions.pop(socket_id, None)
        return socket_ids

    def remove_room_sessions(self, room_id: str) -> int:
        socket_ids = list(self.get_sessions_by_room(room_id))
        for socket_id in socket_ids:
            self._player_sessions.pop(socket_id, None)
        return len(socket_ids)

    def get_all_sessions(self) -> Dict[str, Dict[str, str]]:
        return self._player_sessions.copy()

    def get_sessions_count(self) -> int:
        return len(self._player_sessions)

    def get_sessions_by_room(self, room_id: str) -> Dict[str, Dict[str, str]]:
        """Get all sessions for a specific room.

        Returns:
            Dictionary mapping socket_id to session info for the room
        """
        room_sessions = {}
        for socket_id, session_info in self._player_sessions.items():
            if session_info['room_id'] == room_id:
                room_sessions[socket_id] = session_info
        return room_sessions

    def get_debug_info(self) -> Dict[str, Any]:
        """Get debug information about active sessions."""
        room_counts: Dict[str, int] = {}
        for session_info in self._player_sessions.values():
            room_id = session_info['room_id']
            room_counts[room_id] = room_counts.get(room_id, 0) + 1

        return {
            'total_sessions': len(self._player_sessions),
            'sessions_by_room': room_counts,
            'active_rooms': len(room_counts)
        }
