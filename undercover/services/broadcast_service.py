"""
Broadcast Service - Centralized Socket.IO message broadcasting.

This service handles all Socket.IO emissions in a centralized way:
- Room-wide broadcasts of the public room state
- Private word delivery to every connection of a player
- Phase, vote, guess and disconnect notifications
- Socket.IO room membership

Emission failures are logged and never propagate into game logic.
"""

import logging
from typing import Any, Dict, List, Optional

from undercover.core.models import ChangeWordTally, GuessResult, VoteOutcome

logger = logging.getLogger(__name__)

NAMESPACE = '/'


class BroadcastService:
    """Centralized service for all Socket.IO broadcasting operations."""

    def __init__(self, socketio, room_state_presenter, session_service):
        """Initialize the broadcast service.

        Args:
            socketio: Flask-SocketIO instance for emitting messages
            room_state_presenter: Builds public and private payloads
            session_service: Maps players to their live connections
        """
        self.socketio = socketio
        self.room_state_presenter = room_state_presenter
        self.session_service = session_service

    # Core emission methods

    def emit_to_room(self, event: str, data: Optional[Dict[str, Any]], room_id: str):
        """Emit an event to all players in a room."""
        try:
            self.socketio.emit(event, data, room=room_id)
            logger.debug(f'Emitted {event} to room {room_id}')
        except Exception as e:
            logger.error(f'Error emitting {event} to room {room_id}: {e}')

    def emit_to_player(self, event: str, data: Optional[Dict[str, Any]], socket_id: str):
        """Emit an event to a specific connection."""
        try:
            self.socketio.emit(event, data, room=socket_id)
            logger.debug(f'Emitted {event} to player {socket_id}')
        except Exception as e:
            logger.error(f'Error emitting {event} to player {socket_id}: {e}')

    # Socket.IO room membership

    def join_room(self, socket_id: str, room_id: str):
        try:
            self.socketio.server.enter_room(socket_id, room_id, namespace=NAMESPACE)
        except Exception as e:
            logger.error(f'Error adding {socket_id} to room {room_id}: {e}')

    def leave_room(self, socket_id: str, room_id: str):
        try:
            self.socketio.server.leave_room(socket_id, room_id, namespace=NAMESPACE)
        except Exception as e:
            logger.error(f'Error removing {socket_id} from room {room_id}: {e}')

    # High-level broadcast methods

    def broadcast_room_update(self, room):
        """Broadcast the public room state to every member."""
        try:
            room_state = self.room_state_presenter.create_room_state(room)
        except Exception as e:
            logger.error(f'Error building room state for room {room.id}: {e}', exc_info=True)
            return
        self.emit_to_room('room-update', room_state, room.id)

    def send_room_state_to_player(self, room, socket_id: str):
        """Send the public room state to one connection (join/reconnect)."""
        try:
            room_state = self.room_state_presenter.create_room_state(room)
        except Exception as e:
            logger.error(f'Error building room state for room {room.id}: {e}', exc_info=True)
            return
        self.emit_to_player('room-update', room_state, socket_id)

    def send_word_to_player(self, room, player_id: str) -> int:
        """Send a player's secret word and role to each of their connections.

        Returns:
            Number of connections the word was sent to
        """
        player = room.get_player(player_id)
        if player is None or player.word is None:
            return 0

        payload = self.room_state_presenter.create_private_word_payload(player)
        socket_ids = self.session_service.get_player_socket_ids(room.id, player_id)
        for socket_id in socket_ids:
            self.emit_to_player('your-word', payload, socket_id)
        return len(socket_ids)

    def send_words_to_all(self, room) -> int:
        sent = 0
        for player in room.players:
            sent += self.send_word_to_player(room, player.id)
        logger.debug(f'Sent words to {sent} connections in room {room.id}')
        return sent

    def broadcast_words_changed(self, room_id: str, tally: ChangeWordTally):
        self.emit_to_room('words-changed', tally.to_dict(), room_id)

    def broadcast_phase_change(self, room_id: str, phase: str):
        self.emit_to_room('phase-change', {'phase': phase}, room_id)

    def broadcast_vote_result(self, room_id: str, outcome: VoteOutcome):
        self.emit_to_room('vote-result', outcome.to_dict(), room_id)

    def broadcast_guess_result(self, room, result: GuessResult):
        """Broadcast the comeback guess outcome together with both words."""
        payload = result.to_dict()
        payload['civilian_word'] = room.civilian_word
        payload['undercover_word'] = room.undercover_word
        self.emit_to_room('undercover-guess-result', payload, room.id)

    def broadcast_disconnect_countdown(self, room_id: str, player_id: str, player_name: str, seconds: int):
        """Announce that a disconnected player will abort the game unless they return."""
        self.emit_to_room('player-disconnect-countdown', {
            'player_id': player_id,
            'player_name': player_name,
            'seconds': seconds,
        }, room_id)

    def broadcast_game_aborted(self, room_id: str, player_id: str, player_name: str):
        self.emit_to_room('game-aborted', {
            'player_id': player_id,
            'player_name': player_name,
            'reason': f'{player_name} did not reconnect in time, the game was aborted',
        }, room_id)

    def broadcast_game_reset(self, room_id: str):
        self.emit_to_room('game-reset', {'phase': 'waiting'}, room_id)

    def remove_connections_from_room(self, socket_ids: List[str], room_id: str):
        for socket_id in socket_ids:
            self.leave_room(socket_id, room_id)
