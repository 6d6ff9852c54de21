"""
Room Connection Handler

This module handles Socket.IO events related to room membership:
creating, joining (and reconnecting to) and leaving rooms, lobby settings and
room state retrieval.
"""

import logging

from undercover.services.error_response_factory import with_error_handling
from .base_handler import BaseRoomHandler

logger = logging.getLogger(__name__)


class RoomConnectionHandler(BaseRoomHandler):
    """Handler for room membership and lobby operations."""

    @with_error_handling
    def handle_create_room(self, data):
        """
        Handle a player creating a new room.

        Expected data format:
        {
            'player_id': 'stable-client-id',
            'player_name': 'display_name',
            'avatar': 'optional'
        }
        """
        self.log_handler_start('handle_create_room', data)
        data = self.validate_data_dict(data, ['player_id', 'player_name'])
        player_id, player_name, avatar = self.validate_identity_data(data)

        result = self.session_coordinator.create_room(self.socket_id, player_id, player_name, avatar)

        self.log_handler_success('handle_create_room', f"room {result['room_id']}")
        return self.success(result)

    @with_error_handling
    def handle_join_room(self, data):
        """
        Handle a player joining a room, or reconnecting to it.

        Expected data format:
        {
            'room_id': '123456',
            'player_id': 'stable-client-id',
            'player_name': 'display_name',
            'avatar': 'optional'
        }
        """
        self.log_handler_start('handle_join_room', data)
        data = self.validate_data_dict(data, ['room_id', 'player_id', 'player_name'])
        room_id = self.validation_service.validate_room_id(data['room_id'])
        player_id, player_name, avatar = self.validate_identity_data(data)

        result = self.session_coordinator.join_room(self.socket_id, room_id, player_id, player_name, avatar)

        self.log_handler_success('handle_join_room', f'Player {player_id} in room {room_id}')
        return self.success(result)

    @with_error_handling
    def handle_leave_room(self, data=None):
        """Handle a player leaving their current room."""
        self.log_handler_start('handle_leave_room', data)
        self.require_session()

        result = self.session_coordinator.leave_room(self.socket_id)

        self.log_handler_success('handle_leave_room', f"left room {result['room_id']}")
        return self.success(result)

    @with_error_handling
    def handle_get_room_state(self, data=None):
        """Handle request for the current public room state."""
        self.require_session()
        return self.success(self.session_coordinator.get_room_state(self.socket_id))

    @with_error_handling
    def handle_player_ready(self, data=None):
        """Handle a ready toggle. ``{'ready': bool}``, defaulting to ready."""
        data = self.validate_data_dict(data if data is not None else {})
        ready = self.validation_service.validate_ready(data.get('ready'))
        return self.success(self.session_coordinator.set_ready(self.socket_id, ready))

    @with_error_handling
    def handle_set_undercover_count(self, data):
        """Handle the host changing the number of undercover players."""
        data = self.validate_data_dict(data, ['count'])
        count = self.validation_service.validate_undercover_count(data['count'])
        return self.success(self.session_coordinator.set_undercover_count(self.socket_id, count))
