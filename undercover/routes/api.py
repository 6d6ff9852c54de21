"""
REST API endpoints for the Undercover server.
"""

import logging
from flask import Blueprint, jsonify

logger = logging.getLogger(__name__)


def create_api_blueprint(services):
    """Create and configure the API Blueprint with service dependencies."""
    room_registry = services['room_registry']
    room_state_presenter = services['room_state_presenter']
    concurrency_control = services['concurrency_control']

    api = Blueprint('api', __name__)

    @api.route('/api/health')
    def health():
        return jsonify({'status': 'ok', 'rooms': len(room_registry)})

    @api.route('/api/rooms')
    def list_rooms():
        """Lobby rooms that still accept players."""
        try:
            rooms = [room_state_presenter.create_room_summary(room) for room in room_registry.list_open_rooms()]
        except Exception as e:
            logger.error(f'Error listing rooms: {e}')
            return jsonify({'success': False, 'error': {'code': 'INTERNAL_ERROR', 'message': 'Could not list rooms'}}), 500
        return jsonify(rooms)

    @api.route('/api/rooms/<room_id>')
    def room_state(room_id):
        """Public state of one room."""
        room = room_registry.get(room_id)
        if room is None:
            return jsonify({
                'success': False,
                'error': {'code': 'ROOM_NOT_FOUND', 'message': f'Room {room_id} not found'}
            }), 404
        with concurrency_control.room_operation(room_id):
            state = room_state_presenter.create_room_state(room)
        return jsonify(state)

    return api
