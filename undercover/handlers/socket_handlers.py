"""
Socket.IO event handlers for the Undercover game.

This module provides the registration function and the connection/disconnection
handlers. Every other event goes through the SocketEventRouter.
"""

import logging

from flask import request
from flask_socketio import emit

from container import get_container
from .socket_event_router import setup_router
from .room_connection_handler import RoomConnectionHandler
from .game_action_handler import GameActionHandler

logger = logging.getLogger(__name__)


def register_socket_handlers(socketio_instance):
    """Register all socket handlers with the SocketIO instance."""
    router = setup_router()

    room_handler = RoomConnectionHandler()
    game_handler = GameActionHandler()

    # Connection events bypass the router since they have special behavior
    socketio_instance.on_event('connect', handle_connect)
    socketio_instance.on_event('disconnect', handle_disconnect)

    # Room membership and lobby
    router.register_route('create-room', room_handler.handle_create_room)
    router.register_route('join-room', room_handler.handle_join_room)
    router.register_route('leave-room', room_handler.handle_leave_room)
    router.register_route('get-room-state', room_handler.handle_get_room_state)
    router.register_route('player-ready', room_handler.handle_player_ready)
    router.register_route('set-undercover-count', room_handler.handle_set_undercover_count)

    # Game actions
    router.register_route('start-game', game_handler.handle_start_game)
    router.register_route('vote-change-word', game_handler.handle_vote_change_word)
    router.register_route('submit-speech', game_handler.handle_submit_speech)
    router.register_route('submit-vote', game_handler.handle_submit_vote)
    router.register_route('submit-undercover-guess', game_handler.handle_submit_undercover_guess)
    router.register_route('next-round', game_handler.handle_next_round)
    router.register_route('play-again', game_handler.handle_play_again)

    router.register_with_socketio(socketio_instance)

    logger.info(f"Registered {len(router.get_registered_events())} socket event handlers")
    return router


def handle_connect(auth=None):
    """Handle client connection with optional Origin enforcement in production."""
    app_config = get_container().get('AppConfig')

    origin = request.headers.get('Origin')
    allowed = app_config.cors_allowed_origins
    if app_config.is_production and allowed != '*' and origin and origin not in allowed:
        logger.warning(f'Rejecting connection from disallowed Origin: {origin}')
        return False

    logger.info(f'Client connected: {request.sid} from Origin: {origin}')
    emit('connected', {'status': 'Connected to Undercover server', 'sid': request.sid})


def handle_disconnect(reason=None):
    """Hand the dropped connection to the coordinator's grace policy."""
    logger.info(f'Client disconnected: {request.sid}')
    try:
        get_container().get('SessionCoordinator').handle_disconnect(request.sid)
    except Exception as e:
        logger.error(f'Error handling disconnect for {request.sid}: {e}', exc_info=True)
