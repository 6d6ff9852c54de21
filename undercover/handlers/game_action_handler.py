"""
Game Action Handler

This module handles Socket.IO events related to game actions: starting the
game, the word reroll vote, speeches, votes, the comeback guess and the host's
round and replay controls.
"""

import logging

from undercover.services.error_response_factory import with_error_handling
from .base_handler import BaseGameHandler

logger = logging.getLogger(__name__)


class GameActionHandler(BaseGameHandler):
    """Handler for in-game actions."""

    @with_error_handling
    def handle_start_game(self, data=None):
        """
        Handle the host starting the game.
        Requires enough players and every non-host player ready.
        """
        self.log_handler_start('handle_start_game', data)
        self.require_session()

        result = self.session_coordinator.start_game(self.socket_id)

        self.log_handler_success('handle_start_game')
        return self.success(result)

    @with_error_handling
    def handle_vote_change_word(self, data=None):
        """Handle a vote to reroll the word pair during preparation."""
        self.log_handler_start('handle_vote_change_word', data)
        self.require_session()
        return self.success(self.session_coordinator.vote_change_word(self.socket_id))

    @with_error_handling
    def handle_submit_speech(self, data):
        """
        Handle the current speaker's speech.

        Expected data format:
        {
            'speech': {'kind': 'text', 'content': 'it is round'}
        }
        """
        self.log_handler_start('handle_submit_speech', data)
        self.require_session()
        data = self.validate_data_dict(data, ['speech'])
        speech = self.validation_service.validate_speech(data['speech'])

        result = self.session_coordinator.submit_speech(self.socket_id, speech)

        self.log_handler_success('handle_submit_speech')
        return self.success(result)

    @with_error_handling
    def handle_submit_vote(self, data):
        """
        Handle a vote during the voting phase.

        Expected data format:
        {
            'target_id': 'player-id'
        }
        """
        self.log_handler_start('handle_submit_vote', data)
        self.require_session()
        data = self.validate_data_dict(data, ['target_id'])
        target_id = self.validation_service.validate_target_id(data['target_id'])

        result = self.session_coordinator.submit_vote(self.socket_id, target_id)

        self.log_handler_success('handle_submit_vote')
        return self.success(result)

    @with_error_handling
    def handle_submit_undercover_guess(self, data):
        """Handle the eliminated undercover's guess at the majority word."""
        self.log_handler_start('handle_submit_undercover_guess', data)
        self.require_session()
        data = self.validate_data_dict(data, ['guess'])
        guess = self.validation_service.validate_guess(data['guess'])

        result = self.session_coordinator.submit_undercover_guess(self.socket_id, guess)

        self.log_handler_success('handle_submit_undercover_guess', f"correct={result['correct']}")
        return self.success(result)

    @with_error_handling
    def handle_next_round(self, data=None):
        self.log_handler_start('handle_next_round', data)
        self.require_session()
        return self.success(self.session_coordinator.next_round(self.socket_id))

    @with_error_handling
    def handle_play_again(self, data=None):
        self.log_handler_start('handle_play_again', data)
        self.require_session()
        return self.success(self.session_coordinator.play_again(self.socket_id))
