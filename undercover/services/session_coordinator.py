"""
Session Coordinator - turns player intents into room transitions.

Maps Socket.IO connections to (room, player) identity, relays validated
intents into Room methods under the room lock, broadcasts the resulting state
and owns every timer: the preparation window, the comeback guess window and
the two-stage disconnect grace policy.

Disconnect policy:
- Stage 1: when a player's last connection drops they are marked offline and
  a short grace timer starts. Reconnecting cancels it silently.
- On expiry a lobby player is removed; during a game stage 2 starts, a longer
  announced countdown after which the game is aborted.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional, Tuple

from undercover.config.game_settings import get_game_settings
from undercover.core.errors import ErrorCode, ValidationError
from undercover.core.game_phases import GamePhase
from undercover.core.models import Speech

logger = logging.getLogger(__name__)

PREP_TIMER = 'prep'
GUESS_TIMER = 'guess'
DISCONNECT_TIMER = 'disconnect'
GAME_DISCONNECT_TIMER = 'game_disconnect'


class SessionCoordinator:
    """Coordinates sessions, rooms, broadcasts and timers."""

    def __init__(self, room_registry, session_service, broadcast_service, timer_service,
                 concurrency_control, game_settings=None):
        self.room_registry = room_registry
        self.session_service = session_service
        self.broadcast_service = broadcast_service
        self.timer_service = timer_service
        self.concurrency_control = concurrency_control
        self.game_settings = game_settings or get_game_settings()

    # Lookup helpers

    def _require_session(self, socket_id: str) -> Tuple[str, str]:
        room_id, player_id, _ = self.session_service.get_session_data(socket_id)
        if room_id is None:
            raise ValidationError(ErrorCode.NOT_IN_ROOM, "You are not in a room")
        return room_id, player_id

    def _require_room(self, room_id: str):
        room = self.room_registry.get(room_id)
        if room is None:
            raise ValidationError(ErrorCode.ROOM_NOT_FOUND, f"Room {room_id} not found", {'room_id': room_id})
        return room

    @staticmethod
    def _require_host(room, player_id: str) -> None:
        if not room.is_host(player_id):
            raise ValidationError(ErrorCode.NOT_AUTHORIZED, "Only the host can do that")

    @contextmanager
    def _player_room(self, socket_id: str):
        """Lock the sender's room and yield it with the sender's player id."""
        room_id, player_id = self._require_session(socket_id)
        with self.concurrency_control.room_operation(room_id):
            room = self._require_room(room_id)
            if not room.has_player(player_id):
                raise ValidationError(ErrorCode.NOT_IN_ROOM, "You are no longer in this room")
            yield room, player_id

    # Room membership intents

    def create_room(self, socket_id: str, player_id: str, player_name: str,
                    avatar: Optional[str] = None) -> Dict[str, Any]:
        """Create a room with the sender as host."""
        if self.session_service.has_session(socket_id):
            raise ValidationError(ErrorCode.ALREADY_IN_ROOM, "Leave your current room first")

        room = self.room_registry.create(player_id)
        with self.concurrency_control.room_operation(room.id):
            room.add_player(player_id, player_name, avatar)
            self._bind_connection(socket_id, room.id, player_id, player_name)
            self.broadcast_service.broadcast_room_update(room)

        logger.info(f"Player {player_name} ({player_id}) created room {room.id}")
        return {'room_id': room.id, 'player_id': player_id}

    def join_room(self, socket_id: str, room_id: str, player_id: str, player_name: str,
                  avatar: Optional[str] = None) -> Dict[str, Any]:
        """
        Join a room, or reconnect when the player id is already in it.

        A reconnect cancels any pending disconnect timer, marks the player
        online again and re-sends their word if a game is running.
        """
        current = self.session_service.get_session(socket_id)
        if current and (current['room_id'] != room_id or current['player_id'] != player_id):
            raise ValidationError(ErrorCode.ALREADY_IN_ROOM, "Leave your current room first")

        # No lock is created for a room that does not exist
        self._require_room(room_id)
        with self.concurrency_control.room_operation(room_id):
            room = self._require_room(room_id)
            self._cancel_disconnect_timers(room_id, player_id)

            player = room.get_player(player_id)
            reconnected = player is not None
            if reconnected:
                room.set_online(player_id, True)
                player_name = player.name
            else:
                room.add_player(player_id, player_name, avatar)

            self._bind_connection(socket_id, room_id, player_id, player_name)
            if reconnected and room.phase is not GamePhase.WAITING:
                self.broadcast_service.send_word_to_player(room, player_id)
            self.broadcast_service.broadcast_room_update(room)

        if reconnected:
            logger.info(f"Player {player_name} ({player_id}) reconnected to room {room_id}")
        else:
            logger.info(f"Player {player_name} ({player_id}) joined room {room_id}")
        return {'room_id': room_id, 'player_id': player_id, 'reconnected': reconnected}

    def _bind_connection(self, socket_id: str, room_id: str, player_id: str, player_name: str) -> None:
        self.session_service.create_session(socket_id, room_id, player_id, player_name)
        self.broadcast_service.join_room(socket_id, room_id)

    def leave_room(self, socket_id: str) -> Dict[str, Any]:
        """
        Leave the current room. Leaving a running game aborts it; leaving
        the lobby or a finished game only removes the player.
        """
        room_id, player_id = self._require_session(socket_id)
        with self.concurrency_control.room_operation(room_id):
            socket_ids = self.session_service.remove_player_sessions(room_id, player_id)
            self.broadcast_service.remove_connections_from_room(socket_ids, room_id)

            room = self.room_registry.get(room_id)
            if room is None or not room.has_player(player_id):
                return {'room_id': room_id, 'player_id': player_id}

            self._cancel_disconnect_timers(room_id, player_id)
            if room.phase in (GamePhase.WAITING, GamePhase.GAME_OVER):
                self._remove_player(room, player_id)
            else:
                self._abort_game(room, player_id)

        logger.info(f"Player {player_id} left room {room_id}")
        return {'room_id': room_id, 'player_id': player_id}

    def get_room_state(self, socket_id: str) -> Dict[str, Any]:
        with self._player_room(socket_id) as (room, _):
            return self.broadcast_service.room_state_presenter.create_room_state(room)

    # Lobby intents

    def set_ready(self, socket_id: str, ready: bool) -> Dict[str, Any]:
        with self._player_room(socket_id) as (room, player_id):
            room.set_ready(player_id, ready)
            self.broadcast_service.broadcast_room_update(room)
            return {'ready': ready}

    def set_undercover_count(self, socket_id: str, count: int) -> Dict[str, Any]:
        with self._player_room(socket_id) as (room, player_id):
            self._require_host(room, player_id)
            applied = room.set_undercover_count(count)
            self.broadcast_service.broadcast_room_update(room)
            return {'undercover_count': applied}

    def start_game(self, socket_id: str) -> Dict[str, Any]:
        """Deal words, start the preparation window."""
        with self._player_room(socket_id) as (room, player_id):
            self._require_host(room, player_id)
            if (room.phase is GamePhase.WAITING
                    and len(room.players) >= room.min_players
                    and not room.all_ready()):
                not_ready = [p.name for p in room.players if not p.ready and p.id != room.host_id]
                raise ValidationError(
                    ErrorCode.PLAYERS_NOT_READY,
                    "Everyone must be ready before the game can start",
                    {'not_ready': not_ready}
                )

            room.start_game()
            self.broadcast_service.send_words_to_all(room)
            self._schedule_prep_timer(room.id)
            self.broadcast_service.broadcast_room_update(room)
            return {'phase': room.phase.value}

    # Game intents

    def vote_change_word(self, socket_id: str) -> Dict[str, Any]:
        with self._player_room(socket_id) as (room, player_id):
            tally = room.vote_change_word(player_id)
            if tally.passed:
                self.broadcast_service.send_words_to_all(room)
                self.broadcast_service.broadcast_words_changed(room.id, tally)
                self._schedule_prep_timer(room.id)
            self.broadcast_service.broadcast_room_update(room)
            return tally.to_dict()

    def submit_speech(self, socket_id: str, speech: Speech) -> Dict[str, Any]:
        with self._player_room(socket_id) as (room, player_id):
            outcome = room.submit_speech(player_id, speech)
            self.broadcast_service.broadcast_room_update(room)
            if outcome.all_done:
                self.broadcast_service.broadcast_phase_change(room.id, GamePhase.VOTING.value)
            return outcome.to_dict()

    def submit_vote(self, socket_id: str, target_id: str) -> Dict[str, Any]:
        with self._player_room(socket_id) as (room, player_id):
            outcome = room.submit_vote(player_id, target_id)
            if not outcome.waiting:
                self.broadcast_service.broadcast_vote_result(room.id, outcome)
                if outcome.guess_required:
                    self._schedule_guess_timer(room.id)
            self.broadcast_service.broadcast_room_update(room)
            return outcome.to_dict()

    def submit_undercover_guess(self, socket_id: str, guess: str) -> Dict[str, Any]:
        with self._player_room(socket_id) as (room, player_id):
            result = room.submit_undercover_guess(player_id, guess)
            self.timer_service.cancel((room.id, GUESS_TIMER))
            self.broadcast_service.broadcast_guess_result(room, result)
            self.broadcast_service.broadcast_room_update(room)
            return result.to_dict()

    def next_round(self, socket_id: str) -> Dict[str, Any]:
        with self._player_room(socket_id) as (room, player_id):
            self._require_host(room, player_id)
            if room.phase is not GamePhase.RESULT:
                raise ValidationError(ErrorCode.WRONG_PHASE, "The next round can only start from the result screen")
            room.start_speaking()
            self.broadcast_service.broadcast_phase_change(room.id, GamePhase.SPEAKING.value)
            self.broadcast_service.broadcast_room_update(room)
            return {'round': room.round, 'current_speaker_id': room.current_speaker_id}

    def play_again(self, socket_id: str) -> Dict[str, Any]:
        with self._player_room(socket_id) as (room, player_id):
            self._require_host(room, player_id)
            room.reset_for_new_game()
            self._cancel_game_timers(room.id)
            self.broadcast_service.broadcast_room_update(room)
            self.broadcast_service.broadcast_game_reset(room.id)
            return {'phase': room.phase.value}

    # Timers

    def _schedule_prep_timer(self, room_id: str) -> None:
        self.timer_service.schedule(
            (room_id, PREP_TIMER),
            self.game_settings.prep_time_seconds,
            lambda: self._on_prep_timeout(room_id)
        )

    def _schedule_guess_timer(self, room_id: str) -> None:
        self.timer_service.schedule(
            (room_id, GUESS_TIMER),
            self.game_settings.undercover_guess_seconds,
            lambda: self._on_guess_timeout(room_id)
        )

    def _on_prep_timeout(self, room_id: str) -> None:
        room = self.room_registry.get(room_id)
        if room is None or room.phase is not GamePhase.PLAYING:
            return
        room.start_speaking()
        logger.info(f"Preparation over in room {room_id}, round {room.round} speaking started")
        self.broadcast_service.broadcast_phase_change(room_id, GamePhase.SPEAKING.value)
        self.broadcast_service.broadcast_room_update(room)

    def _on_guess_timeout(self, room_id: str) -> None:
        room = self.room_registry.get(room_id)
        if room is None:
            return
        result = room.timeout_undercover_guess()
        if result is None:
            return
        logger.info(f"Undercover guess timed out in room {room_id}")
        self.broadcast_service.broadcast_guess_result(room, result)
        self.broadcast_service.broadcast_room_update(room)

    def _cancel_game_timers(self, room_id: str) -> None:
        self.timer_service.cancel((room_id, PREP_TIMER))
        self.timer_service.cancel((room_id, GUESS_TIMER))

    def _cancel_disconnect_timers(self, room_id: str, player_id: str) -> None:
        if self.timer_service.cancel((room_id, DISCONNECT_TIMER, player_id)):
            logger.info(f"Cancelled disconnect timer for player {player_id} in room {room_id}")
        if self.timer_service.cancel((room_id, GAME_DISCONNECT_TIMER, player_id)):
            logger.info(f"Cancelled game disconnect timer for player {player_id} in room {room_id}")

    # Disconnects

    def handle_disconnect(self, socket_id: str) -> None:
        """Start the grace period once a player's last connection is gone."""
        session = self.session_service.remove_session(socket_id)
        if not session:
            return

        room_id = session['room_id']
        player_id = session['player_id']
        if self.room_registry.get(room_id) is None:
            return
        with self.concurrency_control.room_operation(room_id):
            room = self.room_registry.get(room_id)
            if room is None or not room.has_player(player_id):
                return
            if self.session_service.get_player_socket_ids(room_id, player_id):
                return

            room.set_online(player_id, False)
            self.broadcast_service.broadcast_room_update(room)
            self.timer_service.schedule(
                (room_id, DISCONNECT_TIMER, player_id),
                self.game_settings.disconnect_grace_seconds,
                lambda: self._on_disconnect_grace_expired(room_id, player_id)
            )
        logger.info(f"Player {player_id} disconnected from room {room_id}, grace period started")

    def _on_disconnect_grace_expired(self, room_id: str, player_id: str) -> None:
        room = self.room_registry.get(room_id)
        if room is None or not room.has_player(player_id):
            return
        if self.session_service.get_player_socket_ids(room_id, player_id):
            return

        if room.phase in (GamePhase.WAITING, GamePhase.GAME_OVER):
            logger.info(f"Removing disconnected player {player_id} from room {room_id}")
            self._remove_player(room, player_id)
            return

        player = room.get_player(player_id)
        scheduled = self.timer_service.schedule(
            (room_id, GAME_DISCONNECT_TIMER, player_id),
            self.game_settings.game_disconnect_timeout_seconds,
            lambda: self._on_game_disconnect_expired(room_id, player_id),
            replace=False
        )
        if scheduled:
            self.broadcast_service.broadcast_disconnect_countdown(
                room_id, player_id, player.name, self.game_settings.game_disconnect_timeout_seconds
            )

    def _on_game_disconnect_expired(self, room_id: str, player_id: str) -> None:
        room = self.room_registry.get(room_id)
        if room is None or not room.has_player(player_id):
            return
        if self.session_service.get_player_socket_ids(room_id, player_id):
            return

        if room.phase in (GamePhase.WAITING, GamePhase.GAME_OVER):
            self._remove_player(room, player_id)
            return

        logger.info(f"Player {player_id} did not return to room {room_id}, aborting game")
        self._abort_game(room, player_id)

    # Room mutations shared by intents and timers

    def _remove_player(self, room, player_id: str) -> None:
        if room.remove_player(player_id):
            self._delete_room(room.id)
        else:
            self.broadcast_service.broadcast_room_update(room)

    def _abort_game(self, room, player_id: str) -> None:
        player = room.get_player(player_id)
        player_name = player.name if player else player_id
        self._cancel_game_timers(room.id)
        if room.abort_game(player_id):
            self._delete_room(room.id)
            return
        self.broadcast_service.broadcast_game_aborted(room.id, player_id, player_name)
        self.broadcast_service.broadcast_game_reset(room.id)
        self.broadcast_service.broadcast_room_update(room)

    def _delete_room(self, room_id: str) -> None:
        self.timer_service.cancel_room(room_id)
        self.session_service.remove_room_sessions(room_id)
        self.room_registry.delete(room_id)
        self.concurrency_control.cleanup_room_lock(room_id)

    def shutdown(self) -> None:
        self.timer_service.shutdown()
