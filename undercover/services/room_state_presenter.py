"""
Room State Presenter - Centralized room state transformation for broadcasts.

Builds the public view every room member receives and the private word payload
sent to a single player. A living player's role and word never appear in the
public view; both words are revealed only once the game is over.
"""

import logging
from typing import Any, Dict, List, Optional

from undercover.core.game_phases import GamePhase
from undercover.core.models import Player

logger = logging.getLogger(__name__)

# Timed phases and the timer key suffix that drives them
PHASE_TIMER_KEYS = {
    GamePhase.PLAYING: 'prep',
    GamePhase.UNDERCOVER_GUESS: 'guess',
}


class RoomStatePresenter:
    """Centralized service for transforming room state data for client broadcasts."""

    def __init__(self, timer_service=None, game_settings=None):
        """Initialize the room state presenter.

        Args:
            timer_service: TimerService used for time remaining in timed phases
            game_settings: GameSettings providing phase durations
        """
        self.timer_service = timer_service
        self.game_settings = game_settings

    def create_room_state(self, room) -> Dict[str, Any]:
        """Create the public room state broadcast to every member.

        Args:
            room: Room instance

        Returns:
            Dict safe to send to all players in the room
        """
        phase = room.phase
        game_over = phase is GamePhase.GAME_OVER

        state = {
            'room_id': room.id,
            'host_id': room.host_id,
            'phase': phase.value,
            'round': room.round,
            'undercover_count': room.undercover_count,
            'max_undercover_count': room.max_undercover_count(),
            'max_players': room.max_players,
            'min_players': room.min_players,
            'all_ready': room.all_ready(),
            'players': self.create_player_list(room),
            'current_speaker_id': room.current_speaker_id,
            'speaking_order': room.speaking_order,
            'change_word': self.create_change_word_tally(room),
            'vote_result': room.vote_result.to_dict() if room.vote_result else None,
            'speech_history': [dict(entry) for entry in room.speech_history],
            'guessing_undercover_id': room.guessing_undercover_id,
            'guess_result': room.guess_result.to_dict() if room.guess_result else None,
            'winner': room.winner.value if room.winner else None,
        }

        if game_over:
            state['civilian_word'] = room.civilian_word
            state['undercover_word'] = room.undercover_word

        state.update(self.create_timing_data(room))
        return state

    def create_player_list(self, room) -> List[Dict[str, Any]]:
        """Create the player list with unrevealed roles hidden."""
        game_over = room.phase is GamePhase.GAME_OVER
        return [self._create_player_view(room, player, game_over) for player in room.players]

    def _create_player_view(self, room, player: Player, game_over: bool) -> Dict[str, Any]:
        view = {
            'id': player.id,
            'name': player.name,
            'avatar': player.avatar,
            'is_host': player.id == room.host_id,
            'ready': player.ready or player.id == room.host_id,
            'alive': player.alive,
            'online': player.online,
            'has_voted': player.vote is not None,
            'speech': player.speech.to_dict() if player.speech else None,
        }
        if player.role is not None and (game_over or not player.alive):
            view['role'] = player.role.value
        if game_over:
            view['word'] = player.word
        return view

    def create_change_word_tally(self, room) -> Dict[str, Any]:
        voters = sorted(room.change_word_votes)
        return {
            'votes': len(voters),
            'needed': room.change_word_needed,
            'voters': voters,
            'word_changed': room.word_changed,
        }

    def create_timing_data(self, room) -> Dict[str, Any]:
        """Duration and remaining seconds of the current timed phase, if any."""
        timer_key = PHASE_TIMER_KEYS.get(room.phase)
        if timer_key is None:
            return {'phase_duration': None, 'time_remaining': None}

        duration = None
        if self.game_settings is not None:
            duration = self.game_settings.phase_durations.get(room.phase)

        remaining = None
        if self.timer_service is not None:
            remaining = self.timer_service.time_remaining((room.id, timer_key))

        return {
            'phase_duration': duration,
            'time_remaining': int(round(remaining)) if remaining is not None else None,
        }

    def create_private_word_payload(self, player: Player) -> Dict[str, Optional[str]]:
        """The secret word and role for one player only."""
        return {
            'word': player.word,
            'role': player.role.value if player.role else None,
        }

    def create_room_summary(self, room) -> Dict[str, Any]:
        """Short description used by the open lobby list."""
        host = room.get_player(room.host_id)
        return {
            'id': room.id,
            'host_name': host.name if host else None,
            'player_count': len(room.players),
            'max_players': room.max_players,
            'phase': room.phase.value,
        }
