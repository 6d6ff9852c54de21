"""
Room State Presenter Unit Tests
Tests for the public room view and the private word payload.
"""

from unittest.mock import Mock

import pytest

from config_factory import AppConfig
from undercover.config.game_settings import GameSettings
from undercover.core.game_phases import GamePhase, Role
from undercover.services.room_state_presenter import RoomStatePresenter
from tests.helpers.room_helpers import make_room, speak_all, started_room, undercover_ids, civilian_ids, vote_out


class TestRoomStatePresenter:
    """Test RoomStatePresenter output"""

    def setup_method(self):
        self.timer_service = Mock()
        self.timer_service.time_remaining.return_value = 12.4
        self.settings = GameSettings(AppConfig(prep_time_seconds=30, undercover_guess_seconds=25))
        self.presenter = RoomStatePresenter(self.timer_service, self.settings)

    def test_lobby_state(self):
        room = make_room(4)

        state = self.presenter.create_room_state(room)

        assert state['room_id'] == '123456'
        assert state['host_id'] == 'p1'
        assert state['phase'] == 'waiting'
        assert state['round'] == 0
        assert state['all_ready'] is True
        assert state['max_undercover_count'] == 1
        assert state['current_speaker_id'] is None
        assert state['speaking_order'] == []
        assert state['vote_result'] is None
        assert state['winner'] is None
        assert state['phase_duration'] is None
        assert state['time_remaining'] is None
        assert 'civilian_word' not in state
        assert [p['id'] for p in state['players']] == ['p1', 'p2', 'p3', 'p4']
        self.timer_service.time_remaining.assert_not_called()

    def test_player_view_fields(self):
        room = make_room(2, ready=False)

        players = self.presenter.create_room_state(room)['players']

        assert players[0] == {
            'id': 'p1',
            'name': 'Player1',
            'avatar': None,
            'is_host': True,
            'ready': True,
            'alive': True,
            'online': True,
            'has_voted': False,
            'speech': None,
        }
        assert players[1]['ready'] is False
        assert players[1]['is_host'] is False

    def test_roles_and_words_hidden_during_game(self):
        room = started_room(4)

        state = self.presenter.create_room_state(room)

        assert 'civilian_word' not in state
        assert 'undercover_word' not in state
        for player in state['players']:
            assert 'role' not in player
            assert 'word' not in player

    def test_preparation_timing(self):
        room = make_room(4)
        room.start_game()

        state = self.presenter.create_room_state(room)

        assert state['phase'] == 'playing'
        assert state['phase_duration'] == 30
        assert state['time_remaining'] == 12
        self.timer_service.time_remaining.assert_called_once_with(('123456', 'prep'))
        assert state['change_word'] == {'votes': 0, 'needed': 3, 'voters': [], 'word_changed': False}

    def test_change_word_voters_listed(self):
        room = make_room(4)
        room.start_game()
        room.vote_change_word('p2')

        tally = self.presenter.create_room_state(room)['change_word']

        assert tally['votes'] == 1
        assert tally['voters'] == ['p2']

    def test_speaking_state(self):
        room = started_room(4)

        state = self.presenter.create_room_state(room)

        assert state['phase'] == 'speaking'
        assert state['round'] == 1
        assert state['current_speaker_id'] == room.speaking_order[0]
        assert state['speaking_order'] == room.speaking_order
        assert state['phase_duration'] is None

    def test_eliminated_player_role_revealed(self):
        room = started_room(5)
        speak_all(room)
        civilian = civilian_ids(room)[0]
        vote_out(room, civilian)

        state = self.presenter.create_room_state(room)
        players = {p['id']: p for p in state['players']}

        assert players[civilian]['role'] == 'civilian'
        assert players[civilian]['alive'] is False
        assert 'word' not in players[civilian]
        living_undercover = undercover_ids(room)[0]
        assert 'role' not in players[living_undercover]
        assert state['vote_result']['eliminated']['id'] == civilian

    def test_guess_phase(self):
        room = started_room(4)
        speak_all(room)
        undercover = undercover_ids(room)[0]
        vote_out(room, undercover)

        state = self.presenter.create_room_state(room)

        assert state['phase'] == 'undercover_guess'
        assert state['guessing_undercover_id'] == undercover
        assert state['phase_duration'] == 25
        self.timer_service.time_remaining.assert_called_with(('123456', 'guess'))

    def test_game_over_reveals_everything(self):
        room = started_room(4)
        speak_all(room)
        undercover = undercover_ids(room)[0]
        vote_out(room, undercover)
        room.submit_undercover_guess(undercover, 'Milk')

        state = self.presenter.create_room_state(room)

        assert state['phase'] == 'game_over'
        assert state['winner'] == 'civilian'
        assert state['civilian_word'] == 'Coffee'
        assert state['undercover_word'] == 'Tea'
        assert state['guess_result']['guess'] == 'Milk'
        for player in state['players']:
            assert player['role'] in ('civilian', 'undercover')
            assert player['word'] in ('Coffee', 'Tea')

    def test_speech_history_is_copied(self):
        room = started_room(4)
        speak_all(room, 'warm')
        vote_out(room, civilian_ids(room)[0])
        room.start_speaking()

        state = self.presenter.create_room_state(room)
        state['speech_history'].append({'round': 99})

        assert len(room.speech_history) == 1
        assert state['speech_history'][0]['speeches'][0]['speech'] == {'kind': 'text', 'content': 'warm'}

    def test_timing_without_timer_service(self):
        presenter = RoomStatePresenter()
        room = make_room(4)
        room.start_game()

        state = presenter.create_room_state(room)

        assert state['phase_duration'] is None
        assert state['time_remaining'] is None

    def test_private_word_payload(self):
        room = make_room(4)
        room.start_game()
        player = room.get_player(undercover_ids(room)[0])

        assert self.presenter.create_private_word_payload(player) == {'word': 'Tea', 'role': 'undercover'}

    def test_private_word_payload_in_lobby(self):
        room = make_room(4)

        assert self.presenter.create_private_word_payload(room.players[0]) == {'word': None, 'role': None}

    def test_room_summary(self):
        room = make_room(3)

        assert self.presenter.create_room_summary(room) == {
            'id': '123456',
            'host_name': 'Player1',
            'player_count': 3,
            'max_players': 12,
            'phase': 'waiting',
        }
