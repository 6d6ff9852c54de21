"""
Room Unit Tests
Tests for the room roster, phase transitions, voting, win conditions and the
comeback guess.
"""

import pytest
from unittest.mock import Mock

from undercover.core.errors import ErrorCode, ValidationError
from undercover.core.game_phases import GamePhase, Role
from undercover.core.models import Speech, WordPair
from undercover.room import Room
from tests.helpers.room_helpers import (
    DEFAULT_PAIR,
    SECOND_PAIR,
    FixedWordProvider,
    civilian_ids,
    make_room,
    speak_all,
    started_room,
    undercover_ids,
    vote_out,
)


class TestRoomRoster:
    """Test joining, leaving and host handling"""

    def setup_method(self):
        self.room = Room('123456', 'p1', FixedWordProvider())

    def test_first_player_becomes_ready_host(self):
        player = self.room.add_player('p1', 'Alice')

        assert self.room.host_id == 'p1'
        assert player.ready is True
        assert self.room.phase is GamePhase.WAITING

    def test_later_players_join_not_ready(self):
        self.room.add_player('p1', 'Alice')
        player = self.room.add_player('p2', 'Bob', avatar='fox')

        assert player.ready is False
        assert player.avatar == 'fox'
        assert [p.id for p in self.room.players] == ['p1', 'p2']

    def test_duplicate_player_rejected(self):
        self.room.add_player('p1', 'Alice')

        with pytest.raises(ValidationError) as exc_info:
            self.room.add_player('p1', 'Alice again')

        assert exc_info.value.code == ErrorCode.ALREADY_JOINED
        assert len(self.room.players) == 1

    def test_room_full(self):
        room = Room('123456', 'p1', FixedWordProvider(), max_players=4)
        for i in range(4):
            room.add_player(f'p{i}', f'P{i}')

        with pytest.raises(ValidationError) as exc_info:
            room.add_player('late', 'Late')

        assert exc_info.value.code == ErrorCode.ROOM_FULL

    def test_join_during_game_rejected(self):
        room = make_room(4)
        room.start_game()

        with pytest.raises(ValidationError) as exc_info:
            room.add_player('p9', 'Late')

        assert exc_info.value.code == ErrorCode.GAME_IN_PROGRESS

    def test_host_transfers_to_first_remaining_player(self):
        room = make_room(3)

        empty = room.remove_player('p1')

        assert empty is False
        assert room.host_id == 'p2'
        assert room.is_host('p2')

    def test_removing_last_player_reports_empty(self):
        self.room.add_player('p1', 'Alice')

        assert self.room.remove_player('p1') is True
        assert self.room.is_empty

    def test_remove_unknown_player_is_noop(self):
        self.room.add_player('p1', 'Alice')

        assert self.room.remove_player('ghost') is False
        assert len(self.room.players) == 1

    def test_set_online(self):
        self.room.add_player('p1', 'Alice')

        assert self.room.set_online('p1', False) is True
        assert self.room.get_player('p1').online is False
        assert self.room.set_online('ghost', False) is False


class TestRoomLobby:
    """Test ready state and undercover count handling"""

    def test_all_ready_requires_minimum_players(self):
        room = make_room(3)
        assert room.all_ready() is False

    def test_all_ready_ignores_host(self):
        room = make_room(4)
        room.get_player('p1').ready = False

        assert room.all_ready() is True

    def test_all_ready_false_with_unready_player(self):
        room = make_room(4)
        room.set_ready('p3', False)

        assert room.all_ready() is False

    def test_set_ready_unknown_player(self):
        room = make_room(4)

        with pytest.raises(ValidationError) as exc_info:
            room.set_ready('ghost', True)

        assert exc_info.value.code == ErrorCode.INVALID_PLAYER

    @pytest.mark.parametrize("players,expected", [(4, 1), (5, 2), (7, 3), (12, 5)])
    def test_max_undercover_count(self, players, expected):
        assert make_room(players).max_undercover_count() == expected

    def test_undercover_count_is_clamped(self):
        room = make_room(5)

        assert room.set_undercover_count(10) == 2
        assert room.set_undercover_count(0) == 1
        assert room.undercover_count == 1

    def test_undercover_count_locked_during_game(self):
        room = make_room(4)
        room.start_game()

        with pytest.raises(ValidationError) as exc_info:
            room.set_undercover_count(1)

        assert exc_info.value.code == ErrorCode.WRONG_PHASE


class TestStartGame:
    """Test role and word dealing"""

    def test_not_enough_players(self):
        room = make_room(3)

        with pytest.raises(ValidationError) as exc_info:
            room.start_game()

        assert exc_info.value.code == ErrorCode.NOT_ENOUGH_PLAYERS
        assert exc_info.value.details == {'players': 3, 'required': 4}
        assert room.phase is GamePhase.WAITING

    def test_deals_roles_and_words(self):
        room = make_room(6)
        room.set_undercover_count(2)

        room.start_game()

        assert room.phase is GamePhase.PLAYING
        assert room.round == 0
        assert len(undercover_ids(room)) == 2
        assert len(civilian_ids(room)) == 4
        for player in room.players:
            assert player.word == DEFAULT_PAIR.word_for(player.role)
            assert player.alive is True
        assert room.civilian_word == 'Coffee'
        assert room.undercover_word == 'Tea'

    def test_cannot_start_twice(self):
        room = make_room(4)
        room.start_game()

        with pytest.raises(ValidationError) as exc_info:
            room.start_game()

        assert exc_info.value.code == ErrorCode.WRONG_PHASE

    def test_word_provider_failure_leaves_lobby_untouched(self):
        provider = Mock()
        provider.get_random_word_pair.side_effect = RuntimeError("No word pairs loaded")
        room = make_room(4, word_provider=provider)

        with pytest.raises(RuntimeError):
            room.start_game()

        assert room.phase is GamePhase.WAITING
        assert all(p.role is None for p in room.players)

    def test_previous_undercover_is_avoided(self):
        for seed in range(20):
            room = make_room(5, seed=seed)
            room.start_game()
            first = set(undercover_ids(room))

            room._finish_game(Role.CIVILIAN)
            room.reset_for_new_game()
            room.start_game()

            assert set(undercover_ids(room)).isdisjoint(first)


class TestChangeWord:
    """Test the majority vote to reroll the word pair"""

    def setup_method(self):
        self.room = make_room(4)
        self.room.start_game()

    def test_needs_strict_majority(self):
        tally = self.room.vote_change_word('p1')
        assert tally.passed is False
        assert (tally.current, tally.needed, tally.total) == (1, 3, 4)

        tally = self.room.vote_change_word('p2')
        assert tally.passed is False
        assert self.room.change_word_votes == {'p1', 'p2'}

    def test_repeated_vote_counts_once(self):
        self.room.vote_change_word('p1')
        tally = self.room.vote_change_word('p1')

        assert tally.current == 1

    def test_passing_vote_rerolls_words(self):
        roles = {p.id: p.role for p in self.room.players}
        for pid in ('p1', 'p2'):
            self.room.vote_change_word(pid)

        tally = self.room.vote_change_word('p3')

        assert tally.passed is True
        assert self.room.word_changed is True
        assert self.room.civilian_word == SECOND_PAIR.civilian_word
        assert self.room.change_word_votes == set()
        assert self.room.phase is GamePhase.PLAYING
        for player in self.room.players:
            assert player.role is roles[player.id]
            assert player.word == SECOND_PAIR.word_for(player.role)

    def test_only_one_change_per_game(self):
        for pid in ('p1', 'p2', 'p3'):
            self.room.vote_change_word(pid)

        with pytest.raises(ValidationError) as exc_info:
            self.room.vote_change_word('p4')

        assert exc_info.value.code == ErrorCode.ALREADY_CHANGED

    def test_change_word_outside_preparation(self):
        self.room.start_speaking()

        with pytest.raises(ValidationError) as exc_info:
            self.room.vote_change_word('p1')

        assert exc_info.value.code == ErrorCode.WRONG_PHASE


class TestSpeaking:
    """Test speaking order and turn enforcement"""

    def test_start_speaking_uses_alive_players(self):
        room = make_room(5)
        room.start_game()

        index = room.start_speaking()

        assert index == 0
        assert room.phase is GamePhase.SPEAKING
        assert room.round == 1
        assert sorted(room.speaking_order) == ['p1', 'p2', 'p3', 'p4', 'p5']
        assert room.current_speaker_id == room.speaking_order[0]

    def test_speaking_cannot_start_from_lobby(self):
        room = make_room(4)

        with pytest.raises(ValidationError) as exc_info:
            room.start_speaking()

        assert exc_info.value.code == ErrorCode.WRONG_PHASE

    def test_out_of_turn_speech_rejected(self):
        room = started_room(4)
        waiting = room.speaking_order[1]

        with pytest.raises(ValidationError) as exc_info:
            room.submit_speech(waiting, Speech('text', 'hello'))

        assert exc_info.value.code == ErrorCode.NOT_AUTHORIZED
        assert exc_info.value.details['current_speaker_id'] == room.speaking_order[0]

    def test_speech_advances_turn(self):
        room = started_room(4)
        order = room.speaking_order

        outcome = room.submit_speech(order[0], Speech('text', 'hot drink'))

        assert outcome.all_done is False
        assert outcome.next_speaker_id == order[1]
        assert outcome.next_index == 1
        assert room.get_player(order[0]).speech == Speech('text', 'hot drink')

    def test_last_speech_opens_voting(self):
        room = started_room(4)
        order = room.speaking_order
        for pid in order[:-1]:
            room.submit_speech(pid, Speech('text', 'x'))

        outcome = room.submit_speech(order[-1], Speech('voice', 'https://clips.example/1.webm'))

        assert outcome.all_done is True
        assert outcome.to_dict() == {'all_done': True}
        assert room.phase is GamePhase.VOTING

    def test_dead_player_cannot_speak(self):
        room = started_room(5)
        speak_all(room)
        civilian = civilian_ids(room)[0]
        vote_out(room, civilian)
        room.start_speaking()

        assert civilian not in room.speaking_order
        with pytest.raises(ValidationError) as exc_info:
            room.submit_speech(civilian, Speech('text', 'x'))
        assert exc_info.value.code == ErrorCode.INVALID_PLAYER


class TestVoting:
    """Test vote collection and resolution"""

    def setup_method(self):
        self.room = started_room(5)
        speak_all(self.room)

    def test_self_vote_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self.room.submit_vote('p1', 'p1')
        assert exc_info.value.code == ErrorCode.SELF_VOTE

    def test_unknown_target_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self.room.submit_vote('p1', 'ghost')
        assert exc_info.value.code == ErrorCode.INVALID_TARGET

    def test_vote_outside_voting_phase(self):
        room = started_room(4)
        with pytest.raises(ValidationError) as exc_info:
            room.submit_vote('p1', 'p2')
        assert exc_info.value.code == ErrorCode.WRONG_PHASE

    def test_waits_for_every_alive_player(self):
        outcome = self.room.submit_vote('p1', 'p2')

        assert outcome.waiting is True
        assert outcome.to_dict() == {'waiting': True}
        assert self.room.phase is GamePhase.VOTING

    def test_revote_overwrites_choice(self):
        self.room.submit_vote('p1', 'p2')
        self.room.submit_vote('p1', 'p3')

        assert self.room.get_player('p1').vote == 'p3'

    def test_unique_leader_is_eliminated(self):
        civilian = civilian_ids(self.room)[0]

        outcome = vote_out(self.room, civilian)

        assert outcome.waiting is False
        assert outcome.vote_result.eliminated.id == civilian
        assert outcome.vote_result.eliminated.role is Role.CIVILIAN
        assert outcome.vote_result.tie is False
        assert outcome.vote_result.vote_count[civilian] == 4
        assert len(outcome.vote_result.votes) == 5
        assert self.room.get_player(civilian).alive is False
        assert self.room.phase is GamePhase.RESULT

    def test_tie_eliminates_nobody(self):
        # p1 and p2 both end up with two votes
        votes = {'p1': 'p2', 'p2': 'p1', 'p3': 'p1', 'p4': 'p2', 'p5': 'p3'}
        outcome = None
        for voter, target in votes.items():
            outcome = self.room.submit_vote(voter, target)

        assert outcome.vote_result.tie is True
        assert outcome.vote_result.eliminated is None
        assert all(p.alive for p in self.room.players)
        assert self.room.phase is GamePhase.RESULT

    def test_next_round_archives_speeches(self):
        vote_out(self.room, civilian_ids(self.room)[0])

        self.room.start_speaking()

        assert self.room.round == 2
        assert len(self.room.speech_history) == 1
        assert self.room.speech_history[0]['round'] == 1
        assert len(self.room.speech_history[0]['speeches']) == 5
        assert all(p.speech is None and p.vote is None for p in self.room.players)


class TestWinConditions:
    """Test game over detection and the comeback guess"""

    def test_undercover_wins_at_parity(self):
        room = started_room(4)
        speak_all(room)
        civilian = civilian_ids(room)[0]

        outcome = vote_out(room, civilian)
        assert outcome.game_over is None
        room.start_speaking()
        speak_all(room)
        remaining = next(p.id for p in room.alive_players() if p.role is Role.CIVILIAN)
        outcome = vote_out(room, remaining)

        assert room.phase is GamePhase.GAME_OVER
        assert room.winner is Role.UNDERCOVER
        assert outcome.game_over.winner is Role.UNDERCOVER
        assert outcome.game_over.civilian_word == 'Coffee'

    def test_voting_out_last_undercover_opens_guess(self):
        room = started_room(4)
        speak_all(room)
        undercover = undercover_ids(room)[0]

        outcome = vote_out(room, undercover)

        assert room.phase is GamePhase.UNDERCOVER_GUESS
        assert outcome.guess_required is True
        assert outcome.guesser_id == undercover
        assert room.guessing_undercover_id == undercover
        assert room.vote_result.eliminated.id == undercover

    def test_correct_guess_wins_for_undercover(self):
        room = started_room(4)
        speak_all(room)
        undercover = undercover_ids(room)[0]
        vote_out(room, undercover)

        result = room.submit_undercover_guess(undercover, '  coffee ')

        assert result.correct is True
        assert result.winner is Role.UNDERCOVER
        assert room.winner is Role.UNDERCOVER
        assert room.guess_result == result
        assert room.game_outcome.undercover_word == 'Tea'

    def test_wrong_guess_wins_for_civilians(self):
        room = started_room(4)
        speak_all(room)
        undercover = undercover_ids(room)[0]
        vote_out(room, undercover)

        result = room.submit_undercover_guess(undercover, 'Milk')

        assert result.correct is False
        assert room.winner is Role.CIVILIAN

    def test_only_guesser_may_guess(self):
        room = started_room(4)
        speak_all(room)
        vote_out(room, undercover_ids(room)[0])

        with pytest.raises(ValidationError) as exc_info:
            room.submit_undercover_guess(civilian_ids(room)[0], 'Coffee')

        assert exc_info.value.code == ErrorCode.NOT_AUTHORIZED
        assert room.phase is GamePhase.UNDERCOVER_GUESS

    def test_guess_timeout(self):
        room = started_room(4)
        speak_all(room)
        undercover = undercover_ids(room)[0]
        vote_out(room, undercover)

        result = room.timeout_undercover_guess()

        assert result.timeout is True
        assert result.guess is None
        assert room.winner is Role.CIVILIAN

    def test_guess_timeout_outside_guess_phase_is_noop(self):
        room = started_room(4)

        assert room.timeout_undercover_guess() is None
        assert room.phase is GamePhase.SPEAKING

    def test_one_of_two_undercover_voted_out_keeps_playing(self):
        room = make_room(7)
        room.set_undercover_count(2)
        room.start_game()
        room.start_speaking()
        speak_all(room)

        outcome = vote_out(room, undercover_ids(room)[0])

        assert outcome.game_over is None
        assert outcome.guess_required is False
        assert room.phase is GamePhase.RESULT


class TestResetAndAbort:
    """Test returning to the lobby"""

    def test_reset_requires_game_over(self):
        room = started_room(4)

        with pytest.raises(ValidationError) as exc_info:
            room.reset_for_new_game()

        assert exc_info.value.code == ErrorCode.WRONG_PHASE

    def test_reset_returns_to_fresh_lobby(self):
        room = started_room(4)
        speak_all(room)
        undercover = undercover_ids(room)[0]
        vote_out(room, undercover)
        room.timeout_undercover_guess()

        room.reset_for_new_game()

        assert room.phase is GamePhase.WAITING
        assert room.round == 0
        assert room.civilian_word is None
        assert room.speech_history == []
        assert room.last_undercover_ids == {undercover}
        for player in room.players:
            assert player.role is None
            assert player.word is None
            assert player.alive is True
            assert player.ready is (player.id == room.host_id)

    def test_abort_removes_player_and_resets(self):
        room = started_room(5)

        empty = room.abort_game('p3')

        assert empty is False
        assert room.phase is GamePhase.WAITING
        assert not room.has_player('p3')
        assert room.last_undercover_ids == set()
        assert all(p.role is None for p in room.players)

    def test_abort_of_host_transfers_host(self):
        room = started_room(4)

        room.abort_game('p1')

        assert room.host_id == 'p2'
        assert room.get_player('p2').ready is True


class TestRoomProperties:
    """Whole-room properties that hold regardless of the random draw"""

    @pytest.mark.parametrize("players,requested", [(4, 1), (6, 2), (7, 5), (12, 3)])
    def test_every_player_gets_one_role_and_matching_word(self, players, requested):
        room = make_room(players)
        room.set_undercover_count(requested)

        room.start_game()

        expected = min(max(1, requested), max(1, (players - 1) // 2))
        assert len(undercover_ids(room)) == expected
        for player in room.players:
            assert player.role in (Role.CIVILIAN, Role.UNDERCOVER)
            assert player.word == DEFAULT_PAIR.word_for(player.role)

    def test_three_players_clamp_to_one_undercover(self):
        room = make_room(3)

        assert room.set_undercover_count(5) == 1

    def test_vote_after_resolution_is_wrong_phase(self):
        room = started_room(5)
        speak_all(room)
        vote_out(room, civilian_ids(room)[0])

        with pytest.raises(ValidationError) as exc_info:
            room.submit_vote('p1', 'p2')

        assert exc_info.value.code == ErrorCode.WRONG_PHASE

    def test_even_three_way_split_is_a_tie(self):
        room = make_room(6)
        room.set_undercover_count(2)
        room.start_game()
        room.start_speaking()
        speak_all(room)
        votes = {'p1': 'p2', 'p2': 'p3', 'p3': 'p1', 'p4': 'p1', 'p5': 'p2', 'p6': 'p3'}

        outcome = None
        for voter, target in votes.items():
            outcome = room.submit_vote(voter, target)

        assert outcome.vote_result.tie is True
        assert outcome.vote_result.eliminated is None
        assert outcome.game_over is None
        assert room.phase is GamePhase.RESULT

    def test_guess_ignores_case_and_whitespace(self):
        room = make_room(4, word_provider=FixedWordProvider([WordPair('Apple', 'Pear')]))
        room.start_game()
        room.start_speaking()
        speak_all(room)
        undercover = undercover_ids(room)[0]
        vote_out(room, undercover)

        result = room.submit_undercover_guess(undercover, ' apple ')

        assert result.correct is True
        assert room.winner is Role.UNDERCOVER
