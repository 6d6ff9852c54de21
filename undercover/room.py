"""
Room state machine for the Undercover game

A Room owns one game session: the roster, the current phase, the round
counter, speaking order, votes and the win/guess logic. It performs no I/O;
callers broadcast the resulting state and own every timer.

Every public method validates before mutating, so a rejected intent
(ValidationError) never leaves the room half-updated.
"""

import logging
import random
from datetime import datetime
from typing import Dict, List, Optional, Set

from undercover.core.errors import ErrorCode, ValidationError
from undercover.core.game_phases import GamePhase, Role
from undercover.core.models import (
    ChangeWordTally,
    EliminatedPlayer,
    GameOutcome,
    GuessResult,
    Player,
    Speech,
    SpeechOutcome,
    VoteOutcome,
    VoteResult,
    WordPair,
)
from undercover.core.stages import (
    GameOverStage,
    GuessStage,
    LobbyStage,
    PreparationStage,
    ResultStage,
    SpeakingStage,
    Stage,
    VotingStage,
)

logger = logging.getLogger(__name__)

MAX_PLAYERS = 12
MIN_PLAYERS = 4


class Room:
    """A single game session and its phase state machine."""

    def __init__(self, room_id: str, host_id: str, word_provider,
                 max_players: int = MAX_PLAYERS, min_players: int = MIN_PLAYERS,
                 rng: Optional[random.Random] = None):
        """
        Args:
            room_id: Registry-unique room identifier
            host_id: Player id of the creator; becomes host once added
            word_provider: Object exposing get_random_word_pair(exclude=None)
            max_players: Roster capacity
            min_players: Players required to start a game
            rng: Random source, injectable for deterministic tests
        """
        self.id = room_id
        self.host_id = host_id
        self.max_players = max_players
        self.min_players = min_players
        self._word_provider = word_provider
        self._rng = rng or random.Random()

        self.players: List[Player] = []
        self.stage: Stage = LobbyStage()
        self.round = 0
        self.undercover_count = 1
        self.civilian_word: Optional[str] = None
        self.undercover_word: Optional[str] = None
        self.word_changed = False
        self.last_undercover_ids: Set[str] = set()
        self.speech_history: List[Dict] = []
        self.created_at = datetime.now()

    # Read-only views

    @property
    def phase(self) -> GamePhase:
        return self.stage.phase

    @property
    def is_empty(self) -> bool:
        return not self.players

    def get_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def has_player(self, player_id: str) -> bool:
        return self.get_player(player_id) is not None

    def is_host(self, player_id: str) -> bool:
        return player_id == self.host_id

    def alive_players(self) -> List[Player]:
        return [p for p in self.players if p.alive]

    @property
    def current_speaker_id(self) -> Optional[str]:
        if isinstance(self.stage, SpeakingStage):
            return self.stage.current_speaker_id
        return None

    @property
    def speaking_order(self) -> List[str]:
        if isinstance(self.stage, SpeakingStage):
            return list(self.stage.order)
        return []

    @property
    def change_word_votes(self) -> Set[str]:
        if isinstance(self.stage, PreparationStage):
            return set(self.stage.change_word_votes)
        return set()

    @property
    def change_word_needed(self) -> int:
        return len(self.players) // 2 + 1

    @property
    def vote_result(self) -> Optional[VoteResult]:
        if isinstance(self.stage, (ResultStage, GuessStage, GameOverStage)):
            return self.stage.vote_result
        return None

    @property
    def guessing_undercover_id(self) -> Optional[str]:
        if isinstance(self.stage, GuessStage):
            return self.stage.guesser_id
        return None

    @property
    def guess_result(self) -> Optional[GuessResult]:
        if isinstance(self.stage, GameOverStage):
            return self.stage.guess_result
        return None

    @property
    def winner(self) -> Optional[Role]:
        if isinstance(self.stage, GameOverStage):
            return self.stage.winner
        return None

    @property
    def game_outcome(self) -> Optional[GameOutcome]:
        if not isinstance(self.stage, GameOverStage):
            return None
        return GameOutcome(
            winner=self.stage.winner,
            civilian_word=self.civilian_word,
            undercover_word=self.undercover_word,
        )

    # Roster management

    def add_player(self, player_id: str, name: str, avatar: Optional[str] = None) -> Player:
        """
        Add a player to the lobby. The first player becomes host and is ready.

        Raises:
            ValidationError: GAME_IN_PROGRESS, ROOM_FULL or ALREADY_JOINED
        """
        if self.phase is not GamePhase.WAITING:
            raise ValidationError(ErrorCode.GAME_IN_PROGRESS, 'Game already started, cannot join')
        if len(self.players) >= self.max_players:
            raise ValidationError(ErrorCode.ROOM_FULL, f'Room {self.id} is full')
        if self.has_player(player_id):
            raise ValidationError(ErrorCode.ALREADY_JOINED, 'Player is already in this room')

        player = Player(id=player_id, name=name, avatar=avatar)
        if not self.players:
            self.host_id = player_id
            player.ready = True
        self.players.append(player)
        return player

    def remove_player(self, player_id: str) -> bool:
        """
        Remove a player, handing the host role to the first remaining player.

        Returns:
            True if the room is now empty
        """
        player = self.get_player(player_id)
        if player is None:
            return self.is_empty

        self.players.remove(player)
        if player_id == self.host_id and self.players:
            self.host_id = self.players[0].id
            logger.info(f"Host of room {self.id} transferred to {self.host_id}")
        return self.is_empty

    def set_online(self, player_id: str, online: bool) -> bool:
        player = self.get_player(player_id)
        if player is None:
            return False
        player.online = online
        return True

    def set_ready(self, player_id: str, ready: bool) -> None:
        if self.phase is not GamePhase.WAITING:
            raise ValidationError(ErrorCode.WRONG_PHASE, 'Ready state can only change in the lobby')
        player = self._require_player(player_id)
        player.ready = bool(ready)

    def all_ready(self) -> bool:
        """True once enough players joined and every non-host player is ready."""
        if len(self.players) < self.min_players:
            return False
        return all(p.ready or p.id == self.host_id for p in self.players)

    def max_undercover_count(self) -> int:
        return max(1, (len(self.players) - 1) // 2)

    def set_undercover_count(self, count: int) -> int:
        """Clamp and store the number of undercover players for the next game."""
        if self.phase is not GamePhase.WAITING:
            raise ValidationError(ErrorCode.WRONG_PHASE, 'Undercover count can only change in the lobby')
        self.undercover_count = min(max(1, int(count)), self.max_undercover_count())
        return self.undercover_count

    # Game lifecycle

    def start_game(self) -> None:
        """
        Deal roles and words to every player and enter the preparation phase.

        Raises:
            ValidationError: WRONG_PHASE outside the lobby, NOT_ENOUGH_PLAYERS below the minimum
        """
        if self.phase is not GamePhase.WAITING:
            raise ValidationError(ErrorCode.WRONG_PHASE, 'Game already started')
        if len(self.players) < self.min_players:
            raise ValidationError(
                ErrorCode.NOT_ENOUGH_PLAYERS,
                f'At least {self.min_players} players are required',
                {'players': len(self.players), 'required': self.min_players}
            )

        count = min(max(1, self.undercover_count), self.max_undercover_count())
        pair = self._word_provider.get_random_word_pair()
        undercover_ids = self._pick_undercover_ids(count)

        self.undercover_count = count
        self._apply_word_pair(pair)
        for player in self.players:
            player.role = Role.UNDERCOVER if player.id in undercover_ids else Role.CIVILIAN
            player.word = pair.word_for(player.role)
            player.alive = True
            player.vote = None
            player.speech = None

        self.last_undercover_ids = set(undercover_ids)
        self.stage = PreparationStage()
        self.round = 0
        self.word_changed = False
        self.speech_history = []
        logger.info(f"Game started in room {self.id} with {len(self.players)} players, {count} undercover")

    def _pick_undercover_ids(self, count: int) -> Set[str]:
        candidates = [p.id for p in self.players]
        self._rng.shuffle(candidates)

        previous = self.last_undercover_ids.intersection(candidates)
        if previous and len(candidates) - len(previous) >= count:
            fresh = [c for c in candidates if c not in previous]
            repeat = [c for c in candidates if c in previous]
            candidates = fresh + repeat

        return set(candidates[:count])

    def _apply_word_pair(self, pair: WordPair) -> None:
        self.civilian_word = pair.civilian_word
        self.undercover_word = pair.undercover_word

    def _current_pair(self) -> Optional[WordPair]:
        if self.civilian_word is None or self.undercover_word is None:
            return None
        return WordPair(self.civilian_word, self.undercover_word)

    def vote_change_word(self, player_id: str) -> ChangeWordTally:
        """
        Register a vote to reroll the word pair. A strict majority of the
        roster passes it; each game allows a single reroll.
        """
        if self.word_changed:
            raise ValidationError(ErrorCode.ALREADY_CHANGED, 'The words were already changed this game')
        if self.phase is not GamePhase.PLAYING:
            raise ValidationError(ErrorCode.WRONG_PHASE, 'Words can only be changed during preparation')
        self._require_alive_player(player_id)

        votes = self.stage.change_word_votes | {player_id}
        total = len(self.players)
        needed = self.change_word_needed
        if len(votes) < needed:
            self.stage.change_word_votes = votes
            return ChangeWordTally(passed=False, current=len(votes), needed=needed, total=total)

        pair = self._word_provider.get_random_word_pair(exclude=self._current_pair())
        self._apply_word_pair(pair)
        for player in self.players:
            player.word = pair.word_for(player.role)
            player.speech = None
        self.word_changed = True
        self.stage = PreparationStage()
        self.round = 0
        logger.info(f"Words changed in room {self.id}")
        return ChangeWordTally(passed=True, current=len(votes), needed=needed, total=total)

    def start_speaking(self) -> int:
        """
        Begin a speaking round with a fresh random order of alive players.

        Returns:
            Index of the first speaker within the speaking order
        """
        if self.phase not in (GamePhase.PLAYING, GamePhase.RESULT):
            raise ValidationError(ErrorCode.WRONG_PHASE, 'A speaking round cannot start now')

        if self.round > 0:
            self._archive_round()
        self.round += 1
        for player in self.players:
            player.speech = None
            player.vote = None

        order = [p.id for p in self.players if p.alive]
        self._rng.shuffle(order)
        self.stage = SpeakingStage(order=order, cursor=0)
        return self.stage.cursor

    def _archive_round(self) -> None:
        speeches = [
            {'player_id': p.id, 'name': p.name, 'speech': p.speech.to_dict()}
            for p in self.players if p.speech is not None
        ]
        if speeches:
            self.speech_history.append({'round': self.round, 'speeches': speeches})

    def submit_speech(self, player_id: str, speech: Speech) -> SpeechOutcome:
        """Record the current speaker's speech and move the turn along."""
        if self.phase is not GamePhase.SPEAKING:
            raise ValidationError(ErrorCode.WRONG_PHASE, 'Not in the speaking phase')
        player = self._require_alive_player(player_id)
        stage = self.stage
        if stage.current_speaker_id != player_id:
            raise ValidationError(
                ErrorCode.NOT_AUTHORIZED,
                'It is not your turn to speak',
                {'current_speaker_id': stage.current_speaker_id}
            )

        player.speech = speech
        stage.cursor += 1
        if stage.cursor >= len(stage.order):
            self.stage = VotingStage()
            return SpeechOutcome(all_done=True)
        return SpeechOutcome(
            all_done=False,
            next_speaker_id=stage.current_speaker_id,
            next_index=stage.cursor
        )

    def submit_vote(self, voter_id: str, target_id: str) -> VoteOutcome:
        """
        Record a vote. Voting again before resolution overwrites the earlier
        choice; once every alive player voted the round resolves immediately.
        """
        if self.phase is not GamePhase.VOTING:
            raise ValidationError(ErrorCode.WRONG_PHASE, 'Not in the voting phase')
        voter = self._require_alive_player(voter_id)
        if voter_id == target_id:
            raise ValidationError(ErrorCode.SELF_VOTE, 'You cannot vote for yourself')
        target = self.get_player(target_id)
        if target is None or not target.alive:
            raise ValidationError(ErrorCode.INVALID_TARGET, 'Vote target is not an alive player')

        voter.vote = target_id
        if any(p.vote is None for p in self.alive_players()):
            return VoteOutcome(waiting=True)
        return self.resolve_votes()

    def resolve_votes(self) -> VoteOutcome:
        """Tally the votes; a unique leader is eliminated, a tie eliminates nobody."""
        vote_count: Dict[str, int] = {}
        for player in self.alive_players():
            if player.vote:
                vote_count[player.vote] = vote_count.get(player.vote, 0) + 1
        votes = [{'from': p.id, 'to': p.vote} for p in self.players if p.vote]

        max_votes = max(vote_count.values()) if vote_count else 0
        candidates = [target for target, count in vote_count.items() if count == max_votes]

        eliminated_player = None
        if len(candidates) == 1:
            eliminated_player = self.get_player(candidates[0])
            eliminated_player.alive = False

        vote_result = VoteResult(
            vote_count=vote_count,
            eliminated=EliminatedPlayer(
                id=eliminated_player.id,
                name=eliminated_player.name,
                role=eliminated_player.role,
            ) if eliminated_player else None,
            tie=len(candidates) > 1,
            votes=votes,
        )
        self.stage = ResultStage(vote_result=vote_result)

        game_over = self.check_win(eliminated_player)
        return VoteOutcome(
            waiting=False,
            vote_result=vote_result,
            game_over=game_over,
            guess_required=self.phase is GamePhase.UNDERCOVER_GUESS,
            guesser_id=self.guessing_undercover_id,
        )

    def check_win(self, eliminated: Optional[Player]) -> Optional[GameOutcome]:
        """
        Evaluate the win condition after a vote.

        Voting out the last undercover does not end the game immediately: that
        player first gets a comeback guess at the majority word.
        """
        alive_undercover = sum(1 for p in self.alive_players() if p.role is Role.UNDERCOVER)
        alive_civilian = sum(1 for p in self.alive_players() if p.role is Role.CIVILIAN)

        if alive_undercover == 0:
            if eliminated is not None and eliminated.role is Role.UNDERCOVER:
                self.stage = GuessStage(guesser_id=eliminated.id, vote_result=self.vote_result)
                return None
            logger.warning(f"Room {self.id} has no undercover left without one being voted out")
            return self._finish_game(Role.CIVILIAN)

        if alive_undercover >= alive_civilian:
            return self._finish_game(Role.UNDERCOVER)

        return None

    def _finish_game(self, winner: Role, guess_result: Optional[GuessResult] = None) -> GameOutcome:
        self.stage = GameOverStage(winner=winner, vote_result=self.vote_result, guess_result=guess_result)
        logger.info(f"Game over in room {self.id}: {winner.value} win")
        return self.game_outcome

    def submit_undercover_guess(self, player_id: str, guess: str) -> GuessResult:
        """Resolve the comeback guess; comparison ignores case and surrounding whitespace."""
        if self.phase is not GamePhase.UNDERCOVER_GUESS:
            raise ValidationError(ErrorCode.WRONG_PHASE, 'No undercover guess is pending')
        if player_id != self.stage.guesser_id:
            raise ValidationError(ErrorCode.NOT_AUTHORIZED, 'Only the eliminated undercover may guess')

        correct = guess.strip().casefold() == self.civilian_word.strip().casefold()
        winner = Role.UNDERCOVER if correct else Role.CIVILIAN
        result = GuessResult(guesser_id=player_id, guess=guess, correct=correct, timeout=False, winner=winner)
        self._finish_game(winner, result)
        return result

    def timeout_undercover_guess(self) -> Optional[GuessResult]:
        """Civilians win when the guess window runs out. No-op outside the guess phase."""
        if self.phase is not GamePhase.UNDERCOVER_GUESS:
            return None
        result = GuessResult(
            guesser_id=self.stage.guesser_id,
            guess=None,
            correct=False,
            timeout=True,
            winner=Role.CIVILIAN,
        )
        self._finish_game(Role.CIVILIAN, result)
        return result

    def abort_game(self, disconnected_player_id: str) -> bool:
        """
        Drop a player who never came back and return everyone to the lobby.
        The aborted game cannot be resumed.

        Returns:
            True if the room is now empty
        """
        empty = self.remove_player(disconnected_player_id)
        self._reset_to_lobby()
        self.last_undercover_ids = set()
        logger.info(f"Game aborted in room {self.id}, player {disconnected_player_id} removed")
        return empty

    def reset_for_new_game(self) -> None:
        """Back to the lobby after a finished game, keeping last game's undercover ids."""
        if self.phase is not GamePhase.GAME_OVER:
            raise ValidationError(ErrorCode.WRONG_PHASE, 'The game is not over yet')
        self._reset_to_lobby()

    def _reset_to_lobby(self) -> None:
        self.stage = LobbyStage()
        self.round = 0
        self.civilian_word = None
        self.undercover_word = None
        self.word_changed = False
        self.speech_history = []
        for player in self.players:
            player.reset_for_lobby(is_host=player.id == self.host_id)

    # Validation helpers

    def _require_player(self, player_id: str) -> Player:
        player = self.get_player(player_id)
        if player is None:
            raise ValidationError(ErrorCode.INVALID_PLAYER, 'Unknown player')
        return player

    def _require_alive_player(self, player_id: str) -> Player:
        player = self.get_player(player_id)
        if player is None or not player.alive:
            raise ValidationError(ErrorCode.INVALID_PLAYER, 'Player is not an alive member of this room')
        return player

    def __repr__(self) -> str:
        return f"Room(id={self.id!r}, phase={self.phase.value}, players={len(self.players)})"
