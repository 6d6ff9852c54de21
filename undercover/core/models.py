"""
Data structures shared by the room state machine and the services around it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from undercover.core.game_phases import Role

SPEECH_KINDS = ("text", "voice")


@dataclass(frozen=True)
class WordPair:
    """A majority word and its related minority word."""
    civilian_word: str
    undercover_word: str

    def word_for(self, role: Role) -> str:
        return self.undercover_word if role is Role.UNDERCOVER else self.civilian_word

    def to_dict(self) -> Dict[str, str]:
        return {
            'civilian_word': self.civilian_word,
            'undercover_word': self.undercover_word,
        }


@dataclass(frozen=True)
class Speech:
    """One player's contribution for a round: inline text or a voice clip URL."""
    kind: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {'kind': self.kind, 'content': self.content}


@dataclass
class Player:
    """A room member. Role and word are only set while a game is running."""
    id: str
    name: str
    avatar: Optional[str] = None
    ready: bool = False
    alive: bool = True
    online: bool = True
    role: Optional[Role] = None
    word: Optional[str] = None
    vote: Optional[str] = None
    speech: Optional[Speech] = None

    def reset_for_lobby(self, is_host: bool) -> None:
        """Return the player to a fresh waiting-room state."""
        self.ready = is_host
        self.alive = True
        self.role = None
        self.word = None
        self.vote = None
        self.speech = None


@dataclass(frozen=True)
class EliminatedPlayer:
    id: str
    name: str
    role: Role

    def to_dict(self) -> Dict[str, str]:
        return {'id': self.id, 'name': self.name, 'role': self.role.value}


@dataclass(frozen=True)
class VoteResult:
    """Outcome of one voting round."""
    vote_count: Dict[str, int]
    eliminated: Optional[EliminatedPlayer]
    tie: bool
    votes: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vote_count': dict(self.vote_count),
            'eliminated': self.eliminated.to_dict() if self.eliminated else None,
            'tie': self.tie,
            'votes': [dict(vote) for vote in self.votes],
        }


@dataclass(frozen=True)
class GuessResult:
    """Outcome of the eliminated undercover's comeback guess."""
    guesser_id: str
    guess: Optional[str]
    correct: bool
    timeout: bool
    winner: Role

    def to_dict(self) -> Dict[str, Any]:
        return {
            'guesser_id': self.guesser_id,
            'guess': self.guess,
            'correct': self.correct,
            'timeout': self.timeout,
            'winner': self.winner.value,
        }


@dataclass(frozen=True)
class GameOutcome:
    """Final result of a game, including both words for the reveal."""
    winner: Role
    civilian_word: str
    undercover_word: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'winner': self.winner.value,
            'civilian_word': self.civilian_word,
            'undercover_word': self.undercover_word,
        }


@dataclass(frozen=True)
class ChangeWordTally:
    passed: bool
    current: int
    needed: int
    total: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'passed': self.passed,
            'current': self.current,
            'needed': self.needed,
            'total': self.total,
        }


@dataclass(frozen=True)
class SpeechOutcome:
    """Returned after each speech: either the next speaker or the end of the round."""
    all_done: bool
    next_speaker_id: Optional[str] = None
    next_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.all_done:
            return {'all_done': True}
        return {'next_speaker_id': self.next_speaker_id, 'next_index': self.next_index}


@dataclass(frozen=True)
class VoteOutcome:
    """Returned after each vote. ``waiting`` is true until every alive player voted."""
    waiting: bool
    vote_result: Optional[VoteResult] = None
    game_over: Optional[GameOutcome] = None
    guess_required: bool = False
    guesser_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.waiting:
            return {'waiting': True}
        return {
            'vote_result': self.vote_result.to_dict() if self.vote_result else None,
            'game_over': self.game_over.to_dict() if self.game_over else None,
            'guess_required': self.guess_required,
            'guesser_id': self.guesser_id,
        }
