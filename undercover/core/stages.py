"""
Phase-specific room data.

Each phase owns exactly the data that is meaningful while the room is in it,
so a room can never carry, say, a guesser id outside the comeback phase.
"""

from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Set, Union

from undercover.core.game_phases import GamePhase, Role
from undercover.core.models import GuessResult, VoteResult


@dataclass
class LobbyStage:
    phase: ClassVar[GamePhase] = GamePhase.WAITING


@dataclass
class PreparationStage:
    """Players read their word; a majority may vote to reroll the pair once."""
    phase: ClassVar[GamePhase] = GamePhase.PLAYING
    change_word_votes: Set[str] = field(default_factory=set)


@dataclass
class SpeakingStage:
    phase: ClassVar[GamePhase] = GamePhase.SPEAKING
    order: List[str] = field(default_factory=list)
    cursor: int = 0

    @property
    def current_speaker_id(self) -> Optional[str]:
        if 0 <= self.cursor < len(self.order):
            return self.order[self.cursor]
        return None


@dataclass
class VotingStage:
    phase: ClassVar[GamePhase] = GamePhase.VOTING


@dataclass
class ResultStage:
    phase: ClassVar[GamePhase] = GamePhase.RESULT
    vote_result: Optional[VoteResult] = None


@dataclass
class GuessStage:
    """The last undercover was voted out and gets one guess at the majority word."""
    phase: ClassVar[GamePhase] = GamePhase.UNDERCOVER_GUESS
    guesser_id: str
    vote_result: Optional[VoteResult] = None


@dataclass
class GameOverStage:
    phase: ClassVar[GamePhase] = GamePhase.GAME_OVER
    winner: Role
    vote_result: Optional[VoteResult] = None
    guess_result: Optional[GuessResult] = None


Stage = Union[
    LobbyStage,
    PreparationStage,
    SpeakingStage,
    VotingStage,
    ResultStage,
    GuessStage,
    GameOverStage,
]
