"""
Game Phase Enumeration

Defines the room phases and player roles used throughout the application.
"""

from enum import Enum


class GamePhase(Enum):
    """Game phase enumeration."""
    WAITING = "waiting"
    PLAYING = "playing"
    SPEAKING = "speaking"
    VOTING = "voting"
    RESULT = "result"
    UNDERCOVER_GUESS = "undercover_guess"
    GAME_OVER = "game_over"


class Role(Enum):
    """Secret role assigned to each player for the duration of one game."""
    CIVILIAN = "civilian"
    UNDERCOVER = "undercover"

