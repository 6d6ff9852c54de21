"""
Core error definitions for the Undercover game server

Provides error codes and the validation exception used for rejected intents.
Nothing in here depends on other services.
"""

from enum import Enum
from typing import Dict, Optional


class ErrorCode(Enum):
    """Standardized error codes for the application."""

    # Payload and connection errors
    INVALID_DATA = "INVALID_DATA"
    MISSING_DATA = "MISSING_DATA"
    MISSING_ROOM_ID = "MISSING_ROOM_ID"
    MISSING_PLAYER_ID = "MISSING_PLAYER_ID"
    MISSING_PLAYER_NAME = "MISSING_PLAYER_NAME"
    INVALID_ROOM_ID = "INVALID_ROOM_ID"
    INVALID_PLAYER_ID = "INVALID_PLAYER_ID"
    PLAYER_NAME_TOO_LONG = "PLAYER_NAME_TOO_LONG"
    ALREADY_IN_ROOM = "ALREADY_IN_ROOM"
    NOT_IN_ROOM = "NOT_IN_ROOM"

    # Room management errors
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    ROOM_FULL = "ROOM_FULL"
    ALREADY_JOINED = "ALREADY_JOINED"
    GAME_IN_PROGRESS = "GAME_IN_PROGRESS"
    NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
    PLAYERS_NOT_READY = "PLAYERS_NOT_READY"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"

    # Game flow errors
    WRONG_PHASE = "WRONG_PHASE"
    INVALID_PLAYER = "INVALID_PLAYER"
    ALREADY_CHANGED = "ALREADY_CHANGED"

    # Speech errors
    INVALID_SPEECH = "INVALID_SPEECH"
    SPEECH_TOO_LONG = "SPEECH_TOO_LONG"

    # Vote errors
    SELF_VOTE = "SELF_VOTE"
    INVALID_TARGET = "INVALID_TARGET"

    # Guess errors
    EMPTY_GUESS = "EMPTY_GUESS"
    GUESS_TOO_LONG = "GUESS_TOO_LONG"

    # Settings errors
    INVALID_UNDERCOVER_COUNT = "INVALID_UNDERCOVER_COUNT"

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ValidationError(Exception):
    """Raised for a rejected intent; carries a code the client can act on."""

    def __init__(self, code: ErrorCode, message: str, details: Optional[Dict] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)
