"""
Validation Service for the Undercover game

Provides input validation and sanitization of client payloads, separated from
error response handling. Game rules (phase, turn, target) are checked by the
Room itself; this layer only checks shape and limits.
"""

import logging
import re
from typing import Any, Dict, Optional

from undercover.config.game_settings import get_game_settings
from undercover.core.errors import ErrorCode, ValidationError
from undercover.core.models import SPEECH_KINDS, Speech

logger = logging.getLogger(__name__)


class ValidationService:
    """Service responsible for input validation and sanitization."""

    MAX_PLAYER_ID_LENGTH = 64
    MAX_AVATAR_LENGTH = 500
    MAX_VOICE_URL_LENGTH = 500

    # Six-digit numeric room codes
    ROOM_ID_PATTERN = re.compile(r'^\d{6}$')
    PLAYER_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')
    CONTROL_CHARS = re.compile(r'[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]')

    def __init__(self, game_settings=None):
        self.game_settings = game_settings or get_game_settings()

    def validate_socket_data(self, data: Any, required_fields: Optional[list] = None) -> Dict:
        """
        Validate Socket.IO event data.

        Args:
            data: Raw data from Socket.IO event
            required_fields: List of required field names

        Returns:
            Validated data dictionary

        Raises:
            ValidationError: If data is invalid
        """
        if not isinstance(data, dict):
            raise ValidationError(
                ErrorCode.INVALID_DATA,
                "Invalid data format - expected dictionary"
            )

        if required_fields:
            missing_fields = [field for field in required_fields if field not in data]
            if missing_fields:
                if len(missing_fields) == 1:
                    field = missing_fields[0]
                    if field == 'room_id':
                        raise ValidationError(ErrorCode.MISSING_ROOM_ID, "Room ID is required")
                    elif field == 'player_id':
                        raise ValidationError(ErrorCode.MISSING_PLAYER_ID, "Player ID is required")
                    elif field == 'player_name':
                        raise ValidationError(ErrorCode.MISSING_PLAYER_NAME, "Player name is required")

                raise ValidationError(
                    ErrorCode.MISSING_DATA,
                    f"Missing required fields: {', '.join(missing_fields)}",
                    {"missing_fields": missing_fields, "required_fields": required_fields}
                )

        return data

    def validate_room_id(self, room_id: Any) -> str:
        """
        Validate a room code.

        Raises:
            ValidationError: If room ID is missing or not a six-digit code
        """
        if room_id is None or (isinstance(room_id, str) and not room_id.strip()):
            raise ValidationError(ErrorCode.MISSING_ROOM_ID, "Room ID is required")

        # Numeric codes typed into a client sometimes arrive as numbers
        if isinstance(room_id, int) and not isinstance(room_id, bool):
            room_id = str(room_id)

        if not isinstance(room_id, str):
            raise ValidationError(ErrorCode.INVALID_ROOM_ID, "Room ID must be a string")

        room_id = room_id.strip()
        if not self.ROOM_ID_PATTERN.match(room_id):
            raise ValidationError(
                ErrorCode.INVALID_ROOM_ID,
                "Room ID must be a 6-digit code",
                {"room_id": room_id[:20]}
            )
        return room_id

    def validate_player_id(self, player_id: Any) -> str:
        if not player_id or not isinstance(player_id, str) or not player_id.strip():
            raise ValidationError(ErrorCode.MISSING_PLAYER_ID, "Player ID is required")

        player_id = player_id.strip()
        if len(player_id) > self.MAX_PLAYER_ID_LENGTH or not self.PLAYER_ID_PATTERN.match(player_id):
            raise ValidationError(
                ErrorCode.INVALID_PLAYER_ID,
                "Player ID can only contain letters, numbers, hyphens, and underscores",
                {"max_length": self.MAX_PLAYER_ID_LENGTH}
            )
        return player_id

    def validate_player_name(self, player_name: Any) -> str:
        """
        Validate and sanitize player name.

        Raises:
            ValidationError: If player name is missing or too long
        """
        if not player_name or not isinstance(player_name, str):
            raise ValidationError(ErrorCode.MISSING_PLAYER_NAME, "Player name is required")

        player_name = self.sanitize_user_input(player_name)
        if not player_name:
            raise ValidationError(ErrorCode.MISSING_PLAYER_NAME, "Player name cannot be empty")

        max_length = self.game_settings.max_player_name_length
        if len(player_name) > max_length:
            raise ValidationError(
                ErrorCode.PLAYER_NAME_TOO_LONG,
                f"Player name must be {max_length} characters or less",
                {"max_length": max_length, "actual_length": len(player_name)}
            )

        return player_name

    def validate_avatar(self, avatar: Any) -> Optional[str]:
        """Avatars are optional display strings (emoji or image URL)."""
        if avatar is None or avatar == '':
            return None
        if not isinstance(avatar, str) or len(avatar) > self.MAX_AVATAR_LENGTH:
            raise ValidationError(ErrorCode.INVALID_DATA, "Avatar must be a short string")
        return avatar.strip() or None

    def validate_ready(self, ready: Any) -> bool:
        if ready is None:
            return True
        if not isinstance(ready, bool):
            raise ValidationError(ErrorCode.INVALID_DATA, "Ready flag must be a boolean")
        return ready

    def validate_undercover_count(self, count: Any) -> int:
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValidationError(
                ErrorCode.INVALID_UNDERCOVER_COUNT,
                "Undercover count must be an integer"
            )
        return count

    def validate_speech(self, speech: Any) -> Speech:
        """
        Validate a speech payload ``{"kind": "text"|"voice", "content": str}``.

        Content is stored verbatim; voice content is the clip URL.
        """
        if not isinstance(speech, dict):
            raise ValidationError(ErrorCode.INVALID_SPEECH, "Speech must be an object with kind and content")

        kind = speech.get('kind', 'text')
        content = speech.get('content')
        if kind not in SPEECH_KINDS:
            raise ValidationError(
                ErrorCode.INVALID_SPEECH,
                f"Speech kind must be one of: {', '.join(SPEECH_KINDS)}",
                {"kind": str(kind)[:20]}
            )
        if not isinstance(content, str) or not content.strip():
            raise ValidationError(ErrorCode.INVALID_SPEECH, "Speech cannot be empty")

        max_length = self.game_settings.max_speech_length if kind == 'text' else self.MAX_VOICE_URL_LENGTH
        if len(content) > max_length:
            raise ValidationError(
                ErrorCode.SPEECH_TOO_LONG,
                f"Speech must be {max_length} characters or less",
                {"max_length": max_length, "actual_length": len(content)}
            )

        return Speech(kind=kind, content=content)

    def validate_target_id(self, target_id: Any) -> str:
        if not target_id or not isinstance(target_id, str):
            raise ValidationError(ErrorCode.INVALID_TARGET, "Vote target is required")
        return target_id.strip()

    def validate_guess(self, guess: Any) -> str:
        if not isinstance(guess, str) or not guess.strip():
            raise ValidationError(ErrorCode.EMPTY_GUESS, "Guess cannot be empty")

        max_length = self.game_settings.max_guess_length
        if len(guess.strip()) > max_length:
            raise ValidationError(
                ErrorCode.GUESS_TOO_LONG,
                f"Guess must be {max_length} characters or less",
                {"max_length": max_length}
            )
        return guess

    def sanitize_user_input(self, text: str) -> str:
        """Strip control characters and collapse whitespace."""
        text = self.CONTROL_CHARS.sub('', text.strip())
        return re.sub(r'\s+', ' ', text)
