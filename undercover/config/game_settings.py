"""
Game Settings Configuration Module

Provides centralized access to game-specific configuration values, with
fallback defaults when the application configuration has not been loaded.
"""

import logging
from typing import Dict

from undercover.core.game_phases import GamePhase

logger = logging.getLogger(__name__)

DEFAULTS = {
    'max_players_per_room': 12,
    'min_players_to_start': 4,
    'prep_time_seconds': 30,
    'undercover_guess_seconds': 30,
    'disconnect_grace_seconds': 8,
    'game_disconnect_timeout_seconds': 60,
    'max_player_name_length': 20,
    'max_speech_length': 500,
    'max_guess_length': 50,
}


class GameSettings:
    """Centralized game settings management."""

    def __init__(self, app_config=None):
        """
        Initialize game settings.

        Args:
            app_config: Application configuration instance from config_factory
        """
        self._config = app_config
        if app_config is None:
            try:
                from config_factory import get_config
                self._config = get_config()
            except Exception as e:
                logger.warning(f"Could not load configuration: {e}, using defaults")
                self._config = None

    def _get(self, name: str) -> int:
        if self._config is None:
            return DEFAULTS[name]
        return getattr(self._config, name)

    @property
    def max_players_per_room(self) -> int:
        return self._get('max_players_per_room')

    @property
    def min_players_to_start(self) -> int:
        return self._get('min_players_to_start')

    @property
    def prep_time_seconds(self) -> int:
        """Seconds players get to read their word before speaking starts."""
        return self._get('prep_time_seconds')

    @property
    def undercover_guess_seconds(self) -> int:
        """Seconds the eliminated undercover has for the comeback guess."""
        return self._get('undercover_guess_seconds')

    @property
    def disconnect_grace_seconds(self) -> int:
        """Short window in which a dropped connection may come back silently."""
        return self._get('disconnect_grace_seconds')

    @property
    def game_disconnect_timeout_seconds(self) -> int:
        """Announced window after which an in-game disconnect aborts the game."""
        return self._get('game_disconnect_timeout_seconds')

    @property
    def max_player_name_length(self) -> int:
        return self._get('max_player_name_length')

    @property
    def max_speech_length(self) -> int:
        return self._get('max_speech_length')

    @property
    def max_guess_length(self) -> int:
        return self._get('max_guess_length')

    @property
    def phase_durations(self) -> Dict[GamePhase, int]:
        """
        Get durations of the timed phases in seconds.

        Returns:
            Dictionary mapping timed game phases to their durations
        """
        return {
            GamePhase.PLAYING: self.prep_time_seconds,
            GamePhase.UNDERCOVER_GUESS: self.undercover_guess_seconds,
        }


# Global instance for easy access
_game_settings_instance = None


def get_game_settings(app_config=None) -> GameSettings:
    """
    Get or create the global game settings instance.

    Args:
        app_config: Optional app config to use

    Returns:
        GameSettings instance
    """
    global _game_settings_instance

    if _game_settings_instance is None or app_config is not None:
        _game_settings_instance = GameSettings(app_config)

    return _game_settings_instance


def reset_game_settings():
    """Reset the global game settings instance (mainly for testing)."""
    global _game_settings_instance
    _game_settings_instance = None
