"""
Services package for the Undercover game

Contains the service classes wired together by the application container.
"""

from .concurrency_control_service import ConcurrencyControlService
from .session_service import SessionService
from .timer_service import TimerService
from .validation_service import ValidationService
from .error_response_factory import ErrorResponseFactory
from .room_state_presenter import RoomStatePresenter
from .broadcast_service import BroadcastService
from .session_coordinator import SessionCoordinator

__all__ = [
    'ConcurrencyControlService',
    'SessionService',
    'TimerService',
    'ValidationService',
    'ErrorResponseFactory',
    'RoomStatePresenter',
    'BroadcastService',
    'SessionCoordinator'
]
