"""
Base Handler Classes

This module provides base classes for Socket.IO handlers with common patterns
for validation, session lookup, service access and response formatting.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from flask import request

from container import get_container
from undercover.core.errors import ErrorCode, ValidationError

logger = logging.getLogger(__name__)


class BaseHandler:
    """
    Base class for all Socket.IO handlers.

    Services are resolved lazily from the global container so handlers always
    see the container configured for the running app (or the current test).
    """

    @property
    def _container(self):
        return get_container()

    @property
    def session_coordinator(self):
        return self._container.get('SessionCoordinator')

    @property
    def session_service(self):
        return self._container.get('SessionService')

    @property
    def validation_service(self):
        return self._container.get('ValidationService')

    @property
    def error_response_factory(self):
        return self._container.get('ErrorResponseFactory')

    @property
    def socket_id(self) -> str:
        return request.sid  # type: ignore[attr-defined]

    def get_current_session(self) -> Optional[Dict[str, Any]]:
        """Get the current session info for the requesting client."""
        return self.session_service.get_session(self.socket_id)

    def require_session(self) -> Dict[str, Any]:
        """
        Get the current session info, raising an error if not in a room.

        Raises:
            ValidationError: If the player is not in a room
        """
        session_info = self.get_current_session()
        if not session_info:
            raise ValidationError(
                ErrorCode.NOT_IN_ROOM,
                'You are not currently in a room'
            )
        return session_info

    def validate_data_dict(self, data: Any, required_fields: Optional[list] = None) -> Dict[str, Any]:
        return self.validation_service.validate_socket_data(data, required_fields)

    def success(self, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Build the acknowledgement envelope for a handled intent."""
        return self.error_response_factory.create_success_response(data or {})

    def log_handler_start(self, handler_name: str, data: Any = None) -> None:
        logger.info(f'{handler_name} called by client: {self.socket_id}')
        if data:
            logger.debug(f'{handler_name} data: {data}')

    def log_handler_success(self, handler_name: str, message: Optional[str] = None) -> None:
        log_msg = f'{handler_name} completed successfully for client: {self.socket_id}'
        if message:
            log_msg += f' - {message}'
        logger.info(log_msg)


class ValidationHandlerMixin:
    """
    Mixin for handlers that need common validation patterns.

    Provides standardized extraction of the identity fields sent with
    create-room and join-room.
    """

    validation_service: Any

    def validate_data_dict(self, data: Any, required_fields: Optional[list] = None) -> Dict[str, Any]:
        """Expected to be implemented by BaseHandler"""
        raise NotImplementedError("This method should be provided by BaseHandler")

    def validate_identity_data(self, data: Dict[str, Any]) -> Tuple[str, str, Optional[str]]:
        """
        Extract player id, display name and avatar.

        Returns:
            Tuple of (player_id, player_name, avatar)
        """
        player_id = self.validation_service.validate_player_id(data.get('player_id'))
        player_name = self.validation_service.validate_player_name(data.get('player_name'))
        avatar = self.validation_service.validate_avatar(data.get('avatar'))
        return player_id, player_name, avatar


class BaseRoomHandler(BaseHandler, ValidationHandlerMixin):
    """Base class for handlers that deal with room membership."""
    pass


class BaseGameHandler(BaseHandler):
    """Base class for handlers that deal with game actions."""
    pass
