"""
Error Response Factory for the Undercover game

Provides standardized error and success response creation, and the decorator
that turns exceptions raised inside Socket.IO handlers into error envelopes.
"""

import functools
import logging
from typing import Dict, Optional, Tuple

from flask_socketio import emit

from undercover.core.errors import ErrorCode, ValidationError

logger = logging.getLogger(__name__)


class ErrorResponseFactory:
    """Factory responsible for creating standardized error and success responses."""

    def create_success_response(self, data: Dict) -> Dict:
        """
        Create standardized success response.

        Args:
            data: Response data

        Returns:
            Standardized success response
        """
        return {
            "success": True,
            "data": data
        }

    def create_error_response(self, code: ErrorCode, message: str, details: Optional[Dict] = None) -> Dict:
        """
        Create standardized error response.

        Args:
            code: Error code enum
            message: Human-readable error message
            details: Optional additional error details

        Returns:
            Standardized error response
        """
        return {
            "success": False,
            "error": {
                "code": code.value,
                "message": message,
                "details": details or {}
            }
        }

    def emit_error(self, code: ErrorCode, message: str, details: Optional[Dict] = None) -> Dict:
        """
        Emit standardized error response to the client of the current event.

        Returns:
            The emitted error response
        """
        error_response = self.create_error_response(code, message, details)
        logger.info(f"Emitting error: {code.value} - {message}")
        emit('error', error_response)
        return error_response

    def emit_validation_error(self, error: ValidationError) -> Dict:
        return self.emit_error(error.code, error.message, error.details)

    def handle_exception(self, e: Exception, context: str = "Unknown") -> Tuple[ErrorCode, str]:
        """
        Map an exception to an error code and message.

        Args:
            e: Exception instance
            context: Context where the exception occurred

        Returns:
            Tuple of (error_code, error_message)
        """
        if isinstance(e, ValidationError):
            return e.code, e.message

        logger.error(f"Unexpected exception in {context}: {e}", exc_info=e)
        return ErrorCode.INTERNAL_ERROR, "An internal error occurred"


def with_error_handling(func):
    """
    Decorator for Socket.IO event handlers to provide consistent error handling.

    A rejected intent is emitted to the sender as an ``error`` event and the
    same envelope is returned as the acknowledgement.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        factory = ErrorResponseFactory()
        try:
            return func(*args, **kwargs)
        except ValidationError as e:
            return factory.emit_validation_error(e)
        except Exception as e:
            error_code, error_message = factory.handle_exception(e, func.__name__)
            return factory.emit_error(error_code, error_message)

    return wrapper
