"""
Socket Event Router

This module provides declarative event-to-handler mapping with middleware support,
request/response logging, and centralized event management for Socket.IO events.
"""

import logging
from typing import Dict, List, Callable, Any, Optional
from functools import wraps

from flask import request

logger = logging.getLogger(__name__)


class EventRouteNotFoundError(Exception):
    """Raised when an event route is not found."""
    pass


class SocketEventRouter:
    """
    Router for Socket.IO events with middleware support and logging.

    Provides declarative event-to-handler mapping, middleware execution,
    and request/response logging for debugging.
    """

    def __init__(self):
        self._routes: Dict[str, Callable] = {}
        self._middleware: List[Callable] = []
        self._after_request_handlers: List[Callable] = []

    def register_route(self, event_name: str, handler: Callable) -> None:
        """Register an event handler for a specific event."""
        self._routes[event_name] = handler
        logger.debug(f"Registered route: {event_name} -> {handler.__name__}")

    def add_middleware(self, middleware: Callable) -> None:
        """Add middleware that will be executed for all events."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.__name__}")

    def add_after_request(self, handler: Callable) -> None:
        """Add a handler that will be executed after every request."""
        self._after_request_handlers.append(handler)
        logger.debug(f"Added after_request handler: {handler.__name__}")

    def route(self, event_name: str):
        """Decorator for registering event handlers."""
        def decorator(handler: Callable):
            self.register_route(event_name, handler)
            return handler
        return decorator

    def handle_event(self, event_name: str, data: Any = None) -> Any:
        """
        Handle an incoming Socket.IO event.

        Executes middleware, the main handler and after_request handlers in
        sequence. The handler's return value becomes the acknowledgement.

        Raises:
            EventRouteNotFoundError: If no handler is registered for the event
        """
        if event_name not in self._routes:
            raise EventRouteNotFoundError(f"No handler registered for event: {event_name}")

        logger.info(f"Handling event: {event_name} from client: {request.sid}")

        try:
            for middleware in self._middleware:
                data = middleware(event_name, data) or data

            handler = self._routes[event_name]
            result = handler(data)

            for after_handler in self._after_request_handlers:
                after_handler(event_name, data, result)

            logger.debug(f"Successfully handled event: {event_name}")
            return result

        except Exception as e:
            logger.error(f"Error handling event {event_name}: {str(e)}")
            raise

    def get_registered_events(self) -> List[str]:
        """Get a list of all registered event names."""
        return list(self._routes.keys())

    def has_route(self, event_name: str) -> bool:
        return event_name in self._routes

    def register_with_socketio(self, socketio_instance) -> None:
        """Register every route with the SocketIO instance."""
        for event_name in self.get_registered_events():
            socketio_instance.on_event(event_name, self._create_socketio_handler(event_name))
            logger.debug(f"Registered SocketIO handler for: {event_name}")

    def _create_socketio_handler(self, event_name: str):
        @wraps(self.handle_event)
        def socketio_handler(data=None):
            return self.handle_event(event_name, data)
        return socketio_handler


def ack_logging_middleware(event_name: str, data: Any) -> Any:
    """Log the payload of every incoming event at debug level."""
    if data is not None:
        logger.debug(f"Event {event_name} data: {data}")
    return data


def log_failed_acks(event_name: str, data: Any, result: Any) -> None:
    """Log rejected intents with their error code."""
    if isinstance(result, dict) and result.get('success') is False:
        error = result.get('error', {})
        logger.info(f"Event {event_name} rejected: {error.get('code')} - {error.get('message')}")


_default_router: Optional[SocketEventRouter] = None


def get_router() -> SocketEventRouter:
    """Get the default router instance."""
    if _default_router is None:
        raise RuntimeError("Router not initialized. Call setup_router() first.")
    return _default_router


def setup_router() -> SocketEventRouter:
    """Set up the default router with the standard middleware."""
    global _default_router
    _default_router = SocketEventRouter()
    _default_router.add_middleware(ack_logging_middleware)
    _default_router.add_after_request(log_failed_acks)

    logger.info("Socket event router initialized")
    return _default_router
