"""
Service Container - Dependency Injection Container for the Undercover server
Manages service creation, dependencies, and lifecycle.
"""

from typing import Dict, Any, List, Optional, Callable
import inspect
from enum import Enum


class ServiceLifecycle(Enum):
    """Service lifecycle management options"""
    SINGLETON = "singleton"  # One instance per container
    TRANSIENT = "transient"  # New instance every time


class ServiceDefinition:
    """Definition of how a service should be created"""

    def __init__(
        self,
        name: str,
        factory: Callable,
        dependencies: List[str] = None,
        lifecycle: ServiceLifecycle = ServiceLifecycle.SINGLETON,
        config: Dict[str, Any] = None
    ):
        self.name = name
        self.factory = factory
        self.dependencies = dependencies or []
        self.lifecycle = lifecycle
        self.config = config or {}


class CircularDependencyError(Exception):
    """Raised when circular dependency is detected"""
    pass


class ServiceNotFoundError(Exception):
    """Raised when requested service is not registered"""
    pass


class ServiceContainer:
    """
    Dependency Injection Container for managing services and their dependencies.

    Features:
    - Explicit dependency resolution
    - Circular dependency detection
    - Singleton and transient lifecycle management
    - External dependencies (Flask-SocketIO, app config)
    """

    def __init__(self):
        self._services: Dict[str, ServiceDefinition] = {}
        self._instances: Dict[str, Any] = {}
        self._creating: set = set()  # Services being created, for cycle detection
        self._config: Dict[str, Any] = {}

    def register(
        self,
        name: str,
        factory: Callable,
        dependencies: List[str] = None,
        lifecycle: ServiceLifecycle = ServiceLifecycle.SINGLETON,
        config: Dict[str, Any] = None
    ) -> 'ServiceContainer':
        """
        Register a service with the container.

        Args:
            name: Service name for retrieval
            factory: Class or function to create the service
            dependencies: List of service names passed positionally to the factory
            lifecycle: How the service instance should be managed
            config: Additional keyword arguments for function factories

        Returns:
            Self for method chaining
        """
        if name in self._services:
            raise ValueError(f"Service '{name}' is already registered")

        if not callable(factory):
            raise ValueError(f"Factory for '{name}' must be callable")

        self._services[name] = ServiceDefinition(
            name=name,
            factory=factory,
            dependencies=dependencies or [],
            lifecycle=lifecycle,
            config=config
        )
        return self

    def configure_services(self) -> 'ServiceContainer':
        """
        Register all Undercover services with their dependencies.
        This method contains the service configuration for the application.
        """
        from undercover.config.game_settings import GameSettings
        from undercover.word_manager import WordManager
        from undercover.room_registry import RoomRegistry
        from undercover.services.validation_service import ValidationService
        from undercover.services.error_response_factory import ErrorResponseFactory
        from undercover.services.session_service import SessionService
        from undercover.services.concurrency_control_service import ConcurrencyControlService
        from undercover.services.timer_service import TimerService
        from undercover.services.room_state_presenter import RoomStatePresenter
        from undercover.services.broadcast_service import BroadcastService
        from undercover.services.session_coordinator import SessionCoordinator

        # Settings derived from the externally provided AppConfig
        self.register('GameSettings', GameSettings, dependencies=['AppConfig'])
        self.register('WordManager', lambda app_config: WordManager(app_config.words_file),
                      dependencies=['AppConfig'])

        # Stateless helpers - no dependencies
        self.register('ErrorResponseFactory', ErrorResponseFactory)
        self.register('SessionService', SessionService)
        self.register('ConcurrencyControlService', ConcurrencyControlService)
        self.register('ValidationService', ValidationService, dependencies=['GameSettings'])

        # Rooms
        self.register('RoomRegistry', RoomRegistry, dependencies=['WordManager', 'GameSettings'])

        # Timers serialize through the room locks
        self.register('TimerService', TimerService, dependencies=['ConcurrencyControlService'])

        # Broadcasting - socketio is injected as external dependency
        self.register('RoomStatePresenter', RoomStatePresenter, dependencies=['TimerService', 'GameSettings'])
        self.register('BroadcastService', BroadcastService,
                      dependencies=['socketio', 'RoomStatePresenter', 'SessionService'])

        # Orchestration
        self.register('SessionCoordinator', SessionCoordinator, dependencies=[
            'RoomRegistry', 'SessionService', 'BroadcastService', 'TimerService',
            'ConcurrencyControlService', 'GameSettings'
        ])

        return self

    def set_external_dependency(self, name: str, instance: Any) -> 'ServiceContainer':
        """
        Set an external dependency that's created outside the container.
        Useful for Flask-SocketIO and similar framework objects.
        """
        self._instances[name] = instance
        return self

    def set_config(self, config: Dict[str, Any]) -> 'ServiceContainer':
        """Set global configuration for the container"""
        self._config.update(config)
        return self

    def get_config(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def get(self, name: str) -> Any:
        """
        Get a service instance, creating it if necessary.

        Raises:
            ServiceNotFoundError: If service is not registered
            CircularDependencyError: If circular dependency detected
        """
        if name in self._instances:
            return self._instances[name]

        if name not in self._services:
            raise ServiceNotFoundError(f"Service '{name}' is not registered")

        return self._create_service(name)

    def _create_service(self, name: str) -> Any:
        """Create a service instance with dependency injection."""
        if name in self._creating:
            cycle = ' -> '.join(list(self._creating) + [name])
            raise CircularDependencyError(f"Circular dependency detected: {cycle}")

        self._creating.add(name)

        try:
            service_def = self._services[name]

            dependencies = [self.get(dep_name) for dep_name in service_def.dependencies]

            if inspect.isclass(service_def.factory):
                instance = service_def.factory(*dependencies)
            else:
                instance = service_def.factory(*dependencies, **service_def.config)

            if service_def.lifecycle == ServiceLifecycle.SINGLETON:
                self._instances[name] = instance

            return instance

        finally:
            self._creating.discard(name)

    def has_service(self, name: str) -> bool:
        """Check if a service is registered"""
        return name in self._services

    def get_service_names(self) -> List[str]:
        """Get list of all registered service names"""
        return list(self._services.keys())

    def validate_dependencies(self) -> Dict[str, List[str]]:
        """
        Validate all service dependencies can be resolved.

        Returns:
            Dictionary mapping service names to lists of missing dependencies
        """
        issues = {}

        for name, service_def in self._services.items():
            missing_deps = [
                dep for dep in service_def.dependencies
                if not self.has_service(dep) and dep not in self._instances
            ]
            if missing_deps:
                issues[name] = missing_deps

        return issues

    def clear(self) -> 'ServiceContainer':
        """Clear all services and instances (useful for testing)"""
        self._services.clear()
        self._instances.clear()
        self._creating.clear()
        self._config.clear()
        return self

    def __repr__(self) -> str:
        return f"ServiceContainer(services={len(self._services)}, instances={len(self._instances)})"


# Global container instance for the application
_app_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Get the global application service container"""
    global _app_container
    if _app_container is None:
        _app_container = ServiceContainer()
    return _app_container


def configure_container(socketio=None, app_config=None, config=None) -> ServiceContainer:
    """
    Configure the global service container with the Undercover services.

    Args:
        socketio: Flask-SocketIO instance
        app_config: AppConfig instance; the loaded global configuration if omitted
        config: Plain configuration dictionary kept for inspection

    Returns:
        Configured service container
    """
    container = get_container()
    container.clear()

    if app_config is None:
        from config_factory import get_config
        app_config = get_config()
    container.set_external_dependency('AppConfig', app_config)

    if socketio is not None:
        container.set_external_dependency('socketio', socketio)

    if config is not None:
        container.set_config(config)

    container.configure_services()

    return container


def reset_container() -> None:
    """Drop the global container (for testing)"""
    global _app_container
    if _app_container is not None:
        _app_container.clear()
    _app_container = None
