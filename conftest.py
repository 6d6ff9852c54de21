"""
Global pytest configuration and fixtures.
Provides service fixtures for proper dependency injection in tests.
"""

import pytest
import os
from unittest.mock import Mock

# Ensure testing environment
os.environ['TESTING'] = '1'


@pytest.fixture(scope="function", autouse=True)
def reset_global_container():
    """Reset the global container before each test to ensure clean state."""
    from container import reset_container, configure_container, get_container
    from config_factory import load_config
    from undercover.config.game_settings import reset_game_settings

    reset_game_settings()
    reset_container()

    # Reconfigure it with the app's socketio instance so handlers see fresh services
    from app import socketio as app_socketio
    app_config = load_config()
    configure_container(socketio=app_socketio, app_config=app_config)

    yield

    # Stop any real timers a test started through the container
    container = get_container()
    if container.has_service('TimerService'):
        container.get('TimerService').shutdown()


@pytest.fixture(scope="session")
def app():
    """Create Flask app for testing."""
    from app import app as flask_app
    return flask_app


@pytest.fixture(scope="session")
def socketio():
    """Create SocketIO instance for testing."""
    from app import socketio as socketio_instance
    return socketio_instance


@pytest.fixture(scope="function")
def container():
    """The service container configured for the current test."""
    from container import get_container
    return get_container()


@pytest.fixture(scope="function")
def mock_socketio():
    """Mock SocketIO usable as the broadcast target of services under test."""
    from tests.helpers.socket_mocks import create_mock_socketio
    return create_mock_socketio()


@pytest.fixture(scope="function")
def fake_timers():
    """Timer factory whose timers only fire when a test calls fire()."""
    from tests.helpers.socket_mocks import FakeTimerFactory
    return FakeTimerFactory()


@pytest.fixture(scope="function")
def room_registry(container):
    """Provide RoomRegistry through dependency injection."""
    return container.get('RoomRegistry')


@pytest.fixture(scope="function")
def session_service(container):
    """Provide SessionService through dependency injection."""
    return container.get('SessionService')


@pytest.fixture(scope="function")
def validation_service(container):
    """Provide ValidationService through dependency injection."""
    return container.get('ValidationService')


@pytest.fixture(scope="function")
def error_response_factory(container):
    """Provide ErrorResponseFactory through dependency injection."""
    return container.get('ErrorResponseFactory')


@pytest.fixture(scope="function")
def word_provider():
    """Deterministic word pair source."""
    from tests.helpers.room_helpers import FixedWordProvider
    return FixedWordProvider()


@pytest.fixture(scope="function")
def mock_word_provider():
    provider = Mock()
    from undercover.core.models import WordPair
    provider.get_random_word_pair.return_value = WordPair('Coffee', 'Tea')
    return provider
