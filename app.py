"""
Who's the Undercover - a multiplayer social deduction word game server.
Main Flask application entry point focusing on app creation, dependency injection, and service wiring.
"""

from flask import Flask
from flask_socketio import SocketIO
import logging
import atexit
import sys
import yaml

from undercover.word_manager import WordPairValidationError
from container import configure_container
from config_factory import load_config, ConfigurationFactory

# Initialize Flask app
app = Flask(__name__)

# Load and apply configuration
app_config = load_config()
config_factory = ConfigurationFactory()
app.config.update(config_factory.get_flask_config())

# Initialize Socket.IO; in production only the configured origins may connect
socketio = SocketIO(
    app,
    cors_allowed_origins=app_config.cors_allowed_origins,
    async_mode=app_config.socketio_async_mode
)

# Configure logging
logging.basicConfig(level=getattr(logging, app_config.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

# Configure service container with dependencies
container = configure_container(socketio=socketio, app_config=app_config, config=config_factory.to_dict())

services = {
    'room_registry': container.get('RoomRegistry'),
    'word_manager': container.get('WordManager'),
    'session_service': container.get('SessionService'),
    'session_coordinator': container.get('SessionCoordinator'),
    'room_state_presenter': container.get('RoomStatePresenter'),
    'concurrency_control': container.get('ConcurrencyControlService'),
    'timer_service': container.get('TimerService'),
}

# Load word pairs on startup
try:
    services['word_manager'].load_word_pairs()
    logger.info(f"Loaded {services['word_manager'].get_pair_count()} word pairs from {app_config.words_file}")
except (FileNotFoundError, yaml.YAMLError, WordPairValidationError) as e:
    logger.critical(f"FATAL: Word pair file validation failed, which is critical for game play. Server shutting down. Error: {e}")
    sys.exit(1)

# Register REST endpoints
from undercover.routes.api import create_api_blueprint
api_blueprint = create_api_blueprint(services)
app.register_blueprint(api_blueprint)

# Register Socket.IO handlers
from undercover.handlers.socket_handlers import register_socket_handlers
register_socket_handlers(socketio)


def cleanup_on_exit():
    """Clean up resources on application exit."""
    logger.info("Shutting down Undercover server...")
    services['timer_service'].shutdown()


atexit.register(cleanup_on_exit)

if __name__ == '__main__':
    logger.info(f"Starting Undercover server on {app_config.host}:{app_config.port}")
    try:
        socketio.run(app, host=app_config.host, port=app_config.port, debug=app_config.debug)
    except KeyboardInterrupt:
        logger.info("Received interrupt signal")
