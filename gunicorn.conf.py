"""
Gunicorn configuration for the Undercover server.
Optimized for Socket.IO with eventlet workers.
"""

import sys
import logging
import yaml

from config_factory import load_config
from undercover.word_manager import WordManager, WordPairValidationError

# Load configuration (named to avoid conflicts with gunicorn's internal 'config')
app_config = load_config()


def on_starting(server):
    """
    Server hook that runs when the master process is starting.
    Validates the word pair file before workers are forked; if validation
    fails we exit, preventing the server from starting.
    """
    logger = logging.getLogger(__name__)
    logger.info(f"Validating {app_config.words_file} before starting workers...")
    try:
        word_manager = WordManager(app_config.words_file)
        word_manager.load_word_pairs()
        logger.info(f"Successfully validated and loaded {word_manager.get_pair_count()} word pairs.")
    except (FileNotFoundError, yaml.YAMLError, WordPairValidationError) as e:
        logger.critical(f"FATAL: Word pair file validation failed. Server shutting down. Error: {e}")
        sys.exit(1)


# Server socket
bind = f"{app_config.host}:{app_config.port}"
backlog = 2048

# Worker processes
workers = 1  # Rooms and timers live in process memory
worker_class = "eventlet"
worker_connections = app_config.worker_connections
timeout = app_config.timeout
keepalive = app_config.keepalive

# Logging
accesslog = "-"
errorlog = "-"
loglevel = app_config.log_level
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s"'

# Process naming
proc_name = "undercover"

# Server mechanics
preload_app = False  # Don't preload for Socket.IO
daemon = False
pidfile = None
