import atexit
import logging
import logging.handlers
import os
from pathlib import (
    Path,
)
import queue
import sys
import threading
from typing import (
    Any,
)

ROOT_LOGGER_NAME = "qdrant_grpc"
DEBUG_ENV = "QDRANT_GRPC_DEBUG"
DEBUG_FILE_ENV = "QDRANT_GRPC_DEBUG_FILE"

# Create a log queue
log_queue: "queue.Queue[Any]" = queue.Queue()

# Store the current listener to stop it on exit
_current_listener: logging.handlers.QueueListener | None = None

# Event to track when the listener is ready
_listener_ready = threading.Event()

# Default format for log messages
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _parse_debug_modules(debug_str: str) -> dict[str, int]:
    """
    Parse the QDRANT_GRPC_DEBUG environment variable into per-module levels.

    Format examples:
    - "DEBUG"  # All modules at DEBUG level
    - "health.monitor:DEBUG"  # Only the health monitor at DEBUG
    - "qdrant_grpc.health.monitor:DEBUG"  # Same as above, prefix is optional
    - "health:DEBUG,client:INFO"  # Multiple modules
    """
    module_levels: dict[str, int] = {}

    if not debug_str or debug_str.isspace():
        return module_levels

    # A plain level without any colon applies to every module
    if ":" not in debug_str:
        level = logging.getLevelName(debug_str.strip().upper())
        if isinstance(level, int):
            module_levels[""] = level
        return module_levels

    for part in debug_str.split(","):
        if part.count(":") != 1:
            continue

        module, level_name = part.split(":")
        level = logging.getLevelName(level_name.strip().upper())
        if not isinstance(level, int):
            continue

        module = module.strip().replace("/", ".")
        if module.startswith(f"{ROOT_LOGGER_NAME}."):
            module = module[len(ROOT_LOGGER_NAME) + 1 :]
        module_levels[module.strip(".")] = level

    return module_levels


def _disable_logging() -> None:
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.handlers.clear()
    root_logger.setLevel(logging.WARNING)
    root_logger.propagate = False


def setup_logging() -> None:
    """
    Set up logging configuration based on environment variables.

    Environment Variables:
        QDRANT_GRPC_DEBUG
            Controls logging levels, e.g. "DEBUG" or
            "health.monitor:DEBUG,client:INFO".

        QDRANT_GRPC_DEBUG_FILE
            If set, log records are also written to this file.

    Records are handed to a QueueHandler and written by a QueueListener
    thread, so probe tasks never block on log I/O.
    """
    global _current_listener

    _listener_ready.clear()

    if _current_listener is not None:
        _current_listener.stop()
        _current_listener = None

    module_levels = _parse_debug_modules(os.environ.get(DEBUG_ENV, ""))

    if not module_levels:
        _disable_logging()
        _listener_ready.set()
        return

    formatter = logging.Formatter(DEFAULT_LOG_FORMAT)

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    log_file = os.environ.get(DEBUG_FILE_ENV)
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="w")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    queue_handler = logging.handlers.QueueHandler(log_queue)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.handlers.clear()
    root_logger.addHandler(queue_handler)
    root_logger.propagate = False
    root_logger.setLevel(module_levels.get("", logging.INFO))

    for module, level in module_levels.items():
        if not module:
            continue
        module_logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{module}")
        module_logger.handlers.clear()
        module_logger.addHandler(queue_handler)
        module_logger.setLevel(level)
        module_logger.propagate = False  # Prevent message duplication

    # Start the listener after every logger is configured
    _current_listener = logging.handlers.QueueListener(
        log_queue, *handlers, respect_handler_level=True
    )
    _current_listener.start()

    _listener_ready.set()


@atexit.register
def cleanup_logging() -> None:
    """Clean up logging resources on exit."""
    global _current_listener
    if _current_listener is not None:
        _current_listener.stop()
        _current_listener = None
