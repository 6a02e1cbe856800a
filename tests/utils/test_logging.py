import logging
import logging.handlers
from pathlib import (
    Path,
)
import queue
import tempfile

import pytest

from qdrant_grpc.utils import logging as qdrant_logging
from qdrant_grpc.utils.logging import (
    DEBUG_ENV,
    DEBUG_FILE_ENV,
    _parse_debug_modules,
    log_queue,
    setup_logging,
)


def _reset_logging():
    """Reset all logging state."""
    qdrant_logging.cleanup_logging()

    # Clear all loggers
    for name in list(logging.Logger.manager.loggerDict.keys()):
        if name.startswith("qdrant_grpc"):
            logger = logging.getLogger(name)
            logger.handlers.clear()
            logger.setLevel(logging.NOTSET)
            logger.propagate = True

    logger = logging.getLogger("qdrant_grpc")
    logger.propagate = False
    logger.setLevel(logging.WARNING)

    # Clear the log queue
    while not log_queue.empty():
        try:
            log_queue.get_nowait()
        except queue.Empty:
            break


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove relevant environment variables before each test."""
    monkeypatch.delenv(DEBUG_ENV, raising=False)
    monkeypatch.delenv(DEBUG_FILE_ENV, raising=False)
    _reset_logging()
    yield
    _reset_logging()


def test_logging_disabled():
    """Logging stays quiet when QDRANT_GRPC_DEBUG is not set."""
    setup_logging()
    logger = logging.getLogger("qdrant_grpc")
    assert logger.level == logging.WARNING
    assert not logger.handlers
    assert qdrant_logging._current_listener is None
    assert qdrant_logging._listener_ready.is_set()


def test_logging_with_debug_env(monkeypatch):
    monkeypatch.setenv(DEBUG_ENV, "DEBUG")
    setup_logging()
    logger = logging.getLogger("qdrant_grpc")

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], logging.handlers.QueueHandler)
    assert qdrant_logging._current_listener is not None


def test_module_specific_logging(monkeypatch):
    monkeypatch.setenv(DEBUG_ENV, "health.monitor:DEBUG,client:ERROR")
    setup_logging()

    # Root defaults to INFO when only modules are listed
    assert logging.getLogger("qdrant_grpc").level == logging.INFO
    assert logging.getLogger("qdrant_grpc.health.monitor").level == logging.DEBUG
    assert logging.getLogger("qdrant_grpc.client").level == logging.ERROR
    assert (
        logging.getLogger("qdrant_grpc.selector").getEffectiveLevel() == logging.INFO
    )


@pytest.mark.parametrize(
    "value, expected",
    [
        ("", {}),
        ("   ", {}),
        ("debug", {"": logging.DEBUG}),
        ("NOT_A_LEVEL", {}),
        ("qdrant_grpc.health:WARNING", {"health": logging.WARNING}),
        ("health/prober:DEBUG", {"health.prober": logging.DEBUG}),
        ("client:INFO,broken,selector:NOPE", {"client": logging.INFO}),
    ],
)
def test_parse_debug_modules(value, expected):
    assert _parse_debug_modules(value) == expected


def test_logging_to_file(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        log_file = Path(tmpdir) / "logs" / "qdrant.log"
        monkeypatch.setenv(DEBUG_ENV, "INFO")
        monkeypatch.setenv(DEBUG_FILE_ENV, str(log_file))
        setup_logging()

        logging.getLogger("qdrant_grpc.health.monitor").info("Health monitor started")
        # Stopping the listener flushes the queue
        qdrant_logging.cleanup_logging()

        assert log_file.exists()
        content = log_file.read_text()
        assert "qdrant_grpc.health.monitor - INFO - Health monitor started" in content


def test_setup_logging_twice_replaces_listener(monkeypatch):
    monkeypatch.setenv(DEBUG_ENV, "DEBUG")
    setup_logging()
    first = qdrant_logging._current_listener

    setup_logging()

    assert qdrant_logging._current_listener is not first
    assert len(logging.getLogger("qdrant_grpc").handlers) == 1
