"""Tests for core logging module."""

import logging
from io import StringIO

from .lib import DEFAULT_LOGGER_NAME, get_logger, setup_logging


class TestLogging:
    """Test core logging API."""

    def test_get_logger(self) -> None:
        """Verify logger instance creation."""
        logger = get_logger("landscape_vision.draft")
        assert logger.name == "landscape_vision.draft"
        assert isinstance(logger, logging.Logger)

    def test_get_logger_default_name(self) -> None:
        """Verify default logger name."""
        assert get_logger().name == DEFAULT_LOGGER_NAME == "landscape-vision"

    def test_setup_logging_accepts_stream(self) -> None:
        """setup_logging is safe to call with a custom stream."""
        stream = StringIO()
        setup_logging(level=logging.DEBUG, stream=stream)
        logger = get_logger("test_setup")
        logger.debug("test message")

        # basicConfig is a no-op when the root logger is already configured
        assert logger.level == logging.NOTSET
