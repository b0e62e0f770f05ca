"""Logging micro API for landscape-vision."""

from .lib import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
