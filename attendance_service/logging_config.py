"""
Logging configuration for Attendance Service.

Console logging with camera ID context on every record.
"""

import logging
import sys


class CameraContextFilter(logging.Filter):
    """Stamp the camera id onto log records."""

    def __init__(self, camera_id: str):
        super().__init__()
        self.camera_id = camera_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.camera_id = self.camera_id
        return True


def setup_logging(camera_id: str, debug: bool = False) -> None:
    """
    Configure the root logger.

    Args:
        camera_id: Camera identifier for log context
        debug: Enable debug level logging
    """
    level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        '[%(levelname)s] [camera=%(camera_id)s] %(name)s: %(message)s'
    ))
    handler.addFilter(CameraContextFilter(camera_id))

    root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
