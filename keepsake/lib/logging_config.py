"""JSON logging configuration for the keepsake agent."""

import logging

from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with focused field set.

    Keeps timestamp, level, message, exc_info, funcName and lineno, plus the
    structured context fields the agent passes through ``extra``.
    Drops verbose fields like module, process, thread, processName, threadName, name.
    """

    allowed_fields = frozenset(
        {
            "timestamp",
            "level",
            "message",
            "exc_info",
            "funcName",
            "lineno",
            # context fields
            "file",
            "cmd",
            "path",
            "cycle",
            "returncode",
            "lease_seconds",
            "delay_seconds",
            "serial_number",
            "common_name",
            "not_after",
        }
    )

    def add_fields(self, log_record, record, message_dict):
        """Override to include only allowed fields.

        Args:
            log_record: Dict to be logged as JSON
            record: LogRecord object from logging framework
            message_dict: Dict containing message and args
        """
        super().add_fields(log_record, record, message_dict)

        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")

        keys_to_remove = [key for key in log_record if key not in self.allowed_fields]
        for key in keys_to_remove:
            log_record.pop(key)


def _setup_logger() -> logging.Logger:
    """Initialize and configure singleton logger.

    Returns:
        Configured logger with CustomJsonFormatter
    """
    logger = logging.getLogger("keepsake")

    # Prevent duplicate handlers if module reloaded
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    formatter = CustomJsonFormatter(
        fmt="%(timestamp)s %(levelname)s %(funcName)s %(lineno)d %(message)s",
        timestamp=True,
    )
    handler.setFormatter(formatter)

    logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    logger.propagate = False  # Don't propagate to root logger

    return logger


def set_log_level(level: str) -> None:
    """Set the agent logger level by name (e.g. ``DEBUG``).

    Raises:
        ValueError: If the level name is unknown
    """
    LOGGER.setLevel(level.upper())


# Singleton logger instance - import this in other modules
LOGGER = _setup_logger()
