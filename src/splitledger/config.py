"""Runtime settings read from the environment."""

import logging
import os

DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_CURRENCY = "INR"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_log_level() -> str:
    """Get the log level name, respecting SPLITLEDGER_LOG_LEVEL env var."""
    return os.environ.get("SPLITLEDGER_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()


def get_currency() -> str:
    """Get the display currency code, respecting SPLITLEDGER_CURRENCY env var."""
    return os.environ.get("SPLITLEDGER_CURRENCY", DEFAULT_CURRENCY).upper()


def configure_logging(level: str | None = None) -> int:
    """
    Configure root logging for command-line use.

    Args:
        level: Level name (defaults to get_log_level()); unknown names fall back to WARNING

    Returns:
        The numeric level applied
    """
    name = (level or get_log_level()).upper()
    numeric_level = getattr(logging, name, None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric_level)
    return numeric_level
