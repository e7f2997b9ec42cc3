import logging
import os

LOG_LEVEL = os.environ.get("LOG_LEVEL", "info")

LOGGING_FORMAT = "[{asctime}|{filename}:{funcName}:{lineno:d}]{levelname}  {message}"


def setup_logging(level: str | None = None) -> logging.Logger:
    """Install the console handler on the package logger.

    Args:
        level: Level name ('debug', 'info', ...). Defaults to the LOG_LEVEL environment variable.

    Returns:
        The configured ``visioninsights`` logger.
    """
    logger = logging.getLogger("visioninsights")

    logging_level = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "critical": logging.CRITICAL,
        "error": logging.ERROR,
    }.get((level or LOG_LEVEL).lower(), logging.INFO)

    formatter = logging.Formatter(LOGGING_FORMAT, style="{", datefmt="%H:%M:%S")

    # Create a handler for console output
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    # Replace handlers from a previous call
    logger.handlers.clear()
    logger.addHandler(console_handler)
    logger.setLevel(logging_level)
    logger.propagate = False

    return logger
