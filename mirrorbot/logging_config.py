"""Logging configuration using Loguru.

Provides structured logging with:
- Console output for development
- File rotation for production
- Masked user identifiers (chat participants are anonymous to each other)
"""

import sys
from pathlib import Path

from loguru import logger


def setup_logging(
    level: str = "INFO",
    log_dir: str = "logs",
    enable_file: bool = True,
) -> None:
    """Configure application logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files
        enable_file: Whether to enable file logging
    """
    # Remove default handler
    logger.remove()

    # Console handler (always enabled)
    logger.add(
        sys.stderr,
        format=(
            "<green>{time:HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        ),
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=not enable_file,
    )

    if enable_file:
        log_path = Path(log_dir)
        log_path.mkdir(exist_ok=True)

        logger.add(
            log_path / "mirrorbot_{time:YYYY-MM-DD}.log",
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{name}:{function}:{line} | "
                "{message}"
            ),
            level=level,
            rotation="100 MB",
            retention="30 days",
            compression="gz",
            backtrace=True,
            diagnose=False,
        )

        # Error-only log for quick debugging
        logger.add(
            log_path / "errors_{time:YYYY-MM-DD}.log",
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{name}:{function}:{line} | "
                "{message}\n{exception}"
            ),
            level="ERROR",
            rotation="50 MB",
            retention="90 days",
            compression="gz",
            backtrace=True,
            diagnose=False,
        )

    logger.info(f"Logging initialized at {level} level")


def get_logger(name: str) -> "logger":
    """Get a logger instance with the given name.

    Usage:
        from mirrorbot.logging_config import get_logger
        logger = get_logger(__name__)
        logger.info("Message")
    """
    return logger.bind(name=name)


def mask_user_id(user_id: int | None) -> str:
    """Mask a chat user ID for logging: 5123456789 -> 51XXXX6789.

    Use this before logging any user ID next to message content.
    """
    if user_id is None:
        return "XXXX"
    raw = str(user_id)
    if len(raw) < 6:
        return "XXXX"
    return f"{raw[:2]}XXXX{raw[-4:]}"


def sanitize_for_log(data: dict) -> dict:
    """Remove or mask identifying fields from a dict before logging.

    Removes: text, message, caption
    Masks: Any field ending in 'user_id' or 'chat_id'
    """
    redacted_fields = {"text", "message", "caption", "username"}
    result = {}

    for key, value in data.items():
        if key in redacted_fields:
            result[key] = "[REDACTED]"
        elif key.endswith(("user_id", "chat_id", "partner_id")) and isinstance(value, int):
            result[key] = mask_user_id(value)
        elif isinstance(value, dict):
            result[key] = sanitize_for_log(value)
        else:
            result[key] = value

    return result
