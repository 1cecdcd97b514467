"""Logging helper"""
import sys

from loguru import logger
from ilearning.config import LOG_DIR

LOG_FILE = LOG_DIR / "ilearning_{time}.log"


def configure_logging() -> None:
    logger.remove()
    logger.add(
        LOG_FILE,
        rotation="20 MB",
        retention="14 days",
        enqueue=True,
        level="INFO",
    )
    # stdout is reserved for the MCP stdio transport
    logger.add(sys.stderr, level="INFO")


def mask(value: str | None, keep: int = 2) -> str:
    """Hide all but the first ``keep`` characters of a secret for log output."""
    if not value:
        return "<empty>"
    if len(value) <= keep:
        return "*" * len(value)
    return value[:keep] + "*" * (len(value) - keep)


__all__ = ["configure_logging", "logger", "mask"]
