"""Process-level loguru setup."""

from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = "{time:HH:mm:ss.SSS} | {level:<7} | {name}:{line} | {message}"

_configured_level: str | None = None


def _stderr_sink(message: str) -> None:
    # Looked up per write so redirected or captured stderr is honoured.
    sys.stderr.write(message)


def configure_logging(level: str) -> None:
    """Send loguru records at ``level`` and above to stderr.

    Calling again with the same level is a no-op; a different level replaces
    the sink.
    """
    global _configured_level
    resolved_level = level.upper()
    if resolved_level == _configured_level:
        return

    logger.remove()
    logger.add(_stderr_sink, level=resolved_level, format=LOG_FORMAT, backtrace=False, diagnose=False)
    _configured_level = resolved_level
    logger.debug("logging.configured level={}", resolved_level)
