"""Loguru wiring for the context engine.

Every module logs through ``get_logger(name)``, which binds a
``module`` extra under the ``context_engine`` namespace. Entry points call
``configure_logging`` once to replace loguru's default sink; library callers
embedding the engine keep whatever sinks they already have.
"""

import sys
from typing import Literal, TextIO

from loguru import logger

BASE_LOGGER_NAMESPACE = "context_engine"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> <level>{level: <8}</level> | "
    "<cyan>{extra[module]}</cyan> | {message}"
)

_configured = False


def get_logger(name: str) -> "logger":
    """Logger bound to ``context_engine.<name>``."""
    return logger.bind(module=f"{BASE_LOGGER_NAMESPACE}.{name}")


def configure_logging(level: LogLevel = "INFO", sink: TextIO = sys.stderr) -> bool:
    """Install a single formatted sink. Returns False if already configured.

    Records logged without a ``module`` binding fall back to the bare
    namespace through the default ``extra``.
    """
    global _configured
    if _configured:
        return False

    logger.configure(
        handlers=[{
            "sink": sink,
            "format": LOG_FORMAT,
            "level": level,
            "colorize": sink is sys.stderr,
        }],
        extra={"module": BASE_LOGGER_NAMESPACE},
    )
    _configured = True
    return True
