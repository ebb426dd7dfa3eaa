"""
Logging configuration — central setup for the CLI and embedding callers.

Engine modules log through ``logging.getLogger(__name__)``; live process
output never goes through logging unless a LoggingSink is used, in which
case it arrives on the ``toolsmith.output`` logger.

Levels are resolved in precedence order:
    CLI flag  >  TOOLSMITH_LOG_LEVEL env var  >  WARNING (default)

Optional file output via TOOLSMITH_LOG_FILE / TOOLSMITH_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import os
import sys

# WARNING and above — just the message
_FMT_MINIMAL = "%(message)s"

# INFO — which part of the engine is talking
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"

# DEBUG — full diagnostic with file:line
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"

_DATEFMT_CONSOLE = "%H:%M:%S"

# File output — always full detail
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# Process output relayed by LoggingSink; chatty below INFO
OUTPUT_LOGGER = "toolsmith.output"


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env: dict[str, str] | None = None,
) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = os.environ if env is None else env
    return env.get("TOOLSMITH_LOG_LEVEL", "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    relay_output: bool = False,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
        log_file_level: Optional separate level for the log file.
            Defaults to the same as ``level``.
        relay_output: Whether process output relayed through
            ``toolsmith.output`` should reach the console below WARNING.
    """
    numeric_level = _parse_level(level)

    if numeric_level <= logging.DEBUG:
        fmt = _FMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt = _FMT_VERBOSE
    else:
        fmt = _FMT_MINIMAL

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(
        logging.Formatter(fmt, datefmt=None if fmt is _FMT_MINIMAL else _DATEFMT_CONSOLE)
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    effective_level = numeric_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)

    output = logging.getLogger(OUTPUT_LOGGER)
    output.setLevel(logging.INFO if relay_output else logging.WARNING)

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
