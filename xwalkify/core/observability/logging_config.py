"""
Logging setup for the xwalkify CLI.

main.py calls ``setup_logging`` once, before any command runs; modules
only do ``logger = logging.getLogger(__name__)``.

Console level, highest precedence first:

    --debug  >  --verbose  >  --quiet  >  XWALKIFY_LOG_LEVEL  >  WARNING

XWALKIFY_LOG_FILE adds a file handler, at XWALKIFY_LOG_FILE_LEVEL if
set. The file always gets the full format, so it can be attached as is
to a report about a failed rebuild.
"""

from __future__ import annotations

import logging
import sys

Format = tuple[str, str | None]

_FULL: Format = ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S")
_NAMED: Format = ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S")
_BARE: Format = ("%(message)s", None)
_FILE: Format = (_FULL[0], "%Y-%m-%d %H:%M:%S")


def _console_format(level: int) -> Format:
    if level <= logging.DEBUG:
        return _FULL
    if level <= logging.INFO:
        return _NAMED
    return _BARE


def _handler(handler: logging.Handler, level: int, fmt: Format) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt[0], datefmt=fmt[1]))
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Install the console (stderr) handler and the optional file handler.

    Replaces whatever handlers the root logger had, so calling it twice
    is harmless.

    Args:
        level: Console level name.
        log_file: Path of a log file to append to.
        log_file_level: Level for the file; defaults to ``level``.
    """
    console_level = _parse_level(level)
    handlers = [
        _handler(logging.StreamHandler(sys.stderr), console_level, _console_format(console_level)),
    ]
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handlers.append(_handler(logging.FileHandler(log_file, encoding="utf-8"), file_level, _FILE))
        root_level = min(root_level, file_level)

    root = logging.getLogger()
    root.handlers[:] = handlers
    root.setLevel(root_level)

    logging.raiseExceptions = False


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env_level: str | None = None,
) -> str:
    """Pick the console level from CLI flags, falling back to the env var."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return env_level or "WARNING"


def _parse_level(level: str | None) -> int:
    """Level name to number; anything unrecognized means WARNING."""
    numeric = logging.getLevelName(level.upper()) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING
