"""
Logging configuration — set up once by the CLI entrypoint.

Modules only ever do ``logger = logging.getLogger(__name__)``; handlers
and levels live here. The console level comes from the CLI flags, then
``RECIPEKIT_LOG_LEVEL``, then WARNING. ``RECIPEKIT_LOG_FILE`` adds a
file handler with its own level (``RECIPEKIT_LOG_FILE_LEVEL``).
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LOG_LEVEL = "RECIPEKIT_LOG_LEVEL"
ENV_LOG_FILE = "RECIPEKIT_LOG_FILE"
ENV_LOG_FILE_LEVEL = "RECIPEKIT_LOG_FILE_LEVEL"

# ── Formats ─────────────────────────────────────────────────────

# (threshold, format, datefmt): the first threshold the level is at or below wins.
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(message)s", None),
)

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Kept at WARNING unless running at DEBUG.
_NOISY_LOGGERS = ("urllib3", "charset_normalizer")


def resolve_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Console level name from the CLI flags, falling back to the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(ENV_LOG_LEVEL, "WARNING")


def setup_cli_logging(debug: bool = False, verbose: bool = False, quiet: bool = False) -> None:
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(ENV_LOG_FILE),
        log_file_level=os.environ.get(ENV_LOG_FILE_LEVEL),
        quiet_third_party=not debug,
    )


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Replace the root logger's handlers with a stderr handler and an optional file.

    Args:
        level: Console level name; unknown names mean WARNING.
        log_file: Path of a log file to append to.
        log_file_level: Level for the file; defaults to ``level``.
        quiet_third_party: Hold noisy library loggers at WARNING.
    """
    console_level = _parse_level(level)
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_console_handler(console_level))

    root_level = console_level
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        root.addHandler(_file_handler(log_file, file_level))
        root_level = min(root_level, file_level)
    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = _CONSOLE_FORMATS[-1][1:]
    for threshold, candidate, candidate_datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            fmt, datefmt = candidate, candidate_datefmt
            break
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler


def _parse_level(level: str | None) -> int:
    numeric = getattr(logging, (level or "").upper(), None)
    return numeric if isinstance(numeric, int) else logging.WARNING
