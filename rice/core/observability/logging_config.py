"""
Logging configuration — one setup call from main.py.

Modules log through ``logging.getLogger(__name__)``. What the user sees
during an install is printed by the console reporter; logging carries
diagnostics (commands run, URLs fetched, state writes).

Level precedence:
    --debug  >  --verbose / RICE_VERBOSE  >  RICE_LOG_LEVEL  >  WARNING

RICE_LOG_FILE adds a file handler (level RICE_LOG_FILE_LEVEL, default
DEBUG) so a failed run can be diagnosed after the fact.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
}
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("urllib3", "charset_normalizer")


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console log level from CLI flags and the environment."""
    env = os.environ if environ is None else environ
    if debug:
        return "DEBUG"
    if verbose or env.get("RICE_VERBOSE", "") == "1":
        return "INFO"
    return env.get("RICE_LOG_LEVEL", "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure the root logger for the whole process.

    Args:
        level: Console level name.
        log_file: Optional path for a full-detail log file.
        log_file_level: Level for the file handler (default DEBUG).
    """
    console_level = _parse_level(level)

    # Anything below INFO gets the most detailed format, WARNING+ is bare.
    fmt, datefmt = "%(message)s", None
    for threshold in sorted(_CONSOLE_FORMATS):
        if console_level <= threshold:
            fmt, datefmt = _CONSOLE_FORMATS[threshold]
            break

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level or "DEBUG")
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)

    if console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    numeric = getattr(logging, (level or "").upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
