"""
Centralized logging configuration for cleanerCore.

Configures the ``cleaner_core`` parent logger so every child logger
(cleaner_core.scheduler, cleaner_core.tools, …) inherits handlers and level
automatically.

Console output goes to stderr so stdout stays free for a stdio tool
transport. File output is split into ``combined.log`` (everything at the
configured level) and ``error.log`` (ERROR and above).
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path

_logging_configured = False

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
MAX_LOG_BYTES = 5 * 1024 * 1024  # 5 MB
LOG_BACKUP_COUNT = 5


def default_log_dir() -> Path:
    """Per-user log directory for the current platform."""
    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Logs" / "cleaner-core"
    if sys.platform == "win32":
        local = os.environ.get("LOCALAPPDATA")
        base = Path(local) if local else home / "AppData" / "Local"
        return base / "cleaner-core" / "logs"
    return home / ".cleaner-core" / "logs"


def _rotating_handler(path: Path, level: int, fmt: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure cleanerCore logging with console and optional file output.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            The ``LOG_LEVEL`` environment variable takes precedence.
        log_file: Path to the combined log file.
            - ``None``  → ``<default_log_dir()>/combined.log``
            - ``"none"`` → disable file logging
            - any other string → use as explicit file path; ``error.log`` is
              written next to it
    """
    global _logging_configured
    if _logging_configured:
        return
    _logging_configured = True

    level = os.environ.get("LOG_LEVEL") or level
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    parent_logger = logging.getLogger("cleaner_core")
    parent_logger.setLevel(numeric_level)
    parent_logger.propagate = False

    fmt = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    # -- Console handler (always on) --
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(fmt)
    parent_logger.addHandler(console)

    # -- File handlers --
    if isinstance(log_file, str) and log_file.lower() == "none":
        return  # explicitly disabled

    if log_file is None:
        combined_path = default_log_dir() / "combined.log"
    else:
        combined_path = Path(log_file)

    try:
        combined_path.parent.mkdir(parents=True, exist_ok=True)
        parent_logger.addHandler(_rotating_handler(combined_path, numeric_level, fmt))
        parent_logger.addHandler(
            _rotating_handler(combined_path.parent / "error.log", logging.ERROR, fmt)
        )
    except OSError as e:
        parent_logger.warning(f"File logging disabled, cannot open {combined_path}: {e}")
