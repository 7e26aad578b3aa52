"""
CONFIG_LOADER
=============

Configuration management for cleanerCore.

Handles:
- Per-user config directory resolution (per platform, overridable)
- Scheduler, resolver and logging settings
- Optional ``config.json`` overrides with environment precedence

Usage:
    from cleaner_core.config import load_config

    config = load_config()
    print(config.paths.schedules_path)
    print(config.scheduler.max_history)
"""

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..logging_config import default_log_dir

logger = logging.getLogger(__name__)

APP_DIR_NAME = "cleaner-core"
CONFIG_DIR_ENV = "CLEANER_CORE_CONFIG_DIR"
CONFIG_FILE_NAME = "config.json"
MAX_HISTORY = 20  # upper bound on execution records kept per task


# ============================================================================
# PATH RESOLUTION
# ============================================================================

def default_config_dir() -> Path:
    """
    Find the per-user configuration directory.

    Order: ``CLEANER_CORE_CONFIG_DIR``, then ``%APPDATA%`` when set, then
    ``~/Library/Preferences`` on macOS, then ``~/.config``.
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()

    appdata = os.environ.get("APPDATA")
    if appdata:
        base = Path(appdata)
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Preferences"
    else:
        base = Path.home() / ".config"
    return base / APP_DIR_NAME


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class PathsConfig:
    """Directory paths configuration.

    ``schedules_file`` is resolved against ``config_dir`` when relative.
    """
    config_dir: str = ""
    schedules_file: str = "schedules.json"
    logs_dir: str = ""

    def to_dict(self) -> Dict:
        return {
            "config_dir": self.config_dir,
            "schedules_file": self.schedules_file,
            "logs_dir": self.logs_dir,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "PathsConfig":
        return cls(
            config_dir=data.get("config_dir", ""),
            schedules_file=data.get("schedules_file", "schedules.json"),
            logs_dir=data.get("logs_dir", ""),
        )

    @property
    def schedules_path(self) -> Path:
        path = Path(self.schedules_file).expanduser()
        if path.is_absolute():
            return path
        return Path(self.config_dir) / path


def _clamp_history(value) -> int:
    """Keep ``max_history`` within 1..MAX_HISTORY."""
    clamped = min(max(int(value), 1), MAX_HISTORY)
    if clamped != value:
        logger.warning(f"scheduler.max_history={value} out of range, using {clamped}")
    return clamped


@dataclass
class SchedulerConfig:
    """Task scheduler settings."""
    max_history: int = MAX_HISTORY
    summary_length: int = 200
    details_length: int = 500
    timezone: str = "UTC"
    default_history_limit: int = 10
    shutdown_grace_seconds: float = 5.0

    def to_dict(self) -> Dict:
        return {
            "max_history": self.max_history,
            "summary_length": self.summary_length,
            "details_length": self.details_length,
            "timezone": self.timezone,
            "default_history_limit": self.default_history_limit,
            "shutdown_grace_seconds": self.shutdown_grace_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "SchedulerConfig":
        return cls(
            max_history=_clamp_history(data.get("max_history", MAX_HISTORY)),
            summary_length=data.get("summary_length", 200),
            details_length=data.get("details_length", 500),
            timezone=data.get("timezone", "UTC"),
            default_history_limit=data.get("default_history_limit", 10),
            shutdown_grace_seconds=data.get("shutdown_grace_seconds", 5.0),
        )


@dataclass
class ResolverConfig:
    """Fuzzy tool resolution thresholds (similarity in [0, 1])."""
    search_threshold: float = 0.6      # minimum to count as a candidate
    accept_threshold: float = 0.7      # best candidate above this auto-resolves
    suggestion_threshold: float = 0.4  # "did you mean" for unknown exact names
    max_candidates: int = 3

    def to_dict(self) -> Dict:
        return {
            "search_threshold": self.search_threshold,
            "accept_threshold": self.accept_threshold,
            "suggestion_threshold": self.suggestion_threshold,
            "max_candidates": self.max_candidates,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ResolverConfig":
        return cls(
            search_threshold=data.get("search_threshold", 0.6),
            accept_threshold=data.get("accept_threshold", 0.7),
            suggestion_threshold=data.get("suggestion_threshold", 0.4),
            max_candidates=data.get("max_candidates", 3),
        )


@dataclass
class GlobalConfig:
    """Global configuration for the service."""
    version: str = "1.0.0"
    paths: PathsConfig = field(default_factory=PathsConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    tool_modules: List[str] = field(default_factory=list)
    max_output_size: int = 100000
    logging_level: str = "INFO"
    logging_file: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "version": self.version,
            "paths": self.paths.to_dict(),
            "scheduler": self.scheduler.to_dict(),
            "resolver": self.resolver.to_dict(),
            "tool_modules": list(self.tool_modules),
            "max_output_size": self.max_output_size,
            "logging": {
                "level": self.logging_level,
                "file": self.logging_file,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "GlobalConfig":
        logging_cfg = data.get("logging", {})

        return cls(
            version=data.get("version", "1.0.0"),
            paths=PathsConfig.from_dict(data.get("paths", {})),
            scheduler=SchedulerConfig.from_dict(data.get("scheduler", {})),
            resolver=ResolverConfig.from_dict(data.get("resolver", {})),
            tool_modules=list(data.get("tool_modules", [])),
            max_output_size=data.get("max_output_size", 100000),
            logging_level=logging_cfg.get("level", "INFO"),
            logging_file=logging_cfg.get("file"),
        )


# ============================================================================
# LOADING
# ============================================================================

def load_config(config_dir: Optional[str] = None) -> GlobalConfig:
    """
    Load configuration from ``<config_dir>/config.json``.

    A missing file means defaults. A malformed file is logged and defaults
    are used. Empty path fields are filled from the platform defaults, and
    the ``LOG_LEVEL`` environment variable overrides the logging level.

    Args:
        config_dir: Directory holding config.json and schedules.json
            (default: ``default_config_dir()``)

    Returns:
        Resolved GlobalConfig
    """
    base_dir = Path(config_dir).expanduser() if config_dir else default_config_dir()
    config_path = base_dir / CONFIG_FILE_NAME

    config = GlobalConfig()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("top-level value must be an object")
            config = GlobalConfig.from_dict(data)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not load config {config_path}: {e}, using defaults")
            config = GlobalConfig()

    if not config.paths.config_dir:
        config.paths.config_dir = str(base_dir)
    if not config.paths.logs_dir:
        config.paths.logs_dir = str(default_log_dir())

    env_level = os.environ.get("LOG_LEVEL")
    if env_level:
        config.logging_level = env_level

    return config
