"""
CONFIG MODULE
=============

Configuration loading for cleanerCore.
"""

from .loader import (
    GlobalConfig,
    PathsConfig,
    SchedulerConfig,
    ResolverConfig,
    default_config_dir,
    load_config,
)

__all__ = [
    'GlobalConfig',
    'PathsConfig',
    'SchedulerConfig',
    'ResolverConfig',
    'default_config_dir',
    'load_config',
]
