"""
CLI MODULE
==========

Command-line interface for cleanerCore.

Usage:
    python -m cleaner_core.cli tools
    python -m cleaner_core.cli tasks
    python -m cleaner_core.cli task-create <name> <cron> --tool <tool_name>
    python -m cleaner_core.cli scheduler-start
"""

from .main import main, cli_tools, cli_call, cli_scheduler_start

__all__ = [
    'main',
    'cli_tools',
    'cli_call',
    'cli_scheduler_start',
]
