"""
CLI_MAIN
========

Command-line interface for cleanerCore.

Global Flags:
    --config-dir DIR    Config directory (default: per-user, see config/loader.py)
    --log-level LEVEL   Override the configured log level

Commands:
    tools               List registered tools

    # Scheduler commands
    tasks               List scheduled tasks
    task-get            Get task details
    task-create         Create a new task
    task-update         Update a task
    task-trigger        Run a task now
    task-enable         Enable a task
    task-disable        Disable a task
    task-delete         Delete a task
    task-runs           Get task run history
    scheduler-start     Start the scheduler daemon

Every task command goes through the same Schedule_* tools a remote caller
uses. Commands other than ``scheduler-start`` operate on the task store file;
a running daemon keeps its own in-memory copy and does not see them until it
is restarted.

Usage:
    python -m cleaner_core.cli tools
    python -m cleaner_core.cli tasks
    python -m cleaner_core.cli task-create nightly "0 2 * * *" --query "clean temp files"
    python -m cleaner_core.cli task-trigger <task_id>
    python -m cleaner_core.cli scheduler-start
"""

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..config.loader import load_config
from ..logging_config import setup_logging
from ..runtime import CleanerRuntime
from ..tools.base import ToolResult


def _with_runtime(config_dir: Optional[str], action: Callable[[CleanerRuntime], Awaitable[Any]]) -> Any:
    """Run ``action`` against a started runtime and shut it down afterwards."""
    async def runner():
        async with CleanerRuntime(load_config(config_dir)) as runtime:
            return await action(runtime)
    return asyncio.run(runner())


# ============================================================================
# CLI COMMANDS
# ============================================================================

def cli_tools(config_dir: Optional[str] = None) -> List[Dict[str, str]]:
    """List registered tools."""
    runtime = CleanerRuntime(load_config(config_dir))
    return runtime.registry.get_tool_summaries()


def cli_call(tool_name: str, params: Dict, config_dir: Optional[str] = None) -> ToolResult:
    """Call one tool against the persisted task store."""
    return _with_runtime(config_dir, lambda runtime: runtime.call_tool(tool_name, params))


def cli_scheduler_start(config_dir: Optional[str] = None) -> None:
    """Start the scheduler daemon and run until interrupted."""
    async def serve():
        runtime = CleanerRuntime(load_config(config_dir))
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except (NotImplementedError, RuntimeError):
                pass  # Windows: KeyboardInterrupt ends asyncio.run instead

        await runtime.start()
        try:
            tasks = runtime.scheduler.list_tasks()
            print(f"\nScheduler running with task store {runtime.store.path}")
            if tasks:
                print(f"Loaded {len(tasks)} task(s):")
                for task in tasks:
                    status = "+" if task["enabled"] else "-"
                    print(f"  [{status}] {task['id']}: {task['name']} "
                          f"({task['cronExpression']}) next run {task['nextRunAt'] or 'N/A'}")
            else:
                print("No tasks loaded.")
            print("Press Ctrl+C to stop\n")
            await stop_event.wait()
        finally:
            print("\nStopping scheduler...")
            await runtime.stop()
            print("Scheduler stopped.")

    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        pass


def _print_result(result: ToolResult) -> int:
    if result.success:
        print(result.output)
        return 0
    print(f"Error: {result.error}", file=sys.stderr)
    return 1


def _parse_params(raw: Optional[str]) -> Optional[Dict]:
    if raw is None:
        return None
    try:
        params = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SystemExit(f"Error: --params is not valid JSON: {e}")
    if not isinstance(params, dict):
        raise SystemExit("Error: --params must be a JSON object")
    return params


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="cleaner-core",
        description="cleanerCore - scheduled tool invocations with fuzzy tool resolution",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
COMMAND CATEGORIES
==================

Tool Commands:
  tools            List registered tools

Scheduler Commands:
  tasks            List all scheduled tasks
  task-get         Get details of a specific task
  task-create      Create a new scheduled task
  task-update      Update fields of a task
  task-trigger     Run a task immediately
  task-enable      Enable a disabled task
  task-disable     Disable a task (pause scheduling)
  task-delete      Delete a task permanently
  task-runs        View execution history for a task
  scheduler-start  Start the scheduler daemon

EXAMPLES
========

  %(prog)s tasks
  %(prog)s task-create nightly "0 2 * * *" --tool Cleaner_CleanTempFiles --params '{"dryRun": true}'
  %(prog)s task-create weekly "@weekly" --query "empty the trash"
  %(prog)s task-update <task_id> --cron "@every 6h"
  %(prog)s task-trigger <task_id>
  %(prog)s task-runs <task_id> --limit 5
  %(prog)s scheduler-start

For command-specific help:
  %(prog)s <command> --help
        """
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version="%(prog)s 1.0.0"
    )
    parser.add_argument(
        "--config-dir",
        help="Config directory holding config.json and schedules.json"
    )
    parser.add_argument(
        "--log-level",
        help="Log level (DEBUG, INFO, WARNING, ERROR)"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Use '%(prog)s <command> --help' for command-specific help",
        metavar="<command>"
    )

    subparsers.add_parser(
        "tools",
        help="List registered tools",
        description="List every registered tool with its description."
    )

    # tasks command - list all tasks
    subparsers.add_parser(
        "tasks",
        help="List scheduled tasks",
        description="List all scheduled tasks with their status and last/next run."
    )

    # task-get command
    task_get_parser = subparsers.add_parser(
        "task-get",
        help="Get task details",
        description="Get the full record of a task including parameters and history."
    )
    task_get_parser.add_argument("task_id", help="Task ID")

    # task-create command
    task_create_parser = subparsers.add_parser(
        "task-create",
        help="Create a new task",
        description="Create a scheduled task bound to one tool, named exactly or by description."
    )
    task_create_parser.add_argument("name", help="Task name")
    task_create_parser.add_argument("cron", help="Cron expression or '@every <N>[smhd]'")
    target = task_create_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--tool", "-t", help="Exact tool name")
    target.add_argument("--query", "-q", help="Tool description to fuzzy match")
    task_create_parser.add_argument("--params", "-p", help="Tool parameters as a JSON object")
    task_create_parser.add_argument("--disabled", action="store_true",
                                    help="Create the task disabled")

    # task-update command
    task_update_parser = subparsers.add_parser(
        "task-update",
        help="Update a task",
        description="Update fields of a task. Omitted fields stay unchanged."
    )
    task_update_parser.add_argument("task_id", help="Task ID")
    task_update_parser.add_argument("--name", "-n", help="New name")
    task_update_parser.add_argument("--cron", help="New cron expression")
    update_target = task_update_parser.add_mutually_exclusive_group()
    update_target.add_argument("--tool", "-t", help="New exact tool name")
    update_target.add_argument("--query", "-q", help="New tool, by description")
    task_update_parser.add_argument("--params", "-p", help="Replacement tool parameters (JSON)")

    # task-trigger command
    task_trigger_parser = subparsers.add_parser(
        "task-trigger",
        help="Run a task now",
        description="Run a task immediately, bypassing its schedule. The run is recorded."
    )
    task_trigger_parser.add_argument("task_id", help="Task ID")

    # task-enable command
    task_enable_parser = subparsers.add_parser(
        "task-enable",
        help="Enable a task",
        description="Enable a disabled task so it runs on its schedule."
    )
    task_enable_parser.add_argument("task_id", help="Task ID")

    # task-disable command
    task_disable_parser = subparsers.add_parser(
        "task-disable",
        help="Disable a task",
        description="Disable a task to pause its scheduling without deleting it."
    )
    task_disable_parser.add_argument("task_id", help="Task ID")

    # task-delete command
    task_delete_parser = subparsers.add_parser(
        "task-delete",
        help="Delete a task",
        description="Permanently delete a task and its run history."
    )
    task_delete_parser.add_argument("task_id", help="Task ID")

    # task-runs command
    task_runs_parser = subparsers.add_parser(
        "task-runs",
        help="Get task run history",
        description="View the most recent execution records of a task."
    )
    task_runs_parser.add_argument("task_id", help="Task ID")
    task_runs_parser.add_argument("--limit", "-l", type=int, default=10,
                                  help="Max runs to show (1-20)")

    # scheduler-start command
    subparsers.add_parser(
        "scheduler-start",
        help="Start the scheduler daemon",
        description="Arm timers for all enabled tasks and run them on schedule. Press Ctrl+C to stop."
    )

    args = parser.parse_args(argv)

    # Configure centralized logging before any command runs
    config = load_config(args.config_dir)
    log_file = config.logging_file or str(Path(config.paths.logs_dir) / "combined.log")
    setup_logging(args.log_level or config.logging_level, log_file)

    if args.command is None:
        parser.print_help()
        return 0

    config_dir = args.config_dir

    # ========================================================================
    # COMMAND HANDLERS
    # ========================================================================

    if args.command == "tools":
        tools = cli_tools(config_dir)
        print("\nRegistered tools:")
        for tool in tools:
            print(f"  {tool['name']}: {tool['description']}")
        return 0

    elif args.command == "scheduler-start":
        cli_scheduler_start(config_dir)
        return 0

    elif args.command == "tasks":
        return _print_result(cli_call("Schedule_ListTasks", {}, config_dir))

    elif args.command == "task-get":
        return _print_result(cli_call("Schedule_GetTaskDetails", {"taskId": args.task_id}, config_dir))

    elif args.command == "task-create":
        params = {
            "name": args.name,
            "cronExpression": args.cron,
            "toolParams": _parse_params(args.params) or {},
            "enabled": not args.disabled,
        }
        if args.tool:
            params["toolName"] = args.tool
        else:
            params["toolQuery"] = args.query
        return _print_result(cli_call("Schedule_CreateTask", params, config_dir))

    elif args.command == "task-update":
        params = {"taskId": args.task_id}
        if args.name is not None:
            params["name"] = args.name
        if args.cron is not None:
            params["cronExpression"] = args.cron
        if args.tool is not None:
            params["toolName"] = args.tool
        if args.query is not None:
            params["toolQuery"] = args.query
        tool_params = _parse_params(args.params)
        if tool_params is not None:
            params["toolParams"] = tool_params
        return _print_result(cli_call("Schedule_UpdateTask", params, config_dir))

    elif args.command == "task-trigger":
        return _print_result(cli_call("Schedule_RunTaskNow", {"taskId": args.task_id}, config_dir))

    elif args.command == "task-enable":
        return _print_result(cli_call("Schedule_EnableTask", {"taskId": args.task_id}, config_dir))

    elif args.command == "task-disable":
        return _print_result(cli_call("Schedule_DisableTask", {"taskId": args.task_id}, config_dir))

    elif args.command == "task-delete":
        return _print_result(cli_call("Schedule_DeleteTask", {"taskId": args.task_id}, config_dir))

    elif args.command == "task-runs":
        return _print_result(cli_call(
            "Schedule_GetTaskHistory",
            {"taskId": args.task_id, "limit": args.limit},
            config_dir
        ))

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
