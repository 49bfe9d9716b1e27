"""Task runner combining the instance lock with self-update."""

from .task_runner import (
    RestartRequested,
    ScheduledTask,
    TaskRunner,
    TaskSummary,
    build_parser,
    create_task_runner,
    load_settings_or_exit,
    relaunch,
    run_task,
    setup_task_logging,
)

__all__ = [
    "RestartRequested",
    "ScheduledTask",
    "TaskRunner",
    "TaskSummary",
    "build_parser",
    "create_task_runner",
    "load_settings_or_exit",
    "relaunch",
    "run_task",
    "setup_task_logging",
]
