from .time_utils import MS_PER_MINUTE, get_current_timestamp, minutes_until, minutes_between, format_timestamp
from .task_utils import cancel_tasks, run_periodic, TaskManager

__all__ = [
    "MS_PER_MINUTE",
    "get_current_timestamp",
    "minutes_until",
    "minutes_between",
    "format_timestamp",
    "cancel_tasks",
    "run_periodic",
    "TaskManager",
]
