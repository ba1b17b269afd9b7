"""
Background task helpers for the engine runner.

TaskManager owns the long-lived loops (analysis ticks, statistics reports)
and tears them down together; run_periodic is the loop body they share.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional


async def cancel_tasks(tasks: List[asyncio.Task], timeout: float = 2.0, logger=None) -> bool:
    """
    Cancel tasks and wait for them to finish.

    Returns False if some task was still running after `timeout` seconds.
    """
    pending = [task for task in tasks if not task.done()]
    if not pending:
        return True

    for task in pending:
        task.cancel()

    done, still_running = await asyncio.wait(pending, timeout=timeout)
    if still_running and logger:
        logger.warning("Task cancellation timed out",
                       timeout=timeout,
                       still_running=[t.get_name() for t in still_running])
    return not still_running


async def run_periodic(name: str, interval: float, action: Callable[[], Awaitable[object]],
                       stop_event: asyncio.Event, logger=None) -> None:
    """
    Await `action` every `interval` seconds until `stop_event` is set.

    A failing iteration is logged and the loop carries on; the next run
    starts `interval` seconds after the previous one finished.
    """
    while not stop_event.is_set():
        try:
            await action()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if logger:
                logger.error(f"{name} failed", error=str(e), error_type=type(e).__name__)

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            continue


class TaskManager:
    """Named group of background tasks shut down as one unit."""

    def __init__(self, name: str = "tasks"):
        self.name = name
        self._tasks: List[asyncio.Task] = []
        self._stopping = False

    def create_task(self, coro, name: Optional[str] = None) -> asyncio.Task:
        if self._stopping:
            coro.close()
            raise RuntimeError(f"{self.name}: cannot start '{name}' while stopping")

        task = asyncio.get_running_loop().create_task(coro, name=f"{self.name}.{name or len(self._tasks)}")
        self._tasks.append(task)
        task.add_done_callback(self._forget)
        return task

    def _forget(self, task: asyncio.Task) -> None:
        if task in self._tasks:
            self._tasks.remove(task)

    async def shutdown(self, timeout: float = 2.0, logger=None) -> bool:
        self._stopping = True
        tasks, self._tasks = list(self._tasks), []
        return await cancel_tasks(tasks, timeout, logger)

    @property
    def active_task_count(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    @property
    def is_stopping(self) -> bool:
        return self._stopping
