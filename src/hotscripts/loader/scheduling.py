"""Triggers for reload cycles and executors for script work.

A *loading scheduler* invokes the loader periodically. A *run executor*
receives the work produced by a cycle (terminate old scripts, run new ones)
and decides where it executes: inline, on a pool, or on an event loop the
host designates as the only safe place to touch its state.
"""

import asyncio
import contextlib
import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Executor
from typing import Any, Protocol

logger = logging.getLogger(__name__)

Work = Callable[[], None]
RunExecutor = Callable[[Work], Any]


class ScheduledTask(Protocol):
    """Handle for a periodic task. Closing it cancels the task."""

    def close(self) -> None: ...


class LoadingScheduler(Protocol):
    """Schedules a task at a fixed rate, first run without delay."""

    def schedule_at_fixed_rate(self, task: Work, interval: float) -> ScheduledTask: ...


def run_immediately(work: Work) -> None:
    """Run executor that executes work on the calling thread."""
    work()


def pool_executor(executor: Executor) -> RunExecutor:
    """Run executor submitting work to a ``concurrent.futures`` executor."""

    def submit(work: Work) -> Any:
        return executor.submit(work)

    return submit


def loop_executor(loop: asyncio.AbstractEventLoop) -> RunExecutor:
    """Run executor marshaling work onto an event loop's thread."""

    def submit(work: Work) -> Any:
        return loop.call_soon_threadsafe(work)

    return submit


def _run_guarded(task: Work) -> None:
    try:
        task()
    except Exception:
        logger.exception("Scheduled loader task failed")


class _ThreadTask:
    """A daemon thread running a task at a fixed rate until closed."""

    def __init__(self, task: Work, interval: float, name: str):
        self.task = task
        self.interval = interval
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, name=name, daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        next_run = time.monotonic()
        while not self._stop.is_set():
            _run_guarded(self.task)
            next_run += self.interval
            delay = next_run - time.monotonic()
            if delay < 0:
                # fell behind; don't try to catch up with a burst of runs
                next_run = time.monotonic()
                delay = 0
            self._stop.wait(delay)

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def close(self) -> None:
        self._stop.set()
        if threading.current_thread() is not self._thread:
            self._thread.join()


class ThreadLoadingScheduler:
    """Runs each scheduled task on its own daemon thread."""

    def __init__(self, thread_name: str = "hotscripts-loader"):
        self.thread_name = thread_name

    def schedule_at_fixed_rate(self, task: Work, interval: float) -> _ThreadTask:
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        return _ThreadTask(task, interval, self.thread_name)


class _AsyncioTask:
    def __init__(self, future: "asyncio.Future[None] | Any"):
        self._future = future

    @property
    def running(self) -> bool:
        return not self._future.done()

    def close(self) -> None:
        self._future.cancel()


class AsyncioLoadingScheduler:
    """Runs scheduled tasks as asyncio tasks on an event loop.

    The task is called on the loop thread itself, so cycles and a
    :func:`loop_executor` run executor share one thread.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self.loop = loop

    async def _periodic(self, task: Work, interval: float) -> None:
        while True:
            _run_guarded(task)
            await asyncio.sleep(interval)

    def schedule_at_fixed_rate(self, task: Work, interval: float) -> _AsyncioTask:
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")

        running: asyncio.AbstractEventLoop | None = None
        with contextlib.suppress(RuntimeError):
            running = asyncio.get_running_loop()

        loop = self.loop or running
        if loop is None:
            raise RuntimeError("AsyncioLoadingScheduler needs a loop or a running event loop")

        if loop is running:
            return _AsyncioTask(loop.create_task(self._periodic(task, interval)))
        return _AsyncioTask(asyncio.run_coroutine_threadsafe(self._periodic(task, interval), loop))
