"""Script loading: watch sets, filesystem changes, scheduling and events.

The reload engine itself lives in :mod:`hotscripts.loader.engine`.
"""

from hotscripts.loader.events import CycleResult, EventType, LoaderEvent
from hotscripts.loader.scheduling import (
    AsyncioLoadingScheduler,
    ThreadLoadingScheduler,
    loop_executor,
    pool_executor,
    run_immediately,
)
from hotscripts.loader.watcher import ChangeQueue, ChangeType, FileChange, WatchdogChangeSource
from hotscripts.loader.watchset import DelegateWatchSet, WatchSet

__all__ = [
    "AsyncioLoadingScheduler",
    "ChangeQueue",
    "ChangeType",
    "CycleResult",
    "DelegateWatchSet",
    "EventType",
    "FileChange",
    "LoaderEvent",
    "ThreadLoadingScheduler",
    "WatchSet",
    "WatchdogChangeSource",
    "loop_executor",
    "pool_executor",
    "run_immediately",
]
