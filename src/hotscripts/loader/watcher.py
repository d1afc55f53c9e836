"""Filesystem change sources for the reload cycle.

Changes are queued as they arrive and drained by the loader once per
cycle. Draining never blocks: it returns whatever is pending.
"""

import fnmatch
import logging
import os
import queue
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

logger = logging.getLogger(__name__)

# Glob patterns matched against each component of the root-relative path.
DEFAULT_IGNORE_PATTERNS = (
    "__pycache__",
    "*.pyc",
    ".git",
    ".venv",
    "*.swp",
    "*~",
)


class ChangeType(str, Enum):
    """Kind of filesystem change."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass
class FileChange:
    """Represents a detected file change."""

    path: Path
    change_type: ChangeType
    is_directory: bool = False
    detected_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class ChangeQueue:
    """Thread-safe queue of pending changes.

    Producers call :meth:`push`; the loader calls :meth:`drain`.
    Used directly when the host feeds changes itself.
    """

    def __init__(self) -> None:
        self._pending: queue.SimpleQueue[FileChange] = queue.SimpleQueue()

    def push(self, change: FileChange) -> None:
        self._pending.put(change)

    def drain(self) -> list[FileChange]:
        """Return all pending changes without waiting."""
        changes: list[FileChange] = []
        while True:
            try:
                changes.append(self._pending.get_nowait())
            except queue.Empty:
                return changes

    def close(self) -> None:
        self.drain()


class _QueueingHandler(FileSystemEventHandler):
    """Watchdog handler translating events into :class:`FileChange` items."""

    def __init__(self, sink: ChangeQueue, root: Path, ignore_patterns: tuple[str, ...]):
        self.sink = sink
        self.root = os.path.abspath(root)
        self.ignore_patterns = ignore_patterns

    def _should_ignore(self, path: str) -> bool:
        relative = os.path.relpath(os.path.abspath(path), self.root)
        if relative in (os.curdir, os.pardir) or relative.startswith(os.pardir + os.sep):
            return False
        return any(
            fnmatch.fnmatchcase(part, pattern)
            for part in Path(relative).parts
            for pattern in self.ignore_patterns
        )

    def _emit(self, raw_path: str | bytes, change_type: ChangeType, is_directory: bool) -> None:
        path = os.fsdecode(raw_path)
        if self._should_ignore(path):
            return
        self.sink.push(FileChange(path=Path(path), change_type=change_type, is_directory=is_directory))

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type == "created":
            self._emit(event.src_path, ChangeType.CREATED, event.is_directory)
        elif event.event_type == "modified":
            # directory mtime bumps accompany every child change
            if not event.is_directory:
                self._emit(event.src_path, ChangeType.MODIFIED, False)
        elif event.event_type == "deleted":
            self._emit(event.src_path, ChangeType.DELETED, event.is_directory)
        elif event.event_type == "moved":
            self._emit(event.src_path, ChangeType.DELETED, event.is_directory)
            self._emit(event.dest_path, ChangeType.CREATED, event.is_directory)


class WatchdogChangeSource(ChangeQueue):
    """Watches a directory tree recursively with a watchdog observer.

    If the observer thread dies (for example because the watched directory
    was removed and recreated), the next :meth:`drain` logs it and arms a
    fresh observer.
    """

    def __init__(
        self,
        directory: str | Path,
        use_polling: bool = False,
        ignore_patterns: tuple[str, ...] | None = None,
    ):
        super().__init__()
        self.directory = Path(directory)
        self.use_polling = use_polling
        self.ignore_patterns = ignore_patterns if ignore_patterns is not None else DEFAULT_IGNORE_PATTERNS
        self._observer: Observer | PollingObserver | None = None
        self._lock = threading.Lock()
        self._closed = False
        self._arm()

    def _arm(self) -> None:
        observer = PollingObserver() if self.use_polling else Observer()
        handler = _QueueingHandler(self, self.directory, self.ignore_patterns)
        try:
            observer.schedule(handler, str(self.directory), recursive=True)
            observer.start()
        except OSError as e:
            logger.warning(f"[LOADER] Unable to watch {self.directory}: {e}")
            self._observer = None
            return
        self._observer = observer
        logger.debug(f"[LOADER] Watching {self.directory}")

    @property
    def is_alive(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def drain(self) -> list[FileChange]:
        with self._lock:
            if not self._closed and not self.is_alive:
                if self._observer is not None:
                    logger.warning(f"[LOADER] Watch handle is no longer valid: {self.directory}")
                    self._stop_observer()
                self._arm()
        return super().drain()

    def _stop_observer(self) -> None:
        observer = self._observer
        self._observer = None
        if observer is None:
            return
        try:
            observer.stop()
            if observer.is_alive():
                observer.join(timeout=5.0)
        except RuntimeError as e:
            logger.debug(f"Error stopping observer: {e}")

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._stop_observer()
        super().close()
