"""Named value cells shared between scripts.

Exports outlive the scripts that fill them, so a reloaded script can pick
up state its previous instance left behind. Each export has its own
read/write lock; independent exports never block each other.
"""

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Generic, TypeVar

T = TypeVar("T")


class ReadWriteLock:
    """Many readers or one writer. Writers are preferred once waiting.

    Reentrant per thread: a reader may read again, and the writer may read
    or write again while it holds the lock. Upgrading a read to a write is
    refused.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers: dict[int, int] = {}
        self._writer: int | None = None
        self._write_depth = 0
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        me = threading.get_ident()
        with self._cond:
            if self._writer != me and me not in self._readers:
                while self._writer is not None or self._writers_waiting:
                    self._cond.wait()
            self._readers[me] = self._readers.get(me, 0) + 1
        try:
            yield
        finally:
            with self._cond:
                held = self._readers[me] - 1
                if held:
                    self._readers[me] = held
                else:
                    del self._readers[me]
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._write_depth += 1
            else:
                if me in self._readers:
                    raise RuntimeError("Cannot upgrade a read lock to a write lock")
                self._writers_waiting += 1
                try:
                    while self._writer is not None or self._readers:
                        self._cond.wait()
                finally:
                    self._writers_waiting -= 1
                self._writer = me
                self._write_depth = 1
        try:
            yield
        finally:
            with self._cond:
                self._write_depth -= 1
                if not self._write_depth:
                    self._writer = None
                    self._cond.notify_all()


class Pointer(Generic[T]):
    """Stable indirection to an export's current value.

    Calling the pointer reads the export each time; it never holds a value
    itself, so it keeps working across ``put`` calls.
    """

    __slots__ = ("_export",)

    def __init__(self, export: "Export[T]"):
        self._export = export

    @property
    def export(self) -> "Export[T]":
        return self._export

    def get(self) -> T | None:
        return self._export.get()

    def __call__(self) -> T | None:
        return self._export.get()

    def __repr__(self) -> str:
        return f"Pointer({self._export.name!r})"


class Export(Generic[T]):
    """A lock-protected, optionally empty value cell."""

    def __init__(self, name: str):
        self._name = name
        self._lock = ReadWriteLock()
        self._value: T | None = None
        self._pointer: Pointer[T] | None = None
        self._pointer_lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    def pointer(self) -> Pointer[T]:
        with self._pointer_lock:
            if self._pointer is None:
                self._pointer = Pointer(self)
            return self._pointer

    def get(self, default: T | None = None) -> T | None:
        """Current value, or ``default`` if the export is empty."""
        with self._lock.read():
            value = self._value
        return value if value is not None else default

    def put(self, value: T) -> "Export[T]":
        with self._lock.write():
            self._value = value
        return self

    def put_if_absent(self, value: T) -> "Export[T]":
        with self._lock.write():
            if self._value is None:
                self._value = value
        return self

    def compute_if_absent(self, supplier: Callable[[], T]) -> "Export[T]":
        """Fill the export from ``supplier`` if it is empty.

        The supplier runs under the write lock, so it is called at most once
        for concurrent callers. It may read or write this export itself.
        """
        with self._lock.write():
            if self._value is None:
                self._value = supplier()
        return self

    def has_value(self) -> bool:
        with self._lock.read():
            return self._value is not None

    def clear(self) -> None:
        with self._lock.write():
            self._value = None

    def __repr__(self) -> str:
        return f"Export({self._name!r})"
