"""Composite resource closing.

A :class:`CompositeCloser` collects release actions and runs them
last-in-first-out. A failing member never stops the others from being
closed; failures are gathered and raised together afterwards.
"""

import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any, Protocol, runtime_checkable

from hotscripts.errors import CompositeClosingError

logger = logging.getLogger(__name__)


@runtime_checkable
class Closeable(Protocol):
    """Anything with a ``close()`` method."""

    def close(self) -> Any: ...


class CompositeCloser:
    """An ordered list of release actions executed LIFO.

    Members are objects with a ``close()`` method or zero-argument callables.
    The instance can be reused: each :meth:`close` empties it.
    Binding the same member twice closes it twice.
    """

    def __init__(self) -> None:
        self._members: list[Closeable | Callable[[], Any]] = []
        self._lock = threading.Lock()

    def bind(self, member: Closeable | Callable[[], Any]) -> "CompositeCloser":
        """Bind a closeable or a release callback.

        Raises:
            TypeError: If the member is neither closeable nor callable.
        """
        if member is None:
            raise TypeError("Cannot bind None")
        if not isinstance(member, Closeable) and not callable(member):
            raise TypeError(f"{member!r} has no close() method and is not callable")
        with self._lock:
            self._members.append(member)
        return self

    def bind_all(self, members: Iterable[Closeable | Callable[[], Any] | None]) -> "CompositeCloser":
        """Bind every member, skipping ``None`` values."""
        for member in members:
            if member is None:
                continue
            self.bind(member)
        return self

    def __len__(self) -> int:
        return len(self._members)

    def close(self) -> None:
        """Close all members in reverse bind order.

        Raises:
            CompositeClosingError: If one or more members failed.
        """
        with self._lock:
            members = self._members
            self._members = []

        errors: list[BaseException] = []
        for member in reversed(members):
            try:
                if isinstance(member, Closeable):
                    member.close()
                else:
                    member()
            except CompositeClosingError as e:
                errors.extend(e.errors)
            except Exception as e:
                errors.append(e)

        if errors:
            raise CompositeClosingError(errors)

    def close_silently(self) -> None:
        """Close, discarding any failures."""
        try:
            self.close()
        except CompositeClosingError as e:
            logger.debug(f"Ignored {len(e.errors)} error(s) while closing")

    def close_and_report(self, log: logging.Logger | logging.LoggerAdapter | None = None) -> None:
        """Close, logging every failure instead of raising."""
        try:
            self.close()
        except CompositeClosingError as e:
            target = log or logger
            for error in e.errors:
                target.error(
                    "Exception whilst closing resource: %s: %s",
                    type(error).__name__,
                    error,
                    exc_info=error,
                )
