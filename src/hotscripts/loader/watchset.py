"""Watch sets: the paths an environment has been asked to track.

A path stays watched while at least one owner holds it. Scripts get a
:class:`DelegateWatchSet` so their own registrations can be reverted when
they terminate, without touching paths other owners registered.
"""

import logging
import threading
from collections.abc import Iterable, Iterator
from pathlib import Path, PurePosixPath
from typing import Final

from hotscripts import paths

logger = logging.getLogger(__name__)

ROOT_OWNER: Final = "<root>"


class WatchSet:
    """Reference-counted set of watched paths.

    Each path maps to the owners holding it. ``watch``/``unwatch`` are
    idempotent per owner.
    """

    def __init__(self, root: Path | None = None):
        self.root = root
        self._owners: dict[PurePosixPath, set[object]] = {}
        self._lock = threading.RLock()

    def _key(self, path: str | Path | PurePosixPath) -> PurePosixPath:
        return paths.normalize(path, self.root)

    def watch(self, path: str | Path | PurePosixPath, owner: object = ROOT_OWNER) -> bool:
        """Register ``path`` for ``owner``.

        Returns:
            True if the owner did not already hold the path.
        """
        key = self._key(path)
        with self._lock:
            owners = self._owners.setdefault(key, set())
            if owner in owners:
                return False
            owners.add(owner)
            return True

    def unwatch(self, path: str | Path | PurePosixPath, owner: object = ROOT_OWNER) -> bool:
        """Drop ``owner``'s registration of ``path``, if it has one.

        Returns:
            True if a registration was removed.
        """
        key = self._key(path)
        with self._lock:
            owners = self._owners.get(key)
            if not owners or owner not in owners:
                return False
            owners.discard(owner)
            if not owners:
                del self._owners[key]
            return True

    def watch_all(self, items: Iterable[str | Path | PurePosixPath], owner: object = ROOT_OWNER) -> None:
        for path in items:
            self.watch(path, owner)

    def unwatch_all(self, items: Iterable[str | Path | PurePosixPath], owner: object = ROOT_OWNER) -> None:
        for path in items:
            self.unwatch(path, owner)

    def owners(self, path: str | Path | PurePosixPath) -> frozenset[object]:
        """Owners currently holding ``path``."""
        with self._lock:
            return frozenset(self._owners.get(self._key(path), ()))

    def snapshot(self) -> frozenset[PurePosixPath]:
        """Consistent copy of the watched paths."""
        with self._lock:
            return frozenset(self._owners)

    def clear(self) -> None:
        with self._lock:
            self._owners.clear()

    def delegate(self) -> "DelegateWatchSet":
        """Create an owner view whose registrations can be reverted together."""
        return DelegateWatchSet(self)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str | Path | PurePosixPath):
            return False
        try:
            key = self._key(path)
        except ValueError:
            return False
        with self._lock:
            return key in self._owners

    def __len__(self) -> int:
        with self._lock:
            return len(self._owners)

    def __iter__(self) -> Iterator[PurePosixPath]:
        return iter(self.snapshot())


class DelegateWatchSet:
    """A watch set view that tracks the paths added through it.

    Calls are forwarded to the parent with this delegate as the owner.
    :meth:`close` reverts exactly those registrations.
    """

    def __init__(self, parent: WatchSet):
        self.parent = parent
        self._paths: set[PurePosixPath] = set()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def root(self) -> Path | None:
        return self.parent.root

    @property
    def paths(self) -> frozenset[PurePosixPath]:
        """Paths currently held by this delegate."""
        with self._lock:
            return frozenset(self._paths)

    def watch(self, path: str | Path | PurePosixPath) -> bool:
        key = paths.normalize(path, self.parent.root)
        with self._lock:
            if self._closed:
                logger.warning(f"Ignoring watch of {paths.display(key)} on a closed loader")
                return False
            if key in self._paths:
                return False
            self._paths.add(key)
        self.parent.watch(key, owner=self)
        return True

    def unwatch(self, path: str | Path | PurePosixPath) -> bool:
        key = paths.normalize(path, self.parent.root)
        with self._lock:
            if key not in self._paths:
                return False
            self._paths.discard(key)
        self.parent.unwatch(key, owner=self)
        return True

    def watch_all(self, items: Iterable[str | Path | PurePosixPath]) -> None:
        for path in items:
            self.watch(path)

    def unwatch_all(self, items: Iterable[str | Path | PurePosixPath]) -> None:
        for path in items:
            self.unwatch(path)

    def __contains__(self, path: object) -> bool:
        return path in self.parent

    def close(self) -> None:
        """Revert every registration made through this delegate."""
        with self._lock:
            held = list(self._paths)
            self._paths.clear()
            self._closed = True
        self.parent.unwatch_all(held, owner=self)
