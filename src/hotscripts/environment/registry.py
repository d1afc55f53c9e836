"""The authoritative map of loaded scripts."""

import logging
import threading
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from hotscripts.closable import CompositeCloser

if TYPE_CHECKING:
    from hotscripts.environment.script import Script

logger = logging.getLogger(__name__)


class ScriptRegistry:
    """Path -> live script, one entry per path.

    Mutated by the loader inside a cycle; readers get snapshots.
    """

    def __init__(self) -> None:
        self._scripts: dict[PurePosixPath, "Script"] = {}
        self._lock = threading.Lock()

    def register(self, script: "Script") -> "Script | None":
        """Register a script, replacing any entry for the same path.

        Returns:
            The script that was replaced, if any.
        """
        with self._lock:
            previous = self._scripts.get(script.path)
            self._scripts[script.path] = script
            return previous

    def unregister(self, script: "Script") -> bool:
        """Remove ``script`` if it is the live entry for its path."""
        with self._lock:
            if self._scripts.get(script.path) is not script:
                return False
            del self._scripts[script.path]
            return True

    def get(self, path: PurePosixPath) -> "Script | None":
        with self._lock:
            return self._scripts.get(path)

    def all(self) -> dict[PurePosixPath, "Script"]:
        """Snapshot of every live entry."""
        with self._lock:
            return dict(self._scripts)

    def dependents_of(self, path: PurePosixPath) -> list["Script"]:
        """Scripts whose dependency set contains ``path``.

        Scans every entry; script counts are small.
        """
        return [script for script in self.all().values() if path in script.dependencies]

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._scripts

    def __len__(self) -> int:
        with self._lock:
            return len(self._scripts)

    def close(self) -> None:
        """Close and drop every registered script, reporting failures."""
        with self._lock:
            scripts = list(self._scripts.values())
            self._scripts.clear()
        logger.debug(f"Closing {len(scripts)} registered scripts")
        CompositeCloser().bind_all(scripts).close_and_report(logger)
