"""Registry of exports for one environment."""

import logging
import threading
from typing import Any

from hotscripts.exports.export import Export, Pointer

logger = logging.getLogger(__name__)


class ExportRegistry:
    """Namespace of exports, created on first access."""

    def __init__(self) -> None:
        self._exports: dict[str, Export[Any]] = {}
        self._lock = threading.Lock()

    def get(self, name: str) -> Export[Any]:
        """Get the export called ``name``, creating an empty one if needed."""
        with self._lock:
            export = self._exports.get(name)
            if export is None:
                export = Export(name)
                self._exports[name] = export
                logger.debug(f"Created export {name}")
            return export

    def pointer(self, name: str) -> Pointer[Any]:
        return self.get(name).pointer()

    def remove(self, name: str) -> None:
        """Forget an export. Existing references keep their cell."""
        with self._lock:
            self._exports.pop(name, None)

    def all(self) -> list[Export[Any]]:
        with self._lock:
            return list(self._exports.values())

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._exports

    def __len__(self) -> int:
        with self._lock:
            return len(self._exports)
