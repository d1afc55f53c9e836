"""Controller managing script environments, one per root directory."""

import logging
import threading
from collections.abc import Iterable
from pathlib import Path

from hotscripts.closable import CompositeCloser
from hotscripts.environment import ScriptEnvironment
from hotscripts.errors import EnvironmentExistsError
from hotscripts.loader.watcher import ChangeQueue
from hotscripts.settings import EnvironmentSettings

logger = logging.getLogger(__name__)


class ScriptController:
    """Creates and tears down script environments.

    ``default_settings`` are merged under the settings given for each
    environment.
    """

    def __init__(
        self,
        default_settings: EnvironmentSettings | None = None,
        directories: Iterable[str | Path] = (),
    ):
        self.default_settings = default_settings or EnvironmentSettings()
        self._environments: dict[Path, ScriptEnvironment] = {}
        self._lock = threading.RLock()

        for directory in directories:
            self.setup_new_environment(directory)

    @property
    def environments(self) -> list[ScriptEnvironment]:
        with self._lock:
            return list(self._environments.values())

    def get_environment(self, directory: str | Path) -> ScriptEnvironment | None:
        with self._lock:
            return self._environments.get(Path(directory).resolve())

    def setup_new_environment(
        self,
        directory: str | Path,
        settings: EnvironmentSettings | None = None,
        changes: ChangeQueue | None = None,
    ) -> ScriptEnvironment:
        """Create an environment for ``directory``.

        Raises:
            EnvironmentExistsError: If the directory already has an environment.
        """
        root = Path(directory).resolve()
        merged = self.default_settings.merged_with(settings) if settings else self.default_settings

        with self._lock:
            if root in self._environments:
                raise EnvironmentExistsError(root)
            environment = ScriptEnvironment(root, merged, controller=self, changes=changes)
            self._environments[root] = environment

        logger.info(f"Environment registered for {root}")
        return environment

    def shutdown(self) -> None:
        """Close every environment, reporting failures without stopping."""
        with self._lock:
            environments = list(self._environments.values())
            self._environments.clear()
        CompositeCloser().bind_all(environments).close_and_report(logger)

    def __enter__(self) -> "ScriptController":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()
