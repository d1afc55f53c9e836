"""A script environment bound to one root directory."""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from hotscripts.closable import CompositeCloser
from hotscripts.environment.registry import ScriptRegistry
from hotscripts.exports import ExportRegistry
from hotscripts.loader.engine import ScriptLoader
from hotscripts.loader.scheduling import ScheduledTask
from hotscripts.loader.watcher import ChangeQueue
from hotscripts.settings import EnvironmentSettings

if TYPE_CHECKING:
    from hotscripts.controller import ScriptController

logger = logging.getLogger(__name__)


class ScriptEnvironment:
    """Owns the loader, registry and exports for a root directory.

    On construction the init script is watched, the loader preloads until
    the watch set settles, and a periodic reload cycle is scheduled.
    """

    def __init__(
        self,
        directory: str | Path,
        settings: EnvironmentSettings | None = None,
        controller: "ScriptController | None" = None,
        changes: ChangeQueue | None = None,
    ):
        self.directory = Path(directory).resolve()
        if not self.directory.is_dir():
            raise NotADirectoryError(f"Script directory does not exist: {self.directory}")

        self.settings = settings or EnvironmentSettings()
        self.controller = controller
        self.registry = ScriptRegistry()
        self.exports = ExportRegistry()
        self.loader = ScriptLoader(
            self.directory,
            settings=self.settings,
            registry=self.registry,
            exports=self.exports,
            changes=changes,
        )
        self._polling_task: ScheduledTask | None = None
        self._closed = False

        try:
            self.loader.watch(self.settings.init_script)
            iterations = self.loader.preload()
            logger.info(
                f"Environment ready at {self.directory}: {len(self.registry)} scripts loaded "
                f"after {iterations} preload iteration(s)"
            )

            self._polling_task = self.settings.get_load_scheduler().schedule_at_fixed_rate(
                self.loader.run, self.settings.poll_interval
            )
        except BaseException:
            # LIFO: the loader and its observer stop before the scripts
            CompositeCloser().bind(self.registry).bind(self.loader).close_and_report(logger)
            raise

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Cancel polling, stop watching and terminate every script."""
        if self._closed:
            return
        self._closed = True

        closer = CompositeCloser()
        closer.bind(self.registry)
        closer.bind(self.loader)
        if self._polling_task is not None:
            closer.bind(self._polling_task)
        # LIFO: polling stops first, then the loader, then the scripts
        closer.close()
        logger.info(f"Environment closed at {self.directory}")

    def __enter__(self) -> "ScriptEnvironment":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ScriptEnvironment({str(self.directory)!r})"
