"""A single loaded script.

A script is constructed by the loader when it decides to load or reload a
path, run once, and terminated exactly once, either when its file goes
away or when a newer instance replaces it. Reloading never re-runs an old
instance.
"""

import importlib
import logging
import threading
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from hotscripts import paths
from hotscripts.bindings import BindingsBuilder
from hotscripts.closable import CompositeCloser
from hotscripts.script_logger import ScriptLogger, for_script

if TYPE_CHECKING:
    from hotscripts.loader.engine import ScriptLoader

logger = logging.getLogger(__name__)


class ScriptState(str, Enum):
    """Script lifecycle states."""

    CONSTRUCTED = "constructed"
    RUNNING = "running"
    TERMINATED = "terminated"


class Script:
    """One loaded script unit.

    Attributes:
        name: File name without the interpreter's extension.
        path: Root-relative identity of the script file.
        loader: Watch set view; paths the script watches through it are
            unwatched when the script terminates.
        closables: Resources released when the script terminates.
        logger: Logger prefixing messages with the script name.
    """

    def __init__(self, environment_loader: "ScriptLoader", path: PurePosixPath):
        self.environment_loader = environment_loader
        self.path = path
        self.root: Path = environment_loader.root

        extension = environment_loader.interpreter.extension
        file_name = path.name
        if extension and file_name.endswith(extension) and file_name != extension:
            file_name = file_name[: -len(extension)]
        self.name = file_name

        self.loader = environment_loader.watch_set.delegate()
        self.closables = CompositeCloser()
        self.logger: ScriptLogger = for_script(self.name)

        self._depends: set[PurePosixPath] = {path}
        self._depends_lock = threading.Lock()
        self._state = ScriptState.CONSTRUCTED
        self._state_lock = threading.Lock()

    @property
    def state(self) -> ScriptState:
        return self._state

    @property
    def file(self) -> Path:
        return paths.resolve(self.root, self.path)

    @property
    def dependencies(self) -> frozenset[PurePosixPath]:
        with self._depends_lock:
            return frozenset(self._depends)

    def depend(self, path: str | Path | PurePosixPath) -> None:
        """Declare that this script depends on ``path``.

        When ``path`` changes, this script is reloaded. Self references are
        ignored.
        """
        key = paths.normalize(path, self.root)
        if key == self.path:
            return
        with self._depends_lock:
            self._depends.add(key)

    def _build_bindings(self) -> dict:
        environment_loader = self.environment_loader
        builder = BindingsBuilder(environment_loader.interpreter.create_bindings())
        builder.put("loader", self.loader)
        builder.put("closables", self.closables)
        builder.put("exports", environment_loader.exports)
        builder.put("logger", self.logger)
        builder.put("depend", self.depend)
        builder.put("script", self)
        builder.put("cwd", paths.display(self.path))
        builder.put("rsd", self.root.as_posix().rstrip("/") + "/")

        for module_name in environment_loader.settings.default_imports:
            builder.put(module_name.rsplit(".", 1)[-1], importlib.import_module(module_name))

        for supplier in environment_loader.settings.bindings:
            supplier(self, builder)

        return builder.build()

    def run(self) -> None:
        """Evaluate the script once.

        Exceptions raised by the script are logged and swallowed so they
        never affect sibling scripts.

        Raises:
            RuntimeError: If the script is already running or has run.
        """
        with self._state_lock:
            if self._state is ScriptState.TERMINATED:
                logger.debug(f"Skipping run of terminated script {paths.display(self.path)}")
                return
            if self._state is ScriptState.RUNNING:
                raise RuntimeError(f"Script {paths.display(self.path)} has already been run")
            self._state = ScriptState.RUNNING

        try:
            bindings = self._build_bindings()
            self.environment_loader.interpreter.evaluate(self, self.file, bindings)
        except Exception:
            self.logger.exception(f"Exception occurred whilst loading script ({paths.display(self.path)})")

    def close(self) -> None:
        """Release everything this script accumulated.

        Watches made through :attr:`loader` are reverted first, then
        :attr:`closables` are closed. Later calls do nothing.

        Raises:
            CompositeClosingError: If any resource failed to close.
        """
        with self._state_lock:
            if self._state is ScriptState.TERMINATED:
                return
            self._state = ScriptState.TERMINATED

        CompositeCloser().bind(self.closables).bind(self.loader).close()

    def __repr__(self) -> str:
        return f"Script({paths.display(self.path)!r}, state={self._state.value})"
