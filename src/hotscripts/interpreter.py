"""Script interpreters.

The loader treats the interpreter as opaque: given a script file and its
bindings it evaluates the file, and any exception it raises is logged
against that script. :class:`PythonInterpreter` is the default and runs
Python source files with the bindings as module globals.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from hotscripts import paths

if TYPE_CHECKING:
    from hotscripts.environment.script import Script

logger = logging.getLogger(__name__)


class Interpreter(Protocol):
    """Capability to evaluate a script file."""

    extension: str

    def create_bindings(self) -> dict[str, Any]:
        """Fresh bindings mapping for one script run."""
        ...

    def evaluate(self, script: "Script", file: Path, bindings: dict[str, Any]) -> None:
        """Evaluate ``file`` with ``bindings``. Errors propagate to the caller."""
        ...


class PythonInterpreter:
    """Evaluates ``.py`` files with ``exec``.

    Adds a ``load(path)`` binding which evaluates another root-relative file
    into the same namespace and records it as a dependency of the script.
    """

    extension = ".py"

    def create_bindings(self) -> dict[str, Any]:
        # exec() inserts __builtins__ itself
        return {}

    def _exec_file(self, file: Path, bindings: dict[str, Any]) -> None:
        source = file.read_text(encoding="utf-8")
        code = compile(source, str(file), "exec")
        exec(code, bindings)

    def evaluate(self, script: "Script", file: Path, bindings: dict[str, Any]) -> None:
        def load(path: str) -> None:
            key = paths.normalize(path, script.root)
            script.depend(key)
            target = paths.resolve(script.root, key)
            previous = bindings.get("__file__")
            bindings["__file__"] = str(target)
            try:
                self._exec_file(target, bindings)
            finally:
                bindings["__file__"] = previous

        bindings["load"] = load
        bindings["__file__"] = str(file)
        bindings.setdefault("__name__", f"hotscripts.script.{script.name}")
        self._exec_file(file, bindings)
