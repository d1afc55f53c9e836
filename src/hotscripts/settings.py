"""Environment settings.

Settings can be built in code, loaded from the ``[hotscripts]`` table of a
TOML file, and layered: a controller's defaults are merged with each
environment's own settings, the explicitly set fields of the latter
winning and bindings accumulating.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, Final

import tomli
from pydantic import BaseModel, ConfigDict, Field

from hotscripts.errors import SettingsError
from hotscripts.interpreter import Interpreter, PythonInterpreter
from hotscripts.loader.scheduling import (
    LoadingScheduler,
    RunExecutor,
    ThreadLoadingScheduler,
    run_immediately,
)

logger = logging.getLogger(__name__)

DEFAULT_INIT_SCRIPT: Final = "init.py"
DEFAULT_POLL_INTERVAL: Final = 1.0
SETTINGS_TABLE: Final = "hotscripts"

# Keys a settings file may set; the rest only make sense in code.
FILE_KEYS: Final = frozenset(
    {"init_script", "poll_interval", "default_imports", "history_size", "use_polling_observer"}
)


class EnvironmentSettings(BaseModel):
    """Configuration for one script environment."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True, extra="forbid")

    init_script: str = DEFAULT_INIT_SCRIPT
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    bindings: tuple[Callable[..., Any], ...] = ()
    default_imports: tuple[str, ...] = ()
    run_executor: Callable[..., Any] | None = None
    load_scheduler: Any = None
    interpreter: Any = None
    history_size: int = Field(default=50, ge=0)
    use_polling_observer: bool = False

    def get_run_executor(self) -> RunExecutor:
        return self.run_executor or run_immediately

    def get_load_scheduler(self) -> LoadingScheduler:
        return self.load_scheduler or ThreadLoadingScheduler()

    def get_interpreter(self) -> Interpreter:
        return self.interpreter or PythonInterpreter()

    def merged_with(self, other: "EnvironmentSettings") -> "EnvironmentSettings":
        """Overlay the fields ``other`` set explicitly onto these settings.

        Bindings and default imports accumulate instead of being replaced.
        """
        values = {name: getattr(self, name) for name in type(self).model_fields}
        for name in other.model_fields_set:
            if name == "bindings":
                values["bindings"] = self.bindings + other.bindings
            elif name == "default_imports":
                values["default_imports"] = tuple(dict.fromkeys(self.default_imports + other.default_imports))
            else:
                values[name] = getattr(other, name)
        return type(self).model_construct(
            _fields_set=self.model_fields_set | other.model_fields_set,
            **values,
        )

    def with_bindings(self, *suppliers: Callable[..., Any]) -> "EnvironmentSettings":
        return self.merged_with(EnvironmentSettings(bindings=suppliers))


def load_settings(path: str | Path) -> EnvironmentSettings:
    """Read settings from the ``[hotscripts]`` table of a TOML file.

    Raises:
        SettingsError: If the file can't be read, isn't valid TOML, or sets
            keys that can't come from a file.
        pydantic.ValidationError: If a value is out of range.
    """
    path = Path(path)
    try:
        with path.open("rb") as f:
            data = tomli.load(f)
    except OSError as e:
        raise SettingsError(path, str(e)) from e
    except tomli.TOMLDecodeError as e:
        raise SettingsError(path, f"invalid TOML: {e}") from e

    table = data.get(SETTINGS_TABLE, {})
    if not isinstance(table, dict):
        raise SettingsError(path, f"[{SETTINGS_TABLE}] must be a table")

    unknown = set(table) - FILE_KEYS
    if unknown:
        raise SettingsError(path, f"unsupported keys: {', '.join(sorted(unknown))}")

    if "default_imports" in table:
        table["default_imports"] = tuple(table["default_imports"])

    logger.debug(f"Loaded settings from {path}: {sorted(table)}")
    return EnvironmentSettings(**table)
