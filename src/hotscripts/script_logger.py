"""Per-script loggers."""

import logging
from collections.abc import MutableMapping
from typing import Any

SCRIPT_LOGGER_NAME = "hotscripts.scripts"


class ScriptLogger(logging.LoggerAdapter):
    """Logger adapter that prefixes every message with ``[script-name]``."""

    def __init__(self, logger: logging.Logger, script_name: str):
        super().__init__(logger, {"script": script_name})
        self.script_name = script_name

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.script_name}] {msg}", kwargs

    def warn(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.warning(msg, *args, **kwargs)


def for_script(script_name: str, base: logging.Logger | None = None) -> ScriptLogger:
    return ScriptLogger(base or logging.getLogger(SCRIPT_LOGGER_NAME), script_name)
