"""Script environments, their registries and script units."""

from hotscripts.environment.registry import ScriptRegistry
from hotscripts.environment.script import Script, ScriptState
from hotscripts.environment.environment import ScriptEnvironment

__all__ = [
    "Script",
    "ScriptEnvironment",
    "ScriptRegistry",
    "ScriptState",
]
