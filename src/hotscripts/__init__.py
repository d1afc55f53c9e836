"""hotscripts: hot-reloading script environments.

Watches a directory of scripts, loads them as they appear, reloads them
(and everything depending on them) when they change, and unloads them when
they disappear.
"""

__version__ = "0.1.0"

from hotscripts.bindings import BindingsBuilder, from_mapping, single_binding
from hotscripts.closable import CompositeCloser
from hotscripts.controller import ScriptController
from hotscripts.environment import Script, ScriptEnvironment, ScriptRegistry, ScriptState
from hotscripts.errors import (
    CompositeClosingError,
    EnvironmentExistsError,
    HotScriptsError,
    SettingsError,
)
from hotscripts.exports import Export, ExportRegistry, Pointer
from hotscripts.interpreter import Interpreter, PythonInterpreter
from hotscripts.loader.engine import ScriptLoader
from hotscripts.settings import EnvironmentSettings, load_settings

__all__ = [
    "BindingsBuilder",
    "CompositeCloser",
    "CompositeClosingError",
    "EnvironmentExistsError",
    "EnvironmentSettings",
    "Export",
    "ExportRegistry",
    "HotScriptsError",
    "Interpreter",
    "Pointer",
    "PythonInterpreter",
    "Script",
    "ScriptController",
    "ScriptEnvironment",
    "ScriptLoader",
    "ScriptRegistry",
    "ScriptState",
    "SettingsError",
    "from_mapping",
    "load_settings",
    "single_binding",
]
