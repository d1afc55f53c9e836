"""Exception types raised by hotscripts."""

from pathlib import Path


class HotScriptsError(Exception):
    """Base class for hotscripts errors."""


class EnvironmentExistsError(HotScriptsError):
    """Raised when an environment is requested for a root that already has one."""

    def __init__(self, root: Path):
        self.root = root
        super().__init__(f"Already an environment setup at path {root}")


class SettingsError(HotScriptsError):
    """Raised when a settings file cannot be read or is malformed."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid settings file {path}: {reason}")


class CompositeClosingError(HotScriptsError):
    """Raised after closing a composite resource if any member failed.

    Every member is closed before this is raised; ``errors`` holds the
    failures in the order they happened.
    """

    def __init__(self, errors: list[BaseException]):
        self.errors = list(errors)
        summary = ", ".join(f"{type(e).__name__}: {e}" for e in self.errors)
        super().__init__(f"{len(self.errors)} error(s) while closing: {summary}")
