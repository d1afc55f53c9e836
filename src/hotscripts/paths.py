"""Path identity helpers.

Every trackable file is identified by a normalized POSIX path relative to
the environment root, so ``lib/util.py``, ``./lib/util.py`` and
``/abs/root/lib/util.py`` all compare equal.
"""

import os
import posixpath
from pathlib import Path, PurePosixPath


def normalize(path: str | Path | PurePosixPath, root: Path | None = None) -> PurePosixPath:
    """Normalize a path into a root-relative identity key.

    Args:
        path: Path as given by the host or a script.
        root: Environment root. Required to relativize absolute paths.

    Returns:
        Normalized relative path.

    Raises:
        ValueError: If the path is empty or escapes the root.
    """
    raw = str(path).replace("\\", "/")
    if not raw:
        raise ValueError("Empty script path")

    if posixpath.isabs(raw) or Path(raw).is_absolute():
        if root is None:
            raise ValueError(f"Absolute path {raw} given without a root directory")
        try:
            raw = Path(os.path.normpath(raw)).relative_to(os.path.normpath(os.path.abspath(root))).as_posix()
        except ValueError:
            raise ValueError(f"Path {path} is outside of {root}") from None

    normalized = posixpath.normpath(raw)
    if normalized == "." or normalized == ".." or normalized.startswith("../"):
        raise ValueError(f"Path {path} does not name a file inside the root")

    return PurePosixPath(normalized)


def resolve(root: Path, path: PurePosixPath) -> Path:
    """Resolve a relative identity key against the environment root."""
    return root / Path(*path.parts)


def display(path: PurePosixPath) -> str:
    """Format a path for log output."""
    return path.as_posix()
