"""Values shared between scripts and across reloads."""

from hotscripts.exports.export import Export, Pointer, ReadWriteLock
from hotscripts.exports.registry import ExportRegistry

__all__ = [
    "Export",
    "ExportRegistry",
    "Pointer",
    "ReadWriteLock",
]
