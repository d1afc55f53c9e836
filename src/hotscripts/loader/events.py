"""Loader events and cycle results."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import PurePosixPath
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Types of events emitted by a loader."""

    SCRIPT_LOADED = "script.loaded"
    SCRIPT_RELOADED = "script.reloaded"
    SCRIPT_UNLOADED = "script.unloaded"
    CYCLE_COMPLETED = "cycle.completed"


class LoaderEvent(BaseModel):
    """A loader event delivered to listeners."""

    id: str = Field(default_factory=lambda: uuid4().hex[:12])
    type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    data: dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


@dataclass
class CycleResult:
    """What one reload cycle did."""

    loaded: list[PurePosixPath] = field(default_factory=list)
    reloaded: list[PurePosixPath] = field(default_factory=list)
    unloaded: list[PurePosixPath] = field(default_factory=list)
    preload: bool = False
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    ended_at: datetime | None = None

    @property
    def changed(self) -> bool:
        return bool(self.loaded or self.reloaded or self.unloaded)

    @property
    def duration_seconds(self) -> float | None:
        if self.ended_at:
            return (self.ended_at - self.started_at).total_seconds()
        return None

    def summary(self) -> dict[str, Any]:
        return {
            "loaded": [p.as_posix() for p in self.loaded],
            "reloaded": [p.as_posix() for p in self.reloaded],
            "unloaded": [p.as_posix() for p in self.unloaded],
            "preload": self.preload,
        }


Listener = Callable[[LoaderEvent], Any]


class ListenerSet:
    """Callbacks notified of loader events.

    A failing listener is logged and never affects the cycle or the other
    listeners.
    """

    def __init__(self) -> None:
        self._callbacks: list[Listener] = []

    def add(self, callback: Listener) -> None:
        self._callbacks.append(callback)

    def remove(self, callback: Listener) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def __len__(self) -> int:
        return len(self._callbacks)

    def emit(self, event_type: EventType, data: dict[str, Any] | None = None) -> LoaderEvent | None:
        if not self._callbacks:
            return None
        event = LoaderEvent(type=event_type, data=data or {})
        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Listener error: {e}")
        return event
