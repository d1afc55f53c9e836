"""The reload cycle.

Each cycle reconciles three views of the world: the watch set (what should
be loaded), the registry (what is loaded) and the filesystem changes since
the last cycle. The outcome is a set of loads, reloads and unloads which is
applied to the registry under the cycle lock, followed by one unit of work
(terminate retired scripts, run new ones) handed to the run executor.

Flow:
1. Watched paths: exists and unregistered -> load; missing and registered -> unload
2. Registered paths no longer watched -> unload
3. Drain filesystem changes: deletes are provisional, creates/modifies (re)load
4. Dependency closure over reloaded and unloaded paths
5. Apply reloads, then loads, then unloads
6. Hand terminate + run work to the executor
"""

import functools
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath

from hotscripts import paths
from hotscripts.closable import CompositeCloser
from hotscripts.environment.registry import ScriptRegistry
from hotscripts.environment.script import Script
from hotscripts.exports import ExportRegistry
from hotscripts.loader.events import CycleResult, EventType, Listener, ListenerSet
from hotscripts.loader.watcher import ChangeQueue, ChangeType, FileChange, WatchdogChangeSource
from hotscripts.loader.watchset import ROOT_OWNER, WatchSet
from hotscripts.settings import EnvironmentSettings

logger = logging.getLogger(__name__)

DEFAULT_MAX_PRELOAD_ITERATIONS = 100


@dataclass
class CyclePlan:
    """Decisions gathered during one cycle. Ordered sets are dicts."""

    to_load: dict[PurePosixPath, None] = field(default_factory=dict)
    to_reload: dict[PurePosixPath, None] = field(default_factory=dict)
    to_unload: dict[PurePosixPath, Script] = field(default_factory=dict)
    try_unload: dict[PurePosixPath, None] = field(default_factory=dict)

    def is_queued(self, path: PurePosixPath) -> bool:
        return path in self.to_load or path in self.to_unload


class ScriptLoader:
    """Loads, reloads and unloads the scripts of one root directory.

    Cycles are strictly serialized: a trigger arriving while a cycle runs
    waits for it to finish.
    """

    def __init__(
        self,
        root: str | Path,
        settings: EnvironmentSettings | None = None,
        registry: ScriptRegistry | None = None,
        exports: ExportRegistry | None = None,
        changes: ChangeQueue | None = None,
    ):
        self.root = Path(root).resolve()
        self.settings = settings or EnvironmentSettings()
        self.interpreter = self.settings.get_interpreter()
        self.registry = registry if registry is not None else ScriptRegistry()
        self.exports = exports if exports is not None else ExportRegistry()
        self.watch_set = WatchSet(self.root)
        self.changes = (
            changes
            if changes is not None
            else WatchdogChangeSource(self.root, use_polling=self.settings.use_polling_observer)
        )
        self.listeners = ListenerSet()

        self._lock = threading.Lock()
        self._history: deque[CycleResult] = deque(maxlen=self.settings.history_size)
        self._closed = False

    # watch set, root owner

    def watch(self, path: str | Path | PurePosixPath) -> bool:
        return self.watch_set.watch(path, ROOT_OWNER)

    def unwatch(self, path: str | Path | PurePosixPath) -> bool:
        return self.watch_set.unwatch(path, ROOT_OWNER)

    def watch_all(self, items) -> None:
        self.watch_set.watch_all(items, ROOT_OWNER)

    def unwatch_all(self, items) -> None:
        self.watch_set.unwatch_all(items, ROOT_OWNER)

    # listeners & history

    def add_listener(self, callback: Listener) -> None:
        self.listeners.add(callback)

    def remove_listener(self, callback: Listener) -> None:
        self.listeners.remove(callback)

    def get_cycle_history(self, limit: int = 10) -> list[CycleResult]:
        """Recent cycles that changed something, oldest first."""
        if limit <= 0:
            return []
        return list(self._history)[-limit:]

    # cycle entry points

    def preload(self, max_iterations: int = DEFAULT_MAX_PRELOAD_ITERATIONS) -> int:
        """Cycle with synchronous execution until the watch set stops growing.

        Scripts run during preload can watch further paths; those are picked
        up by the next iteration, so an init script can pull in everything
        it needs before the environment is considered ready.

        Returns:
            Number of iterations run.
        """
        iterations = 0
        with self._lock:
            while True:
                before = len(self.watch_set)
                self._cycle(preload=True)
                iterations += 1
                after = len(self.watch_set)
                logger.debug(f"[LOADER] Preload iteration {iterations}: watch set {before} -> {after}")
                if after == before:
                    return iterations
                if iterations >= max_iterations:
                    logger.warning(
                        f"[LOADER] Preload stopped after {iterations} iterations without the watch set settling"
                    )
                    return iterations

    def run_cycle(self) -> CycleResult:
        """Run one reload cycle, handing script work to the run executor."""
        with self._lock:
            return self._cycle(preload=False)

    def run(self) -> None:
        """Timer entry point. Never raises."""
        if self._closed:
            return
        try:
            self.run_cycle()
        except Exception:
            logger.exception("[LOADER] Reload cycle failed")

    # cycle steps

    def _cycle(self, preload: bool) -> CycleResult:
        result = CycleResult(preload=preload)
        plan = CyclePlan()
        watched = self.watch_set.snapshot()

        self._check_watched(plan, watched)
        self._check_registry(plan, watched)
        self._check_filesystem(plan, watched)

        reload_queue = self._resolve_reload_queue(plan)

        to_terminate: list[Script] = []
        to_run: list[Script] = []

        # reloads first: replace each live instance with a fresh one
        for path in reload_queue:
            old_script = self.registry.get(path)
            if old_script is None:
                continue

            to_terminate.append(old_script)
            new_script = Script(self, path)
            self.registry.register(new_script)
            to_run.append(new_script)
            result.reloaded.append(path)
            logger.info(f"[LOADER] Reloaded script: {paths.display(path)}")

        for path in plan.to_load:
            if path in self.registry:
                continue

            script = Script(self, path)
            self.registry.register(script)
            to_run.append(script)
            result.loaded.append(path)
            logger.info(f"[LOADER] Loaded script: {paths.display(path)}")

        for path, script in plan.to_unload.items():
            if not self.registry.unregister(script):
                continue
            to_terminate.append(script)
            result.unloaded.append(path)
            logger.info(f"[LOADER] Unloaded script: {paths.display(path)}")

        if to_terminate or to_run:
            work = functools.partial(self._execute, to_terminate, to_run)
            if preload:
                work()
            else:
                self.settings.get_run_executor()(work)

        result.ended_at = datetime.now(UTC)
        if result.changed:
            self._history.append(result)
            self._notify(result)
        return result

    def _check_watched(self, plan: CyclePlan, watched: frozenset[PurePosixPath]) -> None:
        for path in sorted(watched):
            script = self.registry.get(path)
            if paths.resolve(self.root, path).is_file():
                if script is None:
                    plan.to_load[path] = None
            elif script is not None:
                plan.to_unload[path] = script

    def _check_registry(self, plan: CyclePlan, watched: frozenset[PurePosixPath]) -> None:
        for path, script in self.registry.all().items():
            if path not in watched:
                plan.to_unload[path] = script

    def _collapse_changes(self, changes: list[FileChange]) -> dict[PurePosixPath, FileChange]:
        """Keep the last change per path, ordered by when it last changed."""
        latest: dict[PurePosixPath, FileChange] = {}
        for change in changes:
            try:
                key = paths.normalize(change.path, self.root)
            except ValueError:
                logger.debug(f"[LOADER] Ignoring change outside of {self.root}: {change.path}")
                continue

            if change.is_directory:
                if change.change_type is ChangeType.CREATED:
                    logger.info(f"[LOADER] New directory detected at: {paths.display(key)}")
                continue

            latest.pop(key, None)
            latest[key] = change
        return latest

    def _check_filesystem(self, plan: CyclePlan, watched: frozenset[PurePosixPath]) -> None:
        for path, change in self._collapse_changes(self.changes.drain()).items():
            if plan.is_queued(path):
                continue

            # a delete might be followed by a (re)load from elsewhere this cycle
            if change.change_type is ChangeType.DELETED:
                plan.try_unload[path] = None
                continue

            if path in self.registry or path not in watched:
                # unwatched files still reload whatever depends on them
                plan.to_reload[path] = None
            else:
                plan.to_load[path] = None

        for path in plan.try_unload:
            script = self.registry.get(path)
            if script is None:
                continue
            if path in plan.to_load or path in plan.to_reload:
                continue
            if paths.resolve(self.root, path).is_file():
                # deleted and put back before the drain
                plan.to_reload[path] = None
            else:
                plan.to_unload[path] = script

    def _resolve_reload_queue(self, plan: CyclePlan) -> dict[PurePosixPath, None]:
        """Collect every path that has to reload, in discovery order.

        Seeds are the changed paths and the paths being unloaded; the walk
        follows reverse dependency edges with a visited accumulator, so
        dependency cycles terminate. Unloaded paths themselves are dropped
        from the result.
        """
        accumulator: dict[PurePosixPath, None] = {}
        for seed in [*plan.to_reload, *plan.to_unload]:
            stack = [seed]
            while stack:
                path = stack.pop()
                if path in accumulator:
                    continue
                accumulator[path] = None
                dependents = [script.path for script in self.registry.dependents_of(path)]
                stack.extend(reversed(dependents))

        return {path: None for path in accumulator if path not in plan.to_unload}

    def _execute(self, to_terminate: list[Script], to_run: list[Script]) -> None:
        CompositeCloser().bind_all(to_terminate).close_and_report(logger)

        for script in to_run:
            try:
                script.run()
            except Exception:
                logger.exception(f"[LOADER] Failed to run script {paths.display(script.path)}")

    def _notify(self, result: CycleResult) -> None:
        if not len(self.listeners):
            return
        for path in result.reloaded:
            self.listeners.emit(EventType.SCRIPT_RELOADED, {"path": path.as_posix()})
        for path in result.loaded:
            self.listeners.emit(EventType.SCRIPT_LOADED, {"path": path.as_posix()})
        for path in result.unloaded:
            self.listeners.emit(EventType.SCRIPT_UNLOADED, {"path": path.as_posix()})
        self.listeners.emit(EventType.CYCLE_COMPLETED, result.summary())

    def close(self) -> None:
        """Stop watching the filesystem and forget all watched paths."""
        with self._lock:
            self._closed = True
            self.changes.close()
            self.watch_set.clear()
