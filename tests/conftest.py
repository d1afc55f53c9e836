"""Pytest configuration and fixtures."""

import textwrap
import time
from collections.abc import Callable
from pathlib import Path

import pytest

from hotscripts.bindings import single_binding
from hotscripts.loader.engine import ScriptLoader
from hotscripts.loader.watcher import ChangeQueue, ChangeType, FileChange
from hotscripts.settings import EnvironmentSettings

# Every test script reports its runs and terminations through `record`.
SCRIPT_PRELUDE = """\
record(script.name, "run")
closables.bind(lambda: record(script.name, "closed"))
"""


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--skip-observer",
        action="store_true",
        default=False,
        help="skip tests that rely on a real filesystem observer",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "observer: mark test as using a real watchdog observer (skip with --skip-observer)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip observer tests when --skip-observer is given."""
    if not config.getoption("--skip-observer"):
        return

    skip_observer = pytest.mark.skip(reason="--skip-observer given")
    for item in items:
        if "observer" in item.keywords:
            item.add_marker(skip_observer)


class Recorder:
    """Collects (script name, event) pairs reported by test scripts."""

    def __init__(self):
        self.events: list[tuple[str, str]] = []

    def __call__(self, name: str, event: str) -> None:
        self.events.append((name, event))

    def count(self, name: str, event: str) -> int:
        return self.events.count((name, event))


class ManualTask:
    """Scheduled task handle that only runs when fired."""

    def __init__(self, task: Callable[[], None], interval: float):
        self.task = task
        self.interval = interval
        self.closed = False

    def fire(self) -> None:
        if not self.closed:
            self.task()

    def close(self) -> None:
        self.closed = True


class ManualScheduler:
    """Loading scheduler that never runs anything on its own."""

    def __init__(self):
        self.tasks: list[ManualTask] = []

    def schedule_at_fixed_rate(self, task: Callable[[], None], interval: float) -> ManualTask:
        handle = ManualTask(task, interval)
        self.tasks.append(handle)
        return handle


def write_script(directory: Path, relative: str, body: str = "", prelude: bool = True) -> Path:
    """Write a script file, creating parent directories as needed."""
    path = directory / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    source = textwrap.dedent(body)
    path.write_text((SCRIPT_PRELUDE if prelude else "") + source)
    return path


def changed(path: Path, change_type: ChangeType = ChangeType.MODIFIED) -> FileChange:
    return FileChange(path=path, change_type=change_type)


def wait_for(condition: Callable[[], bool], timeout: float = 5.0, interval: float = 0.05) -> bool:
    """Poll ``condition`` until it holds or ``timeout`` passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(interval)
    return condition()


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def changes() -> ChangeQueue:
    """Change source fed by hand instead of a filesystem observer."""
    return ChangeQueue()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def scripts_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "scripts"
    directory.mkdir()
    return directory


@pytest.fixture
def settings(recorder: Recorder, scheduler: ManualScheduler) -> EnvironmentSettings:
    """Settings binding the recorder and using the manual scheduler."""
    return EnvironmentSettings(
        bindings=(single_binding("record", recorder),),
        load_scheduler=scheduler,
    )


@pytest.fixture
def make_loader(scripts_dir: Path, changes: ChangeQueue, settings: EnvironmentSettings):
    """Factory for loaders over ``scripts_dir``; closes them afterwards."""
    loaders: list[ScriptLoader] = []

    def factory(**overrides) -> ScriptLoader:
        loader_settings = settings.merged_with(EnvironmentSettings(**overrides)) if overrides else settings
        loader = ScriptLoader(scripts_dir, settings=loader_settings, changes=changes)
        loaders.append(loader)
        return loader

    yield factory

    for loader in loaders:
        loader.registry.close()
        loader.close()
