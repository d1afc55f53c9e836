"""Tests for composite closing."""

from unittest.mock import MagicMock

import pytest

from hotscripts.closable import CompositeCloser
from hotscripts.errors import CompositeClosingError


class Resource:
    def __init__(self, name: str, log: list[str], fail: bool = False):
        self.name = name
        self.log = log
        self.fail = fail

    def close(self) -> None:
        self.log.append(self.name)
        if self.fail:
            raise OSError(f"{self.name} failed")


class TestCompositeCloser:
    """Tests for CompositeCloser."""

    def test_closes_in_reverse_bind_order(self):
        """Members close last-in-first-out."""
        log: list[str] = []
        closer = CompositeCloser()
        closer.bind(Resource("first", log)).bind(Resource("second", log))
        closer.bind(lambda: log.append("callback"))

        closer.close()

        assert log == ["callback", "second", "first"]

    def test_failures_do_not_stop_other_members(self):
        """Every member closes even when some fail; errors are aggregated."""
        log: list[str] = []
        closer = CompositeCloser()
        closer.bind(Resource("a", log, fail=True))
        closer.bind(Resource("b", log))
        closer.bind(Resource("c", log, fail=True))

        with pytest.raises(CompositeClosingError) as exc_info:
            closer.close()

        assert log == ["c", "b", "a"]
        assert [str(e) for e in exc_info.value.errors] == ["c failed", "a failed"]

    def test_nested_failures_are_flattened(self):
        """Errors from a nested closer are reported individually."""
        log: list[str] = []
        inner = CompositeCloser().bind(Resource("inner", log, fail=True))
        outer = CompositeCloser().bind(inner).bind(Resource("outer", log, fail=True))

        with pytest.raises(CompositeClosingError) as exc_info:
            outer.close()

        assert [str(e) for e in exc_info.value.errors] == ["outer failed", "inner failed"]

    def test_close_empties_the_closer(self):
        """A closed closer can be reused and doesn't close twice."""
        log: list[str] = []
        closer = CompositeCloser().bind(Resource("once", log))

        closer.close()
        closer.close()

        assert log == ["once"]
        assert len(closer) == 0

    def test_bind_rejects_invalid_members(self):
        """None and non-closeable objects can't be bound."""
        closer = CompositeCloser()

        with pytest.raises(TypeError):
            closer.bind(None)
        with pytest.raises(TypeError):
            closer.bind(42)

    def test_bind_all_skips_none(self):
        """bind_all ignores missing members."""
        log: list[str] = []
        closer = CompositeCloser().bind_all([Resource("x", log), None])

        assert len(closer) == 1

    def test_close_and_report_logs_each_failure(self):
        """close_and_report logs instead of raising."""
        log: list[str] = []
        closer = CompositeCloser()
        closer.bind(Resource("a", log, fail=True))
        closer.bind(Resource("b", log, fail=True))
        mock_logger = MagicMock()

        closer.close_and_report(mock_logger)

        assert mock_logger.error.call_count == 2
        assert log == ["b", "a"]

    def test_close_silently_swallows_failures(self):
        """close_silently never raises."""
        closer = CompositeCloser().bind(Resource("bad", [], fail=True))

        closer.close_silently()

        assert len(closer) == 0
