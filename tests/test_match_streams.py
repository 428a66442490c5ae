import pytest
from queries.compiler import compile_predicates
from queries.registry import create_default_registry
from queries.streams import MatchStream, CaptureStream, open_match_stream, open_capture_stream
from queries.types import StreamState
from tests.mocks.matcher_mock import MockPatternSet, MockMatchCursor, make_match, node_for

SOURCE = b"foo bar foo baz"

@pytest.fixture
def query():
    return compile_predicates(
        MockPatternSet.from_predicates(("name", "other"), ("eq?", "@name", "foo")),
        registry=create_default_registry()
    )

@pytest.fixture
def matches():
    return [
        make_match(0, (0, node_for(SOURCE, "foo")), (1, node_for(SOURCE, "bar"))),
        make_match(1, (0, node_for(SOURCE, "bar")), (1, node_for(SOURCE, "baz"))),
        make_match(2, (0, node_for(SOURCE, "foo", 1)), (1, node_for(SOURCE, "baz"))),
    ]

class TestMatchStream:
    """Filtering candidate matches."""

    def test_yields_passing_matches(self, query, matches):
        cursor = MockMatchCursor(matches)
        stream = open_match_stream(cursor, query, None, SOURCE)
        assert cursor.executed
        assert [m.id for m in stream] == [0, 2]

    def test_failing_match_removed_once(self, query, matches):
        cursor = MockMatchCursor(matches)
        stream = open_match_stream(cursor, query, None, SOURCE)
        list(stream)
        assert cursor.removed == [1]
        assert stream.discarded == 1
        assert stream.yielded == 2

    def test_exhausted_stream_stays_exhausted(self, query, matches):
        stream = open_match_stream(MockMatchCursor(matches), query, None, SOURCE)
        assert stream.state == StreamState.READY
        while stream.next() is not None:
            pass
        assert stream.state == StreamState.EXHAUSTED
        assert stream.next() is None
        assert stream.next() is None

    def test_next_returns_none_when_all_fail(self, query, matches):
        cursor = MockMatchCursor([matches[1]])
        stream = MatchStream(cursor, query, SOURCE)
        cursor.exec(query.pattern_set, None)
        assert stream.next() is None
        assert stream.exhausted
        assert cursor.removed == [1]

    def test_empty_cursor(self, query):
        stream = open_match_stream(MockMatchCursor([]), query, None, SOURCE)
        assert list(stream) == []
        assert stream.exhausted

    def test_streams_share_query(self, query, matches):
        first = open_match_stream(MockMatchCursor(matches), query, None, SOURCE)
        second = open_match_stream(MockMatchCursor(matches), query, None, SOURCE)
        assert first.next().id == 0
        assert [m.id for m in second] == [0, 2]
        assert [m.id for m in first] == [2]

    def test_match_stream_keeps_no_removed_ids(self, query, matches):
        stream = open_match_stream(MockMatchCursor(matches), query, None, SOURCE)
        list(stream)
        assert not hasattr(stream, "_removed")

    def test_disabled_pattern_produces_nothing(self, query, matches):
        query.disable_pattern(0)
        assert query.pattern_set.disabled_patterns == {0}
        cursor = MockMatchCursor(matches)
        assert list(open_match_stream(cursor, query, None, SOURCE)) == []
        assert cursor.removed == []

    def test_disabled_capture_is_not_recorded(self, query, matches):
        query.disable_capture("other")
        stream = open_match_stream(MockMatchCursor(matches), query, None, SOURCE)
        assert [[c.index for c in m.captures] for m in stream] == [[0], [0]]
        assert query.capture_names == ("name", "other")

class TestCaptureStream:
    """Filtering per-capture iteration."""

    def test_yields_captures_of_passing_matches(self, query, matches):
        stream = open_capture_stream(MockMatchCursor(matches), query, None, SOURCE)
        assert [(m.id, position) for m, position in stream] == [(0, 0), (0, 1), (2, 0), (2, 1)]

    def test_failing_match_removed_once(self, query, matches):
        cursor = MockMatchCursor(matches)
        list(open_capture_stream(cursor, query, None, SOURCE))
        assert cursor.removed == [1]

    def test_failed_match_captures_not_produced(self, query, matches):
        cursor = MockMatchCursor(matches)
        stream = open_capture_stream(cursor, query, None, SOURCE)
        produced = [m.id for m, _ in stream]
        assert 1 not in produced
        assert 1 not in cursor.pending_ids

    def test_skips_captures_of_removed_match(self, query, matches):
        class LeakyCursor(MockMatchCursor):
            """Keeps yielding captures of removed matches."""

            def next_capture(self):
                if not self._capture_queue:
                    return None
                match_id, position = self._capture_queue.pop(0)
                return next(m for m in self._scripted if m.id == match_id), position

        cursor = LeakyCursor(matches)
        stream = open_capture_stream(cursor, query, None, SOURCE)
        assert [(m.id, position) for m, position in stream] == [(0, 0), (0, 1), (2, 0), (2, 1)]
        assert cursor.removed == [1]
        assert stream.removed_pending == 0

    def test_exhausted(self, query):
        stream = CaptureStream(MockMatchCursor([]), query, SOURCE)
        assert stream.next() is None
        assert stream.state == StreamState.EXHAUSTED
        with pytest.raises(StopIteration):
            next(stream)

    def test_removed_ids_forgotten_after_last_capture(self, query, matches):
        class LeakyCursor(MockMatchCursor):
            def next_capture(self):
                if not self._capture_queue:
                    return None
                match_id, position = self._capture_queue.pop(0)
                return next(m for m in self._scripted if m.id == match_id), position

        stream = open_capture_stream(LeakyCursor(matches), query, None, SOURCE)
        assert stream.next()[0].id == 0
        assert stream.next()[0].id == 0
        assert stream.next()[0].id == 2
        # Match 1 failed on its first capture and its second was skipped
        assert stream.removed_pending == 0
