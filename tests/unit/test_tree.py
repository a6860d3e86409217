# tests/unit/test_tree.py

"""Unit tests for test tree construction, traversal and filtering."""

import pytest

from shardrun import tree as tt
from shardrun.signals import SkipTest


def _noop(ctxt):
    pass


@pytest.fixture
def nested() -> tt.Test:
    """suite 'top' with a nested list and a labeled inner suite."""
    return tt.suite(
        "top",
        [
            tt.labeled_case("first", _noop),
            tt.TestList([tt.case(_noop), tt.case(_noop, tt.ExpectedLength.LONG)]),
            tt.suite("inner", [tt.labeled_case("deep", _noop)]),
        ],
    )


class TestPaths:
    """Tests for path construction and rendering."""

    def test_child_prepends_innermost_node(self):
        path = tt.TestPath().child(tt.Label("root")).child(tt.ListItem(2))
        assert path.nodes == (tt.ListItem(2), tt.Label("root"))
        assert str(path) == "root:2"

    def test_empty_path_renders_empty(self):
        assert str(tt.TestPath()) == ""

    def test_paths_are_hashable_and_comparable(self):
        a = tt.TestPath((tt.Label("x"), tt.ListItem(0)))
        b = tt.TestPath([tt.Label("x"), tt.ListItem(0)])
        assert a == b
        assert {a: 1}[b] == 1


class TestTraversal:
    """Tests for counting and flattening trees."""

    def test_case_count(self, nested):
        assert tt.test_case_count(nested) == 4
        assert tt.test_case_count(tt.TestList([])) == 0

    def test_case_paths_depth_first(self, nested):
        assert [str(p) for p in tt.test_case_paths(nested)] == [
            "top:0:first",
            "top:1:0",
            "top:1:1",
            "top:2:inner:0:deep",
        ]

    def test_count_matches_paths_and_list(self, nested):
        count = tt.test_case_count(nested)
        assert len(tt.test_case_paths(nested)) == count
        assert len(tt.test_case_list(nested)) == count

    def test_paths_are_unique(self, nested):
        paths = tt.test_case_paths(nested)
        assert len(set(paths)) == len(paths)

    def test_case_list_keeps_length(self, nested):
        scheduled = tt.test_case_list(nested)
        assert scheduled[2].length == tt.ExpectedLength.LONG
        assert scheduled[0].length == tt.ExpectedLength.SHORT
        assert scheduled[0].func is _noop

    def test_single_case_has_empty_path(self):
        assert tt.test_case_paths(tt.case(_noop)) == [tt.TestPath()]


class TestDecorate:
    """Tests for wrapping every case function."""

    def test_decorate_wraps_every_case_and_keeps_shape(self, nested):
        calls = []

        def wrapper(func):
            def wrapped(ctxt):
                calls.append(ctxt)
                return func(ctxt)

            return wrapped

        decorated = tt.test_decorate(wrapper, nested)
        assert tt.test_case_paths(decorated) == tt.test_case_paths(nested)
        for scheduled in tt.test_case_list(decorated):
            scheduled.func("ctxt")
        assert calls == ["ctxt"] * 4

    def test_decorate_does_not_touch_original(self, nested):
        tt.test_decorate(lambda func: None, nested)
        assert all(s.func is _noop for s in tt.test_case_list(nested))


class TestFilter:
    """Tests for path-based selection."""

    def test_selecting_a_leaf_renumbers_its_list(self, nested):
        filtered = tt.test_filter(["top:2:inner:0:deep"], nested)
        assert [str(p) for p in tt.test_case_paths(filtered)] == ["top:0:inner:0:deep"]

    def test_selecting_a_subtree_keeps_it_whole(self, nested):
        filtered = tt.test_filter(["top:1"], nested)
        assert [str(p) for p in tt.test_case_paths(filtered)] == ["top:0:0", "top:0:1"]
        assert [s.length for s in tt.test_case_list(filtered)] == [tt.ExpectedLength.SHORT, tt.ExpectedLength.LONG]

    def test_selecting_the_root_list_keeps_the_tree(self, nested):
        assert tt.test_filter(["top"], nested) == nested

    def test_selecting_every_leaf_keeps_the_tree(self, nested):
        every_leaf = [str(p) for p in tt.test_case_paths(nested)]
        assert tt.test_filter(every_leaf, nested) == nested

    def test_nothing_selected_returns_none(self, nested):
        assert tt.test_filter(["top:9"], nested) is None
        assert tt.test_filter([], nested) is None

    def test_skip_unselected_keeps_shape(self, nested):
        filtered = tt.test_filter(["top:0:first"], nested, skip_unselected=True)
        assert tt.test_case_paths(filtered) == tt.test_case_paths(nested)

        scheduled = {str(s.path): s for s in tt.test_case_list(filtered)}
        assert scheduled["top:0:first"].func is _noop
        with pytest.raises(SkipTest, match="Test disabled"):
            scheduled["top:1:0"].func(None)

    def test_selected_cases_keep_their_order(self, nested):
        filtered = tt.test_filter(["top:0:first", "top:2"], nested)
        assert [str(p) for p in tt.test_case_paths(filtered)] == ["top:0:first", "top:1:inner:0:deep"]
        assert tt.test_case_count(filtered) == 2


class TestLengths:
    """Tests for the advisory delays of expected lengths."""

    @pytest.mark.parametrize(
        ("length", "seconds"),
        [
            (tt.ExpectedLength.IMMEDIATE, 1.0),
            (tt.ExpectedLength.SHORT, 60.0),
            (tt.ExpectedLength.LONG, 600.0),
            (tt.ExpectedLength.HUGE, 1800.0),
            (tt.CustomLength(2.5), 2.5),
        ],
    )
    def test_delay_of_length(self, length, seconds):
        assert tt.delay_of_length(length) == seconds
