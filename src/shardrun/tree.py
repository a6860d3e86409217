# src/shardrun/tree.py

"""
The test tree: cases, ordered lists and labels, plus path addressing.

Paths are stored innermost node first, exactly as they are built while the
tree is descended; ``str(path)`` gives the familiar root-to-leaf form
``"suite:0:name"``.
"""

from collections.abc import Callable, Iterable
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeAlias

from attrs import define, field

from shardrun.signals import SkipTest

if TYPE_CHECKING:
    from shardrun.context import TestContext


@define(frozen=True, slots=True)
class ListItem:
    """Position of a child inside a TestList."""
    index: int

    def __str__(self) -> str:
        return str(self.index)


@define(frozen=True, slots=True)
class Label:
    """Name given by a TestLabel."""
    name: str

    def __str__(self) -> str:
        return self.name


Node: TypeAlias = ListItem | Label


@define(frozen=True, slots=True)
class TestPath:
    """Sequence of nodes addressing one node of a test tree, innermost first."""
    __test__ = False

    nodes: tuple[Node, ...] = field(default=(), converter=tuple)

    def child(self, node: Node) -> "TestPath":
        return TestPath((node, *self.nodes))

    def __str__(self) -> str:
        return ":".join(str(node) for node in reversed(self.nodes))


class ExpectedLength(Enum):
    """Declared upper bound of a test's running time."""

    IMMEDIATE = "immediate"  # < 1s
    SHORT = "short"  # < 1min
    LONG = "long"  # < 10min
    HUGE = "huge"  # < 30min


@define(frozen=True, slots=True)
class CustomLength:
    seconds: float = field(converter=float)


TestLength: TypeAlias = ExpectedLength | CustomLength

_DELAYS = {
    ExpectedLength.IMMEDIATE: 1.0,
    ExpectedLength.SHORT: 60.0,
    ExpectedLength.LONG: 600.0,
    ExpectedLength.HUGE: 1800.0,
}


def delay_of_length(length: TestLength) -> float:
    """Returns the advisory time budget of ``length`` in seconds."""
    if isinstance(length, CustomLength):
        return length.seconds
    return _DELAYS[length]


TestFunc: TypeAlias = Callable[["TestContext"], Any]


@define(frozen=True, slots=True)
class TestCase:
    """A leaf of the tree: one test function and its expected length."""
    __test__ = False

    length: TestLength
    func: TestFunc


@define(frozen=True, slots=True)
class TestList:
    """An ordered group of tests; children are addressed by index."""
    __test__ = False

    tests: tuple["Test", ...] = field(default=(), converter=tuple)


@define(frozen=True, slots=True)
class TestLabel:
    """A named wrapper around a single test."""
    __test__ = False

    name: str
    test: "Test"


Test: TypeAlias = TestCase | TestList | TestLabel


@define(frozen=True, slots=True)
class ScheduledTest:
    """One flattened unit of work handed to a runner."""
    path: TestPath
    func: TestFunc
    length: TestLength = field(default=ExpectedLength.SHORT)


# --- Builders ---
def case(func: TestFunc, length: TestLength = ExpectedLength.SHORT) -> TestCase:
    return TestCase(length, func)


def label(name: str, test: Test) -> TestLabel:
    return TestLabel(name, test)


def labeled_case(name: str, func: TestFunc, length: TestLength = ExpectedLength.SHORT) -> TestLabel:
    return TestLabel(name, TestCase(length, func))


def suite(name: str, tests: Iterable[Test]) -> TestLabel:
    return TestLabel(name, TestList(tuple(tests)))


# --- Algorithms ---
def test_case_count(test: Test) -> int:
    """Returns the number of leaves in ``test``."""
    if isinstance(test, TestCase):
        return 1
    if isinstance(test, TestLabel):
        return test_case_count(test.test)
    return sum(test_case_count(child) for child in test.tests)


def _walk(test: Test, path: TestPath) -> Iterable[tuple[TestPath, TestCase]]:
    if isinstance(test, TestCase):
        yield path, test
    elif isinstance(test, TestList):
        for index, child in enumerate(test.tests):
            yield from _walk(child, path.child(ListItem(index)))
    else:
        yield from _walk(test.test, path.child(Label(test.name)))


def test_case_paths(test: Test) -> list[TestPath]:
    """Returns every leaf path, depth first, in list order."""
    return [path for path, _ in _walk(test, TestPath())]


def test_case_list(test: Test) -> list[ScheduledTest]:
    """Flattens ``test`` into the units of work a runner consumes."""
    return [ScheduledTest(path, leaf.func, leaf.length) for path, leaf in _walk(test, TestPath())]


def test_decorate(wrapper: Callable[[TestFunc], TestFunc], test: Test) -> Test:
    """Returns a copy of ``test`` with every case function passed through ``wrapper``."""
    if isinstance(test, TestCase):
        return TestCase(test.length, wrapper(test.func))
    if isinstance(test, TestList):
        return TestList(tuple(test_decorate(wrapper, child) for child in test.tests))
    return TestLabel(test.name, test_decorate(wrapper, test.test))


def _disabled_test(ctxt: "TestContext") -> None:
    raise SkipTest("Test disabled")


def test_filter(selection: Iterable[str], test: Test, *, skip_unselected: bool = False) -> Test | None:
    """
    Selects the tests whose path string is in ``selection``.

    A node whose own path is selected is kept untouched. Unselected cases are
    dropped, or replaced by a case that skips when ``skip_unselected`` is set,
    so that skip mode never changes the shape of the tree. Lists rebuilt from
    their surviving children renumber them, so a kept case may get a new path.

    Returns:
        The filtered tree, or None when nothing is left.
    """
    selected = frozenset(selection)

    def _filter(node: Test, path: TestPath) -> Test | None:
        if str(path) in selected:
            return node

        if isinstance(node, TestCase):
            if skip_unselected:
                return TestCase(node.length, _disabled_test)
            return None

        if isinstance(node, TestList):
            children = []
            for index, child in enumerate(node.tests):
                filtered = _filter(child, path.child(ListItem(index)))
                if filtered is not None:
                    children.append(filtered)
            if not children and not skip_unselected:
                return None
            return TestList(tuple(children))

        filtered = _filter(node.test, path.child(Label(node.name)))
        if filtered is not None:
            return TestLabel(node.name, filtered)
        if skip_unselected:
            return TestLabel(node.name, node.test)
        return None

    return _filter(test, TestPath())


# 🔼⚙️
