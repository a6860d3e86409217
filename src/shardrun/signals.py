# src/shardrun/signals.py

"""
Outcome signals raised by test bodies.

A test body finishes normally on success. Any other outcome is signalled by
raising one of the exceptions below; the runner catches it at the test-body
boundary and turns it into a typed result.
"""

from collections.abc import Callable
from typing import Any


class TestSignal(Exception):
    """Base class for intentional, non-error test outcomes."""

    __test__ = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AssertionFailure(TestSignal, AssertionError):
    """An assertion did not hold."""

    pass


class SkipTest(TestSignal):
    """The test decided not to run."""

    pass


class TodoTest(TestSignal):
    """The test is not implemented yet."""

    pass


def fail(message: str) -> None:
    raise AssertionFailure(message)


def skip(reason: str) -> None:
    raise SkipTest(reason)


def skip_if(condition: bool, reason: str) -> None:
    if condition:
        raise SkipTest(reason)


def todo(reason: str) -> None:
    raise TodoTest(reason)


def assert_bool(message: str, condition: bool) -> None:
    if not condition:
        raise AssertionFailure(message)


def assert_equal(expected: Any, actual: Any, msg: str | None = None) -> None:
    """Signal a failure unless ``expected == actual``."""
    if expected != actual:
        text = f"expected: {expected!r} but got: {actual!r}"
        if msg:
            text = f"{msg}\n{text}"
        raise AssertionFailure(text)


def assert_raises(exc_type: type[BaseException], func: Callable[[], Any], msg: str | None = None) -> BaseException:
    """Run ``func`` and return the exception it raised, failing if it raised nothing else."""
    try:
        func()
    except exc_type as e:
        return e
    text = f"expected exception {exc_type.__name__}, but no exception was raised."
    if msg:
        text = f"{msg}\n{text}"
    raise AssertionFailure(text)


# 🔼⚙️
