# src/shardrun/results.py

"""
Outcome taxonomy of a test and the helpers that combine and summarise outcomes.
"""

from collections import Counter
from collections.abc import Iterable
from typing import TypeAlias

from attrs import define, field

from shardrun.tree import TestLength, TestPath


@define(frozen=True, slots=True)
class SourceLocation:
    """A file and line, used to point at the origin of a failure."""
    filename: str
    line: int

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}"


@define(frozen=True, slots=True)
class Success:
    pass


@define(frozen=True, slots=True)
class Failure:
    """An assertion did not hold."""
    message: str
    location: SourceLocation | None = field(default=None)
    backtrace: str | None = field(default=None, repr=False)


@define(frozen=True, slots=True)
class Error:
    """The test raised something other than an outcome signal."""
    message: str
    backtrace: str | None = field(default=None, repr=False)


@define(frozen=True, slots=True)
class Skip:
    reason: str


@define(frozen=True, slots=True)
class Todo:
    reason: str


@define(frozen=True, slots=True)
class Timeout:
    """The test ran longer than its declared length."""
    length: TestLength


Result: TypeAlias = Success | Failure | Error | Skip | Todo | Timeout

# Skip and Todo share a tier; Error sits above Failure and Timeout above all.
SEVERITY: dict[type, int] = {
    Success: 0,
    Skip: 1,
    Todo: 1,
    Failure: 2,
    Error: 3,
    Timeout: 4,
}

RESULT_NAMES: dict[type, str] = {
    Success: "success",
    Failure: "failure",
    Error: "error",
    Skip: "skip",
    Todo: "todo",
    Timeout: "timeout",
}


def severity(result: Result) -> int:
    return SEVERITY[type(result)]


def result_name(result: Result) -> str:
    return RESULT_NAMES[type(result)]


def is_failing(result: Result) -> bool:
    """True for outcomes that make a run unsuccessful."""
    return isinstance(result, Failure | Error | Timeout)


def describe_result(result: Result) -> str:
    """Returns a one-line human description of ``result``."""
    match result:
        case Success():
            return "OK"
        case Failure(message=message):
            return message
        case Error(message=message):
            return message
        case Skip(reason=reason) | Todo(reason=reason):
            return reason
        case Timeout(length=length):
            return f"timeout (expected length: {length})"
    return repr(result)


@define(frozen=True, slots=True)
class ResultFull:
    """A result attached to the path of the test that produced it."""
    path: TestPath
    result: Result
    location: SourceLocation | None = field(default=None)


ResultList: TypeAlias = list[ResultFull]


def worst_result_full(first: ResultFull, rest: Iterable[ResultFull]) -> tuple[ResultFull, list[ResultFull]]:
    """
    Picks the most severe result among ``first`` and ``rest``.

    Ties keep the earliest candidate, so ``first`` wins against an equally
    severe result from ``rest``.

    Returns:
        The worst result and every other candidate, in their original order.
    """
    candidates = [first, *rest]
    worst_index = 0
    for index, candidate in enumerate(candidates):
        if severity(candidate.result) > severity(candidates[worst_index].result):
            worst_index = index
    others = candidates[:worst_index] + candidates[worst_index + 1 :]
    return candidates[worst_index], others


@define(frozen=True, slots=True)
class ResultSummary:
    """Per-kind counts over a result list."""
    total: int = 0
    successes: int = 0
    failures: int = 0
    errors: int = 0
    skips: int = 0
    todos: int = 0
    timeouts: int = 0

    @classmethod
    def from_results(cls, results: Iterable[ResultFull]) -> "ResultSummary":
        counts = Counter(result_name(result_full.result) for result_full in results)
        return cls(
            total=sum(counts.values()),
            successes=counts["success"],
            failures=counts["failure"],
            errors=counts["error"],
            skips=counts["skip"],
            todos=counts["todo"],
            timeouts=counts["timeout"],
        )

    @property
    def was_successful(self) -> bool:
        return self.failures == 0 and self.errors == 0 and self.timeouts == 0


# 🔼⚙️
