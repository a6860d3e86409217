# src/shardrun/context.py

"""
Per-test execution state: the teardown stack, non-fatal failures and the
translation of raised signals into results.
"""

import shutil
import tempfile
import threading
import traceback
from collections.abc import Callable
from enum import Enum, auto
from pathlib import Path
from typing import Any, TypeVar

import structlog
from attrs import define, field

from shardrun.config.models import RunnerConfig
from shardrun.results import (
    Error,
    Failure,
    ResultFull,
    Skip,
    SourceLocation,
    Todo,
)
from shardrun.signals import SkipTest, TodoTest
from shardrun.telemetry import StructLogger
from shardrun.telemetry.events import TestEvent, TestEventKind, TestLogger
from shardrun.tree import TestPath

log: StructLogger = structlog.get_logger("context")

T = TypeVar("T")
TearDown = Callable[["TestContext"], Any]

FRAMEWORK_DIR = str(Path(__file__).resolve().parent)
# What a test body or teardown may raise and still become a result.
# KeyboardInterrupt is left to stop the run.
TEST_ERRORS = (Exception, SystemExit)


class LockScope(Enum):
    """Where a lock is meaningful."""

    # Guards re-entrant use inside one process. Never shared with workers.
    PROCESS = auto()


class ScopedLock:
    """A re-entrant lock that states the scope it is valid in."""

    def __init__(self, name: str, scope: LockScope = LockScope.PROCESS):
        self.name = name
        self.scope = scope
        self._lock = threading.RLock()

    def __enter__(self) -> "ScopedLock":
        self._lock.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._lock.release()

    def __repr__(self) -> str:
        return f"ScopedLock({self.name!r}, scope={self.scope.name})"


class SharedState(dict):
    """Free-form state shared by the tests of one run inside one process."""

    pass


@define(slots=True, eq=False)
class TestContext:
    """
    State of one test execution.

    Created for a single test and discarded afterwards; never shared between
    tests running at the same time.
    """
    __test__ = False

    config: RunnerConfig
    logger: TestLogger
    shared: SharedState
    path: TestPath
    non_fatal: list[ResultFull] = field(factory=list)
    _teardowns: list[TearDown] = field(factory=list, init=False)
    _teardown_lock: ScopedLock = field(factory=lambda: ScopedLock("teardown"), init=False)
    _non_fatal_lock: ScopedLock = field(factory=lambda: ScopedLock("non_fatal"), init=False)

    def add_teardown(self, func: TearDown) -> None:
        """Registers ``func`` to run when the current section ends."""
        with self._teardown_lock:
            self._teardowns.append(func)

    def bracket(self, set_up: Callable[["TestContext"], T], tear_down: Callable[[T, "TestContext"], Any]) -> T:
        """Runs ``set_up`` now and ``tear_down`` on its value when the section ends."""
        value = set_up(self)
        self.add_teardown(lambda ctxt: tear_down(value, ctxt))
        return value

    def bracket_tmpdir(self, prefix: str = "shardrun-") -> Path:
        """Creates a temporary directory removed when the section ends."""
        return self.bracket(
            lambda ctxt: Path(tempfile.mkdtemp(prefix=prefix)),
            lambda path, ctxt: shutil.rmtree(path, ignore_errors=True),
        )

    def log(self, message: str, level: str = "info") -> None:
        self.logger.report(TestEvent(self.path, TestEventKind.LOG, message=message, level=level))

    def record_non_fatal(self, result_full: ResultFull) -> None:
        with self._non_fatal_lock:
            self.non_fatal.append(result_full)


def _run_teardowns(ctxt: TestContext, teardowns: list[TearDown]) -> BaseException | None:
    first_error: BaseException | None = None
    for teardown in reversed(teardowns):
        try:
            teardown(ctxt)
        except TEST_ERRORS as e:
            log.warning("Teardown failed", test=str(ctxt.path), error=str(e))
            if first_error is None:
                first_error = e
    return first_error


def scoped_section(ctxt: TestContext, func: Callable[[TestContext], T]) -> T:
    """
    Runs ``func`` with an empty teardown stack.

    Whatever ``func`` registers runs exactly once, last registered first, when
    ``func`` returns or raises. The teardown stack is then restored to what it
    was before the section, so sections nest.
    """
    with ctxt._teardown_lock:
        saved = ctxt._teardowns
        ctxt._teardowns = []

    try:
        result = func(ctxt)
    except BaseException as body_error:
        with ctxt._teardown_lock:
            try:
                teardown_error = _run_teardowns(ctxt, ctxt._teardowns)
            finally:
                ctxt._teardowns = saved
        if teardown_error is not None:
            body_error.add_note(f"Teardown also failed: {type(teardown_error).__name__}: {teardown_error}")
        raise

    with ctxt._teardown_lock:
        try:
            teardown_error = _run_teardowns(ctxt, ctxt._teardowns)
        finally:
            ctxt._teardowns = saved
    if teardown_error is not None:
        raise teardown_error
    return result


def with_context(
    config: RunnerConfig,
    logger: TestLogger,
    shared: SharedState,
    non_fatal: list[ResultFull],
    path: TestPath,
    func: Callable[[TestContext], T],
) -> T:
    """Creates a fresh context for ``path`` and runs ``func`` in a section of it."""
    ctxt = TestContext(config=config, logger=logger, shared=shared, path=path, non_fatal=non_fatal)
    return scoped_section(ctxt, func)


def non_fatal(ctxt: TestContext, func: Callable[[TestContext], Any]) -> None:
    """
    Runs ``func`` like scoped_section but records a raised failure instead of
    propagating it, so several soft assertions can fail in one test.
    """
    try:
        scoped_section(ctxt, func)
    except TEST_ERRORS as e:
        ctxt.record_non_fatal(result_of_failure(ctxt, e))


def _excluded(filename: str, prefixes: tuple[str, ...]) -> bool:
    return any(filename.startswith(prefix) for prefix in prefixes)


def locate_failure(exc: BaseException, exclude: tuple[str, ...]) -> SourceLocation | None:
    """Returns the innermost traceback frame whose file is not under ``exclude``."""
    for frame in reversed(traceback.extract_tb(exc.__traceback__)):
        filename = str(Path(frame.filename).resolve())
        if not _excluded(filename, exclude):
            return SourceLocation(frame.filename, frame.lineno or 0)
    return None


def result_of_failure(ctxt: TestContext, exc: BaseException) -> ResultFull:
    """Translates an exception raised by a test body into a ResultFull."""
    config = ctxt.config
    backtrace = "".join(traceback.format_exception(exc)) if config.capture_backtrace else None

    if isinstance(exc, SkipTest):
        return ResultFull(ctxt.path, Skip(exc.message))
    if isinstance(exc, TodoTest):
        return ResultFull(ctxt.path, Todo(exc.message))

    if isinstance(exc, AssertionError):
        exclude = config.backtrace_exclude or (FRAMEWORK_DIR,)
        location = locate_failure(exc, exclude) if config.capture_backtrace else None
        message = str(exc) or type(exc).__name__
        result = Failure(message, location, backtrace)
    else:
        message = "".join(traceback.format_exception_only(exc)).strip()
        result = Error(message, backtrace)

    return ResultFull(ctxt.path, result, ctxt.logger.source_location())


# 🔼⚙️
