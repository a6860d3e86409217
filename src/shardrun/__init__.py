#
# src/shardrun/__init__.py
#
"""
shardrun: an execution engine for hierarchical test suites.

Build a tree with ``suite``/``labeled_case``, then run it with
``SuiteOrchestrator`` or directly with a runner from ``shardrun.runners``.
"""
from .config import RunnerConfig, load_config
from .context import TestContext, non_fatal, scoped_section, with_context
from .exceptions import ConfigurationError, RunnerError, ShardrunError
from .results import (
    Error,
    Failure,
    ResultFull,
    ResultSummary,
    Skip,
    Success,
    Timeout,
    Todo,
)
from .runtime import RunReport, SuiteOrchestrator
from .signals import (
    AssertionFailure,
    SkipTest,
    TodoTest,
    assert_bool,
    assert_equal,
    assert_raises,
    fail,
    skip,
    skip_if,
    todo,
)
from .tree import (
    CustomLength,
    ExpectedLength,
    Label,
    ListItem,
    TestCase,
    TestLabel,
    TestList,
    TestPath,
    case,
    label,
    labeled_case,
    suite,
    test_case_count,
    test_case_list,
    test_case_paths,
    test_filter,
)

__all__ = [
    "AssertionFailure",
    "ConfigurationError",
    "CustomLength",
    "Error",
    "ExpectedLength",
    "Failure",
    "Label",
    "ListItem",
    "ResultFull",
    "ResultSummary",
    "RunReport",
    "RunnerConfig",
    "RunnerError",
    "ShardrunError",
    "Skip",
    "SkipTest",
    "Success",
    "SuiteOrchestrator",
    "TestCase",
    "TestContext",
    "TestLabel",
    "TestList",
    "TestPath",
    "Timeout",
    "Todo",
    "TodoTest",
    "assert_bool",
    "assert_equal",
    "assert_raises",
    "case",
    "fail",
    "label",
    "labeled_case",
    "load_config",
    "non_fatal",
    "scoped_section",
    "skip",
    "skip_if",
    "suite",
    "test_case_count",
    "test_case_list",
    "test_case_paths",
    "test_filter",
    "todo",
    "with_context",
]

# 🔼⚙️
