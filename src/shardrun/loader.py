# src/shardrun/loader.py

"""
Resolves ``"package.module:attribute"`` references to test trees.
"""

import importlib

import structlog

from shardrun.exceptions import ConfigurationError
from shardrun.telemetry import StructLogger
from shardrun.tree import Test, TestCase, TestLabel, TestList

log: StructLogger = structlog.get_logger("loader")

_TEST_TYPES = (TestCase, TestList, TestLabel)


def load_suite(reference: str) -> Test:
    """
    Imports the test tree named by ``reference``.

    The attribute may be a tree or a zero-argument callable returning one.

    Raises:
        ConfigurationError: If the reference is malformed or does not lead to a tree.
    """
    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        raise ConfigurationError(f"Suite reference must look like 'module:attribute', got '{reference}'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import suite module '{module_name}': {e}") from e

    target: object = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise ConfigurationError(f"'{reference}' has no attribute '{part}'") from e

    if not isinstance(target, _TEST_TYPES) and callable(target):
        target = target()

    if not isinstance(target, _TEST_TYPES):
        raise ConfigurationError(f"'{reference}' is not a test tree (got {type(target).__name__})")

    log.debug("Loaded suite", reference=reference)
    return target


# 🔼⚙️
