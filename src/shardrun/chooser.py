# src/shardrun/chooser.py

"""
Choosers decide which pending test case a runner hands out next.
"""

import random
from collections.abc import Mapping, Sequence
from typing import Protocol, runtime_checkable

from shardrun.config.models import RunnerConfig
from shardrun.results import ResultFull
from shardrun.tree import ScheduledTest, TestPath


@runtime_checkable
class Chooser(Protocol):
    """Selection policy over the pending test cases."""

    def choose(
        self,
        pending: Sequence[ScheduledTest],
        running: Mapping[TestPath, ScheduledTest],
        results: Sequence[ResultFull],
    ) -> ScheduledTest | None:
        """
        Returns the next test to run, or None to postpone until a running
        test completes. ``pending`` is never empty when this is called.
        """
        ...


class SimpleChooser:
    """Hands tests out in tree order."""

    def choose(
        self,
        pending: Sequence[ScheduledTest],
        running: Mapping[TestPath, ScheduledTest],
        results: Sequence[ResultFull],
    ) -> ScheduledTest | None:
        return pending[0]


class RandomChooser:
    """Hands tests out in a random order, reproducible with a seed."""

    def __init__(self, seed: int | None = None):
        self.seed = seed
        self._random = random.Random(seed)

    def choose(
        self,
        pending: Sequence[ScheduledTest],
        running: Mapping[TestPath, ScheduledTest],
        results: Sequence[ResultFull],
    ) -> ScheduledTest | None:
        return self._random.choice(pending)


def simple_chooser(config: RunnerConfig) -> Chooser:
    return SimpleChooser()


def random_chooser(config: RunnerConfig) -> Chooser:
    return RandomChooser(config.random_seed)


# 🔼⚙️
