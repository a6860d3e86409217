import pytest

from shardrun.chooser import SimpleChooser
from shardrun.config import RunnerConfig
from shardrun.telemetry.events import CollectingTestLogger


@pytest.fixture
def config() -> RunnerConfig:
    """A configuration with short shutdown periods so process tests stay fast."""
    return RunnerConfig(
        processes_grace_period=2.0,
        processes_kill_period=1.0,
        shards=3,
        poll_interval=0.02,
        wait_timeout=0.2,
    )


@pytest.fixture
def collecting_logger() -> CollectingTestLogger:
    return CollectingTestLogger()


@pytest.fixture
def chooser() -> SimpleChooser:
    return SimpleChooser()
