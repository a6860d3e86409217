#
# src/shardrun/telemetry/__init__.py
#
"""
Logging setup and the test event logger interface.
"""
from .logger import StructLogger, setup_logging

__all__ = ["StructLogger", "setup_logging"]

# 🔼⚙️
