#
# config/__init__.py
#
"""
Configuration handling sub-package for shardrun.

Exports the loading function and core configuration model.
"""

from .loader import load_config
from .models import RunnerConfig

__all__ = [
    "RunnerConfig",
    "load_config",
]

# 🔼⚙️
