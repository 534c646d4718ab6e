"""
core — Shared models, configuration, console output and errors.

This package is the foundation layer with zero intra-project dependencies
(nothing in ``core`` imports from ``report`` or ``cli``).
"""

from .config import Config, host_arch, load_config
from .errors import ConfigError, NoSuchTargetError, SyzLogParserError
from .models import CrashType, ExecutorInfo, Report, TargetDescriptor

__all__ = [
    "Config",
    "load_config",
    "host_arch",
    "ConfigError",
    "NoSuchTargetError",
    "SyzLogParserError",
    "CrashType",
    "ExecutorInfo",
    "Report",
    "TargetDescriptor",
]
