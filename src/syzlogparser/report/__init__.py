"""
report — Crash report extraction and classification.

Pattern rules per operating system, the target-agnostic scan/classify
pipeline and the ``Reporter`` façade.
"""

from .registry import Registry, build_registry
from .reporter import Reporter, is_suppressed, new_reporter, parse_all
from .targets import resolve_target, supported

__all__ = [
    "Registry",
    "build_registry",
    "Reporter",
    "new_reporter",
    "parse_all",
    "is_suppressed",
    "resolve_target",
    "supported",
]
