"""
core.errors — Exceptions raised across the package boundary.

Only configuration problems are errors.  Anything odd found while
parsing a log is reported as data on the ``Report`` instead.
"""


class SyzLogParserError(Exception):
    """Base class for all syzlogparser errors."""


class ConfigError(SyzLogParserError):
    """The settings file could not be read or contains invalid values."""


class NoSuchTargetError(ConfigError):
    """The OS/architecture pair has no pattern registry."""

    def __init__(self, os_name: str, arch: str, supported: list[str]):
        self.os_name = os_name
        self.arch = arch
        self.supported = supported
        super().__init__(
            f"unknown target: {os_name}/{arch} (supported: {', '.join(supported)})"
        )
