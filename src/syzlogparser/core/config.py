"""
core.config — Centralised configuration management.

Loads settings from environment variables, .env files and an optional
JSON settings file (a syzkaller manager config works as-is: unknown keys
are ignored).  Every other module accesses configuration through
``Config``.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError
from .models import TargetDescriptor

_env_loaded = False

# platform.machine() spellings → Go GOARCH names used in target strings
_HOST_ARCHES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
    "mips64": "mips64le",
    "loongarch64": "loong64",
}

DEFAULT_OS = "linux"


def host_arch() -> str:
    """Architecture of the running machine in GOARCH naming."""
    machine = platform.machine().lower()
    return _HOST_ARCHES.get(machine, machine or "amd64")


def _load_dotenv() -> None:
    """Load .env from the project root, the working directory and home.

    Existing environment variables are never overridden, so the first
    file defining a variable wins.
    """
    global _env_loaded
    if _env_loaded:
        return

    _pkg_root = Path(__file__).resolve().parent.parent          # src/syzlogparser
    _project_root = _pkg_root.parent.parent                     # contains pyproject.toml

    search = [
        _project_root / ".env",
        Path.cwd() / ".env",
        Path.home() / ".env",
    ]
    for p in search:
        if p.exists():
            load_dotenv(p, override=False)
    _env_loaded = True


class Config(BaseModel):
    """
    Parser configuration.

    ``target_os``/``target_arch`` come from the command line or the
    environment.  A non-empty ``target`` (``os/vmarch`` or
    ``os/vmarch/arch``, as in a manager config) takes precedence.
    """

    target: str = ""
    target_os: str = DEFAULT_OS
    target_arch: str = Field(default_factory=host_arch)

    # ── Report filtering ─────────────────────────────────────────────
    suppressions: List[str] = Field(
        default_factory=list,
        description="Extra regexps; matching reports are marked suppressed",
    )
    ignores: List[str] = Field(
        default_factory=list,
        description="Regexps matched against titles; matching reports are skipped",
    )
    interests: List[str] = Field(
        default_factory=list,
        description="If set, reports whose title matches none of these are suppressed",
    )

    # ── Debug ────────────────────────────────────────────────────────
    debug: bool = False

    def target_parts(self) -> Tuple[str, str, str]:
        """Return ``(os, vm_arch, arch)`` after applying ``target``."""
        target_os, vm_arch, arch = self.target_os, self.target_arch, self.target_arch
        if self.target:
            parts = self.target.split("/")
            if len(parts) >= 2:
                target_os = parts[0]
                vm_arch = parts[1]
                arch = parts[-1]
        return target_os, vm_arch, arch

    def resolve_target(self) -> TargetDescriptor:
        target_os, vm_arch, arch = self.target_parts()
        return TargetDescriptor(os=target_os, vm_arch=vm_arch, arch=arch)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes")


def _read_settings(path: Union[str, Path]) -> dict:
    p = Path(path)
    try:
        raw = p.read_text()
    except OSError as e:
        raise ConfigError(f"failed to read {p}: {e.strerror or e}") from e
    try:
        data = json.loads(raw) if raw.strip() else {}
    except json.JSONDecodeError as e:
        raise ConfigError(f"failed to parse {p}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"failed to parse {p}: expected a JSON object")
    return data


def load_config(path: Optional[Union[str, Path]] = None, **overrides: Any) -> Config:
    """
    Load ``Config`` from environment, settings file and overrides.

    Precedence, lowest first: built-in defaults, ``SYZLOGPARSER_*``
    environment variables, the JSON settings file at *path*, then
    *overrides* (``None`` values are dropped).
    """
    _load_dotenv()
    values: dict = {
        "debug": _env_flag("SYZLOGPARSER_DEBUG"),
    }
    os_env = os.environ.get("SYZLOGPARSER_OS")
    if os_env:
        values["target_os"] = os_env
    arch_env = os.environ.get("SYZLOGPARSER_ARCH")
    if arch_env:
        values["target_arch"] = arch_env
    if path:
        values.update(_read_settings(path))
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Config(**values)
    except ValidationError as e:
        raise ConfigError(f"invalid settings: {e}") from e
