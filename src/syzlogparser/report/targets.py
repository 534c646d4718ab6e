"""
report.targets — Supported operating systems and architectures.
"""

from __future__ import annotations

from typing import Dict, List

from ..core.errors import NoSuchTargetError
from ..core.models import TargetDescriptor
from . import darwin, freebsd, fuchsia, linux, netbsd, openbsd
from .rules import OsRules

OPERATING_SYSTEMS: Dict[str, OsRules] = {
    mod.OS.name: mod.OS for mod in (linux, freebsd, netbsd, openbsd, fuchsia, darwin)
}


def supported() -> List[str]:
    """Every ``os/arch`` pair a registry can be built for."""
    return [f"{name}/{arch}" for name, rules in OPERATING_SYSTEMS.items() for arch in rules.arches]


def os_rules(target: TargetDescriptor) -> OsRules:
    """Rule set for *target*, or ``NoSuchTargetError``."""
    rules = OPERATING_SYSTEMS.get(target.os)
    if rules is None or target.vm_arch not in rules.arches:
        raise NoSuchTargetError(target.os, target.vm_arch, supported())
    return rules


def resolve_target(os_name: str, vm_arch: str, arch: str = "") -> TargetDescriptor:
    target = TargetDescriptor(os=os_name, vm_arch=vm_arch, arch=arch)
    os_rules(target)
    return target
