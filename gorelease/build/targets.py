"""Target matrix resolution.

Decides which os/arch pairs a run builds: either the host platform alone,
or every configured combination the compiler supports that is not on the
skip list.
"""

from __future__ import annotations

import platform
from typing import Dict, Iterable, List, Optional

import structlog

from gorelease.build.config import BuildConfig, BuildOptions
from gorelease.build.models import TargetPlatform
from gorelease.build.toolchain import Toolchain
from gorelease.utils.exceptions import UnsupportedArchitectureError

logger = structlog.get_logger(__name__)

# Host machine names reported by the OS, mapped to compiler architecture names
CANONICAL_ARCH: Dict[str, str] = {
    "amd64": "amd64",
    "x86_64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armhf": "armv7l",
    "armv7l": "armv7l",
    "s390x": "s390x",
    "ppc64el": "ppc64le",
    "ppc64le": "ppc64le",
}


def canonical_arch(machine: str) -> str:
    """Map a host machine name to its canonical architecture.

    Raises:
        UnsupportedArchitectureError: If the machine name is unknown.
    """
    try:
        return CANONICAL_ARCH[machine.lower()]
    except KeyError:
        raise UnsupportedArchitectureError(f"Unsupported architecture {machine}", arch=machine) from None


def host_target(system: Optional[str] = None, machine: Optional[str] = None) -> TargetPlatform:
    """Return the target platform of the machine running the build."""
    system = (system or platform.system()).lower()
    machine = machine or platform.machine()
    return TargetPlatform(system, canonical_arch(machine))


def build_matrix(
        os_list: Iterable[str],
        arch_list: Iterable[str],
        skip_list: Iterable[str],
        supported: Iterable[TargetPlatform],
) -> List[TargetPlatform]:
    """Expand os and arch candidates into the ordered list of targets to build.

    A pair is kept when the compiler supports it and its ``os-arch`` slug is
    not on the skip list. Unsupported pairs and skip entries that match
    nothing are not errors. Order is OS-major, architecture-minor.

    Args:
        os_list: Candidate operating systems
        arch_list: Candidate architectures
        skip_list: ``os-arch`` entries to exclude
        supported: Pairs reported by the compiler

    Returns:
        Targets in build order
    """
    supported_set = set(supported)
    skipped = {entry.strip() for entry in skip_list if entry.strip()}
    arch_list = list(arch_list)
    targets: List[TargetPlatform] = []

    for os_name in os_list:
        for arch in arch_list:
            target = TargetPlatform(os_name, arch)
            if target not in supported_set:
                logger.debug("Dropping unsupported target", target=target.path)
                continue
            if target.slug in skipped:
                logger.debug("Skipping target from the skip list", target=target.path)
                continue
            if target not in targets:
                targets.append(target)
    return targets


def resolve_targets(config: BuildConfig, options: BuildOptions, toolchain: Toolchain) -> List[TargetPlatform]:
    """Return the targets for this run.

    Without build-all only the host platform is built and the configured
    lists are not consulted.
    """
    if not options.build_all:
        target = host_target()
        logger.debug("Building for the host platform", target=target.path)
        return [target]

    targets = build_matrix(config.build_os, config.build_arch, config.skip_build, toolchain.supported_targets())
    logger.debug("Build targets", targets=[t.path for t in targets])
    return targets
