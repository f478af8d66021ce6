"""Value types shared by the release build pipeline.

These are small immutable records: a target platform, the resolved
version pair, and the per-target artifact that moves through the
build and packaging states.
"""

from __future__ import annotations

import enum
import pathlib
from dataclasses import dataclass, field, replace
from typing import List, Optional

WINDOWS = "windows"


class ArchiveFormat(str, enum.Enum):
    """Compression formats for release archives."""

    TAR_GZ = "tar.gz"
    ZIP = "zip"

    @classmethod
    def for_os(cls, os_name: str) -> ArchiveFormat:
        """Return the conventional archive format for an operating system."""
        return cls.ZIP if os_name == WINDOWS else cls.TAR_GZ


class ArtifactState(str, enum.Enum):
    """Lifecycle states of a per-target artifact."""

    PLANNED = "planned"  # Dry run, nothing was written
    BUILT = "built"
    PACKAGED = "packaged"
    PACKAGING_FAILED = "packaging_failed"
    CHECKSUM_WRITTEN = "checksum_written"


@dataclass(frozen=True, order=True)
class TargetPlatform:
    """An operating-system/architecture pair the compiler can target."""

    os: str
    arch: str

    @property
    def slug(self) -> str:
        """Dash-joined form used in file names and skip-list entries."""
        return f"{self.os}-{self.arch}"

    @property
    def path(self) -> str:
        """Slash-joined form used by the compiler and the dist layout."""
        return f"{self.os}/{self.arch}"

    @property
    def is_windows(self) -> bool:
        return self.os == WINDOWS

    @property
    def binary_suffix(self) -> str:
        return ".exe" if self.is_windows else ""

    @property
    def archive_format(self) -> ArchiveFormat:
        return ArchiveFormat.for_os(self.os)

    @classmethod
    def parse(cls, value: str) -> TargetPlatform:
        """Parse ``os/arch`` (or ``os-arch``) into a TargetPlatform.

        Raises:
            ValueError: If the value does not contain exactly two parts.
        """
        separator = "/" if "/" in value else "-"
        parts = value.strip().split(separator)
        if len(parts) != 2 or not all(parts):
            raise ValueError(f"Invalid target platform: {value!r}")
        return cls(parts[0], parts[1])

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True)
class ResolvedVersion:
    """The version string and abbreviated commit stamped into binaries."""

    version: str
    revision: str


@dataclass(frozen=True)
class Artifact:
    """Files produced for one target.

    Attributes:
        target: Platform the binary was built for
        binary_path: Deterministic path of the compiled binary
        archive_path: Release archive, when packaging was requested
        checksum_path: Checksum sidecar of the archive
        state: Where the artifact is in the build/package lifecycle
        error: Message of a non-fatal packaging failure
    """

    target: TargetPlatform
    binary_path: pathlib.Path
    archive_path: Optional[pathlib.Path] = None
    checksum_path: Optional[pathlib.Path] = None
    state: ArtifactState = ArtifactState.BUILT
    error: Optional[str] = None

    def advance(self, state: ArtifactState, **changes) -> Artifact:
        """Return a copy of this artifact moved to ``state``."""
        return replace(self, state=state, **changes)


@dataclass
class BuildReport:
    """Summary of an orchestrated run."""

    version: Optional[ResolvedVersion] = None
    ldflags: Optional[str] = None
    targets: List[TargetPlatform] = field(default_factory=list)
    artifacts: List[Artifact] = field(default_factory=list)
    cleaned: bool = False
    dry_run: bool = False

    @property
    def failed_packages(self) -> List[Artifact]:
        return [a for a in self.artifacts if a.state == ArtifactState.PACKAGING_FAILED]
