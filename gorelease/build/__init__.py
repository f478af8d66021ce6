"""Release build pipeline for Go projects.

This package contains everything needed to turn a Go project into
versioned, multi-platform release artifacts.

Modules:
    builder: Compiles one binary per target platform
    config: Build configuration, loading and validation
    ldflags: Link-time flags and version injection
    models: Value types shared by the pipeline
    orchestrator: Runs the pipeline end to end
    packager: Creates release archives and checksums
    targets: Target matrix resolution
    toolchain: Compiler, archiver and source-control interfaces
    utils: File-system helpers
    version: Version and revision resolution
"""

from __future__ import annotations

from gorelease.build.builder import BuildExecutor
from gorelease.build.config import BuildConfig, BuildOptions, load_config, validate_config
from gorelease.build.models import Artifact, ArtifactState, BuildReport, ResolvedVersion, TargetPlatform
from gorelease.build.orchestrator import Orchestrator
from gorelease.build.packager import ReleasePackager
from gorelease.build.version import VersionResolver

__all__ = [
    "Artifact",
    "ArtifactState",
    "BuildConfig",
    "BuildExecutor",
    "BuildOptions",
    "BuildReport",
    "Orchestrator",
    "ReleasePackager",
    "ResolvedVersion",
    "TargetPlatform",
    "VersionResolver",
    "load_config",
    "validate_config",
]
