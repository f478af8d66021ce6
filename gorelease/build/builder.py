"""Builder for compiling release binaries.

This module contains the BuildExecutor class that compiles one binary per
target platform, placing it at a deterministic path and verifying that the
compiler really produced it.
"""

from __future__ import annotations

import pathlib
from typing import List, Optional

import structlog

from gorelease.build import utils
from gorelease.build.config import BuildConfig, BuildOptions
from gorelease.build.models import Artifact, ArtifactState, TargetPlatform
from gorelease.build.toolchain import Toolchain
from gorelease.utils.exceptions import BuildError, EntryPointError


class BuildExecutor:
    """Compiles the project for individual target platforms.

    Attributes:
        config: Build configuration
        options: Run options
        toolchain: Compiler used for the builds
        logger: Logger for build progress
    """

    def __init__(
            self,
            config: BuildConfig,
            options: BuildOptions,
            toolchain: Toolchain,
            logger: Optional[structlog.stdlib.BoundLogger] = None,
    ) -> None:
        self.config = config
        self.options = options
        self.toolchain = toolchain
        self.logger = logger or structlog.get_logger(__name__)
        self._entry_point: Optional[pathlib.Path] = None

    def binary_dir(self, target: TargetPlatform) -> pathlib.Path:
        """Directory the binary for ``target`` is written to."""
        if self.options.docker:
            return self.options.docker_root
        return self.options.dist_root / target.os / target.arch

    def binary_path(self, target: TargetPlatform) -> pathlib.Path:
        """Deterministic path of the binary for ``target``."""
        return self.binary_dir(target) / f"{self.config.resolved_binary_name}{target.binary_suffix}"

    def find_entry_point(self) -> pathlib.Path:
        """Locate the entry-point file in the project tree.

        Returns:
            Path of the single matching file

        Raises:
            EntryPointError: If no file, or more than one file, matches.
        """
        if self._entry_point is not None:
            return self._entry_point

        root = self.options.project_root
        matches: List[pathlib.Path] = utils.find_files(
            root,
            self.options.main_file,
            exclude_dirs=[self.options.dist_root, self.options.release_root],
        )
        if not matches:
            raise EntryPointError(
                f"No '{self.options.main_file}' file was found in {root}, use -m|--main to set the main file",
                config_key="main",
            )
        if len(matches) > 1:
            found = ", ".join(str(m.relative_to(root)) for m in matches)
            raise EntryPointError(
                f"Found {len(matches)} '{self.options.main_file}' files ({found}), "
                "the entry point is ambiguous",
                errors=[str(m) for m in matches],
                config_key="main",
            )

        self._entry_point = matches[0]
        self.logger.debug("Found entry point", path=str(self._entry_point))
        return self._entry_point

    def _relative(self, path: pathlib.Path) -> pathlib.Path:
        try:
            return path.relative_to(self.options.project_root)
        except ValueError:
            return path

    def verify_build(self, target: TargetPlatform, binary: pathlib.Path) -> None:
        """Check that the compiler produced the binary.

        Raises:
            BuildError: If the binary does not exist.
        """
        if not binary.is_file():
            raise BuildError(f"Something with the build went wrong, no binary at {binary}", target=target.path)

    def build(self, target: TargetPlatform, ldflags: str, version: str = "", revision: str = "") -> Artifact:
        """Build the binary for one target.

        In dry-run mode nothing is created; the equivalent command is logged.

        Args:
            target: Platform to build for
            ldflags: Link flags passed to the compiler
            version: Version being built, for log output
            revision: Commit being built, for log output

        Returns:
            Artifact describing the binary

        Raises:
            BuildError: If compilation fails or produces no binary.
            EntryPointError: If the entry point cannot be determined.
        """
        binary = self.binary_path(target)
        entry_point = self.find_entry_point()
        cgo = self.options.with_cgo

        self.logger.info(
            f"Building the {target.path} binary for the {version} release on commit {revision}",
            target=target.path,
            path=str(self._relative(binary)),
        )
        self.logger.debug("CGO configuration", cgo_enabled=int(cgo))
        command = self.toolchain.describe_compile(target, ldflags, binary, entry_point, cgo=cgo)

        if self.options.dry_run:
            self.logger.info(f"Build Command: {command}", target=target.path)
            return Artifact(target=target, binary_path=binary, state=ArtifactState.PLANNED)

        self.logger.debug("Creating directory", path=str(binary.parent))
        binary.parent.mkdir(parents=True, exist_ok=True)

        self.toolchain.compile(target, ldflags, binary, entry_point, cgo=cgo)

        try:
            self.verify_build(target, binary)
        except BuildError:
            self.logger.debug(f"Build Command: {command}", target=target.path)
            raise

        return Artifact(target=target, binary_path=binary, state=ArtifactState.BUILT)
