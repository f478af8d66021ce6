"""Release packaging for built binaries.

This module contains the ReleasePackager class which turns the binary of a
single target into a compressed release archive with a checksum sidecar:

    release/<name>-<os>-<arch>.tar.gz            (.zip for windows)
    release/<name>-<os>-<arch>.tar.gz.sha256sum

Every archive holds exactly one top-level directory named after the binary.
"""

from __future__ import annotations

import pathlib
import shutil
from typing import Optional

import structlog

from gorelease.build.config import BuildConfig, BuildOptions
from gorelease.build.models import Artifact, ArtifactState, TargetPlatform
from gorelease.build.toolchain import Toolchain
from gorelease.utils.exceptions import PackagingError


class ReleasePackager:
    """Packages built binaries into release archives.

    Packaging failures are contained to their target: ``package`` logs the
    error and returns a ``PACKAGING_FAILED`` artifact instead of raising.

    Attributes:
        config: Build configuration (binary name, extra files)
        options: Run options (layout, dry run)
        toolchain: Archiver and digest provider
        logger: Logger for packaging progress
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

    @property
    def artifact_dir_name(self) -> str:
        """Name of the single top-level directory inside every archive."""
        return self.config.resolved_binary_name

    def release_name(self, target: TargetPlatform) -> str:
        return f"{self.config.resolved_binary_name}-{target.slug}"

    def archive_path(self, target: TargetPlatform) -> pathlib.Path:
        """Deterministic path of the release archive for ``target``."""
        return self.options.release_root / f"{self.release_name(target)}.{target.archive_format.value}"

    def checksum_path(self, archive: pathlib.Path) -> pathlib.Path:
        return archive.with_name(f"{archive.name}.{self.toolchain.digest_name}")

    def copy_extra_files(self, staging: pathlib.Path) -> None:
        """Copy the configured extra release files into ``staging``.

        Raises:
            PackagingError: If an extra file cannot be copied.
        """
        for name in self.config.release_extra_files:
            source = pathlib.Path(name)
            if not source.is_absolute():
                source = self.options.project_root / source
            try:
                shutil.copy2(source, staging / source.name)
            except OSError as e:
                raise PackagingError(f"Unable to add extra release file '{name}': {e}") from e

    def stage(self, artifact: Artifact) -> pathlib.Path:
        """Copy the binary of ``artifact`` and the extra files into a staging directory.

        The staging directory lives next to the binary and is named after
        the release. Only this artifact's binary is staged, so other
        binaries sharing the directory (as in docker mode) stay out of
        the archive.

        Returns:
            Path of the staging directory
        """
        staging = artifact.binary_path.parent / f"tmp-{self.release_name(artifact.target)}"
        if staging.exists():
            shutil.rmtree(staging)
        staging.mkdir()
        shutil.copy2(artifact.binary_path, staging / artifact.binary_path.name)
        try:
            self.copy_extra_files(staging)
        except PackagingError:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        return staging

    def compress(self, target: TargetPlatform, staging: pathlib.Path, archive: pathlib.Path) -> None:
        """Move the staged files into the release root and compress them.

        Raises:
            PackagingError: If moving or compressing fails.
        """
        artifact_dir = self.options.release_root / self.artifact_dir_name
        try:
            for stale in (artifact_dir, self.options.release_root / staging.name):
                if stale.exists():
                    shutil.rmtree(stale)
            moved = pathlib.Path(shutil.move(str(staging), str(self.options.release_root)))
            moved.rename(artifact_dir)
        except OSError as e:
            raise PackagingError(f"Unable to stage the {target.path} release: {e}", target=target.path) from e

        self.toolchain.archive(artifact_dir, archive, target.archive_format)
        self.remove_staged(artifact_dir)

    def remove_staged(self, artifact_dir: pathlib.Path) -> None:
        """Remove the uncompressed release directory once its archive exists."""
        try:
            shutil.rmtree(artifact_dir)
        except OSError as e:
            self.logger.warning(f"Unable to remove the staged release directory: {e}", path=str(artifact_dir))

    def write_checksum(self, archive: pathlib.Path) -> pathlib.Path:
        """Write the digest of ``archive`` to its sidecar file."""
        checksum_file = self.checksum_path(archive)
        checksum_file.write_text(f"{self.toolchain.digest(archive).lower()}\n", encoding="utf-8")
        return checksum_file

    def package(self, artifact: Artifact) -> Artifact:
        """Package one built artifact.

        Args:
            artifact: Artifact in the ``BUILT`` (or ``PLANNED``) state

        Returns:
            A new artifact in the ``CHECKSUM_WRITTEN``, ``PACKAGING_FAILED``
            or, for dry runs, ``PLANNED`` state
        """
        target = artifact.target
        archive = self.archive_path(target)
        checksum_file = self.checksum_path(archive)

        self.logger.info(f"Packaging the {target.path} release", target=target.path)
        self.logger.debug("Adding extra release files", files=self.config.release_extra_files)
        self.logger.debug(f"Creating {target.archive_format.value} file for the {target.path} release",
                          path=str(archive))

        if self.options.dry_run:
            return artifact.advance(ArtifactState.PLANNED, archive_path=archive, checksum_path=checksum_file)

        try:
            self.options.release_root.mkdir(parents=True, exist_ok=True)
            staging = self.stage(artifact)
            self.compress(target, staging, archive)
        except (PackagingError, OSError) as e:
            self.logger.error(f"Building the {target.archive_format.value} file failed for the "
                              f"{target.path} release: {e}", target=target.path)
            return artifact.advance(ArtifactState.PACKAGING_FAILED, archive_path=archive, error=str(e))

        packaged = artifact.advance(ArtifactState.PACKAGED, archive_path=archive)
        self.logger.debug("Generating the checksum file", path=str(checksum_file))
        self.write_checksum(archive)
        return packaged.advance(ArtifactState.CHECKSUM_WRITTEN, checksum_path=checksum_file)
