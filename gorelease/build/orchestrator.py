"""Orchestration of a release build run."""

from __future__ import annotations

from typing import Optional

import structlog

from gorelease.build import utils
from gorelease.build.builder import BuildExecutor
from gorelease.build.config import BuildConfig, BuildOptions, load_config, validate_config
from gorelease.build.ldflags import compose_ldflags
from gorelease.build.models import BuildReport
from gorelease.build.packager import ReleasePackager
from gorelease.build.targets import resolve_targets
from gorelease.build.toolchain import GitSourceControl, GoToolchain, SourceControl, Toolchain
from gorelease.build.version import VersionResolver
from gorelease.utils.exceptions import MissingCommandError

logger = structlog.get_logger(__name__)


class Orchestrator:
    """Runs the release pipeline from version resolution to packaging.

    Attributes:
        options: Run options
        toolchain: Compiler, archiver and digest provider
        source_control: Source-control metadata provider
        config: Preloaded configuration; loaded from disk when omitted
    """

    def __init__(
            self,
            options: BuildOptions,
            toolchain: Optional[Toolchain] = None,
            source_control: Optional[SourceControl] = None,
            config: Optional[BuildConfig] = None,
    ) -> None:
        self.options = options
        self.toolchain = toolchain or GoToolchain(options.project_root)
        self.source_control = source_control or GitSourceControl(options.project_root)
        self.config = config

    def check_commands(self) -> None:
        """Raise if a command the toolchain relies on is unavailable."""
        for command in utils.missing_commands(self.toolchain.required_commands):
            raise MissingCommandError(f"The required command '{command}' is not available.", command=command)

    def clean(self) -> None:
        """Remove the dist and release directories."""
        for path in (self.options.dist_root, self.options.release_root):
            if not path.is_dir():
                continue
            logger.info(f"Removing '{path.name}' folder", path=str(path))
            if not self.options.dry_run:
                utils.remove_directories([path])
        logger.info("Clean up completed")

    def run(self) -> BuildReport:
        """Run the pipeline.

        Returns:
            BuildReport of everything built and packaged

        Raises:
            GoReleaseError: On any fatal environment, configuration or build
                error. Packaging errors are recorded on the artifacts instead.
        """
        options = self.options
        report = BuildReport(dry_run=options.dry_run)
        if options.dry_run:
            logger.warning("Dry run executing, nothing will be built")

        self.check_commands()

        if options.clean:
            self.clean()
            report.cleaned = True
            return report

        logger.debug("Execution Dir", path=str(options.project_root))
        resolver = VersionResolver(self.source_control, assume_clean=options.docker)
        report.version = resolver.resolve(options.build_version)

        config = self.config if self.config is not None else load_config(options.project_root, options.config_path)
        logger.debug("Configuration", commit=report.version.revision, version=report.version.version,
                     package=config.package)

        validation = validate_config(config, build_all=options.build_all)
        for warning in validation.warnings:
            logger.warning(warning)
        for error in validation.errors:
            logger.error(error)
        validation.raise_for_errors()

        report.ldflags = compose_ldflags(config, report.version)
        logger.debug("Link flags", ldflags=report.ldflags)

        if options.dist_root.is_dir():
            logger.info("Cleaning up existing files")
            if not options.dry_run:
                self.clean()

        report.targets = resolve_targets(config, options, self.toolchain)
        logger.debug("Building binaries", targets=[t.path for t in report.targets])

        executor = BuildExecutor(config, options, self.toolchain)
        packager = ReleasePackager(config, options, self.toolchain)
        for target in report.targets:
            artifact = executor.build(target, report.ldflags, report.version.version, report.version.revision)
            if options.package:
                artifact = packager.package(artifact)
            report.artifacts.append(artifact)

        if options.dry_run:
            logger.info("Dry run completed")
        else:
            logger.info("Done building binaries")
        return report
