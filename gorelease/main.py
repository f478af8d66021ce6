"""Command-line interface for gorelease.

Builds a Go project's binaries with version information, optionally for
every configured platform, and packages them as release artifacts.
"""

from __future__ import annotations

import argparse
import pathlib
import sys
from typing import List, Optional

import structlog

from gorelease.__version__ import __version__, get_full_version
from gorelease.build.config import DEFAULT_MAIN_FILE, BuildOptions
from gorelease.build.orchestrator import Orchestrator
from gorelease.core.logging_manager import LoggingManager
from gorelease.utils.exceptions import GoReleaseError

logger = structlog.get_logger("gorelease")

USAGE_EXAMPLE = "%(prog)s [-b|--build-version 1.0.0] [--with-cgo] [--no-color] [--dry-run]"


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on invalid options."""

    def error(self, message: str) -> None:
        self.print_help(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = ArgumentParser(
        prog="gorelease",
        description="A build tool for building golang binaries with version information",
        usage=USAGE_EXAMPLE,
    )
    parser.add_argument("--all", dest="build_all", action="store_true", help="Build all system binaries")
    parser.add_argument(
        "-b", "--build-version", metavar="VERSION",
        help="Set the build version number to override a discovered version",
    )
    parser.add_argument(
        "--clean", action="store_true",
        help="Delete any built binaries by removing the 'dist' and 'release' folders",
    )
    parser.add_argument(
        "-c", "--config", type=pathlib.Path, metavar="PATH",
        help="Path to your 'build.config' file if not using either the .ci or ci directory",
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Run using debug mode to display more log details (implies dry-run)",
    )
    parser.add_argument(
        "--docker", action="store_true",
        help="Sets the build folder output to 'dist/docker' to aid multi stage builds",
    )
    parser.add_argument("--dry-run", action="store_true", help="Print out what will happen, do not execute")
    parser.add_argument(
        "-m", "--main", default=DEFAULT_MAIN_FILE, metavar="FILE",
        help=f"Set the name of the main file to look for (default: {DEFAULT_MAIN_FILE})",
    )
    parser.add_argument("--no-color", action="store_true", help="Do not output colored log messages")
    parser.add_argument(
        "-p", "--package", action="store_true",
        help="Creates the release artifacts in the 'release' folder",
    )
    parser.add_argument(
        "-v", "--version", action="version", version=f"v{__version__}",
        help="Show the version information",
    )
    parser.add_argument("--with-cgo", action="store_true", help="Sets CGO_ENABLED to 1 when building your binary")
    parser.add_argument(
        "--log-format", choices=LoggingManager.FORMATS, default="text",
        help="Log output format (default: text)",
    )
    parser.add_argument(
        "-C", "--directory", type=pathlib.Path, default=None, metavar="DIR",
        help="Project root directory (default: current directory)",
    )
    return parser


def options_from_args(args: argparse.Namespace) -> BuildOptions:
    """Convert parsed arguments into BuildOptions."""
    project_root = (args.directory or pathlib.Path.cwd()).resolve()
    return BuildOptions(
        project_root=project_root,
        build_all=args.build_all,
        build_version=args.build_version,
        clean=args.clean,
        config_path=args.config.resolve() if args.config else None,
        debug=args.debug,
        docker=args.docker,
        dry_run=args.dry_run,
        main_file=args.main,
        package=args.package,
        use_color=not args.no_color and sys.stderr.isatty(),
        with_cgo=args.with_cgo,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Run gorelease.

    Args:
        argv: Command-line arguments, ``sys.argv[1:]`` by default

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    args = build_parser().parse_args(argv)
    options = options_from_args(args)

    logging_manager = LoggingManager(
        level="debug" if options.debug else "info",
        log_format=args.log_format,
        use_color=options.use_color,
    )
    logging_manager.initialize()
    logger.debug("gorelease", version=__version__, build=get_full_version())

    try:
        report = Orchestrator(options).run()
        if report.failed_packages:
            logger.warning(
                "Some release packages could not be created",
                targets=[a.target.path for a in report.failed_packages],
            )
    except GoReleaseError as e:
        logger.error(str(e), **e.details)
        return 1
    finally:
        logging_manager.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
