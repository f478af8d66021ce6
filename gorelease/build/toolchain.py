"""External collaborators of the build pipeline.

The compiler, the archiver, the digest tool and source control are reached
only through the ``Toolchain`` and ``SourceControl`` interfaces defined here,
so the pipeline can be driven by fakes in tests. ``GoToolchain`` and
``GitSourceControl`` are the implementations used on the command line.
"""

from __future__ import annotations

import abc
import os
import pathlib
import re
import shlex
import subprocess
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import structlog

from gorelease.build import utils
from gorelease.build.models import ArchiveFormat, TargetPlatform
from gorelease.utils.exceptions import BuildError, PackagingError, RepositoryError

logger = structlog.get_logger(__name__)

VERSION_TAG_PATTERN = re.compile(r"^v(\d+\.\d+\.\d+)$")


class Toolchain(abc.ABC):
    """Compiler, archiver and digest capabilities used by the pipeline."""

    #: Commands that must be on PATH before a run starts
    required_commands: Tuple[str, ...] = ()

    #: Name of the digest algorithm, used as the checksum file suffix
    digest_name: str = "sha256sum"

    @abc.abstractmethod
    def supported_targets(self) -> List[TargetPlatform]:
        """Return every os/arch pair the compiler can produce binaries for."""

    @abc.abstractmethod
    def compile(
            self,
            target: TargetPlatform,
            ldflags: str,
            output: pathlib.Path,
            entry_point: pathlib.Path,
            cgo: bool = False,
    ) -> None:
        """Compile ``entry_point`` for ``target`` into ``output``.

        Raises:
            BuildError: If the compiler reports a failure.
        """

    @abc.abstractmethod
    def describe_compile(
            self,
            target: TargetPlatform,
            ldflags: str,
            output: pathlib.Path,
            entry_point: pathlib.Path,
            cgo: bool = False,
    ) -> str:
        """Return the command line ``compile`` would run, for reporting."""

    @abc.abstractmethod
    def archive(self, source_dir: pathlib.Path, output: pathlib.Path, fmt: ArchiveFormat) -> None:
        """Compress ``source_dir`` into ``output``.

        Raises:
            PackagingError: If the archive cannot be written.
        """

    @abc.abstractmethod
    def digest(self, path: pathlib.Path) -> str:
        """Return the lowercase hex digest of a file."""


class SourceControl(abc.ABC):
    """Read-only access to the project's source-control metadata."""

    @abc.abstractmethod
    def is_clean(self) -> bool:
        """Whether the working tree has no uncommitted changes."""

    @abc.abstractmethod
    def exact_tags(self) -> List[str]:
        """Tags that point exactly at the current commit."""

    @abc.abstractmethod
    def short_commit(self) -> str:
        """Abbreviated identifier of the current commit.

        Raises:
            RepositoryError: If there is no repository.
        """


def _run(
        cmd: Sequence[str],
        cwd: Optional[pathlib.Path] = None,
        env: Optional[Mapping[str, str]] = None,
) -> subprocess.CompletedProcess:
    logger.debug("Running command", command=shlex.join(cmd), cwd=str(cwd) if cwd else None)
    return subprocess.run(
        list(cmd),
        cwd=cwd,
        env=dict(env) if env is not None else None,
        capture_output=True,
        text=True,
    )


class GoToolchain(Toolchain):
    """Toolchain backed by the ``go`` command.

    Archives are written with ``tarfile``/``zipfile`` and digests computed
    with ``hashlib``, so only ``go`` and ``git`` need to be installed.
    """

    required_commands = ("go", "git")

    def __init__(self, project_root: pathlib.Path, go: str = "go") -> None:
        self.project_root = project_root
        self.go = go
        self._supported: Optional[List[TargetPlatform]] = None

    def supported_targets(self) -> List[TargetPlatform]:
        if self._supported is None:
            result = _run([self.go, "tool", "dist", "list"], cwd=self.project_root)
            if result.returncode != 0:
                raise BuildError(
                    f"Unable to list supported targets: {result.stderr.strip()}",
                    details={"returncode": result.returncode},
                )
            self._supported = parse_dist_list(result.stdout)
        return list(self._supported)

    def _build_args(self, ldflags: str, output: pathlib.Path, entry_point: pathlib.Path) -> List[str]:
        return [self.go, "build", f"-ldflags={ldflags}", "-o", str(output), str(entry_point)]

    @staticmethod
    def _build_env(target: TargetPlatform, cgo: bool) -> Dict[str, str]:
        return {
            "CGO_ENABLED": "1" if cgo else "0",
            "GOOS": target.os,
            "GOARCH": target.arch,
        }

    def compile(
            self,
            target: TargetPlatform,
            ldflags: str,
            output: pathlib.Path,
            entry_point: pathlib.Path,
            cgo: bool = False,
    ) -> None:
        env = dict(os.environ)
        env.update(self._build_env(target, cgo))
        result = _run(self._build_args(ldflags, output, entry_point), cwd=self.project_root, env=env)
        if result.stdout:
            logger.debug("go build output", target=target.path, output=result.stdout.strip())
        if result.returncode != 0:
            raise BuildError(
                f"go build failed with return code {result.returncode}: {result.stderr.strip()}",
                target=target.path,
            )

    def describe_compile(
            self,
            target: TargetPlatform,
            ldflags: str,
            output: pathlib.Path,
            entry_point: pathlib.Path,
            cgo: bool = False,
    ) -> str:
        env = " ".join(f"{k}={v}" for k, v in self._build_env(target, cgo).items())
        return f"{env} {shlex.join(self._build_args(ldflags, output, entry_point))}"

    def archive(self, source_dir: pathlib.Path, output: pathlib.Path, fmt: ArchiveFormat) -> None:
        try:
            if fmt == ArchiveFormat.ZIP:
                utils.create_zip(source_dir, output)
            else:
                utils.create_tarball(source_dir, output)
        except (OSError, ValueError) as e:
            raise PackagingError(f"Failed to create {fmt.value} archive {output.name}: {e}") from e

    def digest(self, path: pathlib.Path) -> str:
        return utils.calculate_file_hash(path, "sha256")


def parse_dist_list(output: str) -> List[TargetPlatform]:
    """Parse the output of ``go tool dist list`` into target platforms."""
    targets = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            targets.append(TargetPlatform.parse(line))
        except ValueError:
            logger.debug("Skipping unrecognized target line", line=line)
    return targets


class GitSourceControl(SourceControl):
    """Source-control metadata read from a git working tree."""

    def __init__(self, project_root: pathlib.Path, git: str = "git") -> None:
        self.project_root = project_root
        self.git = git

    def _git(self, *args: str) -> subprocess.CompletedProcess:
        return _run([self.git, *args], cwd=self.project_root)

    def is_clean(self) -> bool:
        result = self._git("status", "--porcelain")
        if result.returncode != 0:
            raise RepositoryError(
                f"Unable to read the working tree status: {result.stderr.strip()}",
                path=str(self.project_root),
            )
        return not result.stdout.strip()

    def exact_tags(self) -> List[str]:
        result = self._git("tag", "--points-at", "HEAD")
        if result.returncode != 0:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def short_commit(self) -> str:
        result = self._git("rev-parse", "--short", "HEAD")
        commit = result.stdout.strip()
        if result.returncode != 0 or not commit:
            raise RepositoryError(
                "No git commit could be found, the project must be a git repository with at least one commit",
                path=str(self.project_root),
            )
        return commit
