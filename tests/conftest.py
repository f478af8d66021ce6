"""Pytest configuration and fixtures for gorelease tests."""

from __future__ import annotations

import hashlib
import pathlib
from typing import Callable, Dict, List, Optional, Set

import pytest

from gorelease.build import utils
from gorelease.build.config import BuildConfig, BuildOptions
from gorelease.build.models import ArchiveFormat, TargetPlatform
from gorelease.build.toolchain import SourceControl, Toolchain
from gorelease.utils.exceptions import BuildError, PackagingError, RepositoryError

ALL_TARGETS = [
    TargetPlatform("darwin", "amd64"),
    TargetPlatform("darwin", "arm64"),
    TargetPlatform("linux", "386"),
    TargetPlatform("linux", "amd64"),
    TargetPlatform("linux", "arm64"),
    TargetPlatform("windows", "amd64"),
    TargetPlatform("windows", "arm64"),
]

CONFIG_TEXT = """\
# build settings
BUILD_OS=linux,darwin
BUILD_ARCH=amd64,arm64
SKIP_BUILD=darwin-arm64
GOLANG_BINARY_NAME=tool
GOLANG_PACKAGE=github.com/example/tool
GOLANG_VERSION_PKG=internal/version
RELEASE_EXTRA_FILES=LICENSE
"""


class FakeToolchain(Toolchain):
    """Toolchain that writes placeholder binaries instead of compiling."""

    required_commands = ()

    def __init__(
            self,
            supported: Optional[List[TargetPlatform]] = None,
            fail_compile: bool = False,
            skip_output: bool = False,
            fail_archive: Optional[Set[str]] = None,
    ) -> None:
        self.supported = list(ALL_TARGETS if supported is None else supported)
        self.fail_compile = fail_compile
        self.skip_output = skip_output
        self.fail_archive = fail_archive or set()
        self.compiled: List[Dict] = []
        self.archived: List[pathlib.Path] = []

    def supported_targets(self) -> List[TargetPlatform]:
        return list(self.supported)

    def compile(self, target, ldflags, output, entry_point, cgo=False) -> None:
        self.compiled.append(
            {"target": target, "ldflags": ldflags, "output": output, "entry_point": entry_point, "cgo": cgo}
        )
        if self.fail_compile:
            raise BuildError("compiler exploded", target=target.path)
        if not self.skip_output:
            output.write_bytes(f"binary {target.path} {ldflags}".encode())

    def describe_compile(self, target, ldflags, output, entry_point, cgo=False) -> str:
        return f"CGO_ENABLED={int(cgo)} GOOS={target.os} GOARCH={target.arch} go build -o {output} {entry_point}"

    def archive(self, source_dir: pathlib.Path, output: pathlib.Path, fmt: ArchiveFormat) -> None:
        self.archived.append(output)
        if any(slug in output.name for slug in self.fail_archive):
            output.write_bytes(b"partial")
            raise PackagingError(f"archiver failed for {output.name}")
        if fmt == ArchiveFormat.ZIP:
            utils.create_zip(source_dir, output)
        else:
            utils.create_tarball(source_dir, output)

    def digest(self, path: pathlib.Path) -> str:
        return hashlib.sha256(path.read_bytes()).hexdigest()


class FakeSourceControl(SourceControl):
    """Source control with fixed answers."""

    def __init__(self, clean: bool = True, tags: Optional[List[str]] = None, commit: Optional[str] = "abc1234") -> None:
        self.clean = clean
        self.tags = list(tags or [])
        self.commit = commit

    def is_clean(self) -> bool:
        return self.clean

    def exact_tags(self) -> List[str]:
        return list(self.tags)

    def short_commit(self) -> str:
        if not self.commit:
            raise RepositoryError("No git commit could be found")
        return self.commit


@pytest.fixture
def fake_toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def fake_source_control() -> FakeSourceControl:
    return FakeSourceControl(tags=["v1.0.0"])


@pytest.fixture
def go_project(tmp_path: pathlib.Path) -> pathlib.Path:
    """A minimal Go project with a build.config in .ci/."""
    root = tmp_path / "tool"
    (root / "cmd" / "tool").mkdir(parents=True)
    (root / "cmd" / "tool" / "main.go").write_text("package main\n\nfunc main() {}\n")
    (root / "LICENSE").write_text("MIT\n")
    (root / ".ci").mkdir()
    (root / ".ci" / "build.config").write_text(CONFIG_TEXT)
    return root


@pytest.fixture
def build_config() -> BuildConfig:
    return BuildConfig(
        build_os="linux,darwin",
        build_arch="amd64,arm64",
        skip_build="darwin-arm64",
        binary_name="tool",
        package="github.com/example/tool",
        version_pkg="internal/version",
        release_extra_files="LICENSE",
    )


@pytest.fixture
def make_options(go_project: pathlib.Path) -> Callable[..., BuildOptions]:
    def factory(**kwargs) -> BuildOptions:
        kwargs.setdefault("project_root", go_project)
        return BuildOptions(**kwargs)

    return factory


def snapshot(root: pathlib.Path) -> Set[str]:
    """Relative paths of every file and directory below ``root``."""
    return {str(p.relative_to(root)) for p in root.rglob("*")}
