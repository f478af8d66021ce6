"""Unit tests for link flag composition."""

from gorelease.build.config import BuildConfig
from gorelease.build.ldflags import compose_ldflags, injection_point
from gorelease.build.models import ResolvedVersion

RESOLVED = ResolvedVersion(version="1.0.0", revision="abc1234")


def test_default_flags_inject_into_version_package():
    config = BuildConfig(package="github.com/example/tool", version_pkg="internal/version")
    assert compose_ldflags(config, RESOLVED) == (
        "-s -w "
        "-X github.com/example/tool/internal/version.version=1.0.0 "
        "-X github.com/example/tool/internal/version.gitCommit=abc1234"
    )


def test_override_is_used_verbatim():
    config = BuildConfig(
        package="github.com/example/tool",
        version_pkg="internal/version",
        ldflags="-X main.build=custom",
    )
    assert compose_ldflags(config, RESOLVED) == "-X main.build=custom"


def test_blank_override_falls_back_to_defaults():
    config = BuildConfig(package="example.com/tool", version_pkg="main", ldflags="   ")
    assert compose_ldflags(config, RESOLVED) == "-s -w -X main.version=1.0.0 -X main.gitCommit=abc1234"


def test_injection_point():
    assert injection_point(BuildConfig(package="example.com/tool")) == "main"
    assert injection_point(BuildConfig(package="example.com/tool", version_pkg="main")) == "main"
    assert injection_point(BuildConfig(package="example.com/tool", version_pkg="/pkg/version/")) == (
        "example.com/tool/pkg/version"
    )
    assert injection_point(BuildConfig(package="example.com/tool", version_pkg="example.com/tool/version")) == (
        "example.com/tool/version"
    )
    assert injection_point(BuildConfig(version_pkg="internal/version")) == "internal/version"


def test_injection_point_matches_whole_path_segments():
    config = BuildConfig(package="github.com/x/tool", version_pkg="github.com/x/toolkit/version")
    assert injection_point(config) == "github.com/x/tool/github.com/x/toolkit/version"
    assert injection_point(BuildConfig(package="github.com/x/tool/", version_pkg="github.com/x/tool")) == (
        "github.com/x/tool"
    )
