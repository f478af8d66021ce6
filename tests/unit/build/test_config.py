"""Unit tests for build configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from gorelease.build.config import (
    BuildConfig,
    BuildOptions,
    find_config_file,
    load_config,
    parse_key_value,
    read_config_file,
    validate_config,
)
from gorelease.utils.exceptions import ConfigurationError


class TestBuildConfig:
    """Tests for the BuildConfig model."""

    def test_defaults(self):
        config = BuildConfig()
        assert config.build_os == []
        assert config.build_arch == []
        assert config.skip_build == []
        assert config.binary_name is None
        assert config.ldflags is None
        assert config.release_extra_files == []

    def test_comma_separated_lists(self):
        config = BuildConfig(build_os=" linux, darwin ,,linux", release_extra_files=["LICENSE", "README.md"])
        assert config.build_os == ["linux", "darwin"]
        assert config.release_extra_files == ["LICENSE", "README.md"]

    def test_is_immutable(self):
        config = BuildConfig(binary_name="tool")
        with pytest.raises(ValidationError):
            config.binary_name = "other"

    def test_resolved_binary_name(self):
        assert BuildConfig(binary_name="tool").resolved_binary_name == "tool"
        assert BuildConfig(package="github.com/example/cli/").resolved_binary_name == "cli"
        assert BuildConfig(project_dir_name="project").resolved_binary_name == "project"
        assert BuildConfig().resolved_binary_name == "main"

    def test_from_mapping_accepts_file_keys_and_field_names(self):
        config = BuildConfig.from_mapping(
            {"BUILD_OS": "linux", "build_arch": "amd64", "UNRELATED": "x", "golang_binary_name": "tool"},
            project_dir_name="project",
        )
        assert config.build_os == ["linux"]
        assert config.build_arch == ["amd64"]
        assert config.binary_name == "tool"
        assert config.project_dir_name == "project"


class TestBuildOptions:
    """Tests for the BuildOptions model."""

    def test_debug_implies_dry_run(self, tmp_path):
        assert BuildOptions(project_root=tmp_path, debug=True).dry_run is True
        assert BuildOptions(project_root=tmp_path).dry_run is False

    def test_layout(self, tmp_path):
        options = BuildOptions(project_root=tmp_path)
        assert options.dist_root == tmp_path / "dist"
        assert options.release_root == tmp_path / "release"
        assert options.docker_root == tmp_path / "dist" / "docker"


class TestParseKeyValue:
    """Tests for the flat KEY=value parser."""

    def test_parse(self):
        text = """
# comment
BUILD_OS=linux,darwin
export BUILD_ARCH="amd64,arm64"
GOLANG_LDFLAGS='-s -w -X main.version=1'
GOLANG_BINARY_NAME=tool  # trailing comment
EMPTY=
"""
        assert parse_key_value(text) == {
            "BUILD_OS": "linux,darwin",
            "BUILD_ARCH": "amd64,arm64",
            "GOLANG_LDFLAGS": "-s -w -X main.version=1",
            "GOLANG_BINARY_NAME": "tool",
            "EMPTY": "",
        }

    def test_line_without_equals(self):
        with pytest.raises(ConfigurationError, match="build.config:2"):
            parse_key_value("A=1\nnot a setting\n", source="build.config")

    def test_unbalanced_quotes(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_key_value('GOLANG_LDFLAGS="-s -w\n')
        assert exc_info.value.config_key == "GOLANG_LDFLAGS"


class TestLoadConfig:
    """Tests for configuration discovery and loading."""

    def test_loads_from_dot_ci(self, go_project):
        config = load_config(go_project)
        assert config.build_os == ["linux", "darwin"]
        assert config.build_arch == ["amd64", "arm64"]
        assert config.skip_build == ["darwin-arm64"]
        assert config.binary_name == "tool"
        assert config.package == "github.com/example/tool"
        assert config.version_pkg == "internal/version"
        assert config.release_extra_files == ["LICENSE"]
        assert config.project_dir_name == "tool"

    def test_falls_back_to_ci(self, tmp_path):
        (tmp_path / "ci").mkdir()
        (tmp_path / "ci" / "build.config").write_text("GOLANG_BINARY_NAME=fallback\n")
        assert find_config_file(tmp_path) == tmp_path / "ci" / "build.config"
        assert load_config(tmp_path).binary_name == "fallback"

    def test_dot_ci_wins_over_ci(self, go_project):
        (go_project / "ci").mkdir()
        (go_project / "ci" / "build.config").write_text("GOLANG_BINARY_NAME=other\n")
        assert load_config(go_project).binary_name == "tool"

    def test_missing_default_config(self, tmp_path):
        with pytest.raises(ConfigurationError, match="default .ci/ci folders"):
            load_config(tmp_path)

    def test_custom_path(self, go_project):
        custom = go_project / "custom.config"
        custom.write_text("GOLANG_BINARY_NAME=custom\n")
        assert load_config(go_project, "custom.config").binary_name == "custom"
        assert load_config(go_project, custom).binary_name == "custom"

    def test_missing_custom_path_is_fatal(self, go_project):
        with pytest.raises(ConfigurationError, match="missing.config"):
            load_config(go_project, "missing.config")

    def test_unparseable_custom_path_is_fatal(self, go_project):
        custom = go_project / "broken.config"
        custom.write_text("this is not a config\n")
        with pytest.raises(ConfigurationError):
            load_config(go_project, custom)

    def test_yaml_config(self, tmp_path):
        path = tmp_path / "build.yaml"
        path.write_text(
            yaml.dump(
                {
                    "BUILD_OS": ["linux", "windows"],
                    "BUILD_ARCH": "amd64",
                    "GOLANG_PACKAGE": "example.com/tool",
                }
            )
        )
        config = load_config(tmp_path, path)
        assert config.build_os == ["linux", "windows"]
        assert config.build_arch == ["amd64"]
        assert config.package == "example.com/tool"

    def test_yaml_must_be_mapping(self, tmp_path):
        path = tmp_path / "build.yml"
        path.write_text("- linux\n- darwin\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            read_config_file(path)


class TestValidateConfig:
    """Tests for validate_config."""

    def test_valid(self, build_config):
        result = validate_config(build_config, build_all=True)
        assert result.ok
        assert result.errors == []
        assert result.warnings == []
        result.raise_for_errors()

    def test_all_errors_are_accumulated(self):
        result = validate_config(BuildConfig(), build_all=True)
        assert len(result.errors) == 4
        assert any("BUILD_OS" in e for e in result.errors)
        assert any("BUILD_ARCH" in e for e in result.errors)
        assert any("GOLANG_PACKAGE" in e for e in result.errors)
        assert any("GOLANG_VERSION_PKG" in e for e in result.errors)
        assert any("GOLANG_BINARY_NAME" in w for w in result.warnings)

        with pytest.raises(ConfigurationError) as exc_info:
            result.raise_for_errors()
        assert exc_info.value.errors == result.errors

    def test_empty_lists_only_warn_without_build_all(self):
        config = BuildConfig(binary_name="tool", package="example.com/tool", version_pkg="internal/version")
        result = validate_config(config, build_all=False)
        assert result.ok
        assert len(result.warnings) == 2

    def test_empty_lists_are_errors_with_build_all(self):
        config = BuildConfig(binary_name="tool", package="example.com/tool", version_pkg="internal/version")
        result = validate_config(config, build_all=True)
        assert not result.ok
        assert len(result.errors) == 2
