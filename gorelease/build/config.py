"""Build configuration for gorelease.

This module contains the configuration models that describe what to build
(``BuildConfig``, read from a ``build.config`` file) and how to run
(``BuildOptions``, taken from the command line), together with the loader
and the validation that checks a configuration before any target is built.

Example build.config::

    BUILD_OS=linux,darwin,windows
    BUILD_ARCH=amd64,arm64
    SKIP_BUILD=windows-arm64
    GOLANG_BINARY_NAME=tool
    GOLANG_PACKAGE=github.com/example/tool
    GOLANG_VERSION_PKG=internal/version
    RELEASE_EXTRA_FILES=LICENSE,README.md
"""

from __future__ import annotations

import pathlib
import shlex
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from gorelease.utils.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG_NAME = "build.config"
DEFAULT_CONFIG_DIRS: Tuple[str, ...] = (".ci", "ci")
DEFAULT_MAIN_FILE = "main.go"

# Keys accepted in build.config and the BuildConfig field each one sets
CONFIG_KEYS: Dict[str, str] = {
    "BUILD_OS": "build_os",
    "BUILD_ARCH": "build_arch",
    "SKIP_BUILD": "skip_build",
    "GOLANG_BINARY_NAME": "binary_name",
    "GOLANG_LDFLAGS": "ldflags",
    "GOLANG_PACKAGE": "package",
    "GOLANG_VERSION_PKG": "version_pkg",
    "RELEASE_EXTRA_FILES": "release_extra_files",
}


def _split_list(value: Any) -> List[str]:
    """Split a comma separated value into a list of unique, non-empty items."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = [str(v) for v in value]
    result: List[str] = []
    for item in items:
        item = item.strip()
        if item and item not in result:
            result.append(item)
    return result


class BuildConfig(BaseModel):
    """What to build, as declared by the project's build.config.

    Attributes:
        build_os: Operating systems to build for in build-all mode
        build_arch: Architectures to build for in build-all mode
        skip_build: ``os-arch`` combinations to leave out of the matrix
        binary_name: Base name of the produced binary
        ldflags: Link flags that replace the computed defaults entirely
        package: Go module path of the project
        version_pkg: Location of the version package inside the module
        release_extra_files: Files bundled next to the binary in releases
        project_dir_name: Name of the project directory, used as a last
            resort binary name
    """

    model_config = ConfigDict(frozen=True)

    build_os: List[str] = Field(default_factory=list)
    build_arch: List[str] = Field(default_factory=list)
    skip_build: List[str] = Field(default_factory=list)
    binary_name: Optional[str] = None
    ldflags: Optional[str] = None
    package: Optional[str] = None
    version_pkg: Optional[str] = None
    release_extra_files: List[str] = Field(default_factory=list)
    project_dir_name: Optional[str] = None

    @field_validator("build_os", "build_arch", "skip_build", "release_extra_files", mode="before")
    @classmethod
    def validate_lists(cls, v: Any) -> List[str]:
        """Accept comma separated strings as well as lists."""
        return _split_list(v)

    @field_validator("binary_name", "ldflags", "package", "version_pkg", mode="before")
    @classmethod
    def validate_optional_strings(cls, v: Any) -> Optional[str]:
        """Treat blank values the same as missing ones."""
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @property
    def resolved_binary_name(self) -> str:
        """Binary name to use, falling back to the module's last path segment."""
        if self.binary_name:
            return self.binary_name
        if self.package:
            return self.package.rstrip("/").rsplit("/", 1)[-1]
        return self.project_dir_name or "main"

    @classmethod
    def from_mapping(cls, values: Dict[str, Any], project_dir_name: Optional[str] = None) -> BuildConfig:
        """Create a BuildConfig from ``build.config`` style keys.

        Keys may be given either as the file keys (``BUILD_OS``) or as the
        field names (``build_os``). Unknown keys are ignored.

        Raises:
            ConfigurationError: If a value fails validation.
        """
        fields: Dict[str, Any] = {}
        for key, value in values.items():
            name = CONFIG_KEYS.get(str(key).upper())
            if name is None and key in cls.model_fields:
                name = key
            if name is None:
                logger.debug("Ignoring unknown configuration key", key=key)
                continue
            fields[name] = value
        if project_dir_name:
            fields["project_dir_name"] = project_dir_name
        try:
            return cls(**fields)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid build configuration: {e}") from e


class BuildOptions(BaseModel):
    """How to run, as selected on the command line."""

    model_config = ConfigDict(frozen=True)

    project_root: pathlib.Path = Field(default_factory=pathlib.Path.cwd)
    build_all: bool = False
    build_version: Optional[str] = None
    clean: bool = False
    config_path: Optional[pathlib.Path] = None
    debug: bool = False
    docker: bool = False
    dry_run: bool = False
    main_file: str = DEFAULT_MAIN_FILE
    package: bool = False
    use_color: bool = True
    with_cgo: bool = False
    dist_dir: str = "dist"
    release_dir: str = "release"
    docker_dist_dir: str = "dist/docker"

    @model_validator(mode="before")
    @classmethod
    def debug_implies_dry_run(cls, data: Any) -> Any:
        """Debug mode only reports, it never builds."""
        if isinstance(data, dict) and data.get("debug"):
            data = dict(data, dry_run=True)
        return data

    @property
    def dist_root(self) -> pathlib.Path:
        return self.project_root / self.dist_dir

    @property
    def release_root(self) -> pathlib.Path:
        return self.project_root / self.release_dir

    @property
    def docker_root(self) -> pathlib.Path:
        return self.project_root / self.docker_dist_dir


def parse_key_value(text: str, source: str = "<string>") -> Dict[str, str]:
    """Parse a flat ``KEY=value`` configuration file.

    Blank lines and ``#`` comments are skipped, an ``export`` prefix is
    allowed and values may be quoted the way a shell would quote them.

    Args:
        text: File contents
        source: Name used in error messages

    Returns:
        Mapping of keys to their string values

    Raises:
        ConfigurationError: If a line cannot be parsed.
    """
    values: Dict[str, str] = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key or not key.replace("_", "").isalnum():
            raise ConfigurationError(
                f"{source}:{lineno}: expected KEY=value, got {raw.strip()!r}",
                config_key=key or None,
            )
        try:
            tokens = shlex.split(value, comments=True)
        except ValueError as e:
            raise ConfigurationError(f"{source}:{lineno}: {e}", config_key=key) from e
        values[key] = " ".join(tokens)
    return values


def read_config_file(path: Union[str, pathlib.Path]) -> Dict[str, Any]:
    """Read a configuration file into a flat mapping.

    Files ending in ``.yaml`` or ``.yml`` are read as YAML, everything else
    as ``KEY=value`` lines.

    Raises:
        ConfigurationError: If the file cannot be read or parsed.
    """
    path = pathlib.Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Unable to read configuration file '{path}': {e}") from e

    if path.suffix.lower() in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file '{path}': {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file '{path}' must contain a mapping")
        return data

    return parse_key_value(text, source=str(path))


def find_config_file(project_root: pathlib.Path) -> Optional[pathlib.Path]:
    """Return the first default configuration file that exists, if any."""
    for directory in DEFAULT_CONFIG_DIRS:
        candidate = project_root / directory / DEFAULT_CONFIG_NAME
        if candidate.is_file():
            return candidate
    return None


def load_config(
        project_root: pathlib.Path, config_path: Optional[Union[str, pathlib.Path]] = None
) -> BuildConfig:
    """Load the build configuration for a project.

    Args:
        project_root: Root directory of the Go project
        config_path: Custom configuration file; relative paths are resolved
            against ``project_root``

    Returns:
        The loaded BuildConfig

    Raises:
        ConfigurationError: If the custom file cannot be loaded, or no file
            exists in the default locations.
    """
    if config_path is not None:
        path = pathlib.Path(config_path)
        if not path.is_absolute():
            path = project_root / path
        if not path.is_file():
            raise ConfigurationError(
                f"No configuration file was found at '{config_path}'", config_key="config"
            )
        logger.debug("Loading the config file", path=str(path))
    else:
        path = find_config_file(project_root)
        if path is None:
            raise ConfigurationError(
                "No configuration file was found in the default .ci/ci folders. "
                "If you have a custom path please use the -c|--config option",
                config_key="config",
            )
        logger.debug("Loading build.config file", path=str(path))

    config = BuildConfig.from_mapping(read_config_file(path), project_dir_name=project_root.name)
    logger.debug("Config file loaded", path=str(path))
    return config


@dataclass
class ValidationResult:
    """Outcome of validating a configuration.

    Errors are collected rather than raised so that every missing setting
    can be reported in one pass.
    """

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        """Raise a single ConfigurationError carrying all errors, if any."""
        if self.errors:
            raise ConfigurationError(
                "There are missing settings in your build.config, fix the errors to resume",
                errors=self.errors,
            )


def validate_config(config: BuildConfig, build_all: bool = False) -> ValidationResult:
    """Check a configuration for missing settings.

    Empty OS or architecture lists only matter in build-all mode; outside
    of it they are reported as warnings.

    Args:
        config: Configuration to check
        build_all: Whether every configured target will be built

    Returns:
        ValidationResult with all errors and warnings found
    """
    result = ValidationResult()

    def require_for_all(present: bool, message: str) -> None:
        if present:
            return
        if build_all:
            result.errors.append(message)
        else:
            result.warnings.append(message)

    require_for_all(
        bool(config.build_os),
        "There are no build operating systems configured, '--all' will not work properly, "
        "set the BUILD_OS variable",
    )
    require_for_all(
        bool(config.build_arch),
        "There are no build architectures configured, '--all' will not work properly, "
        "set the BUILD_ARCH variable",
    )
    if not config.binary_name:
        result.warnings.append(
            "There is no binary name configured, the binary will be named "
            f"'{config.resolved_binary_name}', set the GOLANG_BINARY_NAME variable"
        )
    if not config.package:
        result.errors.append("There is no go package name configured, set the GOLANG_PACKAGE variable")
    if not config.version_pkg:
        result.errors.append(
            "There is no version package location configured, set the GOLANG_VERSION_PKG variable"
        )
    return result
