"""Link flag composition.

Go injects string values at link time with ``-X importpath.name=value``.
The defaults strip debug information and stamp the version and commit
into the project's version package.
"""

from __future__ import annotations

from gorelease.build.config import BuildConfig
from gorelease.build.models import ResolvedVersion

STRIP_FLAGS = ("-s", "-w")
VERSION_VARIABLE = "version"
COMMIT_VARIABLE = "gitCommit"


def injection_point(config: BuildConfig) -> str:
    """Return the import path whose variables receive the version data.

    ``main`` (or no version package) injects into the main package;
    otherwise the version package is qualified with the module path.
    """
    version_pkg = (config.version_pkg or "").strip("/")
    if not version_pkg or version_pkg == "main":
        return "main"
    package = (config.package or "").rstrip("/")
    if package and version_pkg != package and not version_pkg.startswith(package + "/"):
        return f"{package}/{version_pkg}"
    return version_pkg


def compose_ldflags(config: BuildConfig, resolved: ResolvedVersion) -> str:
    """Return the link flags for every build of this run.

    A configured override is used verbatim and never merged with defaults.
    """
    if config.ldflags:
        return config.ldflags

    target = injection_point(config)
    return " ".join(
        [
            *STRIP_FLAGS,
            f"-X {target}.{VERSION_VARIABLE}={resolved.version}",
            f"-X {target}.{COMMIT_VARIABLE}={resolved.revision}",
        ]
    )
