"""Version resolution for release builds.

A release is stamped with a version and the abbreviated commit it was built
from. Without an explicit override the version comes from a ``vX.Y.Z`` tag
on the current commit of a clean working tree; anything else is an
``edge`` build.
"""

from __future__ import annotations

from typing import Optional

import structlog

from gorelease.build.models import ResolvedVersion
from gorelease.build.toolchain import VERSION_TAG_PATTERN, SourceControl

logger = structlog.get_logger(__name__)

EDGE_VERSION = "edge"


class VersionResolver:
    """Determines the version string and revision of a build.

    Attributes:
        source_control: Provider of tree status, tags and commit id
        assume_clean: Skip the working tree check, as container builds do
    """

    def __init__(self, source_control: SourceControl, assume_clean: bool = False) -> None:
        self.source_control = source_control
        self.assume_clean = assume_clean

    def tagged_version(self) -> str:
        """Return the version of an exact ``vX.Y.Z`` tag at HEAD, or ``edge``."""
        if not self.assume_clean and not self.source_control.is_clean():
            logger.debug("Working tree has uncommitted changes")
            return EDGE_VERSION

        for tag in self.source_control.exact_tags():
            match = VERSION_TAG_PATTERN.match(tag)
            if match:
                return match.group(1)

        logger.debug("No version tag points at the current commit")
        return EDGE_VERSION

    def resolve(self, version_override: Optional[str] = None) -> ResolvedVersion:
        """Resolve the version and revision.

        Args:
            version_override: Version to use verbatim instead of the tag

        Returns:
            ResolvedVersion for this build

        Raises:
            RepositoryError: If no commit identifier is available.
        """
        revision = self.source_control.short_commit()
        version = version_override if version_override else self.tagged_version()
        logger.debug("Resolved version", version=version, commit=revision)
        return ResolvedVersion(version=version, revision=revision)
