"""Version information for gorelease.

``version`` and ``git_commit`` are stamped into release builds; a
development checkout reports ``unknown`` for both.
"""

__version__ = "2.3.0"

version = ""
git_commit = ""


def get_version() -> str:
    return version or "unknown"


def get_commit() -> str:
    return git_commit or "unknown"


def get_full_version() -> str:
    """Return ``<version>-<commit>``."""
    return f"{get_version()}-{get_commit()}"
